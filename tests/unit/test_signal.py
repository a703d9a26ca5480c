"""Tests for the weighted signal generator and full analysis."""

from datetime import UTC, datetime, timedelta

import pytest

from aurum.analysis.models import AnalysisConfig, MarketSnapshot, SignalType, SignalWeights
from aurum.analysis.service import run_analysis
from aurum.analysis.signal import classify_net_score, compute_signal

NOW = datetime(2026, 3, 2, 14, 0, tzinfo=UTC)


def make_snapshot(
    rows: list[tuple[float, int, int]],
    price: float = 1950,
    captured_at: datetime = NOW,
) -> MarketSnapshot:
    """Snapshot from (strike, call_oi, put_oi) tuples."""
    return MarketSnapshot(
        product="GC",
        expiry="2026-04",
        current_price=price,
        captured_at=captured_at,
        strikes=[{"strike": k, "call_oi": c, "put_oi": p} for k, c, p in rows],
    )


# Call-heavy chain with max pain at 2000, above the 1950 price
BULLISH_ROWS = [(1900, 0, 10), (2000, 100, 10), (2100, 300, 10)]

# Put-heavy chain with max pain at 2000, below a 2050 price
BEARISH_ROWS = [(1900, 10, 300), (2000, 10, 100), (2100, 10, 0)]


class TestClassifyNetScore:
    """Tests for the strength table."""

    @pytest.mark.parametrize(
        ("net", "total", "expected_type", "expected_strength"),
        [
            (4.0, 4.0, SignalType.strong_buy, 5),
            (3.9999, 4.0, SignalType.buy, 4),
            (2.5, 2.5, SignalType.buy, 4),
            (1.0, 3.0, SignalType.buy, 3),
            (-1.0, 3.0, SignalType.sell, 3),
            (-2.5, 2.5, SignalType.sell, 4),
            (-4.5, 5.5, SignalType.strong_sell, 5),
            (0.5, 3.5, SignalType.neutral, 2),
            (0.5, 3.0, SignalType.neutral, 1),
            (0.0, 0.0, SignalType.neutral, 1),
        ],
    )
    def test_table(
        self,
        net: float,
        total: float,
        expected_type: SignalType,
        expected_strength: int,
    ) -> None:
        assert classify_net_score(net, total) == (expected_type, expected_strength)


class TestComputeSignal:
    """Tests for compute_signal."""

    def test_empty_chain_is_neutral(self) -> None:
        signal = compute_signal(make_snapshot([]))

        assert signal.type == SignalType.neutral
        assert signal.strength == 1
        assert signal.confidence == 50
        assert signal.product == "GC"

    def test_zero_price_is_neutral(self) -> None:
        signal = compute_signal(make_snapshot(BULLISH_ROWS, price=0))

        assert signal.type == SignalType.neutral
        assert signal.strength == 1

    def test_bullish_chain_without_previous(self) -> None:
        signal = compute_signal(make_snapshot(BULLISH_ROWS))

        assert signal.type == SignalType.strong_buy
        assert signal.strength == 5
        assert signal.bullish_score == 5.5
        assert signal.bearish_score == 0
        assert signal.net_score == 5.5
        votes = {v.name: v for v in signal.votes}
        assert votes["oi_trend"].reading == "UNAVAILABLE"
        assert votes["atm_buildup"].side == "none"
        assert signal.factor_scores.max_pain_score == 10
        assert signal.confidence == 70
        assert signal.key_levels.call_wall is not None
        assert signal.key_levels.call_wall.strike == 2100

    def test_put_buildup_pulls_signal_down(self) -> None:
        previous = make_snapshot(
            [(1900, 0, 0), (2000, 100, 0), (2100, 300, 0)],
            captured_at=NOW - timedelta(hours=1),
        )

        signal = compute_signal(make_snapshot(BULLISH_ROWS), previous)

        votes = {v.name: v for v in signal.votes}
        assert votes["oi_trend"].side == "bearish"
        assert votes["atm_buildup"].side == "bearish"
        assert signal.bearish_score == 3.5
        assert signal.type == SignalType.buy
        assert signal.strength == 3
        assert any("(bearish)" in text for text in signal.bearish_factors)

    def test_custom_weights(self) -> None:
        config = AnalysisConfig(
            weights=SignalWeights(pcr=0.5, atm_pcr=0.5, max_pain=0.5)
        )

        signal = compute_signal(make_snapshot(BULLISH_ROWS), config=config)

        assert signal.net_score == 1.5
        assert signal.type == SignalType.buy
        assert signal.strength == 3

    @pytest.mark.parametrize(
        ("rows", "price", "expected_type"),
        [
            (BULLISH_ROWS, 1950, SignalType.strong_buy),
            (BEARISH_ROWS, 2050, SignalType.strong_sell),
        ],
    )
    def test_strength_five_has_confidence_at_least_half(
        self, rows: list[tuple[float, int, int]], price: float, expected_type: SignalType
    ) -> None:
        signal = compute_signal(make_snapshot(rows, price=price))

        assert signal.type == expected_type
        assert signal.strength == 5
        assert signal.confidence >= 50

    def test_reason_mentions_scores(self) -> None:
        signal = compute_signal(make_snapshot(BULLISH_ROWS))

        assert signal.reason.startswith("STRONG_BUY strength 5")
        assert "net +5.5" in signal.reason


class TestRunAnalysis:
    """Tests for run_analysis."""

    def test_includes_every_factor(self) -> None:
        previous = make_snapshot(BULLISH_ROWS, captured_at=NOW - timedelta(hours=1))

        result = run_analysis(make_snapshot(BULLISH_ROWS), previous)

        assert result.product == "GC"
        assert result.previous_captured_at == NOW - timedelta(hours=1)
        assert result.max_pain.max_pain_strike == 2000
        assert result.oi_flow is not None
        assert result.atm_buildup is not None
        assert result.gex.total_gex > 0
        assert result.signal.type == SignalType.strong_buy

    def test_without_previous(self) -> None:
        result = run_analysis(make_snapshot(BULLISH_ROWS))

        assert result.oi_flow is None
        assert result.atm_buildup is None
        assert result.previous_captured_at is None
