"""Tests for provider prompt formatting."""

from datetime import UTC, datetime

from aurum.analysis.history import build_historical_context, build_history_points
from aurum.analysis.indicators import compute_indicators
from aurum.analysis.models import MarketSnapshot, SignalType, StrikeRow
from aurum.analysis.service import run_analysis
from aurum.consensus.models import HotStrike, MarketSummary
from aurum.consensus.prompts import (
    PREDICTION_SYSTEM_PROMPT,
    build_market_summary,
    format_market_summary,
)
from aurum.market.calendar import upcoming_events_summary
from aurum.market.models import SpreadStatus, ZonePosition

CAPTURED = datetime(2026, 3, 2, 14, 0, tzinfo=UTC)
CPI_MORNING = datetime(2026, 3, 12, 10, 0, tzinfo=UTC)


def make_snapshot() -> MarketSnapshot:
    strikes = [
        StrikeRow(strike=k, call_oi=100, put_oi=80, call_volume=10, put_volume=10)
        for k in (1960, 1980, 2020, 2040)
    ]
    strikes.append(
        StrikeRow(strike=2000, call_oi=900, put_oi=200, call_volume=400, put_volume=100)
    )
    return MarketSnapshot(product="GC", current_price=2015, captured_at=CAPTURED, strikes=strikes)


class TestBuildMarketSummary:
    """Tests for build_market_summary."""

    def test_maps_analysis_fields(self) -> None:
        analysis = run_analysis(make_snapshot())

        summary = build_market_summary(analysis, spot_price=2005.0, economic_warnings=["CPI"])

        assert summary.product == "GC"
        assert summary.cme_futures_price == 2015
        assert summary.xau_spot_price == 2005.0
        assert summary.spread == 10.0
        assert summary.call_wall == 2000
        assert summary.max_pain == analysis.max_pain.max_pain_strike
        assert summary.system_signal == analysis.signal.type
        assert summary.gex_regime == analysis.gex.regime.value
        assert summary.economic_warnings == ["CPI"]
        assert summary.data_timestamp == CAPTURED

    def test_hot_strikes_from_volume_spikes(self) -> None:
        summary = build_market_summary(run_analysis(make_snapshot()))

        assert summary.hot_strikes == [HotStrike(strike=2000, volume=500, type="CALL")]

    def test_without_spot_or_previous(self) -> None:
        summary = build_market_summary(run_analysis(make_snapshot()))

        assert summary.xau_spot_price is None
        assert summary.spread is None
        assert summary.net_oi_change == 0
        assert summary.economic_warnings == []

    def test_spot_scale_levels(self) -> None:
        summary = build_market_summary(
            run_analysis(make_snapshot()), spot_price=2005.0, spot_source="metals_live"
        )

        assert summary.spread_status == SpreadStatus.normal
        assert summary.spot_source == "metals_live"
        assert summary.xau_levels is not None
        assert summary.xau_levels.call_wall == 1990
        assert summary.xau_levels.put_wall == 1990
        assert summary.trading_zones is not None
        assert summary.trading_zones.position == ZonePosition.neutral_zone

    def test_calendar_warnings_merged_once(self) -> None:
        calendar = upcoming_events_summary(7, now=CPI_MORNING)

        summary = build_market_summary(
            run_analysis(make_snapshot()),
            economic_warnings=["Manual note", calendar.warnings[0]],
            calendar=calendar,
        )

        assert summary.economic_warnings == ["Manual note", calendar.warnings[0]]
        assert summary.calendar is calendar


class TestFormatMarketSummary:
    """Tests for format_market_summary."""

    def test_contains_key_sections(self) -> None:
        summary = MarketSummary(
            cme_futures_price=2015.5,
            xau_spot_price=2005.25,
            spread=10.25,
            call_wall=2050,
            net_oi_change=-1200,
            hot_strikes=[HotStrike(strike=2000, volume=1500, type="PUT")],
            system_signal=SignalType.sell,
            system_confidence=72,
            gex_regime="trending",
            gex_description="Negative gamma",
            economic_warnings=["FOMC 19:00"],
            data_timestamp=CAPTURED,
        )

        text = format_market_summary(summary)

        assert "CME futures: $2,015.50" in text
        assert "Spread (CME - XAU): $10.25" in text
        assert "Call wall (resistance): $2,050.00" in text
        assert "Put wall (support): N/A" in text
        assert "Net OI change: -1,200" in text
        assert "Strike 2000: 1,500 contracts (PUT)" in text
        assert "Signal: SELL" in text
        assert "GEX regime: trending" in text
        assert "Warnings: FOMC 19:00" in text

    def test_empty_optional_sections(self) -> None:
        text = format_market_summary(MarketSummary(cme_futures_price=2000))

        assert "GEX: N/A" in text
        assert "  - None" in text
        assert "Warnings: None" in text

    def test_extra_sections(self) -> None:
        analysis = run_analysis(make_snapshot())
        summary = build_market_summary(
            analysis,
            spot_price=2005.0,
            spot_source="metals_live",
            calendar=upcoming_events_summary(7, now=CPI_MORNING),
            technicals=compute_indicators([], analysis.current_price),
            history=build_historical_context(
                build_history_points([make_snapshot()]), now=CAPTURED
            ),
        )

        text = format_market_summary(summary)

        assert "XAU spot: $2,005.00 (metals_live)" in text
        assert "Spread status: NORMAL" in text
        assert "### XAU spot levels (CME - 10.00)" in text
        assert "### Technical indicators (0 hourly candles)" in text
        assert "RSI(14): 50.00 (NEUTRAL)" in text
        assert "### Historical context" in text
        assert "Trading caution: HIGH" in text

    def test_estimated_spot_marked(self) -> None:
        summary = MarketSummary(
            cme_futures_price=2015.0,
            xau_spot_price=2000.0,
            spread=15.0,
            spot_source="cme_estimate",
            spot_is_estimate=True,
        )

        assert "XAU spot: $2,000.00 (cme_estimate, estimated)" in format_market_summary(summary)

    def test_system_prompt_mentions_conversion(self) -> None:
        assert "CME price - spread = XAU price" in PREDICTION_SYSTEM_PROMPT
