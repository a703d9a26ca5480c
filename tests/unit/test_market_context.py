"""Tests for assembling the provider input from analysis, spot and history."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from aurum.analysis.models import MarketSnapshot
from aurum.analysis.service import run_analysis
from aurum.consensus.context import REQUEST_SOURCE, prepare_market_summary
from aurum.market.models import SpotQuote, TradingCaution
from aurum.storage.memory import InMemoryStore

CAPTURED = datetime(2026, 3, 2, 14, 0, tzinfo=UTC)
CPI_SOON = datetime(2026, 3, 12, 11, 0, tzinfo=UTC)
QUIET_WEEK = datetime(2026, 3, 21, 12, 0, tzinfo=UTC)


def snapshot(hours_ago: int, price: float) -> MarketSnapshot:
    return MarketSnapshot(
        product="GC",
        current_price=price,
        captured_at=CAPTURED - timedelta(hours=hours_ago),
        strikes=[
            {"strike": 1900, "call_oi": 0, "put_oi": 300},
            {"strike": 2000, "call_oi": 100, "put_oi": 10},
            {"strike": 2100, "call_oi": 300, "put_oi": 10},
        ],
    )


def fake_feed(quote: SpotQuote) -> MagicMock:
    feed = MagicMock()
    feed.fetch_spot = AsyncMock(return_value=quote)
    return feed


@pytest.fixture()
async def store() -> InMemoryStore:
    store = InMemoryStore()
    for hours_ago, price in ((2, 1990.0), (1, 1995.0), (0, 2000.0)):
        await store.save_snapshot(snapshot(hours_ago, price))
    return store


class TestPrepareMarketSummary:
    """Tests for prepare_market_summary."""

    @pytest.mark.asyncio
    async def test_request_spot_wins(self, store: InMemoryStore) -> None:
        feed = fake_feed(SpotQuote(price=1980.0, source="metals_live"))

        summary = await prepare_market_summary(
            run_analysis(snapshot(0, 2000.0)),
            store,
            spot_price=1985.0,
            spot_feed=feed,
            now=QUIET_WEEK,
        )

        assert summary.xau_spot_price == 1985.0
        assert summary.spot_source == REQUEST_SOURCE
        assert summary.spread == 15.0
        feed.fetch_spot.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_spot_from_feed(self, store: InMemoryStore) -> None:
        feed = fake_feed(SpotQuote(price=1980.0, source="metals_live"))

        summary = await prepare_market_summary(
            run_analysis(snapshot(0, 2000.0)), store, spot_feed=feed, now=QUIET_WEEK
        )

        feed.fetch_spot.assert_awaited_once_with(2000.0)
        assert summary.xau_spot_price == 1980.0
        assert summary.spot_source == "metals_live"
        assert summary.spot_is_estimate is False
        assert summary.xau_levels is not None
        assert summary.xau_levels.call_wall == 2080.0
        assert summary.xau_levels.put_wall == 1880.0

    @pytest.mark.asyncio
    async def test_estimated_spot_flagged(self, store: InMemoryStore) -> None:
        feed = fake_feed(SpotQuote(price=1985.0, source="cme_estimate", is_estimate=True))

        summary = await prepare_market_summary(
            run_analysis(snapshot(0, 2000.0)), store, spot_feed=feed, now=QUIET_WEEK
        )

        assert summary.spot_is_estimate is True

    @pytest.mark.asyncio
    async def test_unavailable_spot_left_empty(self, store: InMemoryStore) -> None:
        feed = fake_feed(SpotQuote(price=0.0, source="unavailable"))

        summary = await prepare_market_summary(
            run_analysis(snapshot(0, 2000.0)), store, spot_feed=feed, now=QUIET_WEEK
        )

        assert summary.xau_spot_price is None
        assert summary.spread is None
        assert summary.xau_levels is None

    @pytest.mark.asyncio
    async def test_history_and_indicators(self, store: InMemoryStore) -> None:
        summary = await prepare_market_summary(
            run_analysis(snapshot(0, 2000.0)), store, now=QUIET_WEEK
        )

        assert summary.technicals is not None
        assert summary.technicals.candle_count == 3
        assert summary.history is not None
        assert len(summary.history.recent) == 3

    @pytest.mark.asyncio
    async def test_later_snapshots_excluded(self, store: InMemoryStore) -> None:
        summary = await prepare_market_summary(
            run_analysis(snapshot(1, 1995.0)), store, now=QUIET_WEEK
        )

        assert summary.technicals is not None
        assert summary.technicals.candle_count == 2

    @pytest.mark.asyncio
    async def test_no_history(self) -> None:
        summary = await prepare_market_summary(
            run_analysis(snapshot(0, 2000.0)), InMemoryStore(), now=QUIET_WEEK
        )

        assert summary.technicals is None
        assert summary.history is None

    @pytest.mark.asyncio
    async def test_imminent_release_warns(self, store: InMemoryStore) -> None:
        summary = await prepare_market_summary(
            run_analysis(snapshot(0, 2000.0)),
            store,
            economic_warnings=["Manual note"],
            now=CPI_SOON,
        )

        assert summary.calendar is not None
        assert summary.calendar.caution == TradingCaution.high
        assert summary.economic_warnings[0] == "Manual note"
        assert "CPI in 90 minutes, avoid trading" in summary.economic_warnings
        assert any(w.startswith("Today 08:30 ET: CPI") for w in summary.economic_warnings)
