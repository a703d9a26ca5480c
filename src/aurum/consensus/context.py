"""Assemble the full provider input: analysis plus spot, indicators, history and calendar."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from aurum.analysis.history import build_historical_context, build_history_points
from aurum.analysis.indicators import build_candles, compute_indicators
from aurum.analysis.models import AnalysisConfig, AnalysisResult
from aurum.consensus.models import MarketSummary
from aurum.consensus.prompts import build_market_summary
from aurum.core.constants import HISTORY_DAYS
from aurum.core.logging import get_logger
from aurum.market.calendar import is_safe_to_trade, upcoming_events_summary
from aurum.market.price_feed import SpotPriceFeed
from aurum.storage.base import SnapshotStore

logger = get_logger(__name__)

REQUEST_SOURCE = "request"


async def prepare_market_summary(
    analysis: AnalysisResult,
    store: SnapshotStore,
    *,
    spot_price: float | None = None,
    spot_feed: SpotPriceFeed | None = None,
    economic_warnings: list[str] | None = None,
    config: AnalysisConfig | None = None,
    calendar_days_ahead: int = 7,
    now: datetime | None = None,
) -> MarketSummary:
    """Build the MarketSummary sent to the providers.

    A spot price given by the caller wins; otherwise the feed is asked.
    Indicators and history cover the ``HISTORY_DAYS`` before the analyzed
    snapshot. The calendar is read at ``now`` and an imminent high-impact
    release is added to the warnings.
    """
    now = now or datetime.now(UTC)

    spot_source = REQUEST_SOURCE if spot_price is not None else None
    spot_is_estimate = False
    if spot_price is None and spot_feed is not None:
        quote = await spot_feed.fetch_spot(analysis.current_price)
        if quote.available:
            spot_price = quote.price
            spot_source = quote.source
            spot_is_estimate = quote.is_estimate

    since = analysis.captured_at - timedelta(days=HISTORY_DAYS)
    snapshots = [
        s
        for s in await store.list_snapshots(analysis.product, since)
        if s.captured_at <= analysis.captured_at
    ]
    candles = build_candles(snapshots)
    technicals = compute_indicators(candles, analysis.current_price) if candles else None
    history = build_historical_context(
        build_history_points(snapshots, config), now=analysis.captured_at
    )

    calendar = upcoming_events_summary(calendar_days_ahead, now)
    safety = is_safe_to_trade(calendar_days_ahead, now)
    warnings = list(economic_warnings or [])
    if not safety.safe:
        warnings.append(safety.reason)

    logger.debug(
        "Market context prepared",
        product=analysis.product,
        spot_source=spot_source,
        snapshots=len(snapshots),
        candles=len(candles),
        caution=calendar.caution.value,
    )

    return build_market_summary(
        analysis,
        spot_price,
        warnings,
        spot_source=spot_source,
        spot_is_estimate=spot_is_estimate,
        calendar=calendar,
        technicals=technicals,
        history=history,
    )
