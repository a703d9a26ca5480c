"""Periodic jobs: the signal sweep and the prediction evaluation sweep."""

from __future__ import annotations

from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from aurum.analysis.service import run_analysis
from aurum.core.constants import SIGNAL_CHANNEL
from aurum.core.logging import get_logger, job_context
from aurum.notifications.dispatcher import notify_signal
from aurum.notifications.telegram import format_evaluation_report, send_long_telegram
from aurum.storage.redis import publish_model

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from aurum.accuracy.tracker import AccuracyTracker
    from aurum.analysis.models import AnalysisConfig
    from aurum.storage.base import SnapshotStore

logger = get_logger(__name__)


def create_scheduler() -> AsyncIOScheduler:
    """Create a new scheduler instance."""
    return AsyncIOScheduler(timezone="UTC")


async def signal_job(
    store: SnapshotStore,
    redis: Redis,
    product: str,
    config: AnalysisConfig,
    min_strength: int,
) -> None:
    """Recompute the signal for the latest snapshot, broadcast it and alert."""
    with job_context("signal", product=product):
        try:
            current = await store.get_latest_snapshot(product)
            if current is None:
                logger.debug("No snapshot yet, skipping signal job")
                return

            previous = await store.get_previous_snapshot(product, current.captured_at)
            signal = run_analysis(current, previous, config).signal

            await publish_model(redis, SIGNAL_CHANNEL, signal)
            alerted = await notify_signal(signal, current, min_strength)

            logger.info(
                "Signal generated",
                signal=signal.type.value,
                strength=signal.strength,
                confidence=signal.confidence,
                alerted=alerted,
            )
        except Exception:
            logger.exception("Signal job failed")


async def evaluation_job(
    tracker: AccuracyTracker,
    store: SnapshotStore,
    product: str,
) -> None:
    """Resolve expired predictions against the latest snapshot price."""
    with job_context("evaluation", product=product):
        try:
            current = await store.get_latest_snapshot(product)
            if current is None or current.current_price <= 0:
                logger.debug("No price available, skipping evaluation job")
                return

            summary = await tracker.evaluate_pending(current.current_price)
            if summary.evaluated == 0:
                return

            comparison = await tracker.compare_providers()
            msg = format_evaluation_report(summary, comparison, current.current_price)
            if not await send_long_telegram(msg):
                logger.error("Failed to send evaluation report to Telegram")
        except Exception:
            logger.exception("Evaluation job failed")
