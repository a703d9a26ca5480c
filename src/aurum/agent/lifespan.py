"""Start and stop every long-lived resource the API depends on."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from functools import partial
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from pydantic import SecretStr
from redis.asyncio import Redis

from aurum.accuracy.tracker import AccuracyTracker
from aurum.agent.scheduler import create_scheduler, evaluation_job, signal_job
from aurum.analysis.models import AnalysisConfig
from aurum.config import Settings
from aurum.consensus.providers import ProviderRegistry, build_default_registry
from aurum.core.logging import get_logger
from aurum.market.price_feed import SpotPriceFeed
from aurum.storage.database import Database, close_database, init_database
from aurum.storage.memory import InMemoryStore
from aurum.storage.redis import close_redis, init_redis

logger = get_logger(__name__)


@dataclass
class AgentState:
    """Holds references to all running resources."""

    redis: Redis
    db: Database | None
    store: Database | InMemoryStore
    tracker: AccuracyTracker
    registry: ProviderRegistry
    settings: Settings
    analysis_config: AnalysisConfig
    db_enabled: bool
    spot_feed: SpotPriceFeed | None = None
    scheduler: AsyncIOScheduler | None = None
    trigger_fns: dict[str, Any] = field(default_factory=dict)


def _secret_value(secret: SecretStr | None) -> str | None:
    return secret.get_secret_value() if secret else None


def analysis_config_from_settings(settings: Settings) -> AnalysisConfig:
    return AnalysisConfig(days_to_expiry=settings.default_days_to_expiry, iv=settings.default_iv)


def spot_feed_from_settings(settings: Settings) -> SpotPriceFeed:
    return SpotPriceFeed(
        timeout=settings.spot_timeout_seconds,
        twelvedata_api_key=_secret_value(settings.twelvedata_api_key),
        goldapi_api_key=_secret_value(settings.goldapi_api_key),
        estimated_spread=settings.estimated_spread,
    )


@asynccontextmanager
async def agent_lifespan(settings: Settings) -> AsyncIterator[AgentState]:
    """Connect storage, build the provider registry and run the periodic jobs.

    PostgreSQL is optional: without it (or when it is unreachable) snapshots
    and predictions live in memory for the lifetime of the process.
    """
    redis: Redis | None = None
    db: Database | None = None
    scheduler: AsyncIOScheduler | None = None
    spot_feed: SpotPriceFeed | None = None

    try:
        # 1. Redis (pub/sub for dashboards)
        logger.debug("Connecting to Redis")
        redis = await init_redis(settings.redis_url)

        # 2. PostgreSQL (if configured)
        if settings.database_url:
            try:
                logger.debug("Connecting to PostgreSQL")
                db = await init_database(settings.database_url)
                logger.debug("PostgreSQL connected")
            except Exception as e:
                logger.warning(
                    "PostgreSQL connection failed, continuing with in-memory storage",
                    error=str(e),
                )
        else:
            logger.info("DATABASE_URL not set, using in-memory storage")

        store: Database | InMemoryStore = db if db is not None else InMemoryStore()
        tracker = AccuracyTracker(store)
        registry = build_default_registry(settings)
        analysis_config = analysis_config_from_settings(settings)
        spot_feed = spot_feed_from_settings(settings)
        product = settings.default_product

        # 3. Periodic jobs
        scheduler = create_scheduler()
        signal_args = [store, redis, product, analysis_config, settings.alert_min_strength]
        scheduler.add_job(
            signal_job,
            IntervalTrigger(seconds=settings.signal_interval),
            args=signal_args,
            id="signal",
            max_instances=1,
            misfire_grace_time=None,
            next_run_time=datetime.now(UTC) + timedelta(seconds=30),
        )
        scheduler.add_job(
            evaluation_job,
            IntervalTrigger(seconds=settings.evaluation_interval),
            args=[tracker, store, product],
            id="evaluation",
            max_instances=1,
            misfire_grace_time=None,
        )
        scheduler.start()

        trigger_fns: dict[str, Any] = {
            "signal": partial(signal_job, *signal_args),
            "evaluation": partial(evaluation_job, tracker, store, product),
        }

        logger.info(
            "Agent ready",
            product=product,
            providers=registry.names(),
            db_enabled=db is not None,
            signal_interval=settings.signal_interval,
            evaluation_interval=settings.evaluation_interval,
        )

        yield AgentState(
            redis=redis,
            db=db,
            store=store,
            tracker=tracker,
            registry=registry,
            settings=settings,
            analysis_config=analysis_config,
            db_enabled=db is not None,
            spot_feed=spot_feed,
            scheduler=scheduler,
            trigger_fns=trigger_fns,
        )

    finally:
        logger.info("Shutting down agent...")

        if scheduler and scheduler.running:
            scheduler.shutdown(wait=False)
            logger.debug("Scheduler stopped")

        if spot_feed is not None:
            await spot_feed.close()

        if db is not None:
            await close_database()
            logger.debug("PostgreSQL disconnected")

        if redis is not None:
            await close_redis()

        logger.info("Agent shutdown complete")
