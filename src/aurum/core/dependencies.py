"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from redis.asyncio import Redis

from aurum.accuracy.tracker import AccuracyTracker
from aurum.agent import AgentState
from aurum.analysis.models import AnalysisConfig
from aurum.config import Settings, get_settings
from aurum.consensus.providers import ProviderRegistry
from aurum.market.price_feed import SpotPriceFeed
from aurum.storage.database import Database
from aurum.storage.memory import InMemoryStore
from aurum.storage.redis import get_redis

SettingsDep = Annotated[Settings, Depends(get_settings)]


async def get_agent_state(request: Request) -> AgentState:
    """Get AgentState from app.state (set during lifespan)."""
    return request.app.state.agent  # type: ignore[no-any-return]


AgentStateDep = Annotated[AgentState, Depends(get_agent_state)]


def get_store(state: AgentStateDep) -> Database | InMemoryStore:
    """Snapshot and prediction store (PostgreSQL or in-memory)."""
    return state.store


def get_tracker(state: AgentStateDep) -> AccuracyTracker:
    return state.tracker


def get_registry(state: AgentStateDep) -> ProviderRegistry:
    return state.registry


def get_analysis_config(state: AgentStateDep) -> AnalysisConfig:
    return state.analysis_config


def get_spot_feed(state: AgentStateDep) -> SpotPriceFeed | None:
    """XAU spot feed; None when spot prices are only taken from requests."""
    return state.spot_feed


# Annotated dependencies for use in route handlers
StoreDep = Annotated[Database | InMemoryStore, Depends(get_store)]
TrackerDep = Annotated[AccuracyTracker, Depends(get_tracker)]
RegistryDep = Annotated[ProviderRegistry, Depends(get_registry)]
AnalysisConfigDep = Annotated[AnalysisConfig, Depends(get_analysis_config)]
SpotFeedDep = Annotated[SpotPriceFeed | None, Depends(get_spot_feed)]
RedisDep = Annotated[Redis, Depends(get_redis)]
