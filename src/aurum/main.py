"""FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from aurum import __version__
from aurum.agent import agent_lifespan
from aurum.api import api_router
from aurum.config import get_settings
from aurum.core.dependencies import AgentStateDep
from aurum.core.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Connect storage, register providers and start the periodic jobs."""
    settings = get_settings()
    setup_logging(settings)

    async with agent_lifespan(settings) as state:
        app.state.agent = state
        logger.info(
            "Aurum ready",
            env=settings.env,
            storage="postgres" if state.db_enabled else "memory",
            providers=state.registry.names(),
        )
        yield


def create_app() -> FastAPI:
    application = FastAPI(
        title="Aurum",
        description="Gold options flow analysis, trading signals and AI consensus",
        version=__version__,
        lifespan=lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origin_regex=get_settings().cors_origin_regex,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Infrastructure (no prefix, not versioned)
    application.get("/health")(health)
    application.get("/ready")(ready)

    # Domain API
    application.include_router(api_router, prefix="/api/v1")
    return application


async def health() -> dict[str, str]:
    """Liveness check: always ok if the process is running."""
    return {"status": "ok"}


async def ready(state: AgentStateDep) -> dict[str, str]:
    """Readiness check: Redis reachable and the job scheduler running."""
    checks: dict[str, str] = {}
    try:
        await state.redis.ping()  # type: ignore[misc]
        checks["redis"] = "ok"
    except Exception:
        checks["redis"] = "error"
    checks["db"] = "ok" if state.db else "disabled"
    checks["scheduler"] = "ok" if state.scheduler and state.scheduler.running else "error"
    status = "ready" if all(v != "error" for v in checks.values()) else "not_ready"
    return {"status": status, **checks}


app = create_app()
