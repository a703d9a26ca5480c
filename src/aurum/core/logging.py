"""Structured logging configuration with structlog."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from aurum.config import Settings

# Libraries that log every request or job run at INFO
NOISY_LOGGERS = ("apscheduler.executors", "apscheduler.scheduler", "httpx", "httpcore")


def _log_level(settings: "Settings") -> int:
    return logging.DEBUG if settings.debug else getattr(logging, settings.log_level)


def _renderer(settings: "Settings") -> list[structlog.types.Processor]:
    if settings.env == "development":
        return [structlog.dev.ConsoleRenderer(colors=True)]
    return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]


def setup_logging(settings: "Settings") -> None:
    """Configure structlog for the application.

    Development gets colored console lines; staging and production emit one
    JSON object per event. ``AURUM_DEBUG`` overrides the configured level.
    """
    level = _log_level(settings)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            *_renderer(settings),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    # uvicorn and asyncpg log through the standard library
    logging.basicConfig(
        format="%(message)s",
        level=level,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


@contextmanager
def job_context(job: str, **fields: Any) -> Iterator[None]:
    """Tag every log event emitted inside a periodic job run."""
    with structlog.contextvars.bound_contextvars(job=job, **fields):
        yield


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
