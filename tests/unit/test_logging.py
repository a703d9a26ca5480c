"""Tests for logging setup."""

import logging

import pytest
import structlog

from aurum.config import Settings
from aurum.core.logging import NOISY_LOGGERS, job_context, setup_logging


@pytest.fixture(autouse=True)
def _reset_logging():
    root = logging.getLogger()
    level, handlers = root.level, root.handlers[:]
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_debug_flag_overrides_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AURUM_DEBUG", "true")
        monkeypatch.setenv("AURUM_LOG_LEVEL", "ERROR")
        settings = Settings(_env_file=None)  # type: ignore[call-arg]

        setup_logging(settings)

        assert logging.getLogger().level == logging.DEBUG

    def test_configured_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("AURUM_DEBUG", raising=False)
        monkeypatch.setenv("AURUM_LOG_LEVEL", "INFO")
        settings = Settings(_env_file=None)  # type: ignore[call-arg]

        setup_logging(settings)

        assert logging.getLogger().level == logging.INFO
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_production_renders_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AURUM_ENV", "production")
        settings = Settings(_env_file=None)  # type: ignore[call-arg]

        setup_logging(settings)

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)


class TestJobContext:
    """Tests for job_context."""

    def test_binds_and_unbinds(self) -> None:
        with job_context("signal", product="GC"):
            assert structlog.contextvars.get_contextvars() == {"job": "signal", "product": "GC"}

        assert structlog.contextvars.get_contextvars() == {}
