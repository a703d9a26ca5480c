"""Pytest fixtures and configuration."""

from collections.abc import Iterator

import pytest

from aurum.config import get_settings
from aurum.consensus import providers as providers_module


@pytest.fixture(autouse=True)
def _fresh_globals() -> Iterator[None]:
    """Drop cached settings and the default provider registry between tests."""
    get_settings.cache_clear()
    providers_module.get_registry.cache_clear()
    yield
    get_settings.cache_clear()
    providers_module.get_registry.cache_clear()


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio for async tests."""
    return "asyncio"
