"""Core utilities: logging, exceptions, constants."""

from aurum.core.exceptions import AurumError
from aurum.core.logging import get_logger, setup_logging

__all__ = [
    "AurumError",
    "get_logger",
    "setup_logging",
]
