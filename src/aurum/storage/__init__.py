"""Storage layer: PostgreSQL (asyncpg), in-memory fallback, Redis."""

from aurum.storage.base import PredictionStore, SnapshotStore
from aurum.storage.database import Database, close_database, get_database, init_database
from aurum.storage.memory import InMemoryStore
from aurum.storage.redis import close_redis, get_redis, init_redis, publish_model

__all__ = [
    "Database",
    "InMemoryStore",
    "PredictionStore",
    "SnapshotStore",
    "close_database",
    "close_redis",
    "get_database",
    "get_redis",
    "init_database",
    "init_redis",
    "publish_model",
]
