"""Redis client connection and signal broadcast."""

from urllib.parse import urlsplit, urlunsplit

from pydantic import BaseModel
from redis.asyncio import Redis

from aurum.core.logging import get_logger

logger = get_logger(__name__)

# Global Redis instance (initialized in lifespan)
_redis: Redis | None = None


def redacted_url(url: str) -> str:
    """Redis URL with the password masked, for logs."""
    parts = urlsplit(url)
    if parts.password is None:
        return url
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit(parts._replace(netloc=f"{parts.username or ''}:***@{host}"))


def get_redis() -> Redis:
    """Get the global Redis instance."""
    if _redis is None:
        raise RuntimeError("Redis not initialized")
    return _redis


async def init_redis(redis_url: str) -> Redis:
    """Initialize the global Redis instance and check the connection."""
    global _redis
    _redis = Redis.from_url(redis_url, decode_responses=False)
    pong = _redis.ping()
    if hasattr(pong, "__await__"):
        await pong
    logger.info("Redis connected", url=redacted_url(redis_url))
    return _redis


async def close_redis() -> None:
    """Close the global Redis instance."""
    global _redis
    if _redis:
        await _redis.aclose()
        logger.info("Redis disconnected")
        _redis = None


async def publish_model(redis: Redis, channel: str, payload: BaseModel) -> int:
    """Publish a pydantic model as JSON to subscribed dashboards.

    Returns:
        Number of subscribers that received the message
    """
    receivers = await redis.publish(channel, payload.model_dump_json())
    logger.debug("Published to channel", channel=channel, receivers=receivers)
    return int(receivers)
