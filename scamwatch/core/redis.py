"""Shared Redis connection backing the cache."""

import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from scamwatch.config import settings

logger = logging.getLogger(__name__)

_redis_client: Redis | None = None


def get_redis_client() -> Redis:
    """Process-wide client, created on first use."""
    global _redis_client
    if _redis_client is None:
        _redis_client = Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=settings.redis_socket_timeout,
        )
        logger.info("Redis client created", extra={"host": settings.redis_url.rsplit("@", 1)[-1]})
    return _redis_client


async def ping_redis() -> bool:
    try:
        return bool(await get_redis_client().ping())
    except RedisError as exc:
        logger.warning("Redis ping failed", extra={"error": str(exc)})
        return False


async def close_redis() -> None:
    global _redis_client
    if _redis_client is None:
        return
    await _redis_client.aclose()
    _redis_client = None
    logger.info("Redis connection closed")
