"""
Redis Configuration

Async Redis client, used for rate limiting.
"""

import logging

from redis.asyncio import Redis, from_url

from bursary.core.config import settings

logger = logging.getLogger(__name__)

redis_client: Redis | None = None


async def init_redis() -> Redis:
    """
    Connect to Redis and verify it answers.

    Called from the app lifespan; failure is fatal only in production.
    """
    global redis_client
    redis_client = from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    await redis_client.ping()
    return redis_client


async def get_redis() -> Redis | None:
    """
    Return the shared Redis client.

    Returns None if Redis was never initialized; callers must degrade gracefully.
    """
    return redis_client


async def ping_redis() -> bool:
    """Return True if Redis answers a PING."""
    if redis_client is None:
        return False
    try:
        await redis_client.ping()
        return True
    except Exception as e:
        logger.warning(f"Redis ping failed: {e}")
        return False


async def close_redis() -> None:
    """Release the Redis connection pool."""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
