"""
Rate Limiting Module

Sliding-window rate limiting for admin action endpoints, backed by Redis
sorted sets. Falls back to in-memory storage if Redis is unavailable.
"""

import logging
import time
from uuid import UUID

from fastapi import HTTPException, status
from redis.asyncio import Redis

from bursary.core.redis import get_redis

logger = logging.getLogger(__name__)

# In-memory fallback: {key: [timestamp, ...]}
_memory_store: dict[str, list[float]] = {}
# {key: time after which all hits for key are outside the window}
_memory_expiry: dict[str, float] = {}


class RateLimitExceeded(HTTPException):
    """429 raised when an admin exceeds the allowance for an action."""

    def __init__(self, limit: int, window_seconds: int):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "RATE_LIMIT_EXCEEDED",
                "message": f"Too many requests for this action. Allowed: {limit} per {window_seconds} seconds.",
                "retry_after_seconds": window_seconds,
            },
            headers={"Retry-After": str(window_seconds)},
        )


async def _check_rate_limit_redis(
    client: Redis,
    key: str,
    limit: int,
    window_seconds: int,
) -> bool:
    """
    Check rate limit using a Redis sorted set.

    Returns:
        True if request is allowed, False if rate limit exceeded
    """
    now = time.time()
    window_start = now - window_seconds

    pipe = client.pipeline()
    pipe.zremrangebyscore(key, 0, window_start)
    pipe.zcard(key)
    pipe.zadd(key, {str(now): now})
    pipe.expire(key, window_seconds)

    results = await pipe.execute()
    current_count = results[1]

    return current_count < limit


def _evict_expired(now: float) -> None:
    """Drop keys whose every recorded hit has left its window."""
    for key in [k for k, expires_at in _memory_expiry.items() if expires_at <= now]:
        _memory_store.pop(key, None)
        del _memory_expiry[key]


def _check_rate_limit_memory(key: str, limit: int, window_seconds: int) -> bool:
    """
    In-memory fallback. Not shared across server instances.
    """
    now = time.time()
    window_start = now - window_seconds
    _evict_expired(now)

    hits = [ts for ts in _memory_store.get(key, []) if ts > window_start]
    if len(hits) >= limit:
        _memory_store[key] = hits
        return False

    hits.append(now)
    _memory_store[key] = hits
    _memory_expiry[key] = now + window_seconds
    return True


async def check_rate_limit(key: str, limit: int, window_seconds: int) -> bool:
    """
    Record a hit against `key` and report whether it fits the window.

    Redis is authoritative when reachable; otherwise the per-process store is used.

    Args:
        key: Unique key for this rate limit (e.g., "admin:status:<user_id>")
        limit: Maximum requests allowed in the window
        window_seconds: Time window in seconds

    Returns:
        True if request is allowed, False if rate limit exceeded
    """
    client = await get_redis()

    if client is not None:
        try:
            return await _check_rate_limit_redis(client, key, limit, window_seconds)
        except Exception as e:
            logger.warning(f"Redis rate limit check failed, using memory: {e}")

    return _check_rate_limit_memory(key, limit, window_seconds)


async def enforce_admin_rate_limit(
    admin_id: UUID,
    action: str,
    limit: int,
    window_seconds: int,
) -> None:
    """
    Check the rate limit for an admin action.

    Raises:
        RateLimitExceeded: If the admin exceeded the limit for this action
    """
    key = f"admin:{action}:{admin_id}"
    allowed = await check_rate_limit(key, limit, window_seconds)

    if not allowed:
        logger.warning(
            f"Rate limit exceeded for admin {admin_id} on action '{action}': "
            f"{limit}/{window_seconds}s"
        )
        raise RateLimitExceeded(limit, window_seconds)


__all__ = [
    "check_rate_limit",
    "enforce_admin_rate_limit",
    "RateLimitExceeded",
]
