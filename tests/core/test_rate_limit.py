"""
Unit tests for admin rate limiting.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from bursary.core import rate_limit
from bursary.core.rate_limit import RateLimitExceeded, enforce_admin_rate_limit


@pytest.fixture(autouse=True)
def clear_memory_store():
    rate_limit._memory_store.clear()
    rate_limit._memory_expiry.clear()
    yield
    rate_limit._memory_store.clear()
    rate_limit._memory_expiry.clear()


class TestMemoryFallback:
    """Tests for the in-memory limiter used when Redis is unavailable."""

    @pytest.mark.asyncio
    async def test_limit_is_enforced_per_admin(self):
        first_admin, second_admin = uuid4(), uuid4()
        with patch("bursary.core.rate_limit.get_redis", AsyncMock(return_value=None)):
            await enforce_admin_rate_limit(first_admin, "status", 2, 60)
            await enforce_admin_rate_limit(first_admin, "status", 2, 60)

            with pytest.raises(RateLimitExceeded) as exc_info:
                await enforce_admin_rate_limit(first_admin, "status", 2, 60)

            await enforce_admin_rate_limit(second_admin, "status", 2, 60)

        assert exc_info.value.status_code == 429
        assert exc_info.value.headers["Retry-After"] == "60"

    @pytest.mark.asyncio
    async def test_idle_keys_are_evicted(self):
        idle_admin, busy_admin = uuid4(), uuid4()
        with (
            patch("bursary.core.rate_limit.get_redis", AsyncMock(return_value=None)),
            patch("bursary.core.rate_limit.time") as mock_time,
        ):
            mock_time.time.side_effect = [1000.0, 1061.0]
            await enforce_admin_rate_limit(idle_admin, "note", 5, 60)
            await enforce_admin_rate_limit(busy_admin, "note", 5, 60)

        assert list(rate_limit._memory_store) == [f"admin:note:{busy_admin}"]
        assert list(rate_limit._memory_expiry) == [f"admin:note:{busy_admin}"]


class TestRedis:
    """Tests for the Redis-backed limiter."""

    @pytest.mark.asyncio
    async def test_redis_count_decides(self, mock_redis):
        mock_redis.pipeline.return_value.execute = AsyncMock(return_value=[0, 5, 1, True])
        with patch("bursary.core.rate_limit.get_redis", AsyncMock(return_value=mock_redis)):
            with pytest.raises(RateLimitExceeded):
                await enforce_admin_rate_limit(uuid4(), "bulk-update", 5, 60)

    @pytest.mark.asyncio
    async def test_redis_error_falls_back_to_memory(self, mock_redis):
        mock_redis.pipeline.return_value.execute = AsyncMock(side_effect=ConnectionError("down"))
        with patch("bursary.core.rate_limit.get_redis", AsyncMock(return_value=mock_redis)):
            await enforce_admin_rate_limit(uuid4(), "score", 5, 60)

        assert len(rate_limit._memory_store) == 1


@pytest.fixture
def mock_redis():
    """Create a mock Redis client."""
    redis = AsyncMock()
    redis.pipeline = MagicMock()
    pipe = MagicMock()
    pipe.execute = AsyncMock()
    redis.pipeline.return_value = pipe
    return redis
