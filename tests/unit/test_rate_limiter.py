"""Unit tests for Rate Limiter (hotel_gamification/gamification/rate_limiter.py)"""
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from hotel_gamification.exceptions import PersistenceUnavailableError
from hotel_gamification.gamification.rate_limiter import (
    DEFAULT_RATE_LIMIT,
    RATE_LIMITS,
    RateLimit,
    RateLimiter,
)
from hotel_gamification.models.stats import ActionHistoryEntry


async def record(history, user_id, action_type, timestamp):
    await history.append(ActionHistoryEntry(
        user_id=user_id,
        action_type=action_type,
        timestamp=timestamp,
    ))


def test_limit_table():
    assert RATE_LIMITS["LOGIN"].max_per_day == 1
    assert RATE_LIMITS["LOGIN"].max_per_hour is None
    assert RATE_LIMITS["CREATE_INCIDENT"] == RateLimit(max_per_hour=20, max_per_day=50)
    assert RATE_LIMITS["READ_PROCEDURE"] == RateLimit(max_per_hour=30, max_per_day=100)


def test_unlisted_action_uses_default(rate_limiter):
    assert rate_limiter.limit_for("HELP_COLLEAGUE") == DEFAULT_RATE_LIMIT


@pytest.mark.asyncio
async def test_not_limited_without_history(rate_limiter, test_user_id, now):
    assert not await rate_limiter.is_rate_limited(test_user_id, "CREATE_INCIDENT", now)


@pytest.mark.asyncio
async def test_hourly_limit_reached(history, test_user_id, now):
    limiter = RateLimiter(history, limits={"READ_PROCEDURE": RateLimit(max_per_hour=3, max_per_day=100)})
    for minutes in range(3):
        await record(history, test_user_id, "READ_PROCEDURE", now - timedelta(minutes=minutes))

    assert await limiter.is_rate_limited(test_user_id, "READ_PROCEDURE", now)


@pytest.mark.asyncio
async def test_hourly_window_is_calendar_aligned(history, test_user_id, now):
    """Actions before the start of the current clock hour do not count"""
    limiter = RateLimiter(history, limits={"READ_PROCEDURE": RateLimit(max_per_hour=2, max_per_day=100)})
    # now is 10:15, so 09:50 belongs to the previous hour
    await record(history, test_user_id, "READ_PROCEDURE", now - timedelta(minutes=25))
    await record(history, test_user_id, "READ_PROCEDURE", now - timedelta(minutes=25))

    assert not await limiter.is_rate_limited(test_user_id, "READ_PROCEDURE", now)


@pytest.mark.asyncio
async def test_daily_limit_reached(history, test_user_id, now):
    await record(history, test_user_id, "LOGIN", now - timedelta(hours=2))
    limiter = RateLimiter(history)

    assert await limiter.is_rate_limited(test_user_id, "LOGIN", now)
    assert not await limiter.is_rate_limited(test_user_id, "LOGIN", now + timedelta(days=1))


@pytest.mark.asyncio
async def test_limits_are_per_user(history, test_user_id, now):
    await record(history, "someone-else", "LOGIN", now)

    assert not await RateLimiter(history).is_rate_limited(test_user_id, "LOGIN", now)


@pytest.mark.asyncio
async def test_fails_open_when_history_unavailable(test_user_id, now):
    history = MagicMock()
    history.count = AsyncMock(side_effect=PersistenceUnavailableError(key="gamification_action_history"))
    limiter = RateLimiter(history)

    assert not await limiter.is_rate_limited(test_user_id, "CREATE_INCIDENT", now)
