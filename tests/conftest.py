"""Global test fixtures and utilities for gamification engine tests"""
import pytest
from datetime import datetime, timezone

from hotel_gamification.auth import SessionContext
from hotel_gamification.config import GamificationSettings
from hotel_gamification.db.memory_store import InMemoryDocumentStore
from hotel_gamification.gamification.action_history import ActionHistoryLog
from hotel_gamification.gamification.notifications import InMemoryNotificationSink
from hotel_gamification.gamification.rate_limiter import RateLimiter
from hotel_gamification.gamification.stats_updater import StatsUpdater
from hotel_gamification.models.stats import UserStats
from hotel_gamification.services.container import EngineContainer


# ============================================================================
# User & Session Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "staff-42"


@pytest.fixture
def session(test_user_id):
    """Session authenticated as the test user"""
    return SessionContext(user_id=test_user_id)


@pytest.fixture
def fresh_stats(test_user_id):
    return UserStats.initial(test_user_id)


# ============================================================================
# Time Fixtures
# ============================================================================

@pytest.fixture
def now():
    """Wednesday 13 March 2024, 10:15 UTC (week starts Sunday 10 March)"""
    return datetime(2024, 3, 13, 10, 15, tzinfo=timezone.utc)


# ============================================================================
# Engine Fixtures
# ============================================================================

@pytest.fixture
def settings():
    return GamificationSettings(timezone="UTC")


@pytest.fixture
def store():
    """Empty in-memory document store"""
    return InMemoryDocumentStore()


@pytest.fixture
def history(store):
    return ActionHistoryLog(store)


@pytest.fixture
def rate_limiter(history, settings):
    return RateLimiter(history, tz=settings.tz)


@pytest.fixture
def updater(store, history, rate_limiter, settings):
    return StatsUpdater(store, history, rate_limiter, settings)


@pytest.fixture
def notifier():
    return InMemoryNotificationSink()


@pytest.fixture
def container(store, notifier, settings):
    """Fully wired engine over the in-memory store"""
    return EngineContainer(store=store, notifier=notifier, settings=settings)
