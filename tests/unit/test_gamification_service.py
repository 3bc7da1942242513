"""Unit tests for GamificationService (hotel_gamification/services/gamification_service.py)"""
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock

from hotel_gamification.auth import ANONYMOUS, SessionContext
from hotel_gamification.db import queries
from hotel_gamification.exceptions import PersistenceUnavailableError
from hotel_gamification.gamification.rank_system import DEFAULT_RANK
from hotel_gamification.models.badge import BadgeCategory
from hotel_gamification.models.stats import ActionHistoryEntry, UserStats
from hotel_gamification.services.gamification_service import GamificationService


@pytest.fixture
def service(store, history, settings):
    return GamificationService(store, history, settings)


@pytest.mark.asyncio
async def test_get_user_stats_absent(service, session, test_user_id):
    assert await service.get_user_stats(session, test_user_id) is None


@pytest.mark.asyncio
async def test_get_user_stats_rejects_other_user(service, store, test_user_id):
    await queries.save_user_stats(store, UserStats(user_id=test_user_id, xp=10))

    assert await service.get_user_stats(SessionContext("intruder"), test_user_id) is None


@pytest.mark.asyncio
async def test_initialize_creates_and_saves(service, store, session, test_user_id):
    stats = await service.initialize_or_get_user_stats(session, test_user_id)

    assert stats.xp == 0
    assert stats.last_updated is not None
    assert await queries.get_user_stats(store, test_user_id) is not None


@pytest.mark.asyncio
async def test_initialize_returns_existing(service, store, session, test_user_id):
    await queries.save_user_stats(store, UserStats(user_id=test_user_id, xp=77))

    stats = await service.initialize_or_get_user_stats(session, test_user_id)

    assert stats.xp == 77


@pytest.mark.asyncio
async def test_initialize_degrades_on_store_failure(service, store, session, test_user_id):
    store.get_document = AsyncMock(side_effect=PersistenceUnavailableError())

    stats = await service.initialize_or_get_user_stats(session, test_user_id)

    assert stats == UserStats.initial(test_user_id)


@pytest.mark.asyncio
async def test_invalid_stored_stats_degrade_without_overwrite(service, store, session, test_user_id):
    key = f"user_gamification_stats/{test_user_id}"
    await store.set_document(key, {"xp": "lots"})

    stats = await service.initialize_or_get_user_stats(session, test_user_id)

    assert stats.xp == 0
    assert await store.get_document(key) == {"xp": "lots"}
    assert await service.get_user_stats(session, test_user_id) is None


@pytest.mark.asyncio
async def test_get_user_level(service, store, session, test_user_id):
    await queries.save_user_stats(store, UserStats(user_id=test_user_id, xp=125, level=2))

    level = await service.get_user_level(session, test_user_id)

    assert level.level == 2
    assert level.level_info.name == "Apprenti"
    assert level.progress == pytest.approx(25 / 49 * 100)


@pytest.mark.asyncio
async def test_get_user_rank(service, store, session, test_user_id):
    await queries.save_user_stats(store, UserStats(user_id=test_user_id, xp=1200))

    rank = await service.get_user_rank(session, test_user_id)

    assert rank.rank == "Argent"


@pytest.mark.asyncio
async def test_get_user_rank_mismatch(service, test_user_id):
    assert await service.get_user_rank(ANONYMOUS, test_user_id) == DEFAULT_RANK


@pytest.mark.asyncio
async def test_get_user_badges_includes_currently_qualifying(service, store, session, test_user_id):
    await queries.save_user_stats(store, UserStats(user_id=test_user_id, incidents_created=1))

    badges = await service.get_user_badges(session, test_user_id)

    assert "first_incident" in [b.id for b in badges]
    assert service.get_badges_by_category(badges, BadgeCategory.QUALITY) == []


@pytest.mark.asyncio
async def test_get_user_challenges(service, store, session, test_user_id, now):
    await queries.save_user_stats(store, UserStats(user_id=test_user_id, procedures_validated=2))

    board = await service.get_user_challenges(session, test_user_id, now)

    assert len(board.challenges) == 5
    assert board.progress["weekly_procedures"] == 66


@pytest.mark.asyncio
async def test_get_user_challenges_mismatch_is_empty(service, test_user_id, now):
    board = await service.get_user_challenges(SessionContext("intruder"), test_user_id, now)

    assert board.challenges == []
    assert board.progress == {}


@pytest.mark.asyncio
async def test_get_current_streak(service, store, session, test_user_id, now):
    await queries.save_user_stats(store, UserStats(
        user_id=test_user_id, current_streak=3, last_login_date=now - timedelta(days=1)
    ))

    assert await service.get_current_streak(session, test_user_id, now) == 3
    assert await service.get_current_streak(session, test_user_id, now + timedelta(days=2)) == 0


@pytest.mark.asyncio
async def test_get_recent_actions(service, history, session, test_user_id, now):
    await history.append(ActionHistoryEntry(user_id=test_user_id, action_type="LOGIN", timestamp=now))

    entries = await service.get_recent_actions(session, test_user_id, "LOGIN")

    assert len(entries) == 1
    assert await service.get_recent_actions(ANONYMOUS, test_user_id, "LOGIN") == []


@pytest.mark.asyncio
async def test_get_snapshot(service, store, session, test_user_id, now):
    await queries.save_user_stats(store, UserStats(user_id=test_user_id, xp=40, incidents_created=1))

    snapshot = await service.get_snapshot(session, test_user_id, now)

    assert snapshot.stats.xp == 40
    assert snapshot.level.level == 1
    assert snapshot.rank.points == 40
    assert len(snapshot.challenges.challenges) == 5
    assert snapshot.current_streak == 0


@pytest.mark.asyncio
async def test_get_snapshot_mismatch_is_default(service, test_user_id, now):
    snapshot = await service.get_snapshot(SessionContext("intruder"), test_user_id, now)

    assert snapshot.stats.xp == 0
    assert snapshot.rank == DEFAULT_RANK
    assert snapshot.badges == []
