"""Unit tests for Action Dispatcher (hotel_gamification/gamification/dispatcher.py)"""
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from hotel_gamification.auth import ANONYMOUS
from hotel_gamification.config import GamificationSettings
from hotel_gamification.db import queries
from hotel_gamification.gamification.dispatcher import ActionDispatcher
from hotel_gamification.gamification.stats_updater import StatsUpdateResult
from hotel_gamification.models.actions import (
    CompleteQualityCheckAction,
    CreateIncidentAction,
    LoginAction,
)
from hotel_gamification.models.stats import UserStats
from hotel_gamification.services.container import EngineContainer


@pytest.mark.asyncio
async def test_perform_action_returns_snapshot(container, session, now):
    result = await container.dispatcher.perform_action(session, CreateIncidentAction(), now)

    assert result.outcome == "awarded"
    assert result.xp_gained == 10
    assert [b.id for b in result.new_badges] == ["first_incident"]
    assert result.snapshot.stats.xp == 10
    assert result.snapshot.rank.rank == "Bronze"
    assert len(result.snapshot.challenges.challenges) == 5


@pytest.mark.asyncio
async def test_badge_and_xp_notifications(container, notifier, session, now):
    await container.dispatcher.perform_action(session, CreateIncidentAction(), now)

    assert [n.kind for n in notifier.notifications] == ["badge", "xp"]
    assert notifier.of_kind("xp")[0].title == "+10 points XP"


@pytest.mark.asyncio
async def test_notifications_can_be_disabled(store, notifier, session, now):
    settings = GamificationSettings(show_xp_notifications=False, show_badge_notifications=False)
    container = EngineContainer(store=store, notifier=notifier, settings=settings)

    result = await container.dispatcher.perform_action(session, CreateIncidentAction(), now)

    assert result.xp_gained == 10
    assert notifier.notifications == []


@pytest.mark.asyncio
async def test_disabled_gamification_is_noop(store, notifier, session, now):
    container = EngineContainer(store=store, notifier=notifier, settings=GamificationSettings(enabled=False))

    result = await container.dispatcher.perform_action(session, CreateIncidentAction(), now)

    assert result.outcome == "disabled"
    assert result.xp_gained == 0
    assert await store.get_document(f"user_gamification_stats/{session.user_id}") is None


@pytest.mark.asyncio
async def test_anonymous_session_is_noop(container, notifier, now):
    result = await container.dispatcher.perform_action(ANONYMOUS, CreateIncidentAction(), now)

    assert result.outcome == "unauthenticated"
    assert result.snapshot is None
    assert notifier.notifications == []


@pytest.mark.asyncio
async def test_duplicate_login_returns_empty_result(container, notifier, session, now):
    await container.dispatcher.perform_action(session, LoginAction(), now)
    notifier.clear()

    result = await container.dispatcher.perform_action(session, LoginAction(), now)

    assert result.xp_gained == 0
    assert result.rate_limited is True
    assert notifier.notifications == []


@pytest.mark.asyncio
async def test_challenge_completion_grants_reward(container, store, notifier, session, test_user_id, now):
    await queries.save_user_stats(store, UserStats(user_id=test_user_id, high_quality_checks=1, xp=40))

    result = await container.dispatcher.perform_action(session, CompleteQualityCheckAction(score=98), now)

    assert [e.challenge_id for e in result.completed_challenges] == ["weekly_quality"]
    assert result.xp_gained == 25 + 120
    assert result.snapshot.stats.weekly_goals_completed == 1
    assert result.snapshot.stats.xp == 40 + 25 + 120
    assert len(notifier.of_kind("challenge")) == 1


@pytest.mark.asyncio
async def test_challenge_reward_not_granted_twice_in_a_week(container, store, session, test_user_id, now):
    await queries.save_user_stats(store, UserStats(user_id=test_user_id, high_quality_checks=1))
    await container.dispatcher.perform_action(session, CompleteQualityCheckAction(score=98), now)

    # Pretend the counter dropped back below target and crosses it again
    stats = await queries.get_user_stats(store, test_user_id)
    stats.high_quality_checks = 1
    await queries.save_user_stats(store, stats)

    result = await container.dispatcher.perform_action(session, CompleteQualityCheckAction(score=98), now)

    assert result.completed_challenges == []
    assert result.xp_gained == 25


@pytest.mark.asyncio
async def test_unapplied_challenge_reward_is_not_reported(container, store, notifier, session, test_user_id, now):
    await queries.save_user_stats(store, UserStats(user_id=test_user_id, high_quality_checks=1))
    limited = StatsUpdateResult(stats=UserStats(user_id=test_user_id), rate_limited=True, outcome="rate_limited")

    with patch.object(container.reward_handler, "handle", AsyncMock(return_value=limited)):
        result = await container.dispatcher.perform_action(session, CompleteQualityCheckAction(score=98), now)

    assert result.completed_challenges == []
    assert result.xp_gained == 25
    assert notifier.of_kind("challenge") == []


@pytest.mark.asyncio
async def test_dispatcher_never_raises(container, session, now):
    service = MagicMock()
    service.snapshot_from_stats = MagicMock(side_effect=RuntimeError("render failed"))
    dispatcher = ActionDispatcher(container.updater, service, container.reward_handler, container.notifier,
                                  container.settings)

    result = await dispatcher.perform_action(session, CreateIncidentAction(), now)

    assert result.outcome == "failed"
    assert result.xp_gained == 0


@pytest.mark.asyncio
async def test_failing_notifier_does_not_block(container, session, now):
    with patch.object(container.notifier, "send", side_effect=RuntimeError("ui gone")):
        result = await container.dispatcher.perform_action(session, CreateIncidentAction(), now)

    assert result.xp_gained == 10
    assert result.snapshot is not None


@pytest.mark.asyncio
async def test_updater_failure_becomes_empty_result(container, session, now):
    with patch.object(container.updater, "update_user_stats", AsyncMock(side_effect=RuntimeError("boom"))):
        result = await container.dispatcher.perform_action(session, CreateIncidentAction(), now)

    assert result.outcome == "failed"
