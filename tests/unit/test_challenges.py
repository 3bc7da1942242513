"""Unit tests for Weekly Challenges (hotel_gamification/gamification/challenges.py)"""
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

from hotel_gamification.db import queries
from hotel_gamification.exceptions import PersistenceUnavailableError
from hotel_gamification.gamification.challenges import (
    ChallengeLedger,
    ChallengeRewardHandler,
    challenge_progress,
    detect_completed_challenges,
    generate_weekly_challenges,
    get_challenge_progress,
    is_challenge_met,
)
from hotel_gamification.models.stats import UserStats


def challenge_by_id(challenges, challenge_id):
    return next(c for c in challenges if c.id == challenge_id)


# ============================================================================
# Generation Tests
# ============================================================================

def test_five_weekly_challenges(now):
    challenges = generate_weekly_challenges(now)

    assert [c.id for c in challenges] == [
        "weekly_incidents",
        "weekly_maintenance",
        "weekly_quality",
        "weekly_login",
        "weekly_procedures",
    ]
    assert challenge_by_id(challenges, "weekly_quality").xp_reward == 120
    assert challenge_by_id(challenges, "weekly_login").module_id is None


def test_week_runs_sunday_to_saturday(now):
    challenge = generate_weekly_challenges(now)[0]

    assert challenge.start_date.date().isoformat() == "2024-03-10"
    assert challenge.start_date.weekday() == 6
    assert challenge.end_date.date().isoformat() == "2024-03-16"


def test_sunday_starts_a_new_week():
    sunday = datetime(2024, 3, 17, 0, 5, tzinfo=timezone.utc)
    assert generate_weekly_challenges(sunday)[0].start_date.date().isoformat() == "2024-03-17"


# ============================================================================
# Progress Tests
# ============================================================================

def test_progress_is_floored_and_capped(now):
    challenge = challenge_by_id(generate_weekly_challenges(now), "weekly_maintenance")

    assert challenge_progress(challenge, UserStats(user_id="u", maintenance_completed=1)) == 33
    assert challenge_progress(challenge, UserStats(user_id="u", maintenance_completed=3)) == 100
    assert challenge_progress(challenge, UserStats(user_id="u", maintenance_completed=7)) == 100


def test_progress_map(now):
    challenges = generate_weekly_challenges(now)
    progress = get_challenge_progress(challenges, UserStats(user_id="u", incidents_resolved=2))

    assert progress["weekly_incidents"] == 40
    assert progress["weekly_login"] == 0


def test_is_challenge_met(now):
    challenge = challenge_by_id(generate_weekly_challenges(now), "weekly_login")

    assert not is_challenge_met(challenge, UserStats(user_id="u", consecutive_logins=4))
    assert is_challenge_met(challenge, UserStats(user_id="u", consecutive_logins=5))


# ============================================================================
# Detection Tests
# ============================================================================

def test_detects_false_to_true_transition(now):
    challenges = generate_weekly_challenges(now)
    before = UserStats(user_id="u", maintenance_completed=2)
    after = UserStats(user_id="u", maintenance_completed=3)

    events = detect_completed_challenges(before, after, challenges, now)

    assert [e.challenge_id for e in events] == ["weekly_maintenance"]
    assert events[0].week == "2024-03-10"
    assert events[0].xp_reward == 80
    assert events[0].user_id == "u"


def test_already_met_challenge_is_not_detected_again(now):
    challenges = generate_weekly_challenges(now)
    before = UserStats(user_id="u", maintenance_completed=3)
    after = UserStats(user_id="u", maintenance_completed=4)

    assert detect_completed_challenges(before, after, challenges, now) == []


# ============================================================================
# Ledger Tests
# ============================================================================

@pytest.mark.asyncio
async def test_ledger_marks_once_per_week(store, test_user_id):
    ledger = ChallengeLedger(store)

    assert await ledger.mark_completed(test_user_id, "2024-03-10", "weekly_quality")
    assert not await ledger.mark_completed(test_user_id, "2024-03-10", "weekly_quality")
    assert await ledger.mark_completed(test_user_id, "2024-03-17", "weekly_quality")


@pytest.mark.asyncio
async def test_ledger_is_persisted(store, test_user_id):
    await ChallengeLedger(store).mark_completed(test_user_id, "2024-03-10", "weekly_quality")

    fresh_ledger = ChallengeLedger(store)

    assert await fresh_ledger.completed(test_user_id, "2024-03-10") == {"weekly_quality"}
    assert await fresh_ledger.completed(test_user_id, "2024-03-17") == set()
    ledger = await queries.get_completed_challenges(store, test_user_id)
    assert ledger["week"] == "2024-03-10"


@pytest.mark.asyncio
async def test_ledger_cache_dedups_when_store_fails(store, test_user_id):
    ledger = ChallengeLedger(store)
    await ledger.mark_completed(test_user_id, "2024-03-10", "weekly_login")

    store.get_document = AsyncMock(side_effect=PersistenceUnavailableError())
    store.set_document = AsyncMock(side_effect=PersistenceUnavailableError())

    assert not await ledger.mark_completed(test_user_id, "2024-03-10", "weekly_login")


# ============================================================================
# Reward Handler Tests
# ============================================================================

@pytest.mark.asyncio
async def test_reward_granted_once(store, updater, session, test_user_id, now):
    handler = ChallengeRewardHandler(updater, ChallengeLedger(store))
    challenges = generate_weekly_challenges(now)
    event = detect_completed_challenges(
        UserStats(user_id=test_user_id, high_quality_checks=1),
        UserStats(user_id=test_user_id, high_quality_checks=2),
        challenges,
        now,
    )[0]

    first = await handler.handle(session, event)
    second = await handler.handle(session, event)

    assert first.xp_gained == 120
    assert first.stats.weekly_goals_completed == 1
    assert second is None


@pytest.mark.asyncio
async def test_reward_next_week_is_granted_again(store, updater, session, test_user_id, now):
    handler = ChallengeRewardHandler(updater, ChallengeLedger(store))
    before = UserStats(user_id=test_user_id, consecutive_logins=4)
    after = UserStats(user_id=test_user_id, consecutive_logins=5)

    this_week = detect_completed_challenges(before, after, generate_weekly_challenges(now), now)[0]
    next_now = now + timedelta(days=7)
    next_week = detect_completed_challenges(before, after, generate_weekly_challenges(next_now), next_now)[0]

    assert (await handler.handle(session, this_week)).xp_gained == 50
    assert (await handler.handle(session, next_week)).xp_gained == 50


@pytest.mark.asyncio
async def test_reward_not_applied_releases_completion(store, updater, session, test_user_id, now):
    ledger = ChallengeLedger(store)
    handler = ChallengeRewardHandler(updater, ledger)
    event = detect_completed_challenges(
        UserStats(user_id=test_user_id, high_quality_checks=1),
        UserStats(user_id=test_user_id, high_quality_checks=2),
        generate_weekly_challenges(now),
        now,
    )[0]

    with patch.object(updater.rate_limiter, "is_rate_limited", AsyncMock(return_value=True)):
        limited = await handler.handle(session, event)

    assert limited.outcome == "rate_limited"
    assert limited.xp_gained == 0
    assert await ledger.completed(test_user_id, event.week) == set()
    assert (await queries.get_completed_challenges(store, test_user_id))["completed"] == []

    retried = await handler.handle(session, event)

    assert retried.xp_gained == 120
    assert await ledger.completed(test_user_id, event.week) == {"weekly_quality"}


@pytest.mark.asyncio
async def test_unmark_unknown_challenge_is_noop(store, test_user_id):
    ledger = ChallengeLedger(store)
    await ledger.mark_completed(test_user_id, "2024-03-10", "weekly_login")

    await ledger.unmark(test_user_id, "2024-03-10", "weekly_quality")

    assert await ledger.completed(test_user_id, "2024-03-10") == {"weekly_login"}
