"""
Weekly Challenges

Five fixed challenges are derived for the current calendar week (Sunday to
Saturday in the engine timezone). They are evaluated against the user's
cumulative stats, the same way the challenge board displays them.

A challenge is completed when its condition flips from false to true during
an update. Completion is recorded in a week-scoped ledger before the reward
is granted, so each (user, challenge, week) is rewarded at most once. The
reward goes through StatsUpdater as a COMPLETE_WEEKLY_GOAL action and never
re-enters challenge detection.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple, TYPE_CHECKING
from zoneinfo import ZoneInfo

from hotel_gamification.auth import SessionContext
from hotel_gamification.db import queries
from hotel_gamification.db.store import DocumentStore
from hotel_gamification.gamification.badge_system import evaluate_rule
from hotel_gamification.models.actions import CompleteWeeklyGoalAction
from hotel_gamification.models.badge import CounterAtLeast
from hotel_gamification.models.challenge import Challenge, ChallengeCompleted
from hotel_gamification.models.stats import UserStats
from hotel_gamification.monitoring import track_challenge_reward, track_persistence_failure
from hotel_gamification.utils.datetime_helpers import end_of_week, start_of_week, week_key

if TYPE_CHECKING:
    from hotel_gamification.gamification.stats_updater import StatsUpdater, StatsUpdateResult

logger = logging.getLogger(__name__)


# (id, title, description, icon, xp_reward, field, target, module_id)
WEEKLY_CHALLENGE_TEMPLATES = (
    ("weekly_incidents", "Résolution Efficace", "Résoudre 5 incidents cette semaine",
     "🚨", 100, "incidents_resolved", 5, "mod2"),
    ("weekly_maintenance", "Technicien de la Semaine", "Compléter 3 maintenances cette semaine",
     "🔧", 80, "maintenance_completed", 3, "mod3"),
    ("weekly_quality", "Excellence Qualité", "Effectuer 2 contrôles qualité avec un score > 90%",
     "📋", 120, "high_quality_checks", 2, "mod4"),
    ("weekly_login", "Présence Assidue", "Se connecter 5 jours cette semaine",
     "📆", 50, "consecutive_logins", 5, None),
    ("weekly_procedures", "Lecteur Informé", "Lire et valider 3 procédures cette semaine",
     "📚", 75, "procedures_validated", 3, "mod6"),
)


def generate_weekly_challenges(now: datetime, tz: Optional[ZoneInfo] = None) -> List[Challenge]:
    """Challenges for the calendar week containing now"""
    week_start = start_of_week(now, tz)
    week_end = end_of_week(now, tz)

    return [
        Challenge(
            id=challenge_id,
            title=title,
            description=description,
            icon=icon,
            xp_reward=xp_reward,
            start_date=week_start,
            end_date=week_end,
            rule=CounterAtLeast(field=field, value=target),
            progress_field=field,
            target=target,
            module_id=module_id,
        )
        for challenge_id, title, description, icon, xp_reward, field, target, module_id
        in WEEKLY_CHALLENGE_TEMPLATES
    ]


def challenge_progress(challenge: Challenge, stats: UserStats) -> int:
    """Completion percentage, floored and capped at 100"""
    if challenge.target <= 0:
        return 100
    value = stats.value_of(challenge.progress_field) or 0
    return min(int(value * 100 // challenge.target), 100)


def is_challenge_met(challenge: Challenge, stats: UserStats) -> bool:
    return evaluate_rule(challenge.rule, stats)


def get_challenge_progress(challenges: List[Challenge], stats: UserStats) -> Dict[str, int]:
    return {challenge.id: challenge_progress(challenge, stats) for challenge in challenges}


def detect_completed_challenges(
    before: UserStats,
    after: UserStats,
    challenges: List[Challenge],
    now: datetime,
    tz: Optional[ZoneInfo] = None,
) -> List[ChallengeCompleted]:
    """
    Challenges whose condition flipped from false to true

    Args:
        before: Stats prior to the update
        after: Stats after the update
        challenges: This week's challenges
        now: Time of the update

    Returns:
        One ChallengeCompleted event per newly met challenge
    """
    week = week_key(now, tz)
    events = []
    for challenge in challenges:
        if is_challenge_met(challenge, before) or not is_challenge_met(challenge, after):
            continue
        events.append(ChallengeCompleted(
            user_id=after.user_id,
            challenge_id=challenge.id,
            title=challenge.title,
            icon=challenge.icon,
            xp_reward=challenge.xp_reward,
            week=week,
            completed_at=now,
        ))
    return events


# ============================================
# Completion Ledger
# ============================================

class ChallengeLedger:
    """
    Week-scoped set of completed challenge ids per user

    Backed by the document store with an in-process cache; the cache still
    deduplicates within this process when the store is unavailable.
    """

    def __init__(self, store: DocumentStore):
        self.store = store
        self._cache: Dict[str, Tuple[str, Set[str]]] = {}

    async def completed(self, user_id: str, week: str) -> Set[str]:
        """Challenge ids already completed by the user this week"""
        cached = self._cache.get(user_id)
        if cached and cached[0] == week:
            return set(cached[1])

        try:
            ledger = await queries.get_completed_challenges(self.store, user_id)
        except Exception as e:
            logger.error(f"Error loading completed challenges for user {user_id}: {e}")
            track_persistence_failure("get_completed_challenges")
            return set(cached[1]) if cached and cached[0] == week else set()

        # A ledger from an earlier week is stale
        completed = set(ledger["completed"]) if ledger["week"] == week else set()
        self._cache[user_id] = (week, completed)
        return set(completed)

    async def mark_completed(self, user_id: str, week: str, challenge_id: str) -> bool:
        """
        Record a completion

        Returns:
            False if the challenge was already completed this week
        """
        completed = await self.completed(user_id, week)
        if challenge_id in completed:
            return False

        completed.add(challenge_id)
        self._cache[user_id] = (week, completed)
        try:
            await queries.save_completed_challenges(self.store, user_id, week, sorted(completed))
        except Exception as e:
            logger.error(f"Error saving completed challenges for user {user_id}: {e}")
            track_persistence_failure("save_completed_challenges")
        return True

    async def unmark(self, user_id: str, week: str, challenge_id: str) -> None:
        """Forget a completion whose reward could not be applied"""
        completed = await self.completed(user_id, week)
        if challenge_id not in completed:
            return

        completed.discard(challenge_id)
        self._cache[user_id] = (week, completed)
        try:
            await queries.save_completed_challenges(self.store, user_id, week, sorted(completed))
        except Exception as e:
            logger.error(f"Error saving completed challenges for user {user_id}: {e}")
            track_persistence_failure("save_completed_challenges")


class ChallengeRewardHandler:
    """Grants the XP reward of a completed challenge, once per week"""

    def __init__(self, updater: "StatsUpdater", ledger: ChallengeLedger):
        self.updater = updater
        self.ledger = ledger

    async def handle(
        self,
        session: SessionContext,
        event: ChallengeCompleted,
    ) -> Optional["StatsUpdateResult"]:
        """
        Reward a challenge completion

        Returns:
            The reward's StatsUpdateResult, or None when already rewarded
        """
        if not await self.ledger.mark_completed(event.user_id, event.week, event.challenge_id):
            logger.debug(
                f"Challenge {event.challenge_id} already rewarded for user {event.user_id} "
                f"in week {event.week}"
            )
            return None

        action = CompleteWeeklyGoalAction(
            challenge_id=event.challenge_id,
            xp_reward=event.xp_reward,
        )
        result = await self.updater.update_user_stats(
            session, event.user_id, action, now=event.completed_at
        )
        if result.previous_stats is None:
            logger.warning(
                f"Reward for challenge {event.challenge_id} not applied for user {event.user_id} "
                f"({result.outcome}), completion released"
            )
            await self.ledger.unmark(event.user_id, event.week, event.challenge_id)
            return result

        if result.xp_gained > 0:
            track_challenge_reward(event.challenge_id)
            logger.info(
                f"User {event.user_id} completed challenge {event.challenge_id}: "
                f"+{result.xp_gained} XP"
            )
        return result
