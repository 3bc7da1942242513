"""
Stats Updater

The scoring state machine. For one (user, action) pair it:

1. refuses to touch stats that do not belong to the session user
2. drops actions that hit their rate limit (zero XP, not an error)
3. drops a second LOGIN on the same calendar day (per the action history)
4. applies the action's counter changes and XP from ACTION_POINTS
5. recomputes level and evaluates badges
6. saves stats and appends one history entry, best effort

Failures never propagate: the caller always gets a StatsUpdateResult, at
worst the last known (or default) stats with zero XP. Stats that cannot be
read are never overwritten; the action is dropped with outcome "failed".
Concurrent updates for one user are last-write-wins; there is no version
check.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from hotel_gamification.auth import SessionContext
from hotel_gamification.config import GamificationSettings
from hotel_gamification.db import queries
from hotel_gamification.db.store import DocumentStore
from hotel_gamification.gamification.action_history import ActionHistoryLog
from hotel_gamification.gamification.badge_system import evaluate_badges
from hotel_gamification.gamification.rate_limiter import RateLimiter
from hotel_gamification.gamification.streak_system import apply_login
from hotel_gamification.gamification.xp_system import (
    ACTION_POINTS,
    CRITICAL_MULTIPLIER,
    HIGH_QUALITY_THRESHOLD,
    apply_multiplier,
    calculate_level,
)
from hotel_gamification.models.actions import (
    CRITICAL_SEVERITY,
    ActionType,
    GamificationAction,
)
from hotel_gamification.models.badge import BadgeDefinition
from hotel_gamification.models.stats import ActionHistoryEntry, UserStats
from hotel_gamification.monitoring import (
    track_action,
    track_badge_unlocked,
    track_persistence_failure,
    track_xp_awarded,
)
from hotel_gamification.utils.datetime_helpers import (
    localize,
    now_in_timezone,
    start_of_day,
)

logger = logging.getLogger(__name__)


@dataclass
class StatsUpdateResult:
    """Outcome of one update. previous_stats is None when nothing was applied."""
    stats: UserStats
    xp_gained: int = 0
    new_badges: List[BadgeDefinition] = field(default_factory=list)
    previous_stats: Optional[UserStats] = None
    rate_limited: bool = False
    authorized: bool = True
    outcome: str = "awarded"


def running_average(old_average: float, count: int, value: float) -> float:
    """
    Incremental mean

    Args:
        old_average: Average over the first count - 1 values
        count: Number of values including the new one
        value: New value
    """
    if count <= 0:
        return 0.0
    return (old_average * (count - 1) + value) / count


class StatsUpdater:
    """Applies gamification actions to user stats"""

    def __init__(
        self,
        store: DocumentStore,
        history: ActionHistoryLog,
        rate_limiter: RateLimiter,
        settings: Optional[GamificationSettings] = None,
    ):
        self.store = store
        self.history = history
        self.rate_limiter = rate_limiter
        self.settings = settings or GamificationSettings()
        self.tz = self.settings.tz

    async def update_user_stats(
        self,
        session: SessionContext,
        user_id: str,
        action: GamificationAction,
        now: Optional[datetime] = None,
    ) -> StatsUpdateResult:
        """
        Apply an action to the user's stats

        Args:
            session: Authenticated session; must own user_id
            user_id: User whose stats change
            action: Action reported by the back office
            now: Action time (defaults to the current time)

        Returns:
            StatsUpdateResult with the updated stats, XP gained and newly
            unlocked badges
        """
        try:
            return await self._update(session, user_id, action, now)
        except Exception as e:
            logger.error(f"Error updating user stats for {user_id}: {e}", exc_info=True)
            track_action(str(action.type), "failed")
            fallback = await self.load_or_initialize(user_id)
            return StatsUpdateResult(stats=fallback, outcome="failed")

    async def _update(
        self,
        session: SessionContext,
        user_id: str,
        action: GamificationAction,
        now: Optional[datetime],
    ) -> StatsUpdateResult:
        action_type = str(action.type)

        if not session.owns(user_id):
            logger.warning("Cannot update stats: Authentication failed")
            track_action(action_type, "unauthorized")
            return StatsUpdateResult(
                stats=UserStats.initial(user_id or ""),
                authorized=False,
                outcome="unauthorized",
            )

        now = localize(now, self.tz) if now else now_in_timezone(self.tz)

        if await self.rate_limiter.is_rate_limited(user_id, action_type, now):
            logger.warning(f"Action {action_type} rate-limited for user {user_id}")
            track_action(action_type, "rate_limited")
            return StatsUpdateResult(
                stats=await self.load_or_initialize(user_id),
                rate_limited=True,
                outcome="rate_limited",
            )

        if action_type == ActionType.LOGIN.value and await self._logged_in_today(user_id, now):
            track_action(action_type, "duplicate_login")
            return StatsUpdateResult(
                stats=await self.load_or_initialize(user_id),
                outcome="duplicate_login",
            )

        try:
            stored = await queries.get_user_stats(self.store, user_id)
        except Exception as e:
            # Stats that could not be read are never overwritten
            logger.error(f"Cannot read stats for user {user_id}, {action_type} not recorded: {e}")
            track_persistence_failure("get_user_stats")
            track_action(action_type, "failed")
            return StatsUpdateResult(stats=UserStats.initial(user_id), outcome="failed")

        if stored is None:
            logger.info(f"Initializing gamification stats for user {user_id}")
        stats = stored or UserStats.initial(user_id)
        previous_stats = stats.model_copy(deep=True)

        base_xp = self._apply_action(stats, action, now)
        xp_gained = apply_multiplier(base_xp, self.settings.xp_multiplier)

        stats.xp += xp_gained
        stats.level = calculate_level(stats.xp)
        stats.last_updated = now

        new_badges = evaluate_badges(stats)

        await self._persist(stats, action, xp_gained, new_badges, now)

        track_action(action_type, "awarded")
        track_xp_awarded(action_type, xp_gained)
        for badge in new_badges:
            track_badge_unlocked(badge.id)

        if stats.level > previous_stats.level:
            logger.info(f"User {user_id} leveled up from {previous_stats.level} to {stats.level}!")
        logger.info(
            f"Awarded {xp_gained} XP to user {user_id} for {action_type}. "
            f"Total: {stats.xp} XP, Level: {stats.level}"
        )

        return StatsUpdateResult(
            stats=stats,
            xp_gained=xp_gained,
            new_badges=new_badges,
            previous_stats=previous_stats,
        )

    # ============================================
    # Transition table
    # ============================================

    def _apply_action(self, stats: UserStats, action: GamificationAction, now: datetime) -> int:
        """Mutate counters for the action and return its base XP"""
        action_type = str(action.type)
        xp_gained = 0

        if action_type == ActionType.CREATE_INCIDENT.value:
            stats.incidents_created += 1
            xp_gained = ACTION_POINTS["CREATE_INCIDENT"]
            if action.severity == CRITICAL_SEVERITY:
                xp_gained = int(xp_gained * CRITICAL_MULTIPLIER)

        elif action_type == ActionType.RESOLVE_INCIDENT.value:
            stats.incidents_resolved += 1
            if action.severity == CRITICAL_SEVERITY:
                stats.critical_incidents_resolved += 1
                xp_gained = ACTION_POINTS["RESOLVE_CRITICAL_INCIDENT"]
            else:
                xp_gained = ACTION_POINTS["RESOLVE_INCIDENT"]

            # Incidents closed without a duration still count in n
            if action.resolution_time is not None:
                stats.avg_resolution_time = running_average(
                    stats.avg_resolution_time,
                    stats.incidents_resolved,
                    action.resolution_time,
                )

        elif action_type == ActionType.CREATE_MAINTENANCE.value:
            stats.maintenance_created += 1
            xp_gained = ACTION_POINTS["CREATE_MAINTENANCE"]

        elif action_type == ActionType.COMPLETE_MAINTENANCE.value:
            stats.maintenance_completed += 1
            xp_gained = ACTION_POINTS["COMPLETE_MAINTENANCE"]
            if action.before_schedule:
                stats.quick_maintenance_completed += 1
                xp_gained += ACTION_POINTS["EXPEDITE_MAINTENANCE"]

        elif action_type == ActionType.COMPLETE_QUALITY_CHECK.value:
            stats.quality_checks_completed += 1
            xp_gained = ACTION_POINTS["COMPLETE_QUALITY_CHECK"]
            stats.avg_quality_score = running_average(
                stats.avg_quality_score,
                stats.quality_checks_completed,
                action.score,
            )
            if action.score > HIGH_QUALITY_THRESHOLD:
                stats.high_quality_checks += 1
                xp_gained += ACTION_POINTS["HIGH_QUALITY_SCORE"]

        elif action_type == ActionType.REGISTER_LOST_ITEM.value:
            stats.lost_items_registered += 1
            xp_gained = ACTION_POINTS["REGISTER_LOST_ITEM"]

        elif action_type == ActionType.RETURN_LOST_ITEM.value:
            stats.lost_items_returned += 1
            xp_gained = ACTION_POINTS["RETURN_LOST_ITEM"]

        elif action_type == ActionType.CREATE_PROCEDURE.value:
            stats.procedures_created += 1
            xp_gained = ACTION_POINTS["CREATE_PROCEDURE"]

        elif action_type == ActionType.READ_PROCEDURE.value:
            stats.procedures_read += 1
            xp_gained = ACTION_POINTS["READ_PROCEDURE"]

        elif action_type == ActionType.VALIDATE_PROCEDURE.value:
            stats.procedures_validated += 1
            xp_gained = ACTION_POINTS["VALIDATE_PROCEDURE"]

        elif action_type == ActionType.LOGIN.value:
            xp_gained = apply_login(stats, now, tz=self.tz)

        elif action_type == ActionType.HELP_COLLEAGUE.value:
            stats.help_provided += 1
            xp_gained = ACTION_POINTS["HELP_COLLEAGUE"]

        elif action_type == ActionType.RECEIVE_THANKS.value:
            stats.thanks_received += 1
            xp_gained = ACTION_POINTS["RECEIVE_THANKS"]

        elif action_type == ActionType.COMPLETE_WEEKLY_GOAL.value:
            stats.weekly_goals_completed += 1
            if action.xp_reward is not None:
                xp_gained = action.xp_reward
            else:
                xp_gained = ACTION_POINTS["WEEKLY_GOAL_COMPLETION"]

        else:
            logger.info(f"Unknown action type {action_type!r} for user {stats.user_id}, no points awarded")

        return xp_gained

    # ============================================
    # Store access
    # ============================================

    async def load_or_initialize(self, user_id: str) -> UserStats:
        """Stored stats for display, or fresh stats when absent or unreadable; never saved"""
        try:
            stats = await queries.get_user_stats(self.store, user_id)
        except Exception as e:
            logger.error(f"Error retrieving user stats for {user_id}: {e}")
            track_persistence_failure("get_user_stats")
            stats = None

        return stats or UserStats.initial(user_id)

    async def _logged_in_today(self, user_id: str, now: datetime) -> bool:
        """Same-day LOGIN check against the action history"""
        try:
            return await self.history.has_action_since(
                user_id, ActionType.LOGIN.value, start_of_day(now, self.tz)
            )
        except Exception as e:
            # Treated as not logged in today
            logger.warning(f"Error checking login points for user {user_id}: {e}")
            track_persistence_failure("query_login_history")
            return False

    async def _persist(
        self,
        stats: UserStats,
        action: GamificationAction,
        xp_gained: int,
        new_badges: List[BadgeDefinition],
        now: datetime,
    ) -> None:
        """Save stats and append history independently; log failures, never raise"""
        try:
            await queries.save_user_stats(self.store, stats)
        except Exception as e:
            logger.error(f"Error saving updated stats for user {stats.user_id}: {e}")
            track_persistence_failure("save_user_stats")

        entry = ActionHistoryEntry(
            user_id=stats.user_id,
            action_type=str(action.type),
            action=action.model_dump(mode="json"),
            xp_gained=xp_gained,
            new_level=stats.level,
            new_badges=[badge.id for badge in new_badges],
            total_xp=stats.xp,
            timestamp=now,
        )
        try:
            await self.history.append(entry)
        except Exception as e:
            logger.error(f"Error recording action history for user {stats.user_id}: {e}")
            track_persistence_failure("append_action_history")
