"""
Action Dispatcher

Entry point called by the back-office modules after a business action
succeeded:

    result = await dispatcher.perform_action(session, ResolveIncidentAction(severity="critical"))

It runs the stats update, sends badge/XP notifications, rewards weekly
challenges that were just completed and returns the refreshed dashboard
snapshot. It never raises: gamification must not block the business action.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from hotel_gamification.auth import SessionContext
from hotel_gamification.config import GamificationSettings
from hotel_gamification.gamification.challenges import (
    ChallengeRewardHandler,
    detect_completed_challenges,
    generate_weekly_challenges,
)
from hotel_gamification.gamification.notifications import (
    LoggingNotificationSink,
    Notification,
    NotificationSink,
    badge_notification,
    challenge_notification,
    xp_notification,
)
from hotel_gamification.gamification.stats_updater import StatsUpdater, StatsUpdateResult
from hotel_gamification.models.actions import GamificationAction
from hotel_gamification.models.badge import BadgeDefinition
from hotel_gamification.models.challenge import ChallengeCompleted
from hotel_gamification.services.gamification_service import GamificationService, GamificationSnapshot
from hotel_gamification.utils.datetime_helpers import localize, now_in_timezone

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """What one perform_action call changed"""
    xp_gained: int = 0
    new_badges: List[BadgeDefinition] = field(default_factory=list)
    completed_challenges: List[ChallengeCompleted] = field(default_factory=list)
    snapshot: Optional[GamificationSnapshot] = None
    rate_limited: bool = False
    outcome: str = "skipped"


class ActionDispatcher:
    """Runs gamification for one back-office action"""

    def __init__(
        self,
        updater: StatsUpdater,
        service: GamificationService,
        reward_handler: ChallengeRewardHandler,
        notifier: Optional[NotificationSink] = None,
        settings: Optional[GamificationSettings] = None,
    ):
        self.updater = updater
        self.service = service
        self.reward_handler = reward_handler
        self.notifier = notifier or LoggingNotificationSink()
        self.settings = settings or GamificationSettings()
        self.tz = self.settings.tz

    async def perform_action(
        self,
        session: SessionContext,
        action: GamificationAction,
        now: Optional[datetime] = None,
    ) -> DispatchResult:
        """
        Award points for an action performed by the session user

        Args:
            session: Authenticated session
            action: Action that just happened
            now: Action time (defaults to the current time)

        Returns:
            DispatchResult; empty when gamification is disabled, the user is
            not authenticated, or anything failed
        """
        if not self.settings.enabled:
            logger.debug(f"Gamification disabled, ignoring {action.type}")
            return DispatchResult(outcome="disabled")

        if not session.is_authenticated:
            logger.warning(f"Cannot perform action {action.type}: User not authenticated")
            return DispatchResult(outcome="unauthenticated")

        try:
            return await self._dispatch(session, action, now)
        except Exception as e:
            logger.error(f"Error performing gamification action {action.type}: {e}", exc_info=True)
            return DispatchResult(outcome="failed")

    async def _dispatch(
        self,
        session: SessionContext,
        action: GamificationAction,
        now: Optional[datetime],
    ) -> DispatchResult:
        now = localize(now, self.tz) if now else now_in_timezone(self.tz)
        user_id = session.user_id

        result = await self.updater.update_user_stats(session, user_id, action, now=now)
        if result.previous_stats is None:
            # Nothing applied: rate limited, duplicate login or failure
            return DispatchResult(rate_limited=result.rate_limited, outcome=result.outcome)

        dispatch = DispatchResult(
            xp_gained=result.xp_gained,
            new_badges=list(result.new_badges),
            outcome=result.outcome,
        )
        self._notify_update(result)

        final_stats = result.stats
        challenges = generate_weekly_challenges(now, self.tz)
        events = detect_completed_challenges(result.previous_stats, result.stats, challenges, now, self.tz)

        for event in events:
            reward = await self.reward_handler.handle(session, event)
            # None: already rewarded this week; no previous_stats: reward not applied
            if reward is None or reward.previous_stats is None:
                continue
            dispatch.completed_challenges.append(event)
            self._send(challenge_notification(event))
            dispatch.xp_gained += reward.xp_gained
            dispatch.new_badges.extend(reward.new_badges)
            self._notify_update(reward)
            final_stats = reward.stats

        dispatch.snapshot = self.service.snapshot_from_stats(final_stats, now)
        return dispatch

    def _notify_update(self, result: StatsUpdateResult) -> None:
        if self.settings.show_badge_notifications:
            for badge in result.new_badges:
                self._send(badge_notification(badge))
        if self.settings.show_xp_notifications and result.xp_gained > 0:
            self._send(xp_notification(result.xp_gained))

    def _send(self, notification: Notification) -> None:
        try:
            self.notifier.send(notification)
        except Exception as e:
            logger.error(f"Error sending {notification.kind} notification: {e}")
