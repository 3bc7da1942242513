"""
Rate Limiter

Caps how often each action type earns points, per user, using
calendar-aligned windows: the current clock hour and the current day in the
engine timezone. Windows are not sliding, so a burst right after a boundary
is allowed.

A limited action is a normal outcome (zero XP, stats unchanged), not an
error.

When the history query fails the limiter fails OPEN and lets the action
score; the failure is logged and counted.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional
from zoneinfo import ZoneInfo

from hotel_gamification.gamification.action_history import ActionHistoryLog
from hotel_gamification.monitoring import track_rate_limiter_fail_open
from hotel_gamification.utils.datetime_helpers import (
    now_in_timezone,
    start_of_day,
    start_of_hour,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimit:
    max_per_hour: Optional[int] = None
    max_per_day: Optional[int] = None


DEFAULT_RATE_LIMIT = RateLimit(max_per_hour=20, max_per_day=100)

RATE_LIMITS: Dict[str, RateLimit] = {
    "LOGIN": RateLimit(max_per_day=1),
    "CREATE_INCIDENT": RateLimit(max_per_hour=20, max_per_day=50),
    "RESOLVE_INCIDENT": RateLimit(max_per_hour=20, max_per_day=50),
    "READ_PROCEDURE": RateLimit(max_per_hour=30, max_per_day=100),
}


class RateLimiter:
    """Calendar-window limiter backed by the action history log"""

    def __init__(
        self,
        history: ActionHistoryLog,
        limits: Optional[Dict[str, RateLimit]] = None,
        default_limit: RateLimit = DEFAULT_RATE_LIMIT,
        tz: Optional[ZoneInfo] = None,
    ):
        self.history = history
        self.limits = RATE_LIMITS if limits is None else limits
        self.default_limit = default_limit
        self.tz = tz

    def limit_for(self, action_type: str) -> RateLimit:
        return self.limits.get(str(action_type), self.default_limit)

    async def is_rate_limited(
        self,
        user_id: str,
        action_type: str,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Check whether user_id already hit the hourly or daily cap for action_type

        Args:
            user_id: Owner of the action
            action_type: ActionType value
            now: Reference time (defaults to the current time)

        Returns:
            True when either configured maximum is met or exceeded
        """
        now = now or now_in_timezone(self.tz)
        action_type = str(action_type)
        limits = self.limit_for(action_type)

        try:
            if limits.max_per_day is not None:
                daily = await self.history.count(user_id, action_type, start_of_day(now, self.tz))
                if daily >= limits.max_per_day:
                    logger.warning(f"User {user_id} has reached daily limit for action {action_type}")
                    return True

            if limits.max_per_hour is not None:
                hourly = await self.history.count(user_id, action_type, start_of_hour(now, self.tz))
                if hourly >= limits.max_per_hour:
                    logger.warning(f"User {user_id} has reached hourly limit for action {action_type}")
                    return True

        except Exception as e:
            logger.warning(f"Rate limit check failed for user {user_id}, allowing {action_type}: {e}")
            track_rate_limiter_fail_open()
            return False

        return False
