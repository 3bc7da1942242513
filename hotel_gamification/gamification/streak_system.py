"""
Login Streak Tracking

Consecutive-day login bookkeeping, applied while processing a LOGIN action.

Logic:
- Already logged in today (per the action history): no XP, no change
- First login ever: streak starts at 1, base XP
- Last login yesterday: streak continues, base XP + consecutive-day bonus
- Last login earlier today (a LOGIN whose history entry was never written):
  no XP, counters untouched
- Gap of more than one day: streak resets to 1, base XP only
- lastLoginDate is always moved to now
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from hotel_gamification.gamification.xp_system import ACTION_POINTS
from hotel_gamification.models.stats import UserStats
from hotel_gamification.utils.datetime_helpers import local_date

logger = logging.getLogger(__name__)


def apply_login(
    stats: UserStats,
    now: datetime,
    already_logged_today: bool = False,
    tz: Optional[ZoneInfo] = None,
) -> int:
    """
    Update login counters and streaks on stats

    Args:
        stats: Stats to mutate
        now: Login time
        already_logged_today: A LOGIN entry for today exists in the history log
        tz: Timezone that defines calendar days

    Returns:
        XP earned by this login (before the global multiplier)
    """
    if already_logged_today:
        logger.info(f"User {stats.user_id} already received login points today")
        return 0

    today = local_date(now, tz)
    yesterday = today - timedelta(days=1)
    xp_gained = 0

    if stats.last_login_date is None:
        stats.total_logins += 1
        stats.current_streak = 1
        stats.consecutive_logins = 1
        stats.longest_streak = max(stats.longest_streak, 1)
        xp_gained = ACTION_POINTS["FIRST_LOGIN_OF_DAY"]
        logger.info(f"User {stats.user_id} streak started! Day 1")
    else:
        last_day = local_date(stats.last_login_date, tz)

        if last_day == yesterday:
            stats.total_logins += 1
            stats.consecutive_logins += 1
            stats.current_streak += 1
            stats.longest_streak = max(stats.longest_streak, stats.current_streak)
            xp_gained = ACTION_POINTS["FIRST_LOGIN_OF_DAY"] + ACTION_POINTS["CONSECUTIVE_DAY_LOGIN"]
            logger.info(f"User {stats.user_id} streak continues! Day {stats.current_streak}")

        elif last_day == today:
            logger.info(f"User {stats.user_id} already logged in today, no login points")

        else:
            old_streak = stats.current_streak
            stats.total_logins += 1
            stats.consecutive_logins = 1
            stats.current_streak = 1
            xp_gained = ACTION_POINTS["FIRST_LOGIN_OF_DAY"]
            logger.info(
                f"User {stats.user_id} login streak broken. "
                f"Was {old_streak}, gap was {(today - last_day).days} days"
            )

    stats.last_login_date = now
    return xp_gained


def get_current_streak(stats: UserStats, now: datetime, tz: Optional[ZoneInfo] = None) -> int:
    """
    Live streak as of now

    A streak survives until the end of the day after the last login; past
    that it is reported as 0 even though the stored counter is only reset by
    the next login.
    """
    if stats.last_login_date is None:
        return 0
    last_day = local_date(stats.last_login_date, tz)
    today = local_date(now, tz)
    if last_day >= today - timedelta(days=1):
        return stats.current_streak
    return 0
