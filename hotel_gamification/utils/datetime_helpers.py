"""
Calendar boundary helpers

Rate-limit windows, login streaks and weekly challenges are calendar-aligned
(start of the current hour, day and week) rather than sliding. All of them
must agree on one timezone, so every helper here takes it explicitly.

CRITICAL RULES:
- Store datetimes as timezone-aware values
- Compare calendar days in the engine timezone, never in UTC by accident
- Naive datetimes are interpreted in the engine timezone
"""

import logging
from datetime import datetime, date, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "UTC"


def resolve_timezone(tz: Optional[ZoneInfo] = None) -> ZoneInfo:
    return tz or ZoneInfo(DEFAULT_TIMEZONE)


def now_in_timezone(tz: Optional[ZoneInfo] = None) -> datetime:
    """
    Get current datetime in the engine timezone (timezone-aware)
    """
    return datetime.now(resolve_timezone(tz))


def localize(dt: datetime, tz: Optional[ZoneInfo] = None) -> datetime:
    """
    Express a datetime in the engine timezone

    Naive datetimes are assumed to already be local to the engine timezone.
    """
    tz = resolve_timezone(tz)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def start_of_hour(dt: datetime, tz: Optional[ZoneInfo] = None) -> datetime:
    local = localize(dt, tz)
    return local.replace(minute=0, second=0, microsecond=0)


def start_of_day(dt: datetime, tz: Optional[ZoneInfo] = None) -> datetime:
    local = localize(dt, tz)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(dt: datetime, tz: Optional[ZoneInfo] = None) -> datetime:
    """
    Start of the calendar week containing dt

    Weeks run Sunday through Saturday, matching the back office's weekly
    challenge board.
    """
    day_start = start_of_day(dt, tz)
    days_since_sunday = (day_start.weekday() + 1) % 7
    return day_start - timedelta(days=days_since_sunday)


def end_of_week(dt: datetime, tz: Optional[ZoneInfo] = None) -> datetime:
    """Last instant of the week started by start_of_week(dt)"""
    return start_of_week(dt, tz) + timedelta(days=7) - timedelta(microseconds=1)


def local_date(dt: datetime, tz: Optional[ZoneInfo] = None) -> date:
    return localize(dt, tz).date()


def week_key(dt: datetime, tz: Optional[ZoneInfo] = None) -> str:
    """Stable identifier of the week containing dt (its Sunday, ISO formatted)"""
    return start_of_week(dt, tz).date().isoformat()


def parse_datetime(value) -> Optional[datetime]:
    """
    Parse a stored timestamp (datetime or ISO string) into a datetime

    Returns None for empty values and unparseable strings.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        logger.warning(f"Could not parse stored timestamp: {value!r}")
        return None
