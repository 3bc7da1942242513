"""Configuration management"""
import os
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

# Storage
# - 'memory' (default): in-process store, nothing survives a restart
# - 'postgres': jsonb documents/records tables behind DATABASE_URL
STORE_BACKEND: str = os.getenv("STORE_BACKEND", "memory").lower()
DATABASE_URL: str = os.getenv("DATABASE_URL", "")
DB_POOL_MIN_SIZE: int = int(os.getenv("DB_POOL_MIN_SIZE", "1"))
DB_POOL_MAX_SIZE: int = int(os.getenv("DB_POOL_MAX_SIZE", "10"))
DB_POOL_TIMEOUT: float = float(os.getenv("DB_POOL_TIMEOUT", "10"))

# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# Gamification
GAMIFICATION_ENABLED: bool = os.getenv("GAMIFICATION_ENABLED", "true").lower() == "true"
# Hour/day/week boundaries for rate limits, streaks and weekly challenges
GAMIFICATION_TIMEZONE: str = os.getenv("GAMIFICATION_TIMEZONE", "UTC")
GLOBAL_XP_MULTIPLIER: float = float(os.getenv("GLOBAL_XP_MULTIPLIER", "1.0"))
SHOW_XP_NOTIFICATIONS: bool = os.getenv("SHOW_XP_NOTIFICATIONS", "true").lower() == "true"
SHOW_BADGE_NOTIFICATIONS: bool = os.getenv("SHOW_BADGE_NOTIFICATIONS", "true").lower() == "true"

# Monitoring
ENABLE_PROMETHEUS: bool = os.getenv("ENABLE_PROMETHEUS", "true").lower() == "true"


class GamificationSettings(BaseModel):
    """Runtime toggles injected into the engine components"""
    enabled: bool = True
    timezone: str = "UTC"
    xp_multiplier: float = Field(default=1.0, gt=0)
    show_xp_notifications: bool = True
    show_badge_notifications: bool = True

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def load_settings() -> GamificationSettings:
    """Build settings from the environment-backed module constants"""
    return GamificationSettings(
        enabled=GAMIFICATION_ENABLED,
        timezone=GAMIFICATION_TIMEZONE,
        xp_multiplier=GLOBAL_XP_MULTIPLIER,
        show_xp_notifications=SHOW_XP_NOTIFICATIONS,
        show_badge_notifications=SHOW_BADGE_NOTIFICATIONS,
    )


def _timezone_error(name: str) -> Optional[str]:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return f"Unknown GAMIFICATION_TIMEZONE '{name}'"
    return None


# Validation
def validate_config() -> None:
    """Validate required configuration"""
    if STORE_BACKEND not in ("memory", "postgres"):
        raise ValueError(f"STORE_BACKEND must be 'memory' or 'postgres', got '{STORE_BACKEND}'")
    if STORE_BACKEND == "postgres" and not DATABASE_URL:
        raise ValueError("DATABASE_URL is required when STORE_BACKEND=postgres")
    if not 0 < DB_POOL_MIN_SIZE <= DB_POOL_MAX_SIZE:
        raise ValueError("DB_POOL_MIN_SIZE must be positive and not above DB_POOL_MAX_SIZE")
    if GLOBAL_XP_MULTIPLIER <= 0:
        raise ValueError("GLOBAL_XP_MULTIPLIER must be positive")
    tz_error = _timezone_error(GAMIFICATION_TIMEZONE)
    if tz_error:
        raise ValueError(tz_error)
