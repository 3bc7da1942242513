"""Weekly challenge models"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from hotel_gamification.models.badge import BadgeRule


class Challenge(BaseModel):
    """Challenge for one calendar week. Derived, never persisted."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    icon: str
    xp_reward: int
    start_date: datetime
    end_date: datetime
    rule: BadgeRule
    progress_field: str
    target: int
    module_id: Optional[str] = None


class ChallengeCompleted(BaseModel):
    """Emitted when a challenge condition flips from false to true"""
    model_config = ConfigDict(frozen=True)

    user_id: str
    challenge_id: str
    title: str
    icon: str
    xp_reward: int
    week: str
    completed_at: datetime
