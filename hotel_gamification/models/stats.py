"""User stats and action history models"""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

# Counters a badge rule, challenge or rank formula may read
COUNTER_FIELDS = (
    "incidents_created",
    "incidents_resolved",
    "critical_incidents_resolved",
    "maintenance_created",
    "maintenance_completed",
    "quick_maintenance_completed",
    "quality_checks_completed",
    "high_quality_checks",
    "lost_items_registered",
    "lost_items_returned",
    "procedures_created",
    "procedures_read",
    "procedures_validated",
    "total_logins",
    "consecutive_logins",
    "current_streak",
    "longest_streak",
    "weekly_goals_completed",
    "thanks_received",
    "help_provided",
)

AVERAGE_FIELDS = ("avg_resolution_time", "avg_quality_score")


class UserStats(BaseModel):
    """Cumulative gamification state of one user"""
    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    user_id: str
    xp: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    badges: list[str] = Field(default_factory=list)

    # Incidents
    incidents_created: int = 0
    incidents_resolved: int = 0
    critical_incidents_resolved: int = 0
    avg_resolution_time: float = 0.0

    # Maintenance
    maintenance_created: int = 0
    maintenance_completed: int = 0
    quick_maintenance_completed: int = 0

    # Quality
    quality_checks_completed: int = 0
    avg_quality_score: float = 0.0
    high_quality_checks: int = 0

    # Lost items
    lost_items_registered: int = 0
    lost_items_returned: int = 0

    # Procedures
    procedures_created: int = 0
    procedures_read: int = 0
    procedures_validated: int = 0

    # Logins
    total_logins: int = 0
    consecutive_logins: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    last_login_date: Optional[datetime] = None

    # Team
    weekly_goals_completed: int = 0
    thanks_received: int = 0
    help_provided: int = 0

    last_updated: Optional[datetime] = None

    @classmethod
    def initial(cls, user_id: str) -> "UserStats":
        """Fresh stats with every counter at zero"""
        return cls(user_id=user_id)

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "UserStats":
        return cls.model_validate(document)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    def value_of(self, field: str) -> Optional[float]:
        """Numeric value of a stats field, None when it is not numeric"""
        if field == "badges":
            return len(self.badges)
        value = getattr(self, field, None)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return value


class ActionHistoryEntry(BaseModel):
    """One processed action. Entries are never updated or deleted."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Optional[str] = None
    user_id: str
    action_type: str
    action: dict[str, Any] = Field(default_factory=dict)
    xp_gained: int = 0
    new_level: int = 1
    new_badges: list[str] = Field(default_factory=list)
    total_xp: int = 0
    timestamp: datetime

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"id"})

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "ActionHistoryEntry":
        return cls.model_validate(record)
