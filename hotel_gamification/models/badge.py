"""Badge definition models

Badge conditions are declarative rules interpreted by
hotel_gamification.gamification.badge_system.evaluate_rule.
"""
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class BadgeCategory(str, Enum):
    """Badge categories"""
    INCIDENTS = "incidents"
    MAINTENANCE = "maintenance"
    QUALITY = "quality"
    OBJECTS = "objects"
    PROCEDURES = "procedures"
    GENERAL = "general"
    SPECIAL = "special"


class BadgeTier(str, Enum):
    """Badge tiers/difficulty levels"""
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"


class CounterAtLeast(BaseModel):
    """stats.<field> >= value"""
    model_config = ConfigDict(frozen=True)
    kind: Literal["counter_at_least"] = "counter_at_least"
    field: str
    value: float


class AverageAtMost(BaseModel):
    """stats.<field> <= value once stats.<sample_field> >= min_samples"""
    model_config = ConfigDict(frozen=True)
    kind: Literal["average_at_most"] = "average_at_most"
    field: str
    value: float
    sample_field: str
    min_samples: int = 1


class AverageAtLeast(BaseModel):
    """stats.<field> >= value once stats.<sample_field> >= min_samples"""
    model_config = ConfigDict(frozen=True)
    kind: Literal["average_at_least"] = "average_at_least"
    field: str
    value: float
    sample_field: str
    min_samples: int = 1


class AllOf(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["all_of"] = "all_of"
    rules: list["BadgeRule"]


BadgeRule = Annotated[
    Union[CounterAtLeast, AverageAtMost, AverageAtLeast, AllOf],
    Field(discriminator="kind"),
]

AllOf.model_rebuild()


class BadgeDefinition(BaseModel):
    """Static badge catalog entry"""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    icon: str
    category: BadgeCategory
    tier: BadgeTier = BadgeTier.BRONZE
    rule: BadgeRule
    hidden: bool = False
