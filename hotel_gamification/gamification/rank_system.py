"""
Rank System

Coarse tiers derived from XP, badges and contribution counters:

    points = xp + badges*100 + incidents_resolved*10 + maintenance_completed*10
             + quality_checks_completed*15 + lost_items_returned*5
             + procedures_created*20
"""

import math
from dataclasses import dataclass
from typing import List

from hotel_gamification.models.stats import UserStats

MAX_RANK_SENTINEL = "Max"


@dataclass(frozen=True)
class RankTier:
    name: str
    min_points: int
    max_points: float  # math.inf for the top tier


@dataclass(frozen=True)
class RankInfo:
    rank: str
    points: int
    next_rank: str
    points_needed: int


RANKS: List[RankTier] = [
    RankTier("Bronze", 0, 999),
    RankTier("Argent", 1000, 2999),
    RankTier("Or", 3000, 7999),
    RankTier("Platine", 8000, 14999),
    RankTier("Diamant", 15000, 29999),
    RankTier("Champion", 30000, math.inf),
]

RANK_WEIGHTS = {
    "incidents_resolved": 10,
    "maintenance_completed": 10,
    "quality_checks_completed": 15,
    "lost_items_returned": 5,
    "procedures_created": 20,
}
BADGE_WEIGHT = 100


def calculate_rank_points(stats: UserStats) -> int:
    points = stats.xp + len(stats.badges) * BADGE_WEIGHT
    for field, weight in RANK_WEIGHTS.items():
        points += getattr(stats, field) * weight
    return points


def calculate_rank(stats: UserStats) -> RankInfo:
    """Current rank, raw points, next rank and the points still needed"""
    points = calculate_rank_points(stats)

    index = 0
    for i in range(len(RANKS) - 1, -1, -1):
        if points >= RANKS[i].min_points:
            index = i
            break

    current = RANKS[index]
    if index == len(RANKS) - 1:
        return RankInfo(rank=current.name, points=points, next_rank=MAX_RANK_SENTINEL, points_needed=0)

    upcoming = RANKS[index + 1]
    return RankInfo(
        rank=current.name,
        points=points,
        next_rank=upcoming.name,
        points_needed=max(0, upcoming.min_points - points),
    )


DEFAULT_RANK = RankInfo(rank=RANKS[0].name, points=0, next_rank=RANKS[1].name, points_needed=RANKS[1].min_points)
