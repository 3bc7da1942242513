"""
Gamification engine for the hotel back office

This package turns back-office actions into:
- XP and levels
- Badges (declarative rules)
- Login streaks
- Ranks
- Weekly challenges

Stateful orchestration lives in stats_updater and dispatcher; the modules
exported here are pure calculations.
"""

from hotel_gamification.gamification.xp_system import (
    ACTION_POINTS,
    calculate_level,
    calculate_level_progress,
    get_level_info,
)
from hotel_gamification.gamification.badge_system import BADGES, evaluate_badges, get_visible_badges
from hotel_gamification.gamification.rank_system import calculate_rank
from hotel_gamification.gamification.streak_system import apply_login, get_current_streak

__all__ = [
    "ACTION_POINTS",
    "calculate_level",
    "calculate_level_progress",
    "get_level_info",
    "BADGES",
    "evaluate_badges",
    "get_visible_badges",
    "calculate_rank",
    "apply_login",
    "get_current_streak",
]
