"""
XP and Leveling System

Manages the XP table per action type and the level curve.

Leveling Curve (33 levels):
- Level 1: 0 - 99 XP
- Level L >= 2 starts at floor(100 * 1.5^(L-2)) XP and ends one XP
  before the next level starts
- Level 33 (Divin) is open-ended

XP Award Rules (base values, see ACTION_POINTS):
- Incidents: 10 created (x1.5 critical), 20 resolved, 30 critical resolved
- Maintenance: 10 created, 20 completed, +10 ahead of schedule
- Quality checks: 15, +10 when the score is above 90
- Lost items: 5 registered, 15 returned
- Procedures: 25 created, 2 read, 5 validated
- Login: 5 first login of the day, +5 consecutive day
- Team: 10 help provided, 5 thanks received, 50 weekly goal
"""

import math
from dataclasses import dataclass
from typing import Dict, List

ACTION_POINTS: Dict[str, int] = {
    "CREATE_INCIDENT": 10,
    "RESOLVE_INCIDENT": 20,
    "RESOLVE_CRITICAL_INCIDENT": 30,
    "CREATE_MAINTENANCE": 10,
    "COMPLETE_MAINTENANCE": 20,
    "EXPEDITE_MAINTENANCE": 10,
    "COMPLETE_QUALITY_CHECK": 15,
    "HIGH_QUALITY_SCORE": 10,
    "REGISTER_LOST_ITEM": 5,
    "RETURN_LOST_ITEM": 15,
    "CREATE_PROCEDURE": 25,
    "READ_PROCEDURE": 2,
    "VALIDATE_PROCEDURE": 5,
    "FIRST_LOGIN_OF_DAY": 5,
    "CONSECUTIVE_DAY_LOGIN": 5,
    "HELP_COLLEAGUE": 10,
    "RECEIVE_THANKS": 5,
    "WEEKLY_GOAL_COMPLETION": 50,
}

CRITICAL_MULTIPLIER = 1.5
HIGH_QUALITY_THRESHOLD = 90


@dataclass(frozen=True)
class LevelBand:
    """Contiguous XP range mapped to one level"""
    level: int
    name: str
    min_xp: int
    max_xp: float  # math.inf for the top band
    icon: str

    def contains(self, xp: int) -> bool:
        return self.min_xp <= xp <= self.max_xp


LEVEL_NAMES = [
    "Novice", "Apprenti", "Assistant", "Débutant", "Initié", "Compétent", "Qualifié",
    "Professionnel", "Spécialiste", "Expert", "Virtuose", "Maître", "Sage", "Mentor",
    "Guide", "Conseiller", "Référent", "Autorité", "Légende", "Champion", "Élite",
    "Prodige", "Génie", "Maestro", "Visionnaire", "Pionnier", "Révolutionnaire",
    "Innovateur", "Créateur", "Architecte", "Fondateur", "Empereur", "Divin",
]

LEVEL_ICONS = (
    ["🥉"] * 3
    + ["🌱", "🌿", "🍀"]
    + ["💎"] * 3
    + ["🔮"] * 3
    + ["⭐"] * 3
    + ["🔥"] * 3
    + ["👑"] * 3
    + ["🌟"] * 3
    + ["⚡"] * 3
    + ["🏆"] * 3
    + ["🥇", "🌞", "🎖️"]
)


def _level_threshold(level: int) -> int:
    """First XP value of a level (integer form of floor(100 * 1.5^(level-2)))"""
    if level <= 1:
        return 0
    exponent = level - 2
    return (100 * 3 ** exponent) // (2 ** exponent)


def _build_level_bands() -> List[LevelBand]:
    bands = []
    top = len(LEVEL_NAMES)
    for index, name in enumerate(LEVEL_NAMES):
        level = index + 1
        max_xp = math.inf if level == top else _level_threshold(level + 1) - 1
        bands.append(LevelBand(
            level=level,
            name=name,
            min_xp=_level_threshold(level),
            max_xp=max_xp,
            icon=LEVEL_ICONS[index],
        ))
    return bands


LEVEL_BANDS: List[LevelBand] = _build_level_bands()
MAX_LEVEL = LEVEL_BANDS[-1].level


def get_level_band(xp: int) -> LevelBand:
    """Band containing xp (negative xp counts as 0)"""
    xp = max(0, int(xp))
    for band in reversed(LEVEL_BANDS):
        if xp >= band.min_xp:
            return band
    return LEVEL_BANDS[0]


def calculate_level(xp: int) -> int:
    """Calculate level from total XP"""
    return get_level_band(xp).level


def calculate_level_progress(xp: int) -> float:
    """
    Progress through the current level, in percent

    Returns:
        (xp - band.min_xp) / (band.max_xp - band.min_xp) * 100, clamped to
        [0, 100]. The open top band always reports 0.
    """
    xp = max(0, int(xp))
    band = get_level_band(xp)
    if math.isinf(band.max_xp):
        return 0.0
    span = band.max_xp - band.min_xp
    if span <= 0:
        return 100.0
    progress = (xp - band.min_xp) / span * 100
    return max(0.0, min(100.0, progress))


def get_level_info(level: int) -> LevelBand:
    """Band for a level number, falling back to level 1"""
    for band in LEVEL_BANDS:
        if band.level == level:
            return band
    return LEVEL_BANDS[0]


def apply_multiplier(amount: int, multiplier: float) -> int:
    """Scale an XP amount by the global multiplier, never below 0"""
    if amount <= 0:
        return 0
    return max(0, int(round(amount * multiplier)))
