"""
GamificationService - read side of the gamification engine

Serves the dashboard: stats, level, rank, badges, weekly challenges and the
current streak of the authenticated user. Every read degrades to a safe
default (fresh stats, Bronze rank, no challenges) on an ownership mismatch or
a store failure; nothing here raises to the caller.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from hotel_gamification.auth import SessionContext
from hotel_gamification.config import GamificationSettings
from hotel_gamification.db import queries
from hotel_gamification.db.store import DocumentStore
from hotel_gamification.gamification.action_history import ActionHistoryLog
from hotel_gamification.gamification.badge_system import (
    get_badges_by_category,
    get_visible_badges,
)
from hotel_gamification.gamification.challenges import (
    generate_weekly_challenges,
    get_challenge_progress,
)
from hotel_gamification.gamification.rank_system import DEFAULT_RANK, RankInfo, calculate_rank
from hotel_gamification.gamification.streak_system import get_current_streak
from hotel_gamification.gamification.xp_system import (
    LevelBand,
    calculate_level_progress,
    get_level_info,
)
from hotel_gamification.models.badge import BadgeCategory, BadgeDefinition
from hotel_gamification.models.challenge import Challenge
from hotel_gamification.models.stats import ActionHistoryEntry, UserStats
from hotel_gamification.monitoring import track_persistence_failure
from hotel_gamification.utils.datetime_helpers import localize, now_in_timezone

logger = logging.getLogger(__name__)


@dataclass
class LevelSnapshot:
    level: int
    progress: float
    level_info: LevelBand


@dataclass
class ChallengeBoard:
    challenges: List[Challenge] = field(default_factory=list)
    progress: Dict[str, int] = field(default_factory=dict)


@dataclass
class GamificationSnapshot:
    """Everything the dashboard shows for one user"""
    stats: UserStats
    level: LevelSnapshot
    rank: RankInfo
    badges: List[BadgeDefinition]
    challenges: ChallengeBoard
    current_streak: int


class GamificationService:
    """
    Read access to a user's gamification state

    Responsibilities:
    - Stats lookup and lazy initialisation
    - Level, rank and badge views
    - Weekly challenge board with progress
    """

    def __init__(
        self,
        store: DocumentStore,
        history: Optional[ActionHistoryLog] = None,
        settings: Optional[GamificationSettings] = None,
    ):
        self.store = store
        self.history = history or ActionHistoryLog(store)
        self.settings = settings or GamificationSettings()
        self.tz = self.settings.tz
        logger.debug("GamificationService initialized")

    def _now(self, now: Optional[datetime]) -> datetime:
        return localize(now, self.tz) if now else now_in_timezone(self.tz)

    # ============================================
    # Stats
    # ============================================

    async def get_user_stats(self, session: SessionContext, user_id: str) -> Optional[UserStats]:
        """Stored stats, or None when absent, unreadable or not owned"""
        if not session.owns(user_id):
            return None
        try:
            return await queries.get_user_stats(self.store, user_id)
        except Exception as e:
            logger.error(f"Error getting user stats for {user_id}: {e}")
            track_persistence_failure("get_user_stats")
            return None

    async def initialize_or_get_user_stats(self, session: SessionContext, user_id: str) -> UserStats:
        """
        Stored stats, creating and saving fresh ones for a new user

        Returns default stats (unsaved) on a mismatch or store failure.
        """
        if not session.owns(user_id):
            return UserStats.initial(user_id or "")

        try:
            stats = await queries.get_user_stats(self.store, user_id)
        except Exception as e:
            logger.error(f"Error getting user stats for {user_id}: {e}")
            track_persistence_failure("get_user_stats")
            return UserStats.initial(user_id)

        if stats is not None:
            return stats

        stats = UserStats.initial(user_id)
        stats.last_updated = now_in_timezone(self.tz)
        try:
            await queries.save_user_stats(self.store, stats)
            logger.info(f"Initialized gamification stats for user {user_id}")
        except Exception as e:
            logger.error(f"Error saving initial stats for {user_id}: {e}")
            track_persistence_failure("save_user_stats")
        return stats

    # ============================================
    # Derived views
    # ============================================

    async def get_user_badges(self, session: SessionContext, user_id: str) -> List[BadgeDefinition]:
        """Unlocked badges plus visible badges whose rule currently holds"""
        stats = await self.initialize_or_get_user_stats(session, user_id)
        return get_visible_badges(stats)

    async def get_user_level(self, session: SessionContext, user_id: str) -> LevelSnapshot:
        stats = await self.initialize_or_get_user_stats(session, user_id)
        return level_snapshot(stats)

    async def get_user_rank(self, session: SessionContext, user_id: str) -> RankInfo:
        if not session.owns(user_id):
            return DEFAULT_RANK
        stats = await self.initialize_or_get_user_stats(session, user_id)
        return calculate_rank(stats)

    async def get_user_challenges(
        self,
        session: SessionContext,
        user_id: str,
        now: Optional[datetime] = None,
    ) -> ChallengeBoard:
        """This week's challenges with progress percentages"""
        if not session.owns(user_id):
            return ChallengeBoard()
        stats = await self.initialize_or_get_user_stats(session, user_id)
        return challenge_board(stats, self._now(now), self.settings)

    async def get_current_streak(
        self,
        session: SessionContext,
        user_id: str,
        now: Optional[datetime] = None,
    ) -> int:
        stats = await self.get_user_stats(session, user_id)
        if stats is None:
            return 0
        return get_current_streak(stats, self._now(now), self.tz)

    def get_badges_by_category(
        self,
        badges: List[BadgeDefinition],
        category: BadgeCategory,
    ) -> List[BadgeDefinition]:
        return get_badges_by_category(badges, category)

    async def get_recent_actions(
        self,
        session: SessionContext,
        user_id: str,
        action_type: str,
        limit: int = 10,
    ) -> List[ActionHistoryEntry]:
        """Latest history entries of one action type, newest first"""
        if not session.owns(user_id):
            return []
        try:
            return await self.history.latest(user_id, action_type, limit=limit)
        except Exception as e:
            logger.error(f"Error getting action history for {user_id}: {e}")
            track_persistence_failure("query_action_history")
            return []

    async def get_snapshot(
        self,
        session: SessionContext,
        user_id: str,
        now: Optional[datetime] = None,
    ) -> GamificationSnapshot:
        """Full dashboard state built from a single stats read"""
        stats = await self.initialize_or_get_user_stats(session, user_id)
        return build_snapshot(stats, self._now(now), self.settings, owned=session.owns(user_id))

    def snapshot_from_stats(self, stats: UserStats, now: Optional[datetime] = None) -> GamificationSnapshot:
        """Dashboard state for stats the caller just computed, without a store read"""
        return build_snapshot(stats, self._now(now), self.settings)


# ============================================
# Snapshot builders
# ============================================

def level_snapshot(stats: UserStats) -> LevelSnapshot:
    return LevelSnapshot(
        level=stats.level,
        progress=calculate_level_progress(stats.xp),
        level_info=get_level_info(stats.level),
    )


def challenge_board(stats: UserStats, now: datetime, settings: GamificationSettings) -> ChallengeBoard:
    challenges = generate_weekly_challenges(now, settings.tz)
    return ChallengeBoard(
        challenges=challenges,
        progress=get_challenge_progress(challenges, stats),
    )


def build_snapshot(
    stats: UserStats,
    now: datetime,
    settings: GamificationSettings,
    owned: bool = True,
) -> GamificationSnapshot:
    """Dashboard state for already-loaded stats"""
    if not owned:
        return GamificationSnapshot(
            stats=stats,
            level=level_snapshot(stats),
            rank=DEFAULT_RANK,
            badges=[],
            challenges=ChallengeBoard(),
            current_streak=0,
        )

    return GamificationSnapshot(
        stats=stats,
        level=level_snapshot(stats),
        rank=calculate_rank(stats),
        badges=get_visible_badges(stats),
        challenges=challenge_board(stats, now, settings),
        current_streak=get_current_streak(stats, now, settings.tz),
    )
