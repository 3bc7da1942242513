"""Monitoring infrastructure for the gamification engine"""
from hotel_gamification.monitoring.prometheus_metrics import (
    metrics,
    track_action,
    track_xp_awarded,
    track_badge_unlocked,
    track_persistence_failure,
    track_rate_limiter_fail_open,
    track_challenge_reward,
)

__all__ = [
    "metrics",
    "track_action",
    "track_xp_awarded",
    "track_badge_unlocked",
    "track_persistence_failure",
    "track_rate_limiter_fail_open",
    "track_challenge_reward",
]
