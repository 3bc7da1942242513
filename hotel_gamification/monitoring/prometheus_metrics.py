"""Prometheus metrics definitions and helpers"""
import logging

from prometheus_client import Counter

from hotel_gamification.config import ENABLE_PROMETHEUS

logger = logging.getLogger(__name__)


class PrometheusMetrics:
    """Container for all Prometheus metrics"""

    def __init__(self, enabled: bool = ENABLE_PROMETHEUS):
        if not enabled:
            logger.info("Prometheus metrics disabled")
            self._enabled = False
            return

        # Action Metrics
        self.actions_total = Counter(
            'gamification_actions_total',
            'Gamification actions processed',
            ['action_type', 'outcome']
        )

        self.xp_awarded_total = Counter(
            'gamification_xp_awarded_total',
            'Total XP awarded',
            ['action_type']
        )

        self.badges_unlocked_total = Counter(
            'gamification_badges_unlocked_total',
            'Badges unlocked',
            ['badge_id']
        )

        # Store Metrics
        self.persistence_failures_total = Counter(
            'gamification_persistence_failures_total',
            'Document store operations that failed',
            ['operation']
        )

        self.rate_limiter_fail_open_total = Counter(
            'gamification_rate_limiter_fail_open_total',
            'Rate limit checks skipped because the history query failed'
        )

        # Challenge Metrics
        self.challenge_rewards_total = Counter(
            'gamification_challenge_rewards_total',
            'Weekly challenge rewards granted',
            ['challenge_id']
        )

        self._enabled = True
        logger.info("Prometheus metrics initialized")

    @property
    def enabled(self) -> bool:
        """Check if metrics are enabled"""
        return self._enabled


# Global metrics instance
metrics = PrometheusMetrics()


def track_action(action_type: str, outcome: str) -> None:
    """Count one processed action (awarded, rate_limited, unauthorized, ...)"""
    if not metrics.enabled:
        return
    metrics.actions_total.labels(action_type=action_type, outcome=outcome).inc()


def track_xp_awarded(action_type: str, amount: int) -> None:
    if not metrics.enabled or amount <= 0:
        return
    metrics.xp_awarded_total.labels(action_type=action_type).inc(amount)


def track_badge_unlocked(badge_id: str) -> None:
    if not metrics.enabled:
        return
    metrics.badges_unlocked_total.labels(badge_id=badge_id).inc()


def track_persistence_failure(operation: str) -> None:
    if not metrics.enabled:
        return
    metrics.persistence_failures_total.labels(operation=operation).inc()


def track_rate_limiter_fail_open() -> None:
    if not metrics.enabled:
        return
    metrics.rate_limiter_fail_open_total.inc()


def track_challenge_reward(challenge_id: str) -> None:
    if not metrics.enabled:
        return
    metrics.challenge_rewards_total.labels(challenge_id=challenge_id).inc()
