"""
Engine Container - Dependency Injection Container

Builds the engine components around one document store. Components are
lazy-loaded on first access and shared afterwards, so the rate limiter, the
updater and the dispatcher all see the same action history.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

from hotel_gamification.config import GamificationSettings, load_settings
from hotel_gamification.db.store import DocumentStore
from hotel_gamification.gamification.notifications import LoggingNotificationSink, NotificationSink

logger = logging.getLogger(__name__)


@dataclass
class EngineContainer:
    """
    Dependency injection container for the gamification engine.

    Infrastructure dependencies (store, notifier, settings) are injected;
    engine components are built lazily via properties.
    """

    store: DocumentStore
    notifier: NotificationSink = field(default_factory=LoggingNotificationSink)
    settings: GamificationSettings = field(default_factory=load_settings)

    _history: Optional[object] = field(default=None, init=False, repr=False)
    _rate_limiter: Optional[object] = field(default=None, init=False, repr=False)
    _updater: Optional[object] = field(default=None, init=False, repr=False)
    _service: Optional[object] = field(default=None, init=False, repr=False)
    _ledger: Optional[object] = field(default=None, init=False, repr=False)
    _reward_handler: Optional[object] = field(default=None, init=False, repr=False)
    _dispatcher: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def history(self):
        """Get ActionHistoryLog instance (lazy-loaded)"""
        if self._history is None:
            from hotel_gamification.gamification.action_history import ActionHistoryLog
            self._history = ActionHistoryLog(self.store)
            logger.debug("ActionHistoryLog instantiated")
        return self._history

    @property
    def rate_limiter(self):
        """Get RateLimiter instance (lazy-loaded)"""
        if self._rate_limiter is None:
            from hotel_gamification.gamification.rate_limiter import RateLimiter
            self._rate_limiter = RateLimiter(self.history, tz=self.settings.tz)
            logger.debug("RateLimiter instantiated")
        return self._rate_limiter

    @property
    def updater(self):
        """Get StatsUpdater instance (lazy-loaded)"""
        if self._updater is None:
            from hotel_gamification.gamification.stats_updater import StatsUpdater
            self._updater = StatsUpdater(self.store, self.history, self.rate_limiter, self.settings)
            logger.debug("StatsUpdater instantiated")
        return self._updater

    @property
    def service(self):
        """Get GamificationService instance (lazy-loaded)"""
        if self._service is None:
            from hotel_gamification.services.gamification_service import GamificationService
            self._service = GamificationService(self.store, self.history, self.settings)
            logger.debug("GamificationService instantiated")
        return self._service

    @property
    def ledger(self):
        """Get ChallengeLedger instance (lazy-loaded)"""
        if self._ledger is None:
            from hotel_gamification.gamification.challenges import ChallengeLedger
            self._ledger = ChallengeLedger(self.store)
            logger.debug("ChallengeLedger instantiated")
        return self._ledger

    @property
    def reward_handler(self):
        """Get ChallengeRewardHandler instance (lazy-loaded)"""
        if self._reward_handler is None:
            from hotel_gamification.gamification.challenges import ChallengeRewardHandler
            self._reward_handler = ChallengeRewardHandler(self.updater, self.ledger)
            logger.debug("ChallengeRewardHandler instantiated")
        return self._reward_handler

    @property
    def dispatcher(self):
        """Get ActionDispatcher instance (lazy-loaded)"""
        if self._dispatcher is None:
            from hotel_gamification.gamification.dispatcher import ActionDispatcher
            self._dispatcher = ActionDispatcher(
                self.updater,
                self.service,
                self.reward_handler,
                self.notifier,
                self.settings,
            )
            logger.debug("ActionDispatcher instantiated")
        return self._dispatcher


# Global container instance (initialized in main.py)
_container: Optional[EngineContainer] = None


def get_container() -> EngineContainer:
    """
    Get the global engine container.

    Raises:
        RuntimeError: If container not initialized (call init_container first)
    """
    if _container is None:
        raise RuntimeError(
            "Engine container not initialized. "
            "Call init_container() before using the gamification engine."
        )
    return _container


def init_container(
    store: DocumentStore,
    notifier: Optional[NotificationSink] = None,
    settings: Optional[GamificationSettings] = None,
) -> EngineContainer:
    """
    Initialize the global engine container.

    Args:
        store: Document store shared by every component
        notifier: UI notification sink (logs notifications when omitted)
        settings: Engine settings (read from the environment when omitted)
    """
    global _container

    _container = EngineContainer(
        store=store,
        notifier=notifier or LoggingNotificationSink(),
        settings=settings or load_settings(),
    )
    logger.info("Engine container initialized")
    return _container


def reset_container() -> None:
    """Drop the global container (used by tests)"""
    global _container
    _container = None
