"""
UI notifications for gamification events

The engine only builds notifications; the host decides how to show them
(toast, banner, ...) by implementing NotificationSink.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from hotel_gamification.models.badge import BadgeDefinition
from hotel_gamification.models.challenge import ChallengeCompleted

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    kind: str  # badge | xp | challenge
    title: str
    description: str
    icon: Optional[str] = None


class NotificationSink(ABC):
    """Receives notifications for the authenticated user's UI"""

    @abstractmethod
    def send(self, notification: Notification) -> None:
        ...


class LoggingNotificationSink(NotificationSink):
    """Writes notifications to the log; default when the host provides none"""

    def send(self, notification: Notification) -> None:
        logger.info(f"[{notification.kind}] {notification.title} - {notification.description}")


class InMemoryNotificationSink(NotificationSink):
    """Collects notifications in a list"""

    def __init__(self):
        self.notifications: List[Notification] = []

    def send(self, notification: Notification) -> None:
        self.notifications.append(notification)

    def of_kind(self, kind: str) -> List[Notification]:
        return [n for n in self.notifications if n.kind == kind]

    def clear(self) -> None:
        self.notifications.clear()


def badge_notification(badge: BadgeDefinition) -> Notification:
    return Notification(
        kind="badge",
        title=f"Nouveau badge débloqué: {badge.icon} {badge.name}",
        description=badge.description,
        icon=badge.icon,
    )


def xp_notification(xp_gained: int) -> Notification:
    return Notification(
        kind="xp",
        title=f"+{xp_gained} points XP",
        description=f"Tu as gagné {xp_gained} points d'expérience !",
    )


def challenge_notification(event: ChallengeCompleted) -> Notification:
    return Notification(
        kind="challenge",
        title=f"Défi complété: {event.icon} {event.title}",
        description=f"+{event.xp_reward} points XP",
        icon=event.icon,
    )
