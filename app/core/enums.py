"""Closed vocabularies shared by models, schemas and services."""
from __future__ import annotations

from enum import Enum


class Platform(str, Enum):
    WEB = "web"
    ANDROID = "android"
    IOS = "ios"
    EMAIL = "email"

    @property
    def is_push(self) -> bool:
        return self is not Platform.EMAIL


class NotificationCategory(str, Enum):
    SECURITY = "security"
    RIDES = "rides"
    CHATS = "chats"
    COMMUNICATION = "communication"
    SYSTEM = "system"

    @property
    def is_critical(self) -> bool:
        return self in CRITICAL_CATEGORIES


CRITICAL_CATEGORIES = frozenset({NotificationCategory.SECURITY, NotificationCategory.SYSTEM})

DEFAULT_NOTIFICATION_KINDS: dict[str, bool] = {
    NotificationCategory.SECURITY.value: True,
    NotificationCategory.RIDES.value: False,
    NotificationCategory.CHATS.value: False,
    NotificationCategory.COMMUNICATION.value: False,
    NotificationCategory.SYSTEM.value: True,
}


class DeliveryStatus(str, Enum):
    """Lifecycle of a single delivery attempt."""

    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not DeliveryStatus.SENT

    def can_transition(self, target: "DeliveryStatus") -> bool:
        return self is DeliveryStatus.SENT and target.is_terminal


class EventKind(str, Enum):
    NOTIFICATION = "notification"
    RIDE_VIEW = "ride_view"
    SEARCH = "search"


def is_critical_category(category: str | NotificationCategory) -> bool:
    """Return whether ``category`` bypasses quiet hours and opt-outs."""

    try:
        return NotificationCategory(category).is_critical
    except ValueError:
        return False
