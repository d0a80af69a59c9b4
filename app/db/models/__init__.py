"""Database models package."""
from app.db.models.user import User
from app.db.models.notification_subscription import NotificationSubscription
from app.db.models.event import Event, NotificationEvent, RideViewEvent, SearchEvent
from app.db.models.suppressed_notification import SuppressedNotification

__all__ = [
    "User",
    "NotificationSubscription",
    "Event",
    "NotificationEvent",
    "RideViewEvent",
    "SearchEvent",
    "SuppressedNotification",
]
