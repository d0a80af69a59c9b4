"""Pydantic schemas package."""

from app.schemas.auth import TokenPayload
from app.schemas.notification import (
    NotificationKindsUpdate,
    NotificationPayload,
    PermissionUpdate,
    PreferencesUpdate,
    PushKeys,
    QuietHoursIn,
    QuietHoursRead,
    SubscriptionCreate,
    SubscriptionRead,
)

__all__ = [
    "TokenPayload",
    "NotificationKindsUpdate",
    "NotificationPayload",
    "PermissionUpdate",
    "PreferencesUpdate",
    "PushKeys",
    "QuietHoursIn",
    "QuietHoursRead",
    "SubscriptionCreate",
    "SubscriptionRead",
]
