"""Pydantic models for notification payloads and subscription management."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    HttpUrl,
    field_validator,
    model_validator,
)

from app.core.enums import NotificationCategory, Platform, is_critical_category
from app.core.quiet_hours import window_to_hours

Weekday = Annotated[int, Field(ge=0, le=6)]


class NotificationPayload(BaseModel):
    """Content of a notification; templating happens before this point."""

    title: str = Field(min_length=1, max_length=100)
    body: str = Field(min_length=1, max_length=500)
    category: NotificationCategory
    url: Optional[str] = None
    icon: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_critical(self) -> bool:
        return is_critical_category(self.category)

    def as_message(self) -> Dict[str, Any]:
        """JSON-ready representation shared by providers and the audit trail."""

        return self.model_dump(mode="json", exclude_none=True)


class PushKeys(BaseModel):
    """Web Push encryption keys reported by the browser."""

    p256dh: str = Field(min_length=1)
    auth: str = Field(min_length=1)


class SubscriptionCreate(BaseModel):
    """Schema for registering or refreshing a device subscription."""

    device_identifier: str = Field(min_length=1, max_length=255)
    platform: Platform
    endpoint: Optional[HttpUrl] = None
    keys: Optional[PushKeys] = None
    device_token: Optional[str] = Field(default=None, min_length=1, max_length=512)
    email_address: Optional[EmailStr] = None
    is_permission_granted: bool = True

    @model_validator(mode="after")
    def ensure_destination_for_platform(self) -> "SubscriptionCreate":
        if self.platform is Platform.WEB and (self.endpoint is None or self.keys is None):
            raise ValueError("Web subscriptions require an endpoint and keys")
        if self.platform in (Platform.ANDROID, Platform.IOS) and not self.device_token:
            raise ValueError("Mobile subscriptions require a device_token")
        if self.platform is Platform.EMAIL and self.email_address is None:
            raise ValueError("Email subscriptions require an email_address")
        return self


class QuietHoursIn(BaseModel):
    """Hour-granular allowed-delivery window."""

    start_hour: int = Field(ge=0, le=23)
    end_hour: int = Field(ge=0, le=23)
    week_days: List[Weekday]
    timezone: Optional[str] = Field(default=None, min_length=1)

    @field_validator("timezone")
    @classmethod
    def ensure_known_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown IANA timezone: {value}") from exc
        return value


class NotificationKindsUpdate(BaseModel):
    security: Optional[bool] = None
    rides: Optional[bool] = None
    chats: Optional[bool] = None
    communication: Optional[bool] = None
    system: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")


class PreferencesUpdate(BaseModel):
    """Partial update of a subscription's preferences.

    ``quiet_hours`` set explicitly to ``null`` clears the window; leaving it
    out keeps the current one.
    """

    kinds: Optional[NotificationKindsUpdate] = None
    quiet_hours: Optional[QuietHoursIn] = None

    model_config = ConfigDict(extra="forbid")

    @property
    def clears_quiet_hours(self) -> bool:
        return "quiet_hours" in self.model_fields_set and self.quiet_hours is None


class PermissionUpdate(BaseModel):
    is_permission_granted: bool


class QuietHoursRead(BaseModel):
    start_hour: int
    end_hour: int
    week_days: List[int]
    timezone: str


class SubscriptionRead(BaseModel):
    """Subscription as returned to its owner; channel secrets are omitted."""

    id: uuid.UUID
    device_identifier: str
    platform: Platform
    is_permission_granted: bool
    notification_kinds: Dict[str, bool]
    quiet_hours: Optional[QuietHoursRead] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_subscription(cls, subscription) -> "SubscriptionRead":
        window = subscription.quiet_window
        quiet_hours = None
        if window is not None:
            hours = window_to_hours(window)
            quiet_hours = QuietHoursRead(
                start_hour=hours.start_hour,
                end_hour=hours.end_hour,
                week_days=hours.week_days,
                timezone=hours.timezone,
            )
        return cls(
            id=subscription.id,
            device_identifier=subscription.device_identifier,
            platform=Platform(subscription.platform),
            is_permission_granted=subscription.is_permission_granted,
            notification_kinds=dict(subscription.notification_kinds or {}),
            quiet_hours=quiet_hours,
            created_at=subscription.created_at,
            updated_at=subscription.updated_at,
        )
