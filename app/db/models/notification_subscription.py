"""Per-device notification subscription model."""
from __future__ import annotations

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.ext.mutable import MutableDict
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from app.core.enums import CRITICAL_CATEGORIES, DEFAULT_NOTIFICATION_KINDS, Platform
from app.core.quiet_hours import QuietWindow
from app.db.base import Base


class NotificationSubscription(Base):
    """A registered (user, device) endpoint with its own delivery preferences."""

    __tablename__ = "notification_subscriptions"
    __table_args__ = (
        UniqueConstraint("user_id", "device_identifier", name="uq_subscription_user_device"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    device_identifier = Column(String(255), nullable=False)
    platform = Column(String(10), nullable=False, default=Platform.WEB.value)

    # Channel address: web push endpoint + keys, device token or email address
    endpoint = Column(Text)
    keys = Column(JSONB().with_variant(JSON(), "sqlite"))  # { p256dh: "...", auth: "..." }
    destination = Column(String(512))

    is_permission_granted = Column(Boolean, nullable=False, default=True)
    notification_kinds = Column(
        MutableDict.as_mutable(JSONB().with_variant(JSON(), "sqlite")),
        nullable=False,
        default=lambda: dict(DEFAULT_NOTIFICATION_KINDS),
    )

    # Allowed delivery window, all NULL when unset
    start_minute = Column(Integer)
    end_minute = Column(Integer)
    week_mask = Column(Integer)
    timezone = Column(String(64))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="notification_subscriptions")

    @property
    def platform_enum(self) -> Platform:
        return Platform(self.platform)

    @property
    def quiet_window(self) -> QuietWindow | None:
        if self.start_minute is None or self.end_minute is None or self.week_mask is None:
            return None
        return QuietWindow(
            start_minute=self.start_minute,
            end_minute=self.end_minute,
            week_mask=self.week_mask,
            timezone=self.timezone,
        )

    @quiet_window.setter
    def quiet_window(self, window: QuietWindow | None) -> None:
        if window is None:
            self.start_minute = self.end_minute = self.week_mask = self.timezone = None
            return
        self.start_minute = window.start_minute
        self.end_minute = window.end_minute
        self.week_mask = window.week_mask
        self.timezone = window.timezone

    def is_enabled_for(self, category: str) -> bool:
        return bool((self.notification_kinds or {}).get(category, False))


@event.listens_for(NotificationSubscription, "before_insert")
@event.listens_for(NotificationSubscription, "before_update")
def _force_critical_kinds(mapper, connection, target: NotificationSubscription) -> None:
    kinds = dict(target.notification_kinds or DEFAULT_NOTIFICATION_KINDS)
    if all(kinds.get(category.value) is True for category in CRITICAL_CATEGORIES):
        return
    for category in CRITICAL_CATEGORIES:
        kinds[category.value] = True
    target.notification_kinds = kinds
