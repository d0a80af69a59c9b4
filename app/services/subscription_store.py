"""Persistence operations for device subscriptions."""
from __future__ import annotations

import uuid
from typing import Any, Mapping

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.db.models.notification_subscription import NotificationSubscription


class SubscriptionStore:
    """Data access for ``NotificationSubscription`` rows."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_by_user(self, user_id: uuid.UUID) -> list[NotificationSubscription]:
        """Return every subscription registered by ``user_id``."""

        stmt = (
            select(NotificationSubscription)
            .where(NotificationSubscription.user_id == user_id)
            .order_by(NotificationSubscription.created_at, NotificationSubscription.device_identifier)
        )
        return list(self.db.scalars(stmt))

    def get(self, user_id: uuid.UUID, device_identifier: str) -> NotificationSubscription | None:
        stmt = select(NotificationSubscription).where(
            NotificationSubscription.user_id == user_id,
            NotificationSubscription.device_identifier == device_identifier,
        )
        return self.db.scalars(stmt).first()

    def upsert(
        self, user_id: uuid.UUID, device_identifier: str, fields: Mapping[str, Any]
    ) -> NotificationSubscription:
        """Create the (user, device) subscription or overwrite ``fields`` on it."""

        subscription = self.get(user_id, device_identifier)
        if subscription is None:
            subscription = NotificationSubscription(
                user_id=user_id, device_identifier=device_identifier
            )
            self.db.add(subscription)
        for field, value in fields.items():
            setattr(subscription, field, value)

        self.db.commit()
        self.db.refresh(subscription)
        return subscription

    def save(self, subscription: NotificationSubscription) -> NotificationSubscription:
        self.db.add(subscription)
        self.db.commit()
        self.db.refresh(subscription)
        return subscription

    def delete(self, **criteria: Any) -> int:
        """Delete subscriptions matching column equality ``criteria``."""

        if not criteria:
            raise ValueError("Refusing to delete subscriptions without criteria")
        stmt = delete(NotificationSubscription)
        for column, value in criteria.items():
            stmt = stmt.where(getattr(NotificationSubscription, column) == value)
        result = self.db.execute(stmt)
        self.db.commit()
        logger.info("Subscriptions deleted", criteria={k: str(v) for k, v in criteria.items()}, count=result.rowcount)
        return result.rowcount
