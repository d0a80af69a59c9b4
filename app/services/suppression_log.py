"""Store for notifications withheld by the delivery policy."""
from __future__ import annotations

import uuid

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.clock import Clock, SystemClock
from app.db.models.suppressed_notification import SuppressedNotification

POLICY_BLOCK_REASON = "Notification delivery not allowed on this channel/time window."


class SuppressionLog:
    """Append-only record of policy blocks."""

    def __init__(self, db: Session, clock: Clock | None = None) -> None:
        self.db = db
        self.clock = clock or SystemClock()

    def record(self, user_id: uuid.UUID, reason: str = POLICY_BLOCK_REASON) -> SuppressedNotification:
        entry = SuppressedNotification(user_id=user_id, reason=reason, created_at=self.clock.now())
        self.db.add(entry)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.debug("Notification suppressed", user_id=str(user_id), reason=reason)
        return entry

    def for_user(self, user_id: uuid.UUID) -> list[SuppressedNotification]:
        stmt = (
            select(SuppressedNotification)
            .where(SuppressedNotification.user_id == user_id)
            .order_by(SuppressedNotification.created_at)
        )
        return list(self.db.scalars(stmt))
