"""Append-only audit trail of notification delivery attempts.

Each attempt is recorded as a ``sent`` row written before the channel is
contacted, followed by exactly one terminal row (``delivered`` or
``failed``). Rows are never updated in place: a transition is a new insert.
A ``sent`` row without a terminal follow-up marks an attempt that was
interrupted before its outcome could be observed.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.clock import Clock, SystemClock
from app.core.enums import DeliveryStatus, is_critical_category
from app.db.models.event import NotificationEvent, status_entry
from app.utils.exceptions import AuditValidationError


@dataclass(frozen=True)
class DeliveryAttempt:
    """Handle on an open attempt, identified by its ``sent`` record."""

    sent_event_id: int
    subscription_id: Optional[uuid.UUID]
    user_id: Optional[uuid.UUID]
    category: str
    is_critical: bool
    status: DeliveryStatus = DeliveryStatus.SENT


class AuditLog:
    """Writes and reads ``NotificationEvent`` rows."""

    def __init__(self, db: Session, clock: Clock | None = None) -> None:
        self.db = db
        self.clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def record_sent(
        self,
        *,
        subscription_id: Optional[uuid.UUID],
        user_id: Optional[uuid.UUID],
        category: str,
        payload: Dict[str, Any],
    ) -> DeliveryAttempt:
        """Persist the initial ``sent`` state and return the open attempt."""

        is_critical = is_critical_category(category)
        record = self._append(
            subscription_id=subscription_id,
            user_id=user_id,
            category=category,
            is_critical=is_critical,
            payload=payload,
            status=DeliveryStatus.SENT,
        )
        return DeliveryAttempt(
            sent_event_id=record.id,
            subscription_id=subscription_id,
            user_id=user_id,
            category=category,
            is_critical=is_critical,
        )

    def record_delivered(
        self, attempt: DeliveryAttempt, payload: Dict[str, Any]
    ) -> DeliveryAttempt:
        return self._close(attempt, DeliveryStatus.DELIVERED, payload=payload)

    def record_failed(self, attempt: DeliveryAttempt, details: str) -> DeliveryAttempt:
        """Persist the ``failed`` state; the payload is deliberately not stored."""

        return self._close(attempt, DeliveryStatus.FAILED, details=details)

    def _close(
        self,
        attempt: DeliveryAttempt,
        status: DeliveryStatus,
        *,
        payload: Optional[Dict[str, Any]] = None,
        details: Optional[str] = None,
    ) -> DeliveryAttempt:
        if not attempt.status.can_transition(status):
            raise AuditValidationError(
                f"Invalid delivery transition {attempt.status.value} -> {status.value}",
                details={"sent_event_id": str(attempt.sent_event_id)},
            )
        self._append(
            subscription_id=attempt.subscription_id,
            user_id=attempt.user_id,
            category=attempt.category,
            is_critical=attempt.is_critical,
            payload=payload,
            status=status,
            details=details,
        )
        return DeliveryAttempt(
            sent_event_id=attempt.sent_event_id,
            subscription_id=attempt.subscription_id,
            user_id=attempt.user_id,
            category=attempt.category,
            is_critical=attempt.is_critical,
            status=status,
        )

    def _append(
        self,
        *,
        subscription_id: Optional[uuid.UUID],
        user_id: Optional[uuid.UUID],
        category: str,
        is_critical: bool,
        payload: Optional[Dict[str, Any]],
        status: DeliveryStatus,
        details: Optional[str] = None,
    ) -> NotificationEvent:
        now = self.clock.now()
        record = NotificationEvent(
            subscription_id=subscription_id,
            user_id=user_id,
            category=category,
            payload=payload,
            status_history=[status_entry(status, now, details)],
            is_aggregated=False,
            is_critical=is_critical,
            created_at=now,
        )
        # Validate before touching the session so a rejected write leaves no trace.
        record.validate()
        self.db.add(record)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.debug(
            "Audit event recorded",
            event_id=str(record.id),
            status=status.value,
            subscription_id=str(subscription_id) if subscription_id else None,
        )
        return record

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def trail(self, subscription_id: uuid.UUID) -> List[NotificationEvent]:
        """Return every record for a subscription in write order."""

        stmt = (
            select(NotificationEvent)
            .where(NotificationEvent.subscription_id == subscription_id)
            .order_by(NotificationEvent.id)
        )
        return list(self.db.scalars(stmt))

    def find_dangling(self, older_than: datetime) -> List[NotificationEvent]:
        """Return ``sent`` records older than ``older_than`` with no terminal follow-up.

        A terminal record is matched to the most recent earlier ``sent``
        record of the same subscription.
        """

        open_attempts: Dict[Any, List[int]] = {}
        for record in self.db.scalars(select(NotificationEvent).order_by(NotificationEvent.id)):
            key = record.subscription_id or record.user_id
            if record.status is DeliveryStatus.SENT:
                open_attempts.setdefault(key, []).append(record.id)
            elif open_attempts.get(key):
                open_attempts[key].pop()

        dangling_ids = [event_id for ids in open_attempts.values() for event_id in ids]
        if not dangling_ids:
            return []
        stmt = (
            select(NotificationEvent)
            .where(NotificationEvent.id.in_(dangling_ids))
            .where(NotificationEvent.created_at < older_than)
            .order_by(NotificationEvent.id)
        )
        return list(self.db.scalars(stmt))
