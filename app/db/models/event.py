"""Append-only event records stored in a single polymorphic table.

``Event`` is the shared envelope; the ``kind`` column selects one of a closed
set of subclasses. Rows are immutable once written.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Integer, String, event
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.types import JSON

from app.core.enums import DeliveryStatus, EventKind
from app.core.sensitive import find_sensitive_term
from app.db.base import Base
from app.utils.exceptions import AuditValidationError, ImmutableRecordError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Event(Base):
    """Common envelope for every recorded event."""

    __tablename__ = "events"

    # Monotonic key: write order is the order of the trail.
    id = Column(BigInteger().with_variant(Integer(), "sqlite"), primary_key=True, autoincrement=True)
    kind = Column(String(20), nullable=False, index=True)
    # Plain columns rather than foreign keys: the trail must outlive the
    # subscription or user it refers to.
    user_id = Column(UUID(as_uuid=True), index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __mapper_args__ = {"polymorphic_on": kind}

    def validate(self) -> None:
        """Raise ``AuditValidationError`` when the record must not be written."""


class NotificationEvent(Event):
    """One state of a notification delivery attempt (the audit record)."""

    subscription_id = Column(UUID(as_uuid=True), index=True)
    category = Column(String(30), index=True)
    payload = Column(JSONB().with_variant(JSON(), "sqlite"))
    status_history = Column(JSONB().with_variant(JSON(), "sqlite"))
    is_aggregated = Column(Boolean, default=False, index=True)
    is_critical = Column(Boolean, default=False, index=True)

    __mapper_args__ = {"polymorphic_identity": EventKind.NOTIFICATION.value}

    @property
    def status(self) -> DeliveryStatus | None:
        if not self.status_history:
            return None
        return DeliveryStatus(self.status_history[-1]["status"])

    @property
    def details(self) -> str | None:
        if not self.status_history:
            return None
        return self.status_history[-1].get("details")

    def validate(self) -> None:
        if self.subscription_id is None and self.user_id is None:
            raise AuditValidationError(
                "Notification event requires a subscription or a user reference"
            )
        if self.is_critical and self.user_id is None:
            raise AuditValidationError("Critical notification events require a user reference")
        if not self.category:
            raise AuditValidationError("Notification event requires a category")
        if not self.status_history:
            raise AuditValidationError("Notification event requires a status entry")

        for entry in self.status_history:
            try:
                DeliveryStatus(entry.get("status"))
            except ValueError as exc:
                raise AuditValidationError(
                    f"Unknown delivery status: {entry.get('status')!r}"
                ) from exc

        term = find_sensitive_term(self.payload)
        if term is None:
            for entry in self.status_history:
                term = find_sensitive_term(entry.get("details"))
                if term is not None:
                    break
        if term is not None:
            raise AuditValidationError(
                "Notification event cannot contain sensitive information",
                details={"term": term},
            )


class RideViewEvent(Event):
    """A user opened a ride, optionally from a search result."""

    ride_id = Column(UUID(as_uuid=True), index=True)
    search_event_id = Column(BigInteger().with_variant(Integer(), "sqlite"))

    __mapper_args__ = {"polymorphic_identity": EventKind.RIDE_VIEW.value}

    def validate(self) -> None:
        if self.user_id is None or self.ride_id is None:
            raise AuditValidationError("Ride view events require a user and a ride")


class SearchEvent(Event):
    """A ride search with its latency and result count."""

    duration_ms = Column(Integer)
    results_count = Column(Integer)

    __mapper_args__ = {"polymorphic_identity": EventKind.SEARCH.value}

    def validate(self) -> None:
        if self.user_id is None:
            raise AuditValidationError("Search events require a user")
        if self.duration_ms is None or self.duration_ms < 0:
            raise AuditValidationError("duration_ms must be a non-negative integer")
        if self.results_count is None or self.results_count < 0:
            raise AuditValidationError("results_count must be a non-negative integer")


def status_entry(status: DeliveryStatus, timestamp: datetime, details: str | None = None) -> dict[str, Any]:
    entry: dict[str, Any] = {"status": status.value, "timestamp": timestamp.isoformat()}
    if details is not None:
        entry["details"] = details
    return entry


@event.listens_for(Event, "before_insert", propagate=True)
def _validate_before_insert(mapper, connection, target: Event) -> None:
    target.validate()


@event.listens_for(Event, "before_update", propagate=True)
def _reject_update(mapper, connection, target: Event) -> None:
    raise ImmutableRecordError("Event records are immutable and cannot be updated")


@event.listens_for(Event, "before_delete", propagate=True)
def _reject_delete(mapper, connection, target: Event) -> None:
    raise ImmutableRecordError("Event records cannot be deleted")
