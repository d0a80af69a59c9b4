"""Celery tasks for delivering notifications in the background."""
from __future__ import annotations

from datetime import timedelta
from typing import Any, Sequence

from loguru import logger

from app.celery_app import celery_app
from app.config import settings
from app.core.clock import SystemClock
from app.db.session import SessionLocal
from app.schemas.notification import NotificationPayload
from app.services.audit_log import AuditLog
from app.services.composition import build_notification_dispatcher


def _chunks(items: Sequence[str], size: int) -> list[list[str]]:
    size = max(size, 1)
    return [list(items[start:start + size]) for start in range(0, len(items), size)]


@celery_app.task(name="app.tasks.notifications.dispatch_notification")
def dispatch_notification(user_ids: list[str], payload: dict[str, Any]) -> dict[str, int]:
    """Deliver ``payload`` to every device of ``user_ids`` on a dedicated session."""

    message = NotificationPayload.model_validate(payload)
    db = SessionLocal()
    try:
        dispatcher = build_notification_dispatcher(db)
        summary = dispatcher.send_notification(list(user_ids), message)
        return summary.as_dict()
    finally:
        db.close()


@celery_app.task(name="app.tasks.notifications.dispatch_to_users")
def dispatch_to_users(user_ids: list[str], payload: dict[str, Any]) -> dict[str, int]:
    """Split a large audience into ``dispatch_notification`` tasks."""

    # Reject malformed payloads before anything is queued.
    NotificationPayload.model_validate(payload)

    chunks = _chunks([str(user_id) for user_id in user_ids], settings.DISPATCH_USERS_PER_TASK)
    for chunk in chunks:
        dispatch_notification.delay(chunk, payload)

    logger.info(
        "Notification fan-out queued",
        users=len(user_ids),
        tasks=len(chunks),
        category=payload.get("category"),
    )
    return {"users": len(user_ids), "tasks": len(chunks)}


@celery_app.task(name="app.tasks.notifications.report_dangling_deliveries")
def report_dangling_deliveries(older_than_minutes: int = 15) -> dict[str, int]:
    """Log delivery attempts that never received an outcome."""

    db = SessionLocal()
    try:
        clock = SystemClock()
        cutoff = clock.now() - timedelta(minutes=older_than_minutes)
        dangling = AuditLog(db, clock).find_dangling(cutoff)
        for record in dangling:
            logger.warning(
                "Delivery attempt has no outcome",
                event_id=record.id,
                subscription_id=str(record.subscription_id) if record.subscription_id else None,
                created_at=record.created_at.isoformat() if record.created_at else None,
            )
        return {"dangling": len(dangling)}
    finally:
        db.close()
