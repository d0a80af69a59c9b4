"""Wiring for the notification dispatcher."""
from __future__ import annotations

from sqlalchemy.orm import Session

from app.config import Settings, settings
from app.core.clock import Clock, SystemClock
from app.providers.notifications.registry import ProviderRegistry, build_channel_providers
from app.services.audit_log import AuditLog
from app.services.delivery_policy import DeliveryPolicy
from app.services.dispatcher import NotificationDispatcher
from app.services.subscription_store import SubscriptionStore
from app.services.suppression_log import SuppressionLog


def build_notification_dispatcher(
    db: Session,
    clock: Clock | None = None,
    providers: ProviderRegistry | None = None,
    config: Settings = settings,
) -> NotificationDispatcher:
    """Assemble a dispatcher whose stores share ``db``."""

    clock = clock or SystemClock()
    subscriptions = SubscriptionStore(db)
    if providers is None:
        providers = build_channel_providers(subscriptions, config)
    return NotificationDispatcher(
        subscriptions=subscriptions,
        audit_log=AuditLog(db, clock),
        suppression_log=SuppressionLog(db, clock),
        providers=providers,
        policy=DeliveryPolicy(clock),
    )
