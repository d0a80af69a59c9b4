"""Service layer package."""

from app.services.subscription_store import SubscriptionStore
from app.services.audit_log import AuditLog, DeliveryAttempt
from app.services.delivery_policy import DeliveryPolicy
from app.services.suppression_log import SuppressionLog
from app.services.dispatcher import DispatchSummary, NotificationDispatcher
from app.services.notification_service import NotificationService

__all__ = [
    "AuditLog",
    "DeliveryAttempt",
    "DeliveryPolicy",
    "DispatchSummary",
    "NotificationDispatcher",
    "NotificationService",
    "SubscriptionStore",
    "SuppressionLog",
]
