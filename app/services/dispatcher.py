"""Fan a notification out to every device of a set of users."""
from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any, Dict, Iterable

from loguru import logger

from app.db.models.notification_subscription import NotificationSubscription
from app.schemas.notification import NotificationPayload
from app.services.audit_log import AuditLog
from app.services.delivery_policy import DeliveryPolicy
from app.services.subscription_store import SubscriptionStore
from app.services.suppression_log import SuppressionLog
from app.utils.exceptions import AuditValidationError, DeliveryError, SubscriptionExpiredError

if TYPE_CHECKING:
    from app.providers.notifications.registry import ProviderRegistry


@dataclass
class DispatchSummary:
    """Counters for one ``send_notification`` call."""

    users: int = 0
    attempted: int = 0
    delivered: int = 0
    failed: int = 0
    suppressed: int = 0
    fallbacks: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


def _user_id(user: Any) -> uuid.UUID:
    if isinstance(user, uuid.UUID):
        return user
    if isinstance(user, str):
        return uuid.UUID(user)
    return user.id


class NotificationDispatcher:
    """Apply the delivery policy per device and keep the audit trail.

    Push devices are tried first. A critical notification that reached no
    push device falls back to the user's email subscription, skipping the
    policy. Failures are contained per subscription and per user; only a
    failure to load a user's subscriptions propagates.
    """

    def __init__(
        self,
        subscriptions: SubscriptionStore,
        audit_log: AuditLog,
        suppression_log: SuppressionLog,
        providers: "ProviderRegistry",
        policy: DeliveryPolicy,
    ) -> None:
        self.subscriptions = subscriptions
        self.audit_log = audit_log
        self.suppression_log = suppression_log
        self.providers = providers
        self.policy = policy

    def send_notification(
        self, users: Iterable[Any], payload: NotificationPayload
    ) -> DispatchSummary:
        summary = DispatchSummary()
        for user in users:
            summary.users += 1
            try:
                user_id = _user_id(user)
            except (AttributeError, TypeError, ValueError) as exc:
                logger.error("Skipping invalid user reference", user=repr(user), error=str(exc))
                continue
            self._send_to_user(user_id, payload, summary)

        logger.info(
            "Notification dispatched",
            category=payload.category.value,
            **summary.as_dict(),
        )
        return summary

    def _send_to_user(
        self, user_id: uuid.UUID, payload: NotificationPayload, summary: DispatchSummary
    ) -> None:
        subscriptions = self.subscriptions.find_by_user(user_id)
        if not subscriptions:
            logger.debug("User has no subscriptions", user_id=str(user_id))
            return

        email_subscription: NotificationSubscription | None = None
        reached_device = False

        for subscription in subscriptions:
            try:
                is_push = subscription.platform_enum.is_push
                allowed = is_push and self.policy.should_send(subscription, payload)
            except Exception as exc:
                # A stored window or platform that no longer parses
                logger.error(
                    "Could not evaluate delivery policy",
                    subscription_id=str(subscription.id),
                    error=str(exc),
                )
                summary.failed += 1
                continue

            if not is_push:
                email_subscription = email_subscription or subscription
                continue

            if not allowed:
                self._suppress(user_id, summary)
                continue

            granted = bool(subscription.is_permission_granted)
            if self._attempt(subscription, payload, summary) and granted:
                reached_device = True

        if payload.is_critical and not reached_device and email_subscription is not None:
            logger.info("Falling back to email for critical notification", user_id=str(user_id))
            summary.fallbacks += 1
            self._attempt(email_subscription, payload, summary)

    def _suppress(self, user_id: uuid.UUID, summary: DispatchSummary) -> None:
        summary.suppressed += 1
        try:
            self.suppression_log.record(user_id)
        except Exception as exc:
            logger.error("Could not record suppression", user_id=str(user_id), error=str(exc))

    def _attempt(
        self,
        subscription: NotificationSubscription,
        payload: NotificationPayload,
        summary: DispatchSummary,
    ) -> bool:
        subscription_id = subscription.id
        try:
            delivered = self.send_and_log(subscription, payload)
        except AuditValidationError as exc:
            logger.error(
                "Audit record rejected",
                subscription_id=str(subscription_id),
                error=exc.message,
                details=exc.details,
            )
            delivered = False
        except Exception as exc:
            logger.error(
                "Unexpected error while delivering",
                subscription_id=str(subscription_id),
                error=str(exc),
            )
            delivered = False

        summary.attempted += 1
        if delivered:
            summary.delivered += 1
        else:
            summary.failed += 1
        return delivered

    def send_and_log(
        self, subscription: NotificationSubscription, payload: NotificationPayload
    ) -> bool:
        """Deliver through the platform provider, bracketing the call with audit records.

        Returns ``True`` only when the provider accepted the message.
        ``AuditValidationError`` is not caught here.
        """

        # Providers may delete the row; keep what the audit trail needs.
        subscription_id = subscription.id
        user_id = subscription.user_id
        platform = subscription.platform

        provider = self.providers.for_platform(platform)
        if provider is None:
            logger.warning(
                "No provider available for platform",
                platform=platform,
                subscription_id=str(subscription_id),
            )
            return False

        message = payload.as_message()
        attempt = self.audit_log.record_sent(
            subscription_id=subscription_id,
            user_id=user_id,
            category=payload.category.value,
            payload=message,
        )

        try:
            provider.send(subscription, payload)
        except SubscriptionExpiredError as exc:
            logger.info(
                "Subscription expired during delivery",
                subscription_id=str(subscription_id),
                platform=platform,
                error=exc.message,
            )
            self.audit_log.record_failed(attempt, exc.message)
            return False
        except DeliveryError as exc:
            logger.warning(
                "Notification delivery failed",
                subscription_id=str(subscription_id),
                platform=platform,
                error=exc.message,
            )
            self.audit_log.record_failed(attempt, exc.message)
            return False
        except Exception as exc:
            logger.warning(
                "Provider raised unexpected error",
                subscription_id=str(subscription_id),
                platform=platform,
                error=str(exc),
            )
            self.audit_log.record_failed(attempt, str(exc))
            return False

        self.audit_log.record_delivered(attempt, message)
        logger.info(
            "Notification delivered",
            subscription_id=str(subscription_id),
            platform=platform,
        )
        return True
