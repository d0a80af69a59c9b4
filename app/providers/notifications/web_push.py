"""Browser notifications through the Web Push protocol."""
from __future__ import annotations

import json

import requests
from loguru import logger
from pywebpush import WebPushException, webpush

from app.db.models.notification_subscription import NotificationSubscription
from app.schemas.notification import NotificationPayload
from app.services.subscription_store import SubscriptionStore
from app.utils.exceptions import DeliveryError, SubscriptionExpiredError

# Push services answer 404/410 once the browser has unsubscribed.
GONE_STATUS_CODES = (404, 410)


class WebPushProvider:
    """Send VAPID-signed web push messages with ``pywebpush``."""

    def __init__(
        self,
        subscriptions: SubscriptionStore,
        *,
        vapid_private_key: str,
        vapid_subject: str,
        timeout: float = 10.0,
    ) -> None:
        self.subscriptions = subscriptions
        self.vapid_private_key = vapid_private_key
        self.vapid_subject = vapid_subject
        self.timeout = timeout

    def send(self, subscription: NotificationSubscription, payload: NotificationPayload) -> None:
        if not subscription.endpoint or not subscription.keys:
            raise DeliveryError("Web subscription has no push endpoint")

        try:
            webpush(
                subscription_info={
                    "endpoint": subscription.endpoint,
                    "keys": dict(subscription.keys),
                },
                data=json.dumps(payload.as_message()),
                vapid_private_key=self.vapid_private_key,
                vapid_claims={"sub": self.vapid_subject},
                timeout=self.timeout,
            )
        except WebPushException as ex:
            status_code = ex.response.status_code if ex.response is not None else None
            if status_code in GONE_STATUS_CODES:
                logger.info(
                    "Web push subscription is gone, removing",
                    subscription_id=str(subscription.id),
                    status=status_code,
                )
                self.subscriptions.delete(id=subscription.id)
                raise SubscriptionExpiredError(
                    f"Web push endpoint no longer valid (HTTP {status_code})"
                ) from ex
            raise DeliveryError(f"Web push rejected (HTTP {status_code})") from ex
        except requests.Timeout as ex:
            raise DeliveryError(f"Web push timed out after {self.timeout}s") from ex
        except requests.RequestException as ex:
            raise DeliveryError("Web push service unreachable") from ex
