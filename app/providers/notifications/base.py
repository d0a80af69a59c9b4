"""Contract shared by every notification channel."""
from __future__ import annotations

from typing import Protocol

from app.db.models.notification_subscription import NotificationSubscription
from app.schemas.notification import NotificationPayload


class ChannelProvider(Protocol):
    """Deliver one payload to one subscription.

    Returning normally means the channel accepted the message. Failures are
    raised as ``DeliveryError``. When the destination is permanently invalid
    the provider deletes the subscription itself and raises
    ``SubscriptionExpiredError``. Calls may be repeated; duplicates are not
    prevented.
    """

    def send(self, subscription: NotificationSubscription, payload: NotificationPayload) -> None:  # pragma: no cover - interface definition
        """Send ``payload`` to ``subscription``."""
