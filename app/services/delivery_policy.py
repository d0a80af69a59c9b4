"""Per-subscription send eligibility."""
from __future__ import annotations

from app.core.clock import Clock, SystemClock
from app.core.quiet_hours import is_allowed_now
from app.db.models.notification_subscription import NotificationSubscription
from app.schemas.notification import NotificationPayload


class DeliveryPolicy:
    """Decide whether a payload may be pushed to one subscription right now.

    Critical categories only need the device permission. Everything else
    needs the permission, an opt-in for the category and a usable quiet
    window that contains the current instant. A subscription without a
    window never receives non-critical notifications.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or SystemClock()

    def should_send(
        self, subscription: NotificationSubscription, payload: NotificationPayload
    ) -> bool:
        if payload.is_critical:
            return bool(subscription.is_permission_granted)

        if not subscription.is_permission_granted:
            return False

        if not subscription.is_enabled_for(payload.category.value):
            return False

        window = subscription.quiet_window
        if window is None or window.week_mask == 0:
            return False

        return is_allowed_now(self.clock.now(), window)
