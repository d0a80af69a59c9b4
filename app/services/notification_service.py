"""Service for managing device subscriptions and their delivery preferences."""
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Mapping

from loguru import logger
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.enums import CRITICAL_CATEGORIES, Platform
from app.core.quiet_hours import build_quiet_window
from app.db.models.notification_subscription import NotificationSubscription
from app.schemas.notification import PreferencesUpdate, SubscriptionCreate
from app.services.subscription_store import SubscriptionStore
from app.utils.exceptions import SubscriptionError, SubscriptionNotFoundError


class NotificationService:
    def __init__(self, db: Session, store: SubscriptionStore | None = None):
        self.db = db
        self.store = store or SubscriptionStore(db)

    def subscribe(
        self, user_id: uuid.UUID | None, data: SubscriptionCreate | Mapping[str, Any]
    ) -> NotificationSubscription:
        """Register a device, or refresh the one already known for this user."""

        if user_id is None:
            raise SubscriptionError("User id required")
        if not isinstance(data, SubscriptionCreate):
            if not (data or {}).get("device_identifier"):
                raise SubscriptionError("Device identifier required")
            try:
                data = SubscriptionCreate.model_validate(data)
            except ValidationError as exc:
                raise SubscriptionError(
                    "Invalid subscription data",
                    details={"errors": exc.errors(include_url=False, include_context=False)},
                ) from exc

        fields: Dict[str, Any] = {
            "platform": data.platform.value,
            "is_permission_granted": data.is_permission_granted,
            "endpoint": None,
            "keys": None,
            "destination": None,
        }
        if data.platform is Platform.WEB:
            fields["endpoint"] = str(data.endpoint)
            fields["keys"] = data.keys.model_dump()
        elif data.platform is Platform.EMAIL:
            fields["destination"] = str(data.email_address)
        else:
            fields["destination"] = data.device_token

        subscription = self.store.upsert(user_id, data.device_identifier, fields)
        logger.info(
            "Subscription registered",
            user_id=str(user_id),
            device_identifier=data.device_identifier,
            platform=data.platform.value,
        )
        return subscription

    def _require(self, user_id: uuid.UUID, device_identifier: str) -> NotificationSubscription:
        subscription = self.store.get(user_id, device_identifier)
        if subscription is None:
            raise SubscriptionNotFoundError(
                f"No subscription for device {device_identifier}",
                details={"device_identifier": device_identifier},
            )
        return subscription

    def update_preferences(
        self,
        user_id: uuid.UUID,
        device_identifier: str,
        data: PreferencesUpdate | Mapping[str, Any],
    ) -> NotificationSubscription:
        """Merge opt-in flags and replace or clear the allowed-delivery window."""

        if not isinstance(data, PreferencesUpdate):
            try:
                data = PreferencesUpdate.model_validate(data)
            except ValidationError as exc:
                raise SubscriptionError(
                    "Invalid preferences",
                    details={"errors": exc.errors(include_url=False, include_context=False)},
                ) from exc

        subscription = self._require(user_id, device_identifier)

        if data.kinds is not None:
            kinds = dict(subscription.notification_kinds or {})
            kinds.update(data.kinds.model_dump(exclude_none=True))
            for category in CRITICAL_CATEGORIES:
                kinds[category.value] = True
            subscription.notification_kinds = kinds

        if data.clears_quiet_hours:
            subscription.quiet_window = None
        elif data.quiet_hours is not None:
            hours = data.quiet_hours
            subscription.quiet_window = build_quiet_window(
                hours.start_hour,
                hours.end_hour,
                hours.week_days,
                hours.timezone or settings.DEFAULT_TIMEZONE,
            )

        subscription = self.store.save(subscription)
        logger.info(
            "Subscription preferences updated",
            user_id=str(user_id),
            device_identifier=device_identifier,
        )
        return subscription

    def set_permission(
        self, user_id: uuid.UUID, device_identifier: str, granted: bool
    ) -> NotificationSubscription:
        subscription = self._require(user_id, device_identifier)
        subscription.is_permission_granted = granted
        subscription = self.store.save(subscription)
        logger.info(
            "Notification permission changed",
            user_id=str(user_id),
            device_identifier=device_identifier,
            granted=granted,
        )
        return subscription

    def list_subscriptions(self, user_id: uuid.UUID) -> List[NotificationSubscription]:
        return self.store.find_by_user(user_id)
