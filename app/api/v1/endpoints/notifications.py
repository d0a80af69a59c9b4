"""Device subscription endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import SQLAlchemyError

from app.api import deps
from app.config import settings
from app.core.enums import NotificationCategory
from app.db.models.user import User
from app.schemas import (
    NotificationPayload,
    PermissionUpdate,
    PreferencesUpdate,
    SubscriptionCreate,
    SubscriptionRead,
)
from app.services.dispatcher import NotificationDispatcher
from app.services.notification_service import NotificationService
from app.utils.exceptions import (
    SubscriptionError,
    SubscriptionNotFoundError,
    handle_database_error,
    handle_subscription_error,
    handle_subscription_not_found,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/vapid-public-key")
def get_vapid_public_key(_: User = Depends(deps.get_current_user)) -> dict[str, str | None]:
    return {"publicKey": settings.VAPID_PUBLIC_KEY}


@router.post("/subscribe", response_model=SubscriptionRead, status_code=status.HTTP_201_CREATED)
def subscribe(
    payload: SubscriptionCreate,
    current_user: User = Depends(deps.get_current_user),
    service: NotificationService = Depends(deps.get_notification_service),
) -> SubscriptionRead:
    """Register this device, or refresh it if it is already known."""

    try:
        subscription = service.subscribe(current_user.id, payload)
    except SubscriptionError as exc:
        raise handle_subscription_error(exc) from exc
    except SQLAlchemyError as exc:
        raise handle_database_error(exc) from exc
    return SubscriptionRead.from_subscription(subscription)


@router.get("/subscriptions", response_model=list[SubscriptionRead])
def list_subscriptions(
    current_user: User = Depends(deps.get_current_user),
    service: NotificationService = Depends(deps.get_notification_service),
) -> list[SubscriptionRead]:
    return [
        SubscriptionRead.from_subscription(subscription)
        for subscription in service.list_subscriptions(current_user.id)
    ]


@router.patch(
    "/subscriptions/{device_identifier}/preferences", response_model=SubscriptionRead
)
def update_preferences(
    device_identifier: str,
    payload: PreferencesUpdate,
    current_user: User = Depends(deps.get_current_user),
    service: NotificationService = Depends(deps.get_notification_service),
) -> SubscriptionRead:
    """Merge category opt-ins and set or clear (``null``) the delivery window."""

    try:
        subscription = service.update_preferences(current_user.id, device_identifier, payload)
    except SubscriptionNotFoundError as exc:
        raise handle_subscription_not_found(exc) from exc
    except SubscriptionError as exc:
        raise handle_subscription_error(exc) from exc
    return SubscriptionRead.from_subscription(subscription)


@router.patch("/subscriptions/{device_identifier}/permission", response_model=SubscriptionRead)
def update_permission(
    device_identifier: str,
    payload: PermissionUpdate,
    current_user: User = Depends(deps.get_current_user),
    service: NotificationService = Depends(deps.get_notification_service),
) -> SubscriptionRead:
    try:
        subscription = service.set_permission(
            current_user.id, device_identifier, payload.is_permission_granted
        )
    except SubscriptionNotFoundError as exc:
        raise handle_subscription_not_found(exc) from exc
    return SubscriptionRead.from_subscription(subscription)


@router.post("/test")
def test_notification(
    current_user: User = Depends(deps.get_current_user),
    dispatcher: NotificationDispatcher = Depends(deps.get_notification_dispatcher),
) -> dict[str, int]:
    """Send a system notification to the caller's own devices."""

    payload = NotificationPayload(
        title="Test notification",
        body="Notifications are working on this device.",
        category=NotificationCategory.SYSTEM,
    )
    summary = dispatcher.send_notification([current_user.id], payload)
    return summary.as_dict()
