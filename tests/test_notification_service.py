"""Tests for subscription registration and preference updates."""
from __future__ import annotations

import uuid

import pytest

from app.core.enums import Platform
from app.schemas import SubscriptionCreate
from app.services.notification_service import NotificationService
from app.utils.exceptions import SubscriptionError, SubscriptionNotFoundError

WEB_SUBSCRIPTION = {
    "device_identifier": "browser-1",
    "platform": "web",
    "endpoint": "https://push.example.com/send/abc",
    "keys": {"p256dh": "client-public", "auth": "client-auth"},
}


@pytest.fixture()
def service(db_session) -> NotificationService:
    return NotificationService(db_session)


def test_subscribe_creates_web_subscription(service, user) -> None:
    subscription = service.subscribe(user.id, WEB_SUBSCRIPTION)

    assert subscription.platform == Platform.WEB.value
    assert subscription.endpoint == "https://push.example.com/send/abc"
    assert subscription.keys == {"p256dh": "client-public", "auth": "client-auth"}
    assert subscription.notification_kinds["security"] is True
    assert subscription.notification_kinds["rides"] is False
    assert subscription.quiet_window is None


def test_subscribe_upserts_on_device_identifier(service, user) -> None:
    first = service.subscribe(user.id, WEB_SUBSCRIPTION)
    second = service.subscribe(
        user.id, {**WEB_SUBSCRIPTION, "endpoint": "https://push.example.com/send/renewed"}
    )

    assert second.id == first.id
    assert second.endpoint == "https://push.example.com/send/renewed"
    assert len(service.list_subscriptions(user.id)) == 1


def test_subscribe_stores_mobile_and_email_destinations(service, user) -> None:
    android = service.subscribe(
        user.id, {"device_identifier": "phone", "platform": "android", "device_token": "fcm-address"}
    )
    email = service.subscribe(
        user.id,
        SubscriptionCreate(device_identifier="mail", platform=Platform.EMAIL, email_address="rider@example.com"),
    )

    assert android.destination == "fcm-address"
    assert email.destination == "rider@example.com"


@pytest.mark.parametrize(
    "data",
    [
        {"platform": "web"},
        {"device_identifier": "browser-2", "platform": "web", "endpoint": "https://push.example.com/x"},
        {"device_identifier": "phone", "platform": "ios"},
        {"device_identifier": "mail", "platform": "email"},
        {"device_identifier": "pager", "platform": "pager"},
    ],
)
def test_subscribe_rejects_incomplete_data(service, user, data) -> None:
    with pytest.raises(SubscriptionError):
        service.subscribe(user.id, data)


def test_subscribe_requires_user(service) -> None:
    with pytest.raises(SubscriptionError):
        service.subscribe(None, WEB_SUBSCRIPTION)


def test_update_preferences_merges_kinds_and_keeps_critical(service, user) -> None:
    service.subscribe(user.id, WEB_SUBSCRIPTION)

    updated = service.update_preferences(
        user.id, "browser-1", {"kinds": {"rides": True, "security": False}}
    )

    assert updated.notification_kinds == {
        "security": True,
        "rides": True,
        "chats": False,
        "communication": False,
        "system": True,
    }


def test_update_preferences_sets_and_clears_window(service, user) -> None:
    service.subscribe(user.id, WEB_SUBSCRIPTION)

    updated = service.update_preferences(
        user.id,
        "browser-1",
        {"quiet_hours": {"start_hour": 22, "end_hour": 7, "week_days": [1, 2, 3, 4, 5], "timezone": "UTC"}},
    )
    window = updated.quiet_window
    assert (window.start_minute, window.end_minute, window.week_mask) == (1320, 420, 0b0111110)

    kept = service.update_preferences(user.id, "browser-1", {"kinds": {"chats": True}})
    assert kept.quiet_window == window

    cleared = service.update_preferences(user.id, "browser-1", {"quiet_hours": None})
    assert cleared.quiet_window is None
    assert cleared.start_minute is None and cleared.timezone is None


def test_update_preferences_defaults_timezone(service, user) -> None:
    service.subscribe(user.id, WEB_SUBSCRIPTION)

    updated = service.update_preferences(
        user.id, "browser-1", {"quiet_hours": {"start_hour": 8, "end_hour": 20, "week_days": [0]}}
    )

    assert updated.timezone == "America/Sao_Paulo"


def test_update_preferences_unknown_device(service, user) -> None:
    with pytest.raises(SubscriptionNotFoundError):
        service.update_preferences(user.id, "missing", {"kinds": {"rides": True}})


def test_update_preferences_rejects_out_of_range_hours(service, user) -> None:
    service.subscribe(user.id, WEB_SUBSCRIPTION)

    with pytest.raises(SubscriptionError):
        service.update_preferences(
            user.id,
            "browser-1",
            {"quiet_hours": {"start_hour": 24, "end_hour": 7, "week_days": [1], "timezone": "UTC"}},
        )


def test_set_permission(service, user) -> None:
    service.subscribe(user.id, WEB_SUBSCRIPTION)

    revoked = service.set_permission(user.id, "browser-1", False)
    assert revoked.is_permission_granted is False

    with pytest.raises(SubscriptionNotFoundError):
        service.set_permission(uuid.uuid4(), "browser-1", True)
