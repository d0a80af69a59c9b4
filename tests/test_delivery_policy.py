"""Tests for per-subscription delivery decisions."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.core.clock import FixedClock
from app.core.enums import NotificationCategory
from app.core.quiet_hours import build_quiet_window
from app.db.models import NotificationSubscription
from app.schemas import NotificationPayload
from app.services.delivery_policy import DeliveryPolicy

NOON = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)


def payload(category: NotificationCategory) -> NotificationPayload:
    return NotificationPayload(title="Heads up", body="Something happened", category=category)


def subscription(
    *, granted: bool = True, kinds: dict[str, bool] | None = None, window=None
) -> NotificationSubscription:
    sub = NotificationSubscription(
        device_identifier="device-1",
        platform="web",
        is_permission_granted=granted,
        notification_kinds=kinds or {"security": True, "system": True, "rides": True},
    )
    sub.quiet_window = window
    return sub


@pytest.fixture()
def policy() -> DeliveryPolicy:
    return DeliveryPolicy(FixedClock(NOON))


@pytest.mark.parametrize("category", [NotificationCategory.SECURITY, NotificationCategory.SYSTEM])
def test_critical_sent_whenever_permission_granted(policy, category) -> None:
    closed_all_week = build_quiet_window(9, 18, 0, "UTC")
    sub = subscription(kinds={"security": False, "system": False}, window=closed_all_week)

    assert policy.should_send(sub, payload(category))


def test_critical_sent_without_window(policy) -> None:
    assert policy.should_send(subscription(window=None), payload(NotificationCategory.SECURITY))


@pytest.mark.parametrize("category", list(NotificationCategory))
def test_permission_revoked_blocks_every_category(policy, category) -> None:
    sub = subscription(granted=False, window=build_quiet_window(0, 23, range(7), "UTC"))

    assert not policy.should_send(sub, payload(category))


def test_disabled_kind_blocks(policy) -> None:
    sub = subscription(
        kinds={"security": True, "system": True, "rides": False},
        window=build_quiet_window(9, 18, range(7), "UTC"),
    )

    assert not policy.should_send(sub, payload(NotificationCategory.RIDES))


def test_missing_kind_blocks(policy) -> None:
    sub = subscription(
        kinds={"security": True, "system": True},
        window=build_quiet_window(9, 18, range(7), "UTC"),
    )

    assert not policy.should_send(sub, payload(NotificationCategory.CHATS))


def test_non_critical_requires_window(policy) -> None:
    assert not policy.should_send(subscription(window=None), payload(NotificationCategory.RIDES))


def test_empty_week_mask_blocks(policy) -> None:
    sub = subscription(window=build_quiet_window(0, 23, 0, "UTC"))

    assert not policy.should_send(sub, payload(NotificationCategory.RIDES))


def test_window_decides_for_enabled_kind(policy) -> None:
    inside = subscription(window=build_quiet_window(9, 18, range(7), "UTC"))
    outside = subscription(window=build_quiet_window(18, 22, range(7), "UTC"))

    assert policy.should_send(inside, payload(NotificationCategory.RIDES))
    assert not policy.should_send(outside, payload(NotificationCategory.RIDES))


def test_policy_follows_clock(policy) -> None:
    sub = subscription(window=build_quiet_window(9, 18, range(7), "UTC"))
    policy.clock.set(datetime(2024, 1, 10, 20, 0, tzinfo=timezone.utc))

    assert not policy.should_send(sub, payload(NotificationCategory.RIDES))
