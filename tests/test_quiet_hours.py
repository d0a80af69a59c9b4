"""Tests for delivery window evaluation."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.core.quiet_hours import (
    QuietWindow,
    build_quiet_window,
    days_to_mask,
    is_allowed_now,
    local_weekday_and_minute,
    mask_to_days,
    window_to_hours,
)

# 2024-01-10 is a Wednesday (weekday index 3, Sunday = 0).
WEDNESDAY = 3


def at(hour: int, minute: int = 0, day: int = 10) -> datetime:
    return datetime(2024, 1, day, hour, minute, tzinfo=timezone.utc)


def window(start: int, end: int, mask: int = 0b1111111, tz: str = "UTC") -> QuietWindow:
    return QuietWindow(start_minute=start, end_minute=end, week_mask=mask, timezone=tz)


def test_unset_weekday_blocks_regardless_of_time() -> None:
    all_but_wednesday = 0b1111111 & ~(1 << WEDNESDAY)
    allowed = window(0, 1439, mask=all_but_wednesday)

    assert not is_allowed_now(at(12), allowed)
    assert is_allowed_now(at(12, day=11), allowed)


def test_start_is_inclusive_and_end_exclusive() -> None:
    business = window(540, 1080)

    assert is_allowed_now(at(9), business)
    assert is_allowed_now(at(17, 59), business)
    assert not is_allowed_now(at(18), business)
    assert not is_allowed_now(at(8, 59), business)


def test_window_wrapping_midnight() -> None:
    overnight = window(1320, 420)

    assert overnight.wraps_midnight
    assert is_allowed_now(at(23), overnight)
    assert is_allowed_now(at(6), overnight)
    assert not is_allowed_now(at(10), overnight)
    assert not is_allowed_now(at(7), overnight)


def test_evaluation_uses_subscription_timezone() -> None:
    # 12:00 UTC is 09:00 in Sao Paulo (UTC-3).
    sao_paulo = window(540, 600, tz="America/Sao_Paulo")

    assert local_weekday_and_minute(at(12), "America/Sao_Paulo") == (WEDNESDAY, 540)
    assert is_allowed_now(at(12), sao_paulo)
    assert not is_allowed_now(at(9), sao_paulo)


def test_local_weekday_can_differ_from_utc_weekday() -> None:
    # Wednesday 02:00 UTC is still Tuesday evening in Sao Paulo.
    tuesday_only = window(0, 1439, mask=1 << 2, tz="America/Sao_Paulo")

    assert local_weekday_and_minute(at(2), "America/Sao_Paulo") == (2, 23 * 60)
    assert is_allowed_now(at(2), tuesday_only)


def test_naive_datetime_is_treated_as_utc() -> None:
    assert local_weekday_and_minute(datetime(2024, 1, 10, 12, 30), "UTC") == (WEDNESDAY, 750)


def test_build_quiet_window_converts_hours_to_minutes() -> None:
    built = build_quiet_window(22, 7, [0, 6], "Europe/Lisbon")

    assert built.start_minute == 1320
    assert built.end_minute == 420
    assert built.week_mask == 0b1000001
    assert built.timezone == "Europe/Lisbon"


def test_build_quiet_window_wraps_hours_and_accepts_mask() -> None:
    built = build_quiet_window(24, 25, 0b0011111, "UTC")

    assert (built.start_minute, built.end_minute) == (0, 60)
    assert built.week_mask == 0b0011111


def test_mask_round_trip_and_hours_view() -> None:
    assert days_to_mask([1, 3, 5]) == 0b0101010
    assert mask_to_days(0b0101010) == [1, 3, 5]

    hours = window_to_hours(build_quiet_window(8, 20, [1, 2, 3], "UTC"))
    assert (hours.start_hour, hours.end_hour, hours.week_days) == (8, 20, [1, 2, 3])


@pytest.mark.parametrize(
    "kwargs",
    [
        {"start_minute": -1},
        {"end_minute": 1440},
        {"week_mask": 128},
        {"timezone": "Mars/Olympus_Mons"},
        {"timezone": None},
    ],
)
def test_invalid_window_is_rejected(kwargs) -> None:
    values = {"start_minute": 0, "end_minute": 60, "week_mask": 1, "timezone": "UTC", **kwargs}
    with pytest.raises(ValueError):
        QuietWindow(**values)
