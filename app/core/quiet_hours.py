"""Timezone-aware evaluation of per-device delivery windows.

A quiet window describes when a subscription *may* receive non-critical
notifications. Minutes are minute-of-day in the subscription's local
timezone and the interval is half-open (``start`` inclusive, ``end``
exclusive). When ``start > end`` the interval wraps past midnight, e.g.
``22:00-07:00``.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

MINUTES_PER_DAY = 24 * 60
ALL_DAYS_MASK = 0b1111111


@dataclass(frozen=True)
class QuietWindow:
    """Allowed-delivery window stored on a subscription."""

    start_minute: int
    end_minute: int
    week_mask: int
    timezone: str

    def __post_init__(self) -> None:
        if not 0 <= self.start_minute < MINUTES_PER_DAY:
            raise ValueError("start_minute out of range")
        if not 0 <= self.end_minute < MINUTES_PER_DAY:
            raise ValueError("end_minute out of range")
        if not 0 <= self.week_mask <= ALL_DAYS_MASK:
            raise ValueError("week_mask out of range")
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, TypeError, ValueError) as exc:
            raise ValueError(f"Unknown IANA timezone: {self.timezone!r}") from exc

    @property
    def wraps_midnight(self) -> bool:
        return self.start_minute > self.end_minute


@dataclass(frozen=True)
class QuietHours:
    """Hour-granular representation exchanged with API clients."""

    start_hour: int
    end_hour: int
    week_days: list[int]
    timezone: str


def days_to_mask(weekdays: Iterable[int]) -> int:
    """Fold weekday indexes (0=Sunday..6=Saturday) into a 7-bit mask."""

    mask = 0
    for day in weekdays:
        if not 0 <= day <= 6:
            raise ValueError(f"Weekday index out of range: {day}")
        mask |= 1 << day
    return mask


def mask_to_days(mask: int) -> list[int]:
    """Expand a 7-bit mask into sorted weekday indexes."""

    return [day for day in range(7) if mask & (1 << day)]


def build_quiet_window(
    start_hour: int, end_hour: int, week_days: Iterable[int] | int, timezone: str
) -> QuietWindow:
    """Build a window from whole hours; hours are taken modulo 24."""

    week_mask = week_days if isinstance(week_days, int) else days_to_mask(week_days)
    return QuietWindow(
        start_minute=(start_hour % 24) * 60,
        end_minute=(end_hour % 24) * 60,
        week_mask=week_mask,
        timezone=timezone,
    )


def window_to_hours(window: QuietWindow) -> QuietHours:
    return QuietHours(
        start_hour=window.start_minute // 60,
        end_hour=window.end_minute // 60,
        week_days=mask_to_days(window.week_mask),
        timezone=window.timezone,
    )


def local_weekday_and_minute(now_utc: dt.datetime, timezone: str) -> tuple[int, int]:
    """Return ``(weekday, minute_of_day)`` for ``now_utc`` in ``timezone``.

    Weekday follows the Sunday-first convention used by the week mask.
    Naive datetimes are interpreted as UTC.
    """

    if now_utc.tzinfo is None:
        now_utc = now_utc.replace(tzinfo=dt.timezone.utc)
    local = now_utc.astimezone(ZoneInfo(timezone))
    # isoweekday: Monday=1 .. Sunday=7
    weekday = local.isoweekday() % 7
    return weekday, local.hour * 60 + local.minute


def is_allowed_now(now_utc: dt.datetime, window: QuietWindow) -> bool:
    """Return whether ``now_utc`` falls inside ``window`` on an allowed day."""

    weekday, minute_of_day = local_weekday_and_minute(now_utc, window.timezone)

    day_allowed = bool(window.week_mask & (1 << weekday))

    start, end = window.start_minute, window.end_minute
    if start <= end:
        in_window = start <= minute_of_day < end
    else:
        in_window = minute_of_day >= start or minute_of_day < end

    return day_allowed and in_window
