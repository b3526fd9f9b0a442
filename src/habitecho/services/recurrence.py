"""Recurrence evaluation: is a habit due on a given day?"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from ..models.enums import Frequency
from .dates import DateInput, ZoneInput, generate_range, habit_timezone, normalize


def weekday_index(day: date) -> int:
    """Weekday with 0=Sunday .. 6=Saturday."""

    return (day.weekday() + 1) % 7


def _frequency_value(frequency) -> str:
    if isinstance(frequency, Frequency):
        return frequency.value
    return str(frequency or "").strip().upper()


def is_due(
    day: DateInput,
    frequency,
    schedule_days: Optional[Iterable[int]] = None,
    tz: ZoneInput = None,
) -> bool:
    """Return True when a habit with this rule is due on ``day``.

    Weekday and day-of-month are evaluated in ``tz`` so instants near midnight
    land on the user's calendar day, not the server's. Unknown frequencies are
    treated as due.
    """

    local_day = normalize(day, tz)
    days = set(schedule_days or ())
    value = _frequency_value(frequency)

    if value == Frequency.DAILY.value:
        return True
    if value in (Frequency.WEEKLY.value, Frequency.CUSTOM.value):
        return not days or weekday_index(local_day) in days
    if value == Frequency.MONTHLY.value:
        return not days or local_day.day in days
    return True


def habit_is_due(habit, day: DateInput, owner=None) -> bool:
    return is_due(day, habit.frequency, habit.schedule_days, habit_timezone(habit, owner))


def due_days(habit, start: date, end: date, owner=None) -> list[date]:
    """Due day keys for ``habit`` between ``start`` and ``end`` inclusive.

    Only the recurrence rule is applied; callers decide whether the habit's
    start and end dates bound the range.
    """

    tz = habit_timezone(habit, owner)
    return [
        day
        for day in generate_range(start, end)
        if is_due(day, habit.frequency, habit.schedule_days, tz)
    ]


def within_lifetime(habit, day: date) -> bool:
    """True when ``day`` falls between the habit's start and optional end date."""

    if day < habit.start_date:
        return False
    return habit.end_date is None or day <= habit.end_date


__all__ = ["due_days", "habit_is_due", "is_due", "weekday_index", "within_lifetime"]
