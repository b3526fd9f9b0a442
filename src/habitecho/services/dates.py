"""Calendar normalization: day keys, ranges and timezone lookups.

A day key is a plain ``date``. It names one calendar day as seen on the habit's
wall clock, so two records for the same local day compare equal regardless of
which zone produced them. When an instant is needed (e.g. for storage engines
without a DATE type) :func:`day_start_utc` gives that day's UTC midnight.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional, Union

import pytz

from ..clock import Clock, SystemClock
from ..errors import InvalidDateError, InvalidTimezoneError

DEFAULT_TIMEZONE = "UTC"
DAY_KEY_FORMAT = "%Y-%m-%d"

_DAY_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_SYSTEM_CLOCK = SystemClock()

DateInput = Union[str, date, datetime]
ZoneInput = Union[str, tzinfo, None]


def resolve_timezone(tz: ZoneInput = None, default: str = DEFAULT_TIMEZONE) -> tzinfo:
    """Return a tzinfo for ``tz``; a missing zone falls back to ``default``."""

    if isinstance(tz, tzinfo):
        return tz
    name = (tz or "").strip() or default
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError as exc:
        raise InvalidTimezoneError(f"Unknown timezone: {name!r}") from exc


def habit_timezone(habit, owner=None, default: str = DEFAULT_TIMEZONE) -> str:
    """Zone name for a habit: its own, else its owner's, else ``default``."""

    return (
        getattr(habit, "timezone", None)
        or getattr(owner, "timezone", None)
        or default
    )


def normalize(date_input: DateInput, tz: ZoneInput = None) -> date:
    """Convert a date string or instant into the day key for ``tz``.

    ``YYYY-MM-DD`` strings are wall-clock days in ``tz`` and map to themselves.
    Other strings are parsed as ISO-8601 instants. Instants are converted into
    ``tz`` before the calendar day is taken; naive datetimes are read as UTC.
    """

    if isinstance(date_input, datetime):
        moment = date_input if date_input.tzinfo else pytz.utc.localize(date_input)
        return moment.astimezone(resolve_timezone(tz)).date()
    if isinstance(date_input, date):
        return date_input
    if isinstance(date_input, str):
        text = date_input.strip()
        if _DAY_KEY_RE.match(text):
            try:
                return datetime.strptime(text, DAY_KEY_FORMAT).date()
            except ValueError as exc:
                raise InvalidDateError(f"Invalid date: {date_input!r}") from exc
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError as exc:
            raise InvalidDateError(f"Invalid date: {date_input!r}") from exc
        return normalize(moment, tz)
    raise InvalidDateError(f"Unsupported date input: {date_input!r}")


def format_day(day: date) -> str:
    return day.strftime(DAY_KEY_FORMAT)


def day_start_utc(day: date) -> datetime:
    """Return the UTC midnight instant that represents ``day`` in storage."""

    return pytz.utc.localize(datetime(day.year, day.month, day.day))


def generate_range(start: date, end: date) -> list[date]:
    """Every calendar day from ``start`` to ``end`` inclusive, ascending."""

    if start > end:
        return []
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def now_in_zone(tz: ZoneInput = None, clock: Optional[Clock] = None) -> datetime:
    """Current local wall-clock time in ``tz``."""

    return (clock or _SYSTEM_CLOCK).now().astimezone(resolve_timezone(tz))


def today_in_zone(tz: ZoneInput = None, clock: Optional[Clock] = None) -> date:
    return now_in_zone(tz, clock).date()


__all__ = [
    "DAY_KEY_FORMAT",
    "DEFAULT_TIMEZONE",
    "day_start_utc",
    "format_day",
    "generate_range",
    "habit_timezone",
    "normalize",
    "now_in_zone",
    "resolve_timezone",
    "today_in_zone",
]
