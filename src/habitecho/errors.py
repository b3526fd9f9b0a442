"""Domain errors raised by the analytics engine.

Each error carries a stable ``code`` and an HTTP-style ``status_code`` so the
API layer can translate it without inspecting messages.
"""

from __future__ import annotations

from typing import Any, Optional


class HabitEchoError(Exception):
    """Base class for all HabitEcho domain errors."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str = "", *, details: Optional[Any] = None) -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message
        self.details = details


class InvalidDateError(HabitEchoError, ValueError):
    """Date input could not be parsed."""

    code = "INVALID_DATE"
    status_code = 400


class InvalidTimezoneError(HabitEchoError, ValueError):
    """Timezone name is not a known IANA zone."""

    code = "INVALID_TIMEZONE"
    status_code = 400


class ScheduleViolationError(HabitEchoError):
    """Completion logged for a day the habit is not scheduled."""

    code = "SCHEDULE_VIOLATION"
    status_code = 400


class NotFoundError(HabitEchoError):
    """Requested habit or record does not exist."""

    code = "NOT_FOUND"
    status_code = 404


class ConflictError(HabitEchoError):
    """A record already exists for this habit and day."""

    code = "CONFLICT"
    status_code = 409


__all__ = [
    "ConflictError",
    "HabitEchoError",
    "InvalidDateError",
    "InvalidTimezoneError",
    "NotFoundError",
    "ScheduleViolationError",
]
