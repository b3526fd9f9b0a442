"""Service module exports."""

from . import (
    completion,
    dates,
    entries,
    notifications,
    performance,
    recurrence,
    reminders,
    streaks,
)

__all__ = [
    "completion",
    "dates",
    "entries",
    "notifications",
    "performance",
    "recurrence",
    "reminders",
    "streaks",
]
