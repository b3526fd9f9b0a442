"""Enumerations shared by habit tables and analytics."""

from __future__ import annotations

from enum import Enum


class Frequency(str, Enum):
    """Recurrence class of a habit."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    CUSTOM = "CUSTOM"


class EntryStatus(str, Enum):
    """Outcome recorded for a habit on one day."""

    DONE = "DONE"
    PARTIAL = "PARTIAL"
    NOT_DONE = "NOT_DONE"


class Trend(str, Enum):
    """Direction of week-over-week momentum."""

    UP = "UP"
    DOWN = "DOWN"
    STABLE = "STABLE"
