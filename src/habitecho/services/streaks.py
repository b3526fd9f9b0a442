"""Streak calculations over due days."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Mapping, Optional, Sequence

from ..models.enums import EntryStatus
from .recurrence import due_days, within_lifetime

STREAK_THRESHOLD = 50
USER_STREAK_RATIO = 0.5


@dataclass(frozen=True)
class StreakInfo:
    """Current and longest run of counting due days."""

    current_streak: int = 0
    longest_streak: int = 0
    last_completed_day: Optional[date] = None


def counts_toward_streak(record, threshold: int = STREAK_THRESHOLD) -> bool:
    if record is None:
        return False
    if record.status == EntryStatus.DONE:
        return True
    return record.percent_complete is not None and record.percent_complete >= threshold


def compute_streaks(
    records: Iterable,
    due_day_keys: Iterable[date],
    threshold: int = STREAK_THRESHOLD,
) -> StreakInfo:
    """Return current/longest streak by walking due days oldest to newest.

    A missing or non-counting record on a due day resets the running counter.
    Days absent from ``due_day_keys`` are skipped without touching it.
    """

    by_day = {record.day: record for record in records}
    running = 0
    longest = 0
    last_completed: Optional[date] = None

    for day in sorted(due_day_keys):
        if counts_toward_streak(by_day.get(day), threshold):
            running += 1
            longest = max(longest, running)
            last_completed = day
        else:
            running = 0

    return StreakInfo(current_streak=running, longest_streak=longest, last_completed_day=last_completed)


def compute_user_streaks(
    habits: Sequence,
    records_by_habit: Mapping[int, Iterable],
    start: date,
    end: date,
    ratio: float = USER_STREAK_RATIO,
) -> StreakInfo:
    """Streak across all habits of one user.

    A day counts when at least ``ratio`` of the habits due that day have a
    DONE or PARTIAL record. Days on which no habit is due are skipped.
    """

    scheduled: dict[date, int] = {}
    completed: dict[date, int] = {}

    for habit in habits:
        statuses = {record.day: record.status for record in records_by_habit.get(habit.id, ())}
        for day in due_days(habit, start, end):
            if not within_lifetime(habit, day):
                continue
            scheduled[day] = scheduled.get(day, 0) + 1
            if statuses.get(day) in (EntryStatus.DONE, EntryStatus.PARTIAL):
                completed[day] = completed.get(day, 0) + 1

    running = 0
    longest = 0
    last_completed: Optional[date] = None
    for day in sorted(scheduled):
        if completed.get(day, 0) >= scheduled[day] * ratio:
            running += 1
            longest = max(longest, running)
            last_completed = day
        else:
            running = 0

    return StreakInfo(current_streak=running, longest_streak=longest, last_completed_day=last_completed)


__all__ = [
    "STREAK_THRESHOLD",
    "StreakInfo",
    "compute_streaks",
    "compute_user_streaks",
    "counts_toward_streak",
]
