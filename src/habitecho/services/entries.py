"""Logging, updating and deleting completion records for a habit."""

from __future__ import annotations

from typing import Optional

from ..domain.repositories import HabitRepository
from ..errors import ConflictError, NotFoundError, ScheduleViolationError
from ..logging_config import get_logger
from ..models.enums import EntryStatus
from ..models.habit import CompletionRecord
from .completion import default_percent
from .dates import DateInput, habit_timezone, normalize
from .recurrence import is_due, within_lifetime

logger = get_logger("services.entries")

# State of a record the reminder dispatcher created before the user logged anything.
PLACEHOLDER_STATE = {
    "status": EntryStatus.NOT_DONE,
    "percent_complete": None,
    "completed": False,
    "reason": None,
    "notes": None,
}


def is_placeholder(record) -> bool:
    """True for a record the reminder dispatcher created that the user never touched."""

    return all(getattr(record, field) == value for field, value in PLACEHOLDER_STATE.items())


def _validate_percent(percent_complete: Optional[int]) -> None:
    if percent_complete is not None and not 0 <= percent_complete <= 100:
        raise ValueError("percent_complete must be between 0 and 100")


def log_completion(
    repo: HabitRepository,
    habit,
    day_input: DateInput,
    status: EntryStatus | str,
    *,
    percent_complete: Optional[int] = None,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
) -> CompletionRecord:
    """Record the outcome of ``habit`` on one day.

    A day accepts one create only. The sole exception is an untouched reminder
    placeholder, which is filled in with a compare-and-swap so a concurrent
    user edit is never overwritten.

    Raises:
        InvalidDateError: ``day_input`` cannot be parsed.
        ScheduleViolationError: the habit is not due that day.
        ConflictError: the day already has a logged outcome.
    """
    status = EntryStatus(status)
    _validate_percent(percent_complete)
    tz = habit_timezone(habit)
    day = normalize(day_input, tz)

    if not within_lifetime(habit, day):
        raise ScheduleViolationError(f"{day.isoformat()} is outside the habit's active dates")
    if not is_due(day, habit.frequency, habit.schedule_days, tz):
        raise ScheduleViolationError(f"Habit is not scheduled on {day.isoformat()}")

    fields = {
        "status": status,
        "percent_complete": default_percent(status, percent_complete),
        "completed": status == EntryStatus.DONE,
        "reason": reason,
        "notes": notes,
    }
    record, created = repo.create_if_absent(habit.id, day, fields)
    if created:
        return record

    if repo.conditional_update(record.id, PLACEHOLDER_STATE, fields) == 1:
        logger.info(
            "Filled reminder placeholder",
            extra={"habit_id": habit.id, "day": day.isoformat()},
        )
        return repo.find_one(habit.id, day)

    raise ConflictError(f"Entry already exists for {day.isoformat()}; update it instead")


def update_completion(
    repo: HabitRepository,
    habit,
    day_input: DateInput,
    *,
    status: EntryStatus | str | None = None,
    percent_complete: Optional[int] = None,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
) -> CompletionRecord:
    """Apply an explicit edit to an existing record; ``None`` leaves a field unchanged."""
    _validate_percent(percent_complete)
    day = normalize(day_input, habit_timezone(habit))
    record = repo.find_one(habit.id, day)
    if record is None:
        raise NotFoundError(f"No entry for {day.isoformat()}")

    changes: dict = {}
    if status is not None:
        status = EntryStatus(status)
        changes["status"] = status
        changes["completed"] = status == EntryStatus.DONE
        if percent_complete is None:
            derived = default_percent(status)
            if derived is not None:
                changes["percent_complete"] = derived
    if percent_complete is not None:
        changes["percent_complete"] = percent_complete
    if reason is not None:
        changes["reason"] = reason
    if notes is not None:
        changes["notes"] = notes

    if not changes:
        return record
    return repo.update_record(record.id, changes)


def delete_completion(repo: HabitRepository, habit, day_input: DateInput) -> None:
    day = normalize(day_input, habit_timezone(habit))
    record = repo.find_one(habit.id, day)
    if record is None:
        raise NotFoundError(f"No entry for {day.isoformat()}")
    repo.delete_record(record.id)


__all__ = [
    "PLACEHOLDER_STATE",
    "delete_completion",
    "is_placeholder",
    "log_completion",
    "update_completion",
]
