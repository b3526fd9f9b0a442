"""Habit and completion record repository protocol."""

from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Optional, Protocol

from ...models.habit import CompletionRecord, Habit
from ...models.user import User


class HabitRepository(Protocol):
    """Record store used by the analytics engine and reminder dispatcher."""

    def get_by_id(self, habit_id: int) -> Optional[Habit]:
        """Retrieve a non-deleted habit by ID."""
        ...

    def list_for_user(self, user_id: int, include_inactive: bool = True) -> list[Habit]:
        """List a user's non-deleted habits."""
        ...

    def create(self, habit: Habit) -> Habit:
        """Create a new habit."""
        ...

    def soft_delete(self, habit_id: int) -> None:
        """Mark a habit deleted without removing its history."""
        ...

    def list_reminder_candidates(self) -> list[tuple[Habit, User]]:
        """Active habits with a reminder time whose owner opted in and is verified."""
        ...

    # Completion record operations
    def find_one(self, habit_id: int, day: date) -> Optional[CompletionRecord]:
        """Get the record for a habit on one day."""
        ...

    def create_if_absent(
        self, habit_id: int, day: date, defaults: Mapping[str, Any]
    ) -> tuple[CompletionRecord, bool]:
        """Insert a record unless one exists; returns (record, created)."""
        ...

    def conditional_update(
        self,
        record_id: int,
        expected: Mapping[str, Any],
        changes: Mapping[str, Any],
    ) -> int:
        """Apply ``changes`` only where the row still matches ``expected``; return rows affected."""
        ...

    def update_record(self, record_id: int, changes: Mapping[str, Any]) -> CompletionRecord:
        """Unconditionally update a record."""
        ...

    def delete_record(self, record_id: int) -> None:
        """Delete a record."""
        ...

    def query_range(
        self, habit_id: int, start: Optional[date] = None, end: Optional[date] = None
    ) -> list[CompletionRecord]:
        """Records for a habit within a day range, oldest first."""
        ...

    def query_user_range(
        self, user_id: int, start: Optional[date] = None, end: Optional[date] = None
    ) -> list[CompletionRecord]:
        """Records for all of a user's non-deleted habits within a day range."""
        ...
