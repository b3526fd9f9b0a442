"""SQLModel implementation of Habit repository."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Callable, Mapping, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ...errors import NotFoundError
from ...logging_config import get_logger
from ...models.habit import CompletionRecord, Habit
from ...models.user import User

logger = get_logger("repositories.habit")

# Fields a caller may use in a compare-and-swap update.
_RECORD_FIELDS = frozenset(
    {"status", "percent_complete", "completed", "reminder_sent", "reason", "notes"}
)


def _check_fields(fields: Mapping[str, Any]) -> None:
    unknown = set(fields) - _RECORD_FIELDS
    if unknown:
        raise ValueError(f"Unsupported completion record fields: {sorted(unknown)}")


class SQLModelHabitRepository:
    """SQLModel-based habit and completion record repository."""

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, habit_id: int) -> Optional[Habit]:
        """Retrieve a non-deleted habit by ID."""
        with self.session_factory() as session:
            obj = session.exec(
                select(Habit).where(Habit.id == habit_id, Habit.deleted_at == None)  # noqa: E711
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_for_user(self, user_id: int, include_inactive: bool = True) -> list[Habit]:
        """List a user's non-deleted habits ordered by name."""
        with self.session_factory() as session:
            statement = (
                select(Habit)
                .where(Habit.user_id == user_id)
                .where(Habit.deleted_at == None)  # noqa: E711
                .order_by(Habit.name)  # type: ignore
            )
            if not include_inactive:
                statement = statement.where(Habit.is_active == True)  # noqa: E712

            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def create(self, habit: Habit) -> Habit:
        """Create a new habit."""
        with self.session_factory() as session:
            session.add(habit)
            session.commit()
            session.refresh(habit)
            session.expunge(habit)
            return habit

    def soft_delete(self, habit_id: int) -> None:
        """Stamp ``deleted_at``; completion history stays for analytics."""
        with self.session_factory() as session:
            habit = session.get(Habit, habit_id)
            if habit is None or habit.deleted_at is not None:
                raise NotFoundError(f"Habit {habit_id} not found")
            habit.deleted_at = datetime.now(timezone.utc)
            habit.is_active = False
            session.add(habit)
            session.commit()

    def list_reminder_candidates(self) -> list[tuple[Habit, User]]:
        """Active habits with reminders whose verified owner opted into email."""
        with self.session_factory() as session:
            statement = (
                select(Habit, User)
                .join(User, Habit.user_id == User.id)
                .where(Habit.is_active == True)  # noqa: E712
                .where(Habit.deleted_at == None)  # noqa: E711
                .where(Habit.reminder_time != None)  # noqa: E711
                .where(User.email_verified == True)  # noqa: E712
                .where(User.email_reminders_enabled == True)  # noqa: E712
                .order_by(Habit.id)  # type: ignore
            )
            rows = [(habit, user) for habit, user in session.exec(statement).all()]
            session.expunge_all()
            return rows

    # Completion record operations
    def find_one(self, habit_id: int, day: date) -> Optional[CompletionRecord]:
        """Get the record for a habit on one day."""
        with self.session_factory() as session:
            obj = session.exec(
                select(CompletionRecord)
                .where(CompletionRecord.habit_id == habit_id)
                .where(CompletionRecord.day == day)
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def create_if_absent(
        self, habit_id: int, day: date, defaults: Mapping[str, Any]
    ) -> tuple[CompletionRecord, bool]:
        """Insert a record unless one exists for (habit, day).

        Losing an insert race to another writer is not an error: the winner's
        row is read back and returned with ``created=False``.
        """
        _check_fields(defaults)
        existing = self.find_one(habit_id, day)
        if existing is not None:
            return existing, False

        try:
            with self.session_factory() as session:
                record = CompletionRecord(habit_id=habit_id, day=day, **defaults)
                session.add(record)
                session.commit()
                session.refresh(record)
                session.expunge(record)
                return record, True
        except IntegrityError:
            existing = self.find_one(habit_id, day)
            if existing is None:
                raise
            logger.info(
                "Completion record created concurrently",
                extra={"habit_id": habit_id, "day": day.isoformat()},
            )
            return existing, False

    def conditional_update(
        self,
        record_id: int,
        expected: Mapping[str, Any],
        changes: Mapping[str, Any],
    ) -> int:
        """Single ``UPDATE ... WHERE`` compare-and-swap; returns rows affected."""
        _check_fields(expected)
        _check_fields(changes)
        statement = update(CompletionRecord).where(CompletionRecord.id == record_id)
        for field, value in expected.items():
            column = getattr(CompletionRecord, field)
            statement = statement.where(column.is_(None) if value is None else column == value)
        statement = statement.values(**changes, updated_at=datetime.now(timezone.utc))

        with self.session_factory() as session:
            result = session.execute(statement)
            session.commit()
            return result.rowcount

    def update_record(self, record_id: int, changes: Mapping[str, Any]) -> CompletionRecord:
        """Unconditionally update a record."""
        _check_fields(changes)
        with self.session_factory() as session:
            record = session.get(CompletionRecord, record_id)
            if record is None:
                raise NotFoundError(f"Completion record {record_id} not found")
            for field, value in changes.items():
                setattr(record, field, value)
            record.updated_at = datetime.now(timezone.utc)
            session.add(record)
            session.commit()
            session.refresh(record)
            session.expunge(record)
            return record

    def delete_record(self, record_id: int) -> None:
        """Delete a record."""
        with self.session_factory() as session:
            record = session.get(CompletionRecord, record_id)
            if record is None:
                raise NotFoundError(f"Completion record {record_id} not found")
            session.delete(record)
            session.commit()

    def query_range(
        self, habit_id: int, start: Optional[date] = None, end: Optional[date] = None
    ) -> list[CompletionRecord]:
        """Records for a habit within a day range, oldest first."""
        with self.session_factory() as session:
            statement = select(CompletionRecord).where(CompletionRecord.habit_id == habit_id)
            if start is not None:
                statement = statement.where(CompletionRecord.day >= start)
            if end is not None:
                statement = statement.where(CompletionRecord.day <= end)
            rows = list(session.exec(statement.order_by(CompletionRecord.day)).all())  # type: ignore
            session.expunge_all()
            return rows

    def query_user_range(
        self, user_id: int, start: Optional[date] = None, end: Optional[date] = None
    ) -> list[CompletionRecord]:
        """Records for all of a user's non-deleted habits, oldest first."""
        with self.session_factory() as session:
            statement = (
                select(CompletionRecord)
                .join(Habit, CompletionRecord.habit_id == Habit.id)
                .where(Habit.user_id == user_id)
                .where(Habit.deleted_at == None)  # noqa: E711
            )
            if start is not None:
                statement = statement.where(CompletionRecord.day >= start)
            if end is not None:
                statement = statement.where(CompletionRecord.day <= end)
            statement = statement.order_by(CompletionRecord.day, CompletionRecord.habit_id)  # type: ignore
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows
