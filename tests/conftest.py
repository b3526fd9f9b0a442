"""Pytest configuration and shared fixtures for HabitEcho tests.

This module provides database fixtures, test data factories, and helper utilities
for testing analytics, repositories, and the reminder dispatcher without touching
the real app database.
"""

from __future__ import annotations

import tempfile
import threading
from datetime import date, datetime, timezone
from pathlib import Path

import pytest
from sqlmodel import Session, SQLModel, create_engine

from habitecho.clock import FixedClock
from habitecho.infra.repositories import SQLModelHabitRepository, SQLModelUserRepository
from habitecho.models import CompletionRecord, EntryStatus, Frequency, Habit, User
from habitecho.services.completion import default_percent

# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test.

    A file (not ``:memory:``) lets the concurrency tests open one connection
    per thread against the same database.

    Yields:
        Engine: SQLModel engine connected to test database
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory matching the ``Callable[[], Session]`` repositories expect."""

    def factory():
        return Session(db_engine, expire_on_commit=False)

    return factory


@pytest.fixture
def habit_repo(session_factory) -> SQLModelHabitRepository:
    return SQLModelHabitRepository(session_factory)


@pytest.fixture
def user_repo(session_factory) -> SQLModelUserRepository:
    return SQLModelUserRepository(session_factory)


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def user_factory(user_repo):
    """Factory for creating test users.

    Returns:
        Callable: Function that creates and persists User instances
    """
    counter = {"n": 0}

    def _create_user(
        email: str | None = None,
        full_name: str = "Test User",
        tz: str = "UTC",
        email_verified: bool = True,
        email_reminders_enabled: bool = True,
    ) -> User:
        counter["n"] += 1
        return user_repo.create(
            User(
                email=email or f"user{counter['n']}@example.com",
                full_name=full_name,
                timezone=tz,
                email_verified=email_verified,
                email_reminders_enabled=email_reminders_enabled,
            )
        )

    return _create_user


@pytest.fixture
def user(user_factory) -> User:
    """Create a default verified user for scoping data."""
    return user_factory(email="tester@example.com")


@pytest.fixture
def habit_factory(habit_repo, user):
    """Factory for creating test habits.

    Returns:
        Callable: Function that creates and persists Habit instances
    """

    def _create_habit(
        name: str = "Test Habit",
        frequency: Frequency = Frequency.DAILY,
        schedule_days: list[int] | None = None,
        start_date: date = date(2024, 1, 1),
        end_date: date | None = None,
        tz: str | None = "UTC",
        reminder_time: str | None = None,
        is_active: bool = True,
        created_at: datetime | None = None,
        owner: User | None = None,
    ) -> Habit:
        """Create a test habit with sensible defaults.

        ``created_at`` defaults to midnight UTC of ``start_date`` so rolling
        windows are not clamped by the wall-clock date the tests run on.
        """
        owner = owner or user
        if created_at is None:
            created_at = datetime(start_date.year, start_date.month, start_date.day, tzinfo=timezone.utc)
        return habit_repo.create(
            Habit(
                user_id=owner.id,
                name=name,
                frequency=frequency,
                schedule_days=schedule_days,
                start_date=start_date,
                end_date=end_date,
                timezone=tz,
                reminder_time=reminder_time,
                is_active=is_active,
                created_at=created_at,
            )
        )

    return _create_habit


@pytest.fixture
def record_factory(habit_repo):
    """Factory for inserting completion records directly through the repository."""

    def _create_record(
        habit: Habit,
        day: date,
        status: EntryStatus = EntryStatus.DONE,
        percent_complete: int | None = None,
        reminder_sent: bool = False,
    ) -> CompletionRecord:
        record, created = habit_repo.create_if_absent(
            habit.id,
            day,
            {
                "status": status,
                "percent_complete": default_percent(status, percent_complete),
                "completed": status == EntryStatus.DONE,
                "reminder_sent": reminder_sent,
            },
        )
        assert created, f"record for {day} already existed"
        return record

    return _create_record


# =============================================================================
# Collaborator doubles
# =============================================================================


class RecordingNotifier:
    """Notifier double that records every message and can be told to fail."""

    def __init__(self, result: bool = True, error: Exception | None = None, delay: float = 0.0):
        self.result = result
        self.error = error
        self.delay = delay
        self.sent: list[tuple[str, str, str]] = []
        self._lock = threading.Lock()

    def send(self, recipient: str, subject: str, body: str) -> bool:
        if self.delay:
            threading.Event().wait(self.delay)
        with self._lock:
            self.sent.append((recipient, subject, body))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def notifier_factory():
    """Return the RecordingNotifier class so tests can configure failures."""
    return RecordingNotifier


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 3, 4, 12, 0, tzinfo=timezone.utc))

