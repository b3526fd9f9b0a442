"""Habit and completion record tables."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import ClassVar, List, Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from .enums import EntryStatus, Frequency


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Habit(SQLModel, table=True):
    """A recurring habit owned by a user.

    ``schedule_days`` holds weekday indexes (0=Sunday) for WEEKLY/CUSTOM habits
    and days of the month (1-31) for MONTHLY habits. An empty list means every day.
    """

    __tablename__: ClassVar[str] = "habit"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    name: str = Field(nullable=False, max_length=80, index=True)
    description: str = Field(default="", max_length=255)
    frequency: Frequency = Field(default=Frequency.DAILY, nullable=False)
    schedule_days: Optional[List[int]] = Field(default=None, sa_column=Column(JSON))
    start_date: date = Field(default_factory=date.today, nullable=False)
    end_date: Optional[date] = Field(default=None)
    timezone: Optional[str] = Field(default=None, max_length=64)
    reminder_time: Optional[str] = Field(default=None, max_length=5)
    is_active: bool = Field(default=True, nullable=False)
    deleted_at: Optional[datetime] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=_utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=_utcnow, nullable=False)


class CompletionRecord(SQLModel, table=True):
    """Outcome of a habit on one calendar day, keyed in the habit's timezone."""

    __tablename__: ClassVar[str] = "completion_record"
    __table_args__ = (UniqueConstraint("habit_id", "day", name="uq_completion_habit_day"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    habit_id: int = Field(foreign_key="habit.id", nullable=False, index=True)
    day: date = Field(nullable=False, index=True)
    status: EntryStatus = Field(default=EntryStatus.NOT_DONE, nullable=False)
    percent_complete: Optional[int] = Field(default=None, ge=0, le=100)
    completed: bool = Field(default=False, nullable=False)
    reminder_sent: bool = Field(default=False, nullable=False)
    reason: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=_utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=_utcnow, nullable=False)
