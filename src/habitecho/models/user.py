"""User model carrying timezone and reminder preferences."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    """Habit owner with contact details and notification opt-in."""

    __tablename__: ClassVar[str] = "user"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(nullable=False, unique=True, index=True, max_length=255)
    full_name: str = Field(default="", max_length=120)
    timezone: str = Field(default="UTC", nullable=False, max_length=64)
    email_verified: bool = Field(default=False, nullable=False)
    email_reminders_enabled: bool = Field(default=True, nullable=False)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
