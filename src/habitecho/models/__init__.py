"""SQLModel table exports."""

from .enums import EntryStatus, Frequency, Trend
from .habit import CompletionRecord, Habit
from .user import User

__all__ = [
    "CompletionRecord",
    "EntryStatus",
    "Frequency",
    "Habit",
    "Trend",
    "User",
]
