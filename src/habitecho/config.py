"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "HabitEcho"
    DB_FILENAME = "habitecho.db"
    BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"

    def __init__(self) -> None:
        self.DEV_MODE = _env_bool("HABITECHO_DEV_MODE", default=True)
        self.DATA_DIR = self._resolve_data_dir()
        self.DATABASE_URL = os.getenv("HABITECHO_DATABASE_URL", self._build_sqlite_url())
        self.LOG_LEVEL = os.getenv("HABITECHO_LOG_LEVEL", "INFO").upper()

        self.DEFAULT_TIMEZONE = os.getenv("HABITECHO_DEFAULT_TIMEZONE", "UTC")
        self.STREAK_THRESHOLD = _env_int("HABITECHO_STREAK_THRESHOLD", 50)
        self.REMINDER_INTERVAL_SECONDS = _env_int("HABITECHO_REMINDER_INTERVAL_SECONDS", 60)
        self.REMINDER_RETRY_MINUTES = _env_int("HABITECHO_REMINDER_RETRY_MINUTES", 5)
        self.NOTIFY_TIMEOUT_SECONDS = _env_float("HABITECHO_NOTIFY_TIMEOUT_SECONDS", 10.0)

        self.BREVO_API_KEY = os.getenv("BREVO_API_KEY", "")
        self.BREVO_SENDER_EMAIL = os.getenv("BREVO_SENDER_EMAIL", "")
        self.BREVO_SENDER_NAME = os.getenv("BREVO_SENDER_NAME", self.APP_NAME)

        if not 0 <= self.STREAK_THRESHOLD <= 100:
            raise ValueError("HABITECHO_STREAK_THRESHOLD must be between 0 and 100.")
        if self.REMINDER_RETRY_MINUTES < 0:
            raise ValueError("HABITECHO_REMINDER_RETRY_MINUTES cannot be negative.")
        if not self.DEV_MODE and not self.email_enabled:
            raise ValueError("BREVO_API_KEY and BREVO_SENDER_EMAIL must be set in non-dev mode.")

    @property
    def email_enabled(self) -> bool:
        """Return True when outbound email credentials are configured."""

        return bool(self.BREVO_API_KEY and self.BREVO_SENDER_EMAIL)

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("HABITECHO_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        """Construct the default SQLite URL inside the data directory."""

        return f"sqlite:///{self.DATA_DIR / self.DB_FILENAME}"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        engine_options: dict[str, Any] = {}
        if self.DATABASE_URL.startswith("sqlite"):
            # The reminder job runs on scheduler threads.
            engine_options["connect_args"] = {"check_same_thread": False, "timeout": 30}
        return engine_options


class TestConfig(BaseConfig):
    """Configuration for the test suite; never touches the real database."""

    TESTING = True

    def __init__(self, data_dir: Path | str | None = None) -> None:
        super().__init__()
        if data_dir is not None:
            self.DATA_DIR = Path(data_dir)
            self.DATABASE_URL = self._build_sqlite_url()
