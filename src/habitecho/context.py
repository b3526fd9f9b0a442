"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from sqlmodel import Session

from .clock import Clock, SystemClock
from .config import BaseConfig
from .infra.database import create_db_engine, create_session_factory, init_database
from .domain.repositories import HabitRepository, UserRepository
from .infra.repositories import SQLModelHabitRepository, SQLModelUserRepository
from .services.notifications import Notifier, create_notifier
from .services.reminders import ReminderDispatcher, create_dispatcher


@dataclass
class AppContext:
    """Configuration, repositories and collaborators shared by entry points."""

    config: BaseConfig
    session_factory: Callable[[], Session]
    habit_repo: HabitRepository
    user_repo: UserRepository
    notifier: Notifier
    clock: Clock

    def build_dispatcher(self) -> ReminderDispatcher:
        return create_dispatcher(self.habit_repo, self.notifier, self.config, clock=self.clock)


def create_app_context(
    config: Optional[BaseConfig] = None,
    *,
    notifier: Optional[Notifier] = None,
    clock: Optional[Clock] = None,
) -> AppContext:
    """Create and initialize the application context."""

    if config is None:
        config = BaseConfig()

    engine = create_db_engine(config)
    init_database(engine)
    session_factory = create_session_factory(engine)

    return AppContext(
        config=config,
        session_factory=session_factory,
        habit_repo=SQLModelHabitRepository(session_factory),
        user_repo=SQLModelUserRepository(session_factory),
        notifier=notifier or create_notifier(config),
        clock=clock or SystemClock(),
    )
