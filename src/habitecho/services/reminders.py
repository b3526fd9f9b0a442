"""Reminder dispatcher: at most one reminder per habit per scheduled day.

Each (habit, day) moves through::

    NoRecord -> RecordExists(reminder_sent=False) -> Claimed(reminder_sent=True) -> Sent | RolledBack

The claim is a single conditional UPDATE, so any number of overlapping ticks,
threads or processes produce exactly one winner per (habit, day).
"""

from __future__ import annotations

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from ..clock import Clock, SystemClock
from ..domain.repositories import HabitRepository
from ..logging_config import get_logger
from .dates import DEFAULT_TIMEZONE, habit_timezone, resolve_timezone
from .entries import PLACEHOLDER_STATE
from .notifications import Notifier, reminder_message
from .recurrence import habit_is_due, within_lifetime

logger = get_logger("services.reminders")

PLACEHOLDER_DEFAULTS = {**PLACEHOLDER_STATE, "reminder_sent": False}
CLAIM_EXPECTED = {"reminder_sent": False, "completed": False}
CLAIM_CHANGES = {"reminder_sent": True}


class ReminderOutcome(str, Enum):
    NOT_DUE = "not_due"
    ALREADY_HANDLED = "already_handled"
    CLAIM_LOST = "claim_lost"
    SENT = "sent"
    ROLLED_BACK = "rolled_back"
    ERROR = "error"


@dataclass
class TickReport:
    """Counts of outcomes for one dispatcher tick."""

    started_at: datetime
    outcomes: Counter = field(default_factory=Counter)

    def record(self, outcome: ReminderOutcome) -> None:
        self.outcomes[outcome] += 1

    @property
    def sent(self) -> int:
        return self.outcomes[ReminderOutcome.SENT]

    @property
    def rolled_back(self) -> int:
        return self.outcomes[ReminderOutcome.ROLLED_BACK]

    @property
    def errors(self) -> int:
        return self.outcomes[ReminderOutcome.ERROR]

    def as_dict(self) -> dict[str, int]:
        return {outcome.value: self.outcomes[outcome] for outcome in ReminderOutcome}


def parse_reminder_time(value: str) -> int:
    """Minutes after midnight for an ``HH:MM`` string."""

    parsed = datetime.strptime(value.strip(), "%H:%M")
    return parsed.hour * 60 + parsed.minute


class ReminderDispatcher:
    """Periodic claim-and-send job for habit reminders.

    Args:
        repo: Record store providing candidates and the conditional update
        notifier: Outbound transport
        clock: Source of "now"; defaults to the system clock
        default_timezone: Zone used when neither habit nor owner sets one
        retry_minutes: Minutes after the reminder time during which the
            habit is still eligible, so a rolled-back send is retried on a
            later tick the same day. 0 means the exact minute only.
        send_timeout: Seconds to wait for the notifier before treating the
            send as failed. A send still queued at that point is cancelled;
            one already running cannot be stopped and may still deliver after
            its claim was reverted, so a retry inside the window can produce
            a second message for a slow transport.
    """

    def __init__(
        self,
        repo: HabitRepository,
        notifier: Notifier,
        *,
        clock: Optional[Clock] = None,
        default_timezone: str = DEFAULT_TIMEZONE,
        retry_minutes: int = 0,
        send_timeout: float = 10.0,
        max_workers: int = 4,
    ) -> None:
        if retry_minutes < 0:
            raise ValueError("retry_minutes cannot be negative")
        self.repo = repo
        self.notifier = notifier
        self.clock = clock or SystemClock()
        self.default_timezone = default_timezone
        self.retry_minutes = retry_minutes
        self.send_timeout = send_timeout
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="reminder-send")

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    def tick(self) -> TickReport:
        """Process every reminder candidate once; one habit's failure never aborts the batch."""
        now = self.clock.now()
        report = TickReport(started_at=now)

        candidates = self.repo.list_reminder_candidates()
        for habit, owner in candidates:
            try:
                outcome = self.process(habit, owner, now)
            except Exception:
                logger.exception("Reminder processing failed", extra={"habit_id": habit.id})
                outcome = ReminderOutcome.ERROR
            report.record(outcome)

        if report.sent or report.rolled_back or report.errors:
            logger.info("Reminder tick finished", extra={"candidates": len(candidates), **report.as_dict()})
        return report

    def is_reminder_time(self, reminder_time: str, local_now: datetime) -> bool:
        elapsed = local_now.hour * 60 + local_now.minute - parse_reminder_time(reminder_time)
        return 0 <= elapsed <= self.retry_minutes

    def process(self, habit, owner, now: Optional[datetime] = None) -> ReminderOutcome:
        """Run the state machine for one habit at ``now``."""
        now = now or self.clock.now()
        tz = resolve_timezone(habit_timezone(habit, owner, self.default_timezone))
        local_now = now.astimezone(tz)
        today = local_now.date()

        if not self.is_reminder_time(habit.reminder_time, local_now):
            return ReminderOutcome.NOT_DUE
        if not within_lifetime(habit, today) or not habit_is_due(habit, today, owner):
            return ReminderOutcome.NOT_DUE

        record, created = self.repo.create_if_absent(habit.id, today, PLACEHOLDER_DEFAULTS)
        if created:
            logger.debug("Created reminder placeholder", extra={"habit_id": habit.id, "day": today.isoformat()})
        if record.completed or record.reminder_sent:
            return ReminderOutcome.ALREADY_HANDLED

        return self.claim_and_send(record, habit, owner)

    def claim_and_send(self, record, habit, owner) -> ReminderOutcome:
        """Claim the reminder for ``record`` and deliver it if this caller won."""
        claimed = self.repo.conditional_update(record.id, CLAIM_EXPECTED, CLAIM_CHANGES)
        if claimed != 1:
            logger.debug("Reminder already claimed", extra={"habit_id": habit.id, "record_id": record.id})
            return ReminderOutcome.CLAIM_LOST

        subject, body = reminder_message(habit, owner)
        if self._deliver(owner.email, subject, body, habit_id=habit.id):
            logger.info("Habit reminder sent", extra={"habit_id": habit.id, "user_id": owner.id})
            return ReminderOutcome.SENT

        self.repo.conditional_update(record.id, CLAIM_CHANGES, {"reminder_sent": False})
        logger.error(
            "Reminder delivery failed; claim reverted",
            extra={"habit_id": habit.id, "record_id": record.id},
        )
        return ReminderOutcome.ROLLED_BACK

    def _deliver(self, recipient: str, subject: str, body: str, *, habit_id: int) -> bool:
        future = self._executor.submit(self.notifier.send, recipient, subject, body)
        try:
            return bool(future.result(timeout=self.send_timeout))
        except FutureTimeout:
            future.cancel()
            logger.warning(
                "Reminder delivery timed out",
                extra={"habit_id": habit_id, "timeout_seconds": self.send_timeout},
            )
            return False
        except Exception:
            logger.exception("Notifier raised", extra={"habit_id": habit_id})
            return False


def create_dispatcher(
    repo: HabitRepository, notifier: Notifier, config, *, clock: Optional[Clock] = None
) -> ReminderDispatcher:
    """Build a dispatcher from configuration values."""

    return ReminderDispatcher(
        repo,
        notifier,
        clock=clock,
        default_timezone=config.DEFAULT_TIMEZONE,
        retry_minutes=config.REMINDER_RETRY_MINUTES,
        send_timeout=config.NOTIFY_TIMEOUT_SECONDS,
    )


__all__ = [
    "ReminderDispatcher",
    "ReminderOutcome",
    "TickReport",
    "create_dispatcher",
    "parse_reminder_time",
]
