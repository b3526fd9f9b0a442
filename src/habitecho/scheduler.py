"""Background scheduler driving the reminder dispatcher."""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler as APScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .services.reminders import ReminderDispatcher

logger = logging.getLogger("habitecho.scheduler")

REMINDER_JOB_ID = "habit_reminders"


class ReminderScheduler:
    """Runs :meth:`ReminderDispatcher.tick` on a fixed interval."""

    def __init__(self, dispatcher: ReminderDispatcher, *, interval_seconds: int = 60):
        """Initialize the scheduler.

        Args:
            dispatcher: Dispatcher whose ``tick`` is invoked each interval
            interval_seconds: Seconds between ticks
        """
        if interval_seconds < 1:
            raise ValueError("interval_seconds must be at least 1")
        self.dispatcher = dispatcher
        self.interval_seconds = interval_seconds
        self.scheduler = None

    @property
    def running(self) -> bool:
        return self.scheduler is not None and self.scheduler.running

    def start(self) -> None:
        """Start the background scheduler."""
        if self.scheduler is not None:
            logger.warning("Scheduler already running")
            return

        self.scheduler = APScheduler(job_defaults={"misfire_grace_time": self.interval_seconds})
        self.scheduler.add_job(
            func=self._run_tick,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=REMINDER_JOB_ID,
            name="Habit Reminder Dispatch",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(f"Reminder scheduler started (every {self.interval_seconds}s)")

    def stop(self) -> None:
        """Stop the background scheduler gracefully."""
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=True)
            self.scheduler = None
            self.dispatcher.close()
            logger.info("Reminder scheduler stopped")

    def _run_tick(self) -> None:
        try:
            self.dispatcher.tick()
        except Exception as exc:
            logger.error(f"Reminder tick failed: {exc}", exc_info=True)


def create_scheduler(dispatcher: ReminderDispatcher, config, *, auto_start: bool = False) -> ReminderScheduler:
    """Create and optionally start a reminder scheduler.

    Args:
        dispatcher: Reminder dispatcher to drive
        config: Configuration providing REMINDER_INTERVAL_SECONDS
        auto_start: Whether to start the scheduler immediately

    Returns:
        ReminderScheduler instance
    """
    scheduler = ReminderScheduler(dispatcher, interval_seconds=config.REMINDER_INTERVAL_SECONDS)
    if auto_start:
        scheduler.start()
    return scheduler
