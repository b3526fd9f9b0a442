"""Rolling averages, momentum and performance reports.

Every function here is read-only. Records are passed in by the caller or
fetched through the repository; nothing is written back.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Mapping, Optional, Sequence

from ..clock import Clock
from ..domain.repositories import HabitRepository
from ..models.enums import EntryStatus, Trend
from .completion import completion_rate, round_half_up, weighted_total
from .dates import DateInput, format_day, generate_range, habit_timezone, normalize, today_in_zone
from .entries import is_placeholder
from .recurrence import due_days, habit_is_due, is_due, within_lifetime
from .streaks import STREAK_THRESHOLD, compute_streaks, compute_user_streaks

ROLLING_WINDOWS = (7, 14, 30)
MOMENTUM_WINDOW_DAYS = 7
HEATMAP_DAYS = 365
SUMMARY_WINDOW_DAYS = 30
USER_STREAK_LOOKBACK_DAYS = 365


@dataclass(frozen=True)
class MomentumResult:
    current: int = 0
    previous: int = 0
    trend: Trend = Trend.STABLE
    percentage_change: int = 0


@dataclass(frozen=True)
class RollingAverages:
    last_7_days: int = 0
    last_14_days: int = 0
    last_30_days: int = 0


@dataclass(frozen=True)
class HeatmapEntry:
    """One heatmap cell: value is -1 when not due, 0 when missed, else 0-100."""

    day: str
    value: int
    status: Optional[EntryStatus]


@dataclass(frozen=True)
class HabitPerformance:
    habit_id: int
    habit_name: str
    completion_rate: int
    current_streak: int
    longest_streak: int
    last_completed_day: Optional[date]
    total_entries: int
    completed_entries: int
    partial_entries: int
    missed_entries: int
    rolling_averages: RollingAverages
    momentum: MomentumResult
    heatmap: list[HeatmapEntry] = field(default_factory=list)
    missing_days: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TodayCompletion:
    completed: int = 0
    total: int = 0
    percentage: int = 0


@dataclass(frozen=True)
class PerformanceSummary:
    total_habits: int
    active_habits: int
    overall_completion_rate: int
    current_streak: int
    longest_streak: int
    today: TodayCompletion
    rolling_averages: RollingAverages
    momentum: MomentumResult


def _records_on(records: Iterable, days: Iterable[date]) -> list:
    wanted = set(days)
    return [record for record in records if record.day in wanted]


def _created_day(habit) -> date:
    created_at = getattr(habit, "created_at", None)
    if created_at is None:
        return habit.start_date
    return normalize(created_at, habit_timezone(habit))


def rolling_window(habit, window_days: int, as_of: DateInput, records: Sequence) -> tuple[list[date], list]:
    """Due days and their records for a trailing window ending at ``as_of``.

    The window start moves forward to the later of the habit's start date and
    creation day, so a new habit is not charged for days before it existed.
    When any record predates that point (backfilled history) the original
    start is kept.
    """

    if window_days < 1:
        raise ValueError("window_days must be at least 1")
    tz = habit_timezone(habit)
    end = normalize(as_of, tz)
    start = end - timedelta(days=window_days - 1)

    clamp = max(habit.start_date, _created_day(habit))
    if clamp > start:
        if not any(record.day < clamp for record in records):
            start = clamp
    if habit.end_date is not None and habit.end_date < end:
        end = habit.end_date

    window = due_days(habit, start, end)
    return window, _records_on(records, window)


def rolling_average(habit, window_days: int, as_of: DateInput, records: Sequence) -> int:
    """Completion rate over the trailing ``window_days`` ending at ``as_of``."""

    window, window_records = rolling_window(habit, window_days, as_of, records)
    return completion_rate(window_records, len(window))


def rolling_averages(habit, as_of: DateInput, records: Sequence) -> RollingAverages:
    last_7, last_14, last_30 = (rolling_average(habit, days, as_of, records) for days in ROLLING_WINDOWS)
    return RollingAverages(last_7_days=last_7, last_14_days=last_14, last_30_days=last_30)


def momentum_from_rates(current: int, previous: int) -> MomentumResult:
    """Build a momentum result from two completion rates."""

    if current > previous:
        trend = Trend.UP
    elif current < previous:
        trend = Trend.DOWN
    else:
        trend = Trend.STABLE

    if previous > 0:
        change = round_half_up((current - previous) / previous * 100)
    else:
        change = 100 if current > 0 else 0
    return MomentumResult(current=current, previous=previous, trend=trend, percentage_change=change)


def _period_rate(habit, start: date, end: date, records: Sequence) -> int:
    window = due_days(habit, start, end)
    return completion_rate(_records_on(records, window), len(window))


def momentum(habit, as_of: DateInput, records: Sequence) -> MomentumResult:
    """Compare the last 7 days against the 7 days before them."""

    end = normalize(as_of, habit_timezone(habit))
    current_start = end - timedelta(days=MOMENTUM_WINDOW_DAYS - 1)
    previous_end = current_start - timedelta(days=1)
    previous_start = previous_end - timedelta(days=MOMENTUM_WINDOW_DAYS - 1)

    current = _period_rate(habit, current_start, end, records)
    previous = _period_rate(habit, previous_start, previous_end, records)
    return momentum_from_rates(current, previous)


def user_momentum(
    habits: Sequence, as_of: DateInput, records_by_habit: Mapping[int, Sequence]
) -> MomentumResult:
    """Per-habit momentum summed across habits.

    ``current`` and ``previous`` are sums of per-habit percentages, not a
    normalized blend; trend and change are derived from those sums.
    """

    current = 0
    previous = 0
    for habit in habits:
        result = momentum(habit, as_of, records_by_habit.get(habit.id, ()))
        current += result.current
        previous += result.previous
    return momentum_from_rates(current, previous)


def build_heatmap(habit, end: date, records: Sequence, days: int = HEATMAP_DAYS) -> list[HeatmapEntry]:
    by_day = {record.day: record for record in records}
    tz = habit_timezone(habit)
    cells = []
    for day in generate_range(end - timedelta(days=days - 1), end):
        if not is_due(day, habit.frequency, habit.schedule_days, tz):
            cells.append(HeatmapEntry(day=format_day(day), value=-1, status=None))
            continue
        record = by_day.get(day)
        if record is None:
            cells.append(HeatmapEntry(day=format_day(day), value=0, status=None))
        elif record.status == EntryStatus.DONE:
            cells.append(HeatmapEntry(day=format_day(day), value=100, status=record.status))
        else:
            cells.append(
                HeatmapEntry(day=format_day(day), value=record.percent_complete or 0, status=record.status)
            )
    return cells


def habit_performance(
    repo: HabitRepository,
    habit,
    as_of: Optional[DateInput] = None,
    *,
    clock: Optional[Clock] = None,
    threshold: int = STREAK_THRESHOLD,
) -> HabitPerformance:
    """Full statistics for one habit as of ``as_of`` (default: today in its zone)."""

    tz = habit_timezone(habit)
    today = normalize(as_of, tz) if as_of is not None else today_in_zone(tz, clock)
    # Reminder placeholders are not entries the user logged.
    records = [record for record in repo.query_range(habit.id, end=today) if not is_placeholder(record)]

    last_day = min(habit.end_date, today) if habit.end_date else today
    scheduled = due_days(habit, habit.start_date, last_day)
    scheduled_records = _records_on(records, scheduled)
    streaks = compute_streaks(records, scheduled, threshold)

    recorded_days = {record.day for record in records}
    missing = [format_day(day) for day in scheduled if day not in recorded_days]

    return HabitPerformance(
        habit_id=habit.id,
        habit_name=habit.name,
        completion_rate=completion_rate(scheduled_records, len(scheduled)),
        current_streak=streaks.current_streak,
        longest_streak=streaks.longest_streak,
        last_completed_day=streaks.last_completed_day,
        total_entries=len(records),
        completed_entries=sum(1 for r in records if r.status == EntryStatus.DONE),
        partial_entries=sum(1 for r in records if r.status == EntryStatus.PARTIAL),
        missed_entries=len(missing),
        rolling_averages=rolling_averages(habit, today, records),
        momentum=momentum(habit, today, records),
        heatmap=build_heatmap(habit, today, records),
        missing_days=missing,
    )


def _pooled_rate(total: float, due_count: int) -> int:
    if due_count == 0:
        return 0
    return max(0, min(100, round_half_up(total / due_count * 100)))


def _user_rolling_average(habits: Sequence, window_days: int, today: date, records_by_habit) -> int:
    total = 0.0
    due_count = 0
    for habit in habits:
        window, window_records = rolling_window(habit, window_days, today, records_by_habit.get(habit.id, ()))
        total += weighted_total(window_records)
        due_count += len(window)
    return _pooled_rate(total, due_count)


def performance_summary(
    repo: HabitRepository,
    user,
    as_of: Optional[DateInput] = None,
    *,
    clock: Optional[Clock] = None,
) -> PerformanceSummary:
    """Aggregate statistics across all of a user's non-deleted habits."""

    tz = user.timezone
    today = normalize(as_of, tz) if as_of is not None else today_in_zone(tz, clock)
    habits = repo.list_for_user(user.id)
    active = [habit for habit in habits if habit.is_active]

    lookback_start = today - timedelta(days=USER_STREAK_LOOKBACK_DAYS - 1)
    records_by_habit: dict[int, list] = defaultdict(list)
    for record in repo.query_user_range(user.id, lookback_start, today):
        records_by_habit[record.habit_id].append(record)

    due_today = [
        habit for habit in active if within_lifetime(habit, today) and habit_is_due(habit, today, user)
    ]
    done_today = sum(
        1
        for habit in due_today
        for record in records_by_habit.get(habit.id, ())
        if record.day == today and record.status == EntryStatus.DONE
    )
    today_stats = TodayCompletion(
        completed=done_today,
        total=len(due_today),
        percentage=round_half_up(done_today / len(due_today) * 100) if due_today else 0,
    )

    window_start = today - timedelta(days=SUMMARY_WINDOW_DAYS - 1)
    total = 0.0
    due_count = 0
    for habit in active:
        start = max(window_start, habit.start_date)
        end = min(today, habit.end_date) if habit.end_date else today
        window = due_days(habit, start, end)
        total += weighted_total(_records_on(records_by_habit.get(habit.id, ()), window))
        due_count += len(window)
    overall = _pooled_rate(total, due_count)

    streaks = compute_user_streaks(active, records_by_habit, lookback_start, today)
    last_7, last_14, last_30 = (
        _user_rolling_average(active, days, today, records_by_habit) for days in ROLLING_WINDOWS
    )

    return PerformanceSummary(
        total_habits=len(habits),
        active_habits=len(active),
        overall_completion_rate=overall,
        current_streak=streaks.current_streak,
        longest_streak=streaks.longest_streak,
        today=today_stats,
        rolling_averages=RollingAverages(last_7_days=last_7, last_14_days=last_14, last_30_days=last_30),
        momentum=user_momentum(active, today, records_by_habit),
    )


__all__ = [
    "HabitPerformance",
    "HeatmapEntry",
    "MomentumResult",
    "PerformanceSummary",
    "RollingAverages",
    "TodayCompletion",
    "habit_performance",
    "momentum",
    "momentum_from_rates",
    "performance_summary",
    "rolling_average",
    "rolling_averages",
    "rolling_window",
    "user_momentum",
]
