"""Tests for rolling averages, momentum and performance reports."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from habitecho.models import EntryStatus, Frequency, Trend
from habitecho.services.entries import is_placeholder, log_completion
from habitecho.services.performance import (
    HEATMAP_DAYS,
    build_heatmap,
    habit_performance,
    momentum,
    momentum_from_rates,
    performance_summary,
    rolling_average,
    rolling_averages,
    rolling_window,
    user_momentum,
)
from habitecho.services.reminders import PLACEHOLDER_DEFAULTS, ReminderDispatcher, ReminderOutcome

AS_OF = date(2024, 3, 4)  # Monday


def _record(day, status=EntryStatus.DONE, percent=None):
    return SimpleNamespace(day=day, status=status, percent_complete=percent)


def _daily_habit(habit_id=1, start=date(2024, 1, 1), created=None, end=None):
    return SimpleNamespace(
        id=habit_id,
        frequency=Frequency.DAILY,
        schedule_days=None,
        start_date=start,
        end_date=end,
        timezone="UTC",
        created_at=created or datetime(start.year, start.month, start.day, tzinfo=timezone.utc),
    )


def _span(start, end, **kwargs):
    days = (end - start).days + 1
    return [_record(start + timedelta(days=offset), **kwargs) for offset in range(days)]


class TestRollingAverage:
    def test_window_covers_trailing_days(self):
        habit = _daily_habit()
        records = _span(AS_OF - timedelta(days=6), AS_OF)
        averages = rolling_averages(habit, AS_OF, records)
        assert averages.last_7_days == 100
        assert averages.last_14_days == 50
        assert averages.last_30_days == 23

    def test_new_habit_is_not_charged_for_days_before_it_existed(self):
        """A habit created two days ago with every day done reads 100%, not 10%."""
        habit = _daily_habit(start=AS_OF - timedelta(days=2))
        records = _span(AS_OF - timedelta(days=2), AS_OF)
        window, _ = rolling_window(habit, 30, AS_OF, records)
        assert len(window) == 3
        assert rolling_average(habit, 30, AS_OF, records) == 100

    def test_creation_day_clamps_even_with_earlier_start_date(self):
        habit = _daily_habit(
            start=date(2024, 2, 1), created=datetime(2024, 3, 2, 15, 0, tzinfo=timezone.utc)
        )
        records = _span(date(2024, 3, 2), AS_OF)
        assert rolling_average(habit, 30, AS_OF, records) == 100

    def test_backfilled_history_keeps_full_window(self):
        habit = _daily_habit(
            start=date(2024, 2, 1), created=datetime(2024, 3, 2, tzinfo=timezone.utc)
        )
        records = [_record(date(2024, 2, 20))] + _span(date(2024, 3, 2), AS_OF)
        window, window_records = rolling_window(habit, 30, AS_OF, records)
        assert window[0] == date(2024, 2, 4)
        assert len(window) == 30
        assert len(window_records) == 4
        assert rolling_average(habit, 30, AS_OF, records) == 13

    def test_window_stops_at_end_date(self):
        habit = _daily_habit(end=date(2024, 3, 1))
        records = _span(date(2024, 2, 27), date(2024, 3, 1))
        window, _ = rolling_window(habit, 7, AS_OF, records)
        assert window[-1] == date(2024, 3, 1)
        assert rolling_average(habit, 7, AS_OF, records) == 100

    def test_only_due_days_count(self):
        habit = _daily_habit()
        habit.frequency = Frequency.WEEKLY
        habit.schedule_days = [1]
        assert rolling_average(habit, 7, AS_OF, [_record(AS_OF)]) == 100

    def test_window_must_be_positive(self):
        with pytest.raises(ValueError):
            rolling_window(_daily_habit(), 0, AS_OF, [])

    def test_zero_due_days_reads_zero(self):
        habit = _daily_habit(start=AS_OF + timedelta(days=5))
        assert rolling_average(habit, 7, AS_OF, []) == 0


class TestMomentum:
    @pytest.mark.parametrize(
        ("current", "previous", "trend", "change"),
        [
            (0, 0, Trend.STABLE, 0),
            (50, 0, Trend.UP, 100),
            (0, 50, Trend.DOWN, -100),
            (75, 50, Trend.UP, 50),
            (50, 75, Trend.DOWN, -33),
            (60, 60, Trend.STABLE, 0),
        ],
    )
    def test_from_rates(self, current, previous, trend, change):
        result = momentum_from_rates(current, previous)
        assert result.trend == trend
        assert result.percentage_change == change
        assert (result.current, result.previous) == (current, previous)

    def test_week_over_week(self):
        habit = _daily_habit()
        records = _span(AS_OF - timedelta(days=6), AS_OF)
        result = momentum(habit, AS_OF, records)
        assert result.current == 100
        assert result.previous == 0
        assert result.trend == Trend.UP
        assert result.percentage_change == 100

    def test_equal_weeks_are_stable(self):
        habit = _daily_habit()
        records = _span(AS_OF - timedelta(days=13), AS_OF)
        result = momentum(habit, AS_OF, records)
        assert result.trend == Trend.STABLE
        assert result.percentage_change == 0

    def test_user_momentum_sums_habit_rates(self):
        improving = _daily_habit(habit_id=1)
        slipping = _daily_habit(habit_id=2)
        previous_week = (AS_OF - timedelta(days=13), AS_OF - timedelta(days=7))
        this_week = (AS_OF - timedelta(days=6), AS_OF)
        records = {
            1: _span(*previous_week, status=EntryStatus.PARTIAL, percent=50) + _span(*this_week),
            2: _span(*previous_week, status=EntryStatus.PARTIAL, percent=50),
        }
        result = user_momentum([improving, slipping], AS_OF, records)
        assert result.current == 100
        assert result.previous == 100
        assert result.trend == Trend.STABLE
        assert result.percentage_change == 0

    def test_user_momentum_without_habits(self):
        result = user_momentum([], AS_OF, {})
        assert result.trend == Trend.STABLE
        assert result.percentage_change == 0


class TestHeatmap:
    def test_cell_values(self):
        habit = _daily_habit()
        habit.frequency = Frequency.WEEKLY
        habit.schedule_days = [1]
        records = [_record(date(2024, 2, 26), EntryStatus.PARTIAL, 40)]
        cells = build_heatmap(habit, AS_OF, records, days=8)
        assert [cell.day for cell in (cells[0], cells[-1])] == ["2024-02-26", "2024-03-04"]
        assert cells[0].value == 40
        assert cells[0].status == EntryStatus.PARTIAL
        assert all(cell.value == -1 for cell in cells[1:-1])
        assert cells[-1].value == 0
        assert cells[-1].status is None

    def test_done_is_full(self):
        cells = build_heatmap(_daily_habit(), AS_OF, [_record(AS_OF, EntryStatus.DONE, 30)], days=1)
        assert cells[0].value == 100


class TestHabitPerformance:
    @pytest.fixture
    def tracked_habit(self, habit_factory, record_factory):
        habit = habit_factory(name="Read", start_date=date(2024, 3, 1))
        record_factory(habit, date(2024, 3, 1))
        record_factory(habit, date(2024, 3, 2), EntryStatus.PARTIAL, 60)
        record_factory(habit, date(2024, 3, 4))
        record_factory(habit, date(2024, 3, 5))
        return habit

    def test_report(self, habit_repo, tracked_habit):
        report = habit_performance(habit_repo, tracked_habit, "2024-03-04")
        assert report.habit_name == "Read"
        assert report.completion_rate == 65
        assert report.current_streak == 1
        assert report.longest_streak == 2
        assert report.last_completed_day == date(2024, 3, 4)
        assert report.total_entries == 3
        assert report.completed_entries == 2
        assert report.partial_entries == 1
        assert report.missed_entries == 1
        assert report.missing_days == ["2024-03-03"]
        assert report.rolling_averages.last_7_days == 65

    def test_momentum_and_heatmap(self, habit_repo, tracked_habit):
        report = habit_performance(habit_repo, tracked_habit, "2024-03-04")
        assert report.momentum.current == 37
        assert report.momentum.trend == Trend.UP
        assert len(report.heatmap) == HEATMAP_DAYS
        assert report.heatmap[-1].day == "2024-03-04"
        assert report.heatmap[-1].value == 100
        assert report.heatmap[-2].value == 0

    def test_as_of_defaults_to_clock(self, habit_repo, tracked_habit, clock):
        assert habit_performance(habit_repo, tracked_habit, clock=clock) == habit_performance(
            habit_repo, tracked_habit, AS_OF
        )

    def test_threshold_changes_streaks(self, habit_repo, tracked_habit):
        report = habit_performance(habit_repo, tracked_habit, AS_OF, threshold=70)
        assert report.longest_streak == 1


class TestReminderPlaceholders:
    """A reminder that went unanswered leaves the day missing."""

    @pytest.fixture
    def reminded_habit(self, habit_factory, record_factory, habit_repo, notifier, clock, user):
        habit = habit_factory(name="Stretch", start_date=date(2024, 3, 1), reminder_time="12:00")
        for offset in range(3):
            record_factory(habit, date(2024, 3, 1) + timedelta(days=offset))
        dispatcher = ReminderDispatcher(habit_repo, notifier, clock=clock)
        try:
            assert dispatcher.process(habit, user) == ReminderOutcome.SENT
        finally:
            dispatcher.close()
        return habit

    def test_unanswered_reminder_day_is_missing(self, habit_repo, reminded_habit):
        report = habit_performance(habit_repo, reminded_habit, "2024-03-04")

        assert report.missing_days == ["2024-03-04"]
        assert report.missed_entries == 1
        assert report.total_entries == 3
        assert report.completion_rate == 75
        assert report.current_streak == 0
        assert report.heatmap[-1].value == 0
        assert report.heatmap[-1].status is None

    def test_logged_not_done_counts_as_entry(self, habit_repo, reminded_habit):
        log_completion(habit_repo, reminded_habit, "2024-03-04", EntryStatus.NOT_DONE, reason="sick")

        report = habit_performance(habit_repo, reminded_habit, "2024-03-04")

        assert report.missing_days == []
        assert report.total_entries == 4
        assert report.heatmap[-1].status == EntryStatus.NOT_DONE

    def test_is_placeholder(self):
        assert is_placeholder(SimpleNamespace(**PLACEHOLDER_DEFAULTS))
        assert not is_placeholder(SimpleNamespace(**{**PLACEHOLDER_DEFAULTS, "percent_complete": 0}))
        assert not is_placeholder(SimpleNamespace(**{**PLACEHOLDER_DEFAULTS, "notes": "later"}))


class TestPerformanceSummary:
    def test_summary(self, user, habit_factory, record_factory, habit_repo, clock):
        start = date(2024, 3, 1)
        daily = habit_factory(name="Daily", start_date=start)
        habit_factory(
            name="Mondays", frequency=Frequency.WEEKLY, schedule_days=[1], start_date=start
        )
        paused = habit_factory(name="Paused", start_date=start, is_active=False)
        removed = habit_factory(name="Removed", start_date=start)
        for offset in range(4):
            record_factory(daily, start + timedelta(days=offset))
        record_factory(paused, AS_OF)
        record_factory(removed, AS_OF)
        habit_repo.soft_delete(removed.id)

        summary = performance_summary(habit_repo, user, clock=clock)

        assert summary.total_habits == 3
        assert summary.active_habits == 2
        assert (summary.today.completed, summary.today.total, summary.today.percentage) == (1, 2, 50)
        assert summary.overall_completion_rate == 80
        assert summary.current_streak == 4
        assert summary.longest_streak == 4
        assert summary.rolling_averages.last_7_days == 80
        assert summary.rolling_averages.last_30_days == 80
        assert summary.momentum.current == 57
        assert summary.momentum.previous == 0
        assert summary.momentum.trend == Trend.UP

    def test_summary_without_habits(self, user, habit_repo):
        summary = performance_summary(habit_repo, user, AS_OF)
        assert summary.total_habits == 0
        assert summary.overall_completion_rate == 0
        assert summary.today.percentage == 0
        assert summary.current_streak == 0
        assert summary.momentum.trend == Trend.STABLE
