"""Tests for StatisticsEngine.

Tests cover:
- Consistency percentage (daily, specific days, weekly_count windows)
- Zero-due-day and reversed windows
- One-decimal rounding and the [0, 100] range
- Cached habit statistics (total checks, streaks, trailing rate)
- Period key generation and period summaries
"""

from __future__ import annotations

from datetime import date

import pytest

from bito_analytics import const
from bito_analytics.engines.statistics_engine import StatisticsEngine

from tests.helpers import day, make_entries, make_entry, make_habit, make_rule

MON, TUE, WED, THU, FRI, SAT, SUN = range(7)
HABIT = "habit-1"


class TestComputeConsistency:
    """Tests for compute_consistency."""

    def test_daily_eighty_percent(self) -> None:
        """8 of 10 due days -> 80.0."""
        done = [day(i) for i in range(10) if i not in (3, 7)]
        rate = StatisticsEngine.compute_consistency(
            make_rule(), make_entries(HABIT, done), day(0), day(9)
        )
        assert rate == 80.0

    def test_rounds_to_one_decimal(self) -> None:
        """2 of 3 -> 66.7."""
        rate = StatisticsEngine.compute_consistency(
            make_rule(), make_entries(HABIT, [day(0), day(1)]), day(0), day(2)
        )
        assert rate == 66.7

    def test_specific_days_only_counts_due_days(self) -> None:
        """Non-due completions do not inflate the numerator."""
        rule = make_rule(const.RECURRENCE_SPECIFIC_DAYS, days=[MON, WED, FRI])
        entries = make_entries(HABIT, [day(MON), day(TUE), day(THU), day(SAT)])
        rate = StatisticsEngine.compute_consistency(rule, entries, day(0), day(6))
        assert rate == 33.3

    def test_zero_due_days_returns_zero(self) -> None:
        """A window with no due days is 0.0, never a division error."""
        rule = make_rule(const.RECURRENCE_SPECIFIC_DAYS, days=[SAT])
        rate = StatisticsEngine.compute_consistency(
            rule, make_entries(HABIT, [day(0)]), day(0), day(4)
        )
        assert rate == 0.0

    def test_reversed_window_returns_zero(self) -> None:
        """end < start -> 0.0."""
        assert (
            StatisticsEngine.compute_consistency(make_rule(), [], day(5), day(1))
            == 0.0
        )

    def test_accepts_iso_strings(self) -> None:
        """Window bounds may be ISO date strings."""
        rate = StatisticsEngine.compute_consistency(
            make_rule(),
            make_entries(HABIT, [day(0)]),
            day(0).isoformat(),
            day(1).isoformat(),
        )
        assert rate == 50.0

    def test_habit_filters_entries(self) -> None:
        """Passing a habit restricts entries to that habit."""
        entries = make_entries(HABIT, [day(0)]) + make_entries("habit-2", [day(1)])
        rate = StatisticsEngine.compute_consistency(
            make_rule(), entries, day(0), day(1), habit=make_habit(HABIT)
        )
        assert rate == 50.0

    @pytest.mark.parametrize("done_days", [[], [0], [0, 1, 2, 3, 4, 5, 6]])
    def test_always_within_bounds(self, done_days: list[int]) -> None:
        """Consistency stays within [0, 100]."""
        rate = StatisticsEngine.compute_consistency(
            make_rule(),
            make_entries(HABIT, [day(i) for i in done_days]),
            day(0),
            day(6),
        )
        assert const.PERCENT_MIN <= rate <= const.PERCENT_MAX


class TestWeeklyCountConsistency:
    """weekly_count consistency is judged per ISO week."""

    RULE = make_rule(const.RECURRENCE_WEEKLY_COUNT, times_per_week=3)

    def test_caps_each_week_at_target(self) -> None:
        """Five completions in week one count as three."""
        entries = make_entries(
            HABIT, [day(0), day(1), day(2), day(3), day(4), day(9)]
        )
        rate = StatisticsEngine.compute_consistency(self.RULE, entries, day(0), day(13))
        assert rate == 66.7

    def test_partial_week_expectation_is_clipped(self) -> None:
        """A two-day slice of a week expects at most two completions."""
        entries = make_entries(HABIT, [day(SAT), day(SUN)])
        rate = StatisticsEngine.compute_consistency(
            self.RULE, entries, day(SAT), day(SUN)
        )
        assert rate == 100.0


class TestComputeRateFromCredits:
    """Tests for compute_rate_from_credits."""

    def test_empty_is_zero(self) -> None:
        """No due days -> 0.0."""
        assert StatisticsEngine.compute_rate_from_credits({}) == 0.0

    def test_ratio(self) -> None:
        """3 of 4 -> 75.0."""
        credits = {day(0): True, day(1): True, day(2): False, day(3): True}
        assert StatisticsEngine.compute_rate_from_credits(credits) == 75.0


class TestComputeHabitStats:
    """Tests for compute_habit_stats."""

    def test_stats_clip_window_to_creation(self) -> None:
        """Trailing window starts at created_on when the habit is new."""
        habit = make_habit(HABIT, created_on=day(0).isoformat())
        entries = make_entries(HABIT, [day(0), day(1), day(3), day(4)])

        stats = StatisticsEngine.compute_habit_stats(habit, entries, day(4))

        assert stats == {
            "total_checks": 4,
            "current_streak": 2,
            "longest_streak": 2,
            "last_checked": day(4).isoformat(),
            "completion_rate": 80.0,
        }

    def test_open_day_not_counted_against_rate(self) -> None:
        """An unchecked as_of stays open; an unchecked earlier day is a miss."""
        habit = make_habit(HABIT, created_on=day(0).isoformat())
        entries = make_entries(HABIT, [day(0), day(1), day(2)])

        today = StatisticsEngine.compute_habit_stats(habit, entries, day(3))
        tomorrow = StatisticsEngine.compute_habit_stats(habit, entries, day(4))

        assert today["completion_rate"] == 100.0
        assert today["current_streak"] == 3
        assert tomorrow["completion_rate"] == 75.0

    def test_open_non_due_day_ignored(self) -> None:
        """A non-due as_of leaves the window unchanged."""
        habit = make_habit(
            HABIT,
            rule=make_rule(const.RECURRENCE_SPECIFIC_DAYS, days=[MON, WED]),
            created_on=day(0).isoformat(),
        )
        entries = make_entries(HABIT, [day(0), day(2)])
        stats = StatisticsEngine.compute_habit_stats(habit, entries, day(3))
        assert stats["completion_rate"] == 100.0

    def test_no_entries(self) -> None:
        """A fresh habit has empty stats."""
        stats = StatisticsEngine.compute_habit_stats(make_habit(HABIT), [], day(4))
        assert stats["total_checks"] == 0
        assert stats["last_checked"] is None
        assert stats["completion_rate"] == 0.0

    def test_ignores_other_habits(self) -> None:
        """Entries of other habits are not counted."""
        entries = [make_entry("habit-2", day(0))]
        stats = StatisticsEngine.compute_habit_stats(make_habit(HABIT), entries, day(0))
        assert stats["total_checks"] == 0


class TestGetPeriodKeys:
    """Tests for get_period_keys."""

    def test_all_formats(self) -> None:
        """Daily, ISO weekly, monthly and yearly keys."""
        keys = StatisticsEngine.get_period_keys(date(2026, 1, 19))
        assert keys == {
            const.PERIOD_DAILY: "2026-01-19",
            const.PERIOD_WEEKLY: "2026-W04",
            const.PERIOD_MONTHLY: "2026-01",
            const.PERIOD_YEARLY: "2026",
        }

    def test_iso_week_year_boundary(self) -> None:
        """Dec 31, 2025 belongs to ISO week 1 of 2026."""
        keys = StatisticsEngine.get_period_keys(date(2025, 12, 31))
        assert keys[const.PERIOD_WEEKLY] == "2026-W01"


class TestSummarizeByPeriod:
    """Tests for summarize_by_period."""

    def test_monthly_counts(self) -> None:
        """Qualifying completions are bucketed per month."""
        entries = [
            make_entry(HABIT, date(2026, 1, 5)),
            make_entry(HABIT, date(2026, 1, 6)),
            make_entry(HABIT, date(2026, 1, 7), completed=False),
            make_entry(HABIT, date(2026, 2, 2)),
        ]
        summary = StatisticsEngine.summarize_by_period(entries, const.PERIOD_MONTHLY)
        assert summary == {"2026-01": 2, "2026-02": 1}

    def test_unknown_period_raises(self) -> None:
        """Unknown period types are rejected."""
        with pytest.raises(ValueError, match="Unknown period type"):
            StatisticsEngine.summarize_by_period([], "hourly")
