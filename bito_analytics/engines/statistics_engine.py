"""Statistics Engine - consistency percentages and per-habit statistics.

This engine centralizes the ratio-style statistics of the analytics core:
- Consistency: qualifying due days over due days in a window
- Cached habit stats (total checks, streaks, last check, trailing rate)
- Period bucketing (daily/weekly/monthly/yearly keys)

Design Principles:
    - Stateless: Operates on passed data structures
    - Consistent: Single source of truth for period key generation
    - Reproducible: Percentages are rounded to one decimal
"""

from __future__ import annotations

from collections import Counter
from datetime import date, timedelta
from typing import TYPE_CHECKING, Final

from .. import const
from ..type_defs import HabitStats
from ..utils.dt_utils import dt_parse_date
from ..utils.math_utils import calculate_percentage
from .completion_engine import CompletionEngine
from .schedule_engine import ScheduleEngine, iter_weeks
from .streak_engine import StreakEngine

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from zoneinfo import ZoneInfo

    from ..type_defs import ChallengeRules, CompletionEntry, HabitData, RecurrenceRule


PERIOD_FORMATS: Final[dict[str, str]] = {
    const.PERIOD_DAILY: const.PERIOD_FORMAT_DAILY,
    const.PERIOD_WEEKLY: const.PERIOD_FORMAT_WEEKLY,
    const.PERIOD_MONTHLY: const.PERIOD_FORMAT_MONTHLY,
    const.PERIOD_YEARLY: const.PERIOD_FORMAT_YEARLY,
}


class StatisticsEngine:
    """Unified engine for consistency and period-based statistics.

    All methods are stateless - they operate on data structures passed as
    arguments. The engine does NOT persist data; the caller is responsible
    for caching the returned stats on the habit record.

    Example:
        rate = StatisticsEngine.compute_consistency(
            {"kind": "specific_days", "days": [0, 2, 4]},
            ledger_entries,
            date(2026, 1, 1),
            date(2026, 1, 31),
        )
    """

    # ────────────────────────────────────────────────────────────────
    # Consistency
    # ────────────────────────────────────────────────────────────────

    @staticmethod
    def compute_consistency(
        rule: RecurrenceRule | None,
        completions: Iterable[CompletionEntry],
        window_start: date | str,
        window_end: date | str,
        habit: HabitData | None = None,
        rules: ChallengeRules | None = None,
        tz: ZoneInfo | None = None,
    ) -> float:
        """Return the consistency percentage of a habit over a window.

        Args:
            rule: Recurrence rule of the habit
            completions: Ledger entries of the habit (filtered by habit id
                when `habit` is given)
            window_start: First day of the window (inclusive)
            window_end: Last day of the window (inclusive)
            habit: Optional habit definition (methodology, target_value)
            rules: Optional challenge rules (thresholds, grace/makeup)
            tz: Timezone for end-of-day checks

        Returns:
            Percentage in [0, 100] rounded to one decimal; 0.0 when the
            window holds no due days.
        """
        start = dt_parse_date(window_start)
        end = dt_parse_date(window_end)
        if start is None or end is None or end < start:
            const.LOGGER.debug(
                "StatisticsEngine: Empty consistency window %s..%s",
                window_start,
                window_end,
            )
            return 0.0

        habit_id = habit.get(const.DATA_HABIT_ID) if habit else None
        credited = CompletionEngine.credited_dates(
            completions, habit, rules, tz, habit_id
        )
        schedule = ScheduleEngine(rule)

        if schedule.is_window_rule:
            required = schedule.times_per_week
            achieved = 0
            expected = 0
            for _monday, first, last in iter_weeks(start, end):
                days_in_window = (last - first).days + 1
                in_week = sum(1 for day in credited if first <= day <= last)
                achieved += min(in_week, required)
                expected += min(required, days_in_window)
            if expected == 0:
                return 0.0
            return calculate_percentage(achieved, expected, const.PERCENT_PRECISION)

        day_credits = {
            day: day in credited for day in schedule.due_dates(start, end)
        }
        return StatisticsEngine.compute_rate_from_credits(day_credits)

    @staticmethod
    def compute_rate_from_credits(day_credits: Mapping[date, bool]) -> float:
        """Return satisfied / due as a one-decimal percentage (0.0 if empty)."""
        if not day_credits:
            return 0.0
        satisfied = sum(1 for credit in day_credits.values() if credit)
        return calculate_percentage(
            satisfied, len(day_credits), const.PERCENT_PRECISION
        )

    # ────────────────────────────────────────────────────────────────
    # Habit statistics
    # ────────────────────────────────────────────────────────────────

    @staticmethod
    def compute_habit_stats(
        habit: HabitData,
        completions: Iterable[CompletionEntry],
        as_of: date | str,
        window_days: int = const.DEFAULT_STATS_WINDOW_DAYS,
        tz: ZoneInfo | None = None,
    ) -> HabitStats:
        """Compute the cached statistics stored on a habit record.

        Args:
            habit: Habit definition
            completions: Ledger entries (entries of other habits are ignored)
            as_of: Evaluation day
            window_days: Length of the trailing completion-rate window
            tz: Timezone for end-of-day checks

        Returns:
            HabitStats with total_checks, current_streak, longest_streak,
            last_checked (ISO date or None) and completion_rate. A due but
            unchecked `as_of` is left out of completion_rate.
        """
        habit_id = habit.get(const.DATA_HABIT_ID)
        as_of_day = dt_parse_date(as_of)
        entries = [
            entry
            for entry in completions
            if entry.get(const.DATA_ENTRY_HABIT_ID) == habit_id
        ]
        rule = habit.get(const.DATA_HABIT_RECURRENCE)

        credited = sorted(
            day
            for day in CompletionEngine.credited_dates(entries, habit, tz=tz)
            if as_of_day is None or day <= as_of_day
        )

        if as_of_day is None:
            return HabitStats(
                total_checks=len(credited),
                current_streak=0,
                longest_streak=0,
                last_checked=credited[-1].isoformat() if credited else None,
                completion_rate=0.0,
            )

        streak = StreakEngine.compute_streak(
            habit_id, rule, entries, as_of_day, habit=habit, tz=tz
        )

        window_start = as_of_day - timedelta(days=max(window_days, 1) - 1)
        created_on = dt_parse_date(habit.get(const.DATA_HABIT_CREATED_ON))
        if created_on is not None and created_on > window_start:
            window_start = created_on

        # as_of is still open until satisfied
        window_end = as_of_day
        if ScheduleEngine(rule).is_due(as_of_day) and (
            not credited or credited[-1] != as_of_day
        ):
            window_end = as_of_day - timedelta(days=1)

        rate = StatisticsEngine.compute_consistency(
            rule, entries, window_start, window_end, habit=habit, tz=tz
        )

        return HabitStats(
            total_checks=len(credited),
            current_streak=streak["current"],
            longest_streak=streak["longest"],
            last_checked=credited[-1].isoformat() if credited else None,
            completion_rate=rate,
        )

    # ────────────────────────────────────────────────────────────────
    # Period Key Generation
    # ────────────────────────────────────────────────────────────────

    @staticmethod
    def get_period_keys(day: date) -> dict[str, str]:
        """Generate all period keys for a date.

        Args:
            day: Calendar date

        Returns:
            Dict with keys: daily, weekly, monthly, yearly
            Example: {"daily": "2026-01-18", "weekly": "2026-W03",
                      "monthly": "2026-01", "yearly": "2026"}
        """
        return {
            period: day.strftime(fmt) for period, fmt in PERIOD_FORMATS.items()
        }

    @staticmethod
    def summarize_by_period(
        completions: Iterable[CompletionEntry],
        period: str,
        habit: HabitData | None = None,
    ) -> dict[str, int]:
        """Count qualifying completions per period bucket.

        Args:
            completions: Ledger entries
            period: One of the PERIOD_* constants
            habit: Optional habit definition; restricts entries to that habit

        Returns:
            {period_key: count}, ordered by key.

        Raises:
            ValueError: If `period` is not a known period type.
        """
        fmt = PERIOD_FORMATS.get(period)
        if fmt is None:
            raise ValueError(f"Unknown period type: {period}")

        habit_id = habit.get(const.DATA_HABIT_ID) if habit else None
        buckets: Counter[str] = Counter()
        for day in CompletionEngine.credited_dates(
            completions, habit, habit_id=habit_id
        ):
            buckets[day.strftime(fmt)] += 1
        return dict(sorted(buckets.items()))
