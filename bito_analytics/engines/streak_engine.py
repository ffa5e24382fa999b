"""Streak Engine - consecutive satisfied due periods.

A streak counts consecutive due days (or ISO weeks, for weekly_count rules)
that carry a qualifying completion. Days that are not due never affect it.

Algorithm:
    One forward pass over the due periods up to `as_of`, tracking the running
    count, the best run and the days a running streak was broken. The running
    count at the end of the pass is the current streak, identical to walking
    backward from `as_of`, and `longest` falls out of the same pass.

    `as_of` is still open: if it is due and not yet satisfied it neither
    extends nor breaks the streak.
"""

from __future__ import annotations

from collections import Counter
from datetime import date
from typing import TYPE_CHECKING

from .. import const
from ..type_defs import StreakResult
from ..utils.dt_utils import dt_parse_date, iter_days, week_start
from .completion_engine import CompletionEngine
from .schedule_engine import ScheduleEngine, iter_weeks

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from zoneinfo import ZoneInfo

    from ..type_defs import ChallengeRules, CompletionEntry, HabitData, RecurrenceRule


def _zero_result(unit: str) -> StreakResult:
    return StreakResult(current=0, longest=0, unit=unit, resets=[])


class StreakEngine:
    """Stateless streak calculations.

    Example:
        result = StreakEngine.compute_streak(
            "habit-1",
            {"kind": "daily"},
            ledger_entries,
            as_of=date(2026, 1, 18),
        )
        result["current"], result["longest"]
    """

    @staticmethod
    def compute_streak(
        habit_id: str | None,
        rule: RecurrenceRule | None,
        completions: Iterable[CompletionEntry],
        as_of: date | str,
        rules: ChallengeRules | None = None,
        habit: HabitData | None = None,
        tz: ZoneInfo | None = None,
    ) -> StreakResult:
        """Compute the current and longest streak of one habit.

        Args:
            habit_id: Only entries of this habit are considered (None = all)
            rule: Recurrence rule of the habit
            completions: Ledger entries (any order)
            as_of: Evaluation day (the caller's canonical "today")
            rules: Optional challenge rules (thresholds, grace/makeup)
            habit: Optional habit definition (methodology, target_value)
            tz: Timezone for end-of-day checks (defaults to the configured one)

        Returns:
            StreakResult with current, longest, unit and reset dates.
        """
        schedule = ScheduleEngine(rule)
        unit = (
            const.STREAK_UNIT_WEEKS
            if schedule.is_window_rule
            else const.STREAK_UNIT_DAYS
        )
        as_of_day = dt_parse_date(as_of)
        if as_of_day is None:
            const.LOGGER.debug("StreakEngine: Invalid as_of %s", as_of)
            return _zero_result(unit)

        credited = {
            day
            for day in CompletionEngine.credited_dates(
                completions, habit, rules, tz, habit_id
            )
            if day <= as_of_day
        }
        if not credited:
            return _zero_result(unit)

        first = min(credited)

        if schedule.is_window_rule:
            counts = Counter(week_start(day) for day in credited)
            week_credits = {
                monday: counts[monday] >= schedule.times_per_week
                for monday, _first, _last in iter_weeks(first, as_of_day)
            }
            return StreakEngine.run_from_credits(
                week_credits, week_start(as_of_day), unit=unit
            )

        day_credits = {
            day: day in credited for day in schedule.due_dates(first, as_of_day)
        }
        return StreakEngine.run_from_credits(day_credits, as_of_day, unit=unit)

    @staticmethod
    def run_from_credits(
        day_credits: Mapping[date, bool],
        as_of: date,
        unit: str = const.STREAK_UNIT_DAYS,
        as_of_open: bool = True,
    ) -> StreakResult:
        """Run the streak pass over an already-reduced map of due periods.

        Args:
            day_credits: {due_period: satisfied}; only due periods appear
            as_of: Evaluation period; later periods are ignored
            unit: Reported streak unit
            as_of_open: When True an unsatisfied `as_of` does not break

        Returns:
            StreakResult; `longest` is always >= `current`.
        """
        run = 0
        longest = 0
        resets: list[str] = []

        for day in sorted(day_credits):
            if day > as_of:
                break
            if day_credits[day]:
                run += 1
                longest = max(longest, run)
            elif day == as_of and as_of_open:
                continue
            elif run:
                resets.append(day.isoformat())
                run = 0

        return StreakResult(current=run, longest=longest, unit=unit, resets=resets)

    @staticmethod
    def streak_sequence(
        rule: RecurrenceRule | None,
        completions: Iterable[CompletionEntry],
        start: date,
        end: date,
        rules: ChallengeRules | None = None,
        habit: HabitData | None = None,
        tz: ZoneInfo | None = None,
    ) -> list[int]:
        """Return the streak as it stands at the close of each day in [start, end].

        Non-due days repeat the previous value. Only meaningful for
        day-based rules; window rules report the weekly streak at each day.
        """
        credited = CompletionEngine.credited_dates(completions, habit, rules, tz)
        schedule = ScheduleEngine(rule)

        if schedule.is_window_rule:
            return [
                StreakEngine.compute_streak(
                    None, rule, completions, day, rules, habit, tz
                )["current"]
                for day in iter_days(start, end)
            ]

        sequence: list[int] = []
        run = 0
        for day in iter_days(start, end):
            if schedule.is_due(day):
                run = run + 1 if day in credited else 0
            sequence.append(run)
        return sequence
