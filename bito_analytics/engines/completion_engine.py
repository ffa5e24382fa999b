"""Completion Engine - qualification and timeliness of ledger entries.

Every calculator asks the same two questions of a completion entry:
- Does it qualify? (boolean `completed`, or a value meeting the threshold)
- Does it count for its date? (recorded on time, or inside the makeup grace)

Keeping both answers here guarantees streaks, consistency and challenge
progress judge a given entry identically.

Design Principles:
    - Stateless: Operates on passed records only
    - Read-only: Never mutates entries, habits or rules
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from .. import const
from ..utils.dt_utils import dt_parse, dt_parse_date, end_of_local_day, start_of_local_day

if TYPE_CHECKING:
    from collections.abc import Iterable
    from zoneinfo import ZoneInfo

    from ..type_defs import ChallengeRules, CompletionEntry, HabitData


class CompletionEngine:
    """Stateless qualification rules for completion entries."""

    # ────────────────────────────────────────────────────────────────
    # Qualification
    # ────────────────────────────────────────────────────────────────

    @staticmethod
    def is_boolean_habit(habit: HabitData | None) -> bool:
        """Return True when the habit is tracked as done/not-done.

        Unknown habits are treated as boolean.
        """
        if habit is None:
            return True
        methodology = habit.get(
            const.DATA_HABIT_METHODOLOGY, const.METHODOLOGY_BOOLEAN
        )
        return methodology == const.METHODOLOGY_BOOLEAN

    @staticmethod
    def threshold(
        habit: HabitData | None, rules: ChallengeRules | None = None
    ) -> float:
        """Return the daily value a non-boolean entry must reach.

        The challenge's `minimum_daily_value` wins when set; otherwise the
        habit's own `target_value` applies.
        """
        if rules:
            minimum = rules.get(const.DATA_RULES_MINIMUM_DAILY_VALUE)
            if minimum is not None:
                return float(minimum)
        if habit is None:
            return float(const.DEFAULT_HABIT_TARGET_VALUE)
        target = habit.get(const.DATA_HABIT_TARGET_VALUE)
        if target is None:
            return float(const.DEFAULT_HABIT_TARGET_VALUE)
        return float(target)

    @staticmethod
    def is_qualifying(
        entry: CompletionEntry,
        habit: HabitData | None = None,
        rules: ChallengeRules | None = None,
    ) -> bool:
        """Return whether an entry is a qualifying completion.

        Args:
            entry: Ledger row
            habit: Habit definition (methodology, target_value); None = boolean
            rules: Optional challenge rules (minimum_daily_value)

        Returns:
            boolean habits: the `completed` flag.
            numeric/duration/rating: `value >= threshold`; entries without a
            value fall back to `completed`.
        """
        completed = bool(entry.get(const.DATA_ENTRY_COMPLETED, False))
        if CompletionEngine.is_boolean_habit(habit):
            return completed
        value = entry.get(const.DATA_ENTRY_VALUE)
        if value is None:
            return completed
        return float(value) >= CompletionEngine.threshold(habit, rules)

    @staticmethod
    def entry_value(entry: CompletionEntry) -> float:
        """Return the numeric value recorded on an entry (0.0 when absent)."""
        value = entry.get(const.DATA_ENTRY_VALUE)
        if value is None:
            return 0.0
        return float(value)

    # ────────────────────────────────────────────────────────────────
    # Timeliness (grace period / makeup days)
    # ────────────────────────────────────────────────────────────────

    @staticmethod
    def grace_hours(rules: ChallengeRules | None) -> int:
        """Return the configured grace period, clamped to [0, MAX]."""
        if not rules:
            return 0
        hours = rules.get(
            const.DATA_RULES_GRACE_PERIOD_HOURS, const.DEFAULT_GRACE_PERIOD_HOURS
        )
        if hours is None:
            hours = const.DEFAULT_GRACE_PERIOD_HOURS
        return max(0, min(int(hours), const.MAX_GRACE_PERIOD_HOURS))

    @staticmethod
    def is_on_time(
        entry: CompletionEntry,
        rules: ChallengeRules | None = None,
        tz: ZoneInfo | None = None,
    ) -> bool:
        """Return whether an entry counts for its own date.

        Without challenge rules every entry counts. With rules, an entry
        recorded after its day ended counts only when makeup days are allowed
        and it was recorded within the grace period.
        """
        if rules is None:
            return True
        day = dt_parse_date(entry.get(const.DATA_ENTRY_DATE))
        recorded_at = dt_parse(entry.get(const.DATA_ENTRY_RECORDED_AT), tz)
        if day is None or recorded_at is None:
            return True

        day_end = end_of_local_day(day, tz)
        if recorded_at < day_end:
            return True

        if not rules.get(
            const.DATA_RULES_ALLOW_MAKEUP_DAYS, const.DEFAULT_ALLOW_MAKEUP_DAYS
        ):
            return False
        grace = timedelta(hours=CompletionEngine.grace_hours(rules))
        return recorded_at < day_end + grace

    @staticmethod
    def counts(
        entry: CompletionEntry,
        habit: HabitData | None = None,
        rules: ChallengeRules | None = None,
        tz: ZoneInfo | None = None,
    ) -> bool:
        """Return whether an entry is qualifying AND counts for its date."""
        return CompletionEngine.is_qualifying(
            entry, habit, rules
        ) and CompletionEngine.is_on_time(entry, rules, tz)

    # ────────────────────────────────────────────────────────────────
    # Indexing
    # ────────────────────────────────────────────────────────────────

    @staticmethod
    def index_by_date(
        completions: Iterable[CompletionEntry], habit_id: str | None = None
    ) -> dict[date, CompletionEntry]:
        """Index entries by calendar date, optionally for one habit only.

        Entries with unparseable dates are skipped. If the same date appears
        twice the later row wins, mirroring ledger upsert semantics.
        """
        indexed: dict[date, CompletionEntry] = {}
        for entry in completions:
            if habit_id is not None and entry.get(const.DATA_ENTRY_HABIT_ID) != habit_id:
                continue
            day = dt_parse_date(entry.get(const.DATA_ENTRY_DATE))
            if day is None:
                const.LOGGER.debug(
                    "CompletionEngine: Skipping entry with invalid date %s",
                    entry.get(const.DATA_ENTRY_DATE),
                )
                continue
            indexed[day] = entry
        return indexed

    @staticmethod
    def credited_dates(
        completions: Iterable[CompletionEntry],
        habit: HabitData | None = None,
        rules: ChallengeRules | None = None,
        tz: ZoneInfo | None = None,
        habit_id: str | None = None,
    ) -> set[date]:
        """Return the dates carrying a counting completion."""
        return {
            day
            for day, entry in CompletionEngine.index_by_date(
                completions, habit_id
            ).items()
            if CompletionEngine.counts(entry, habit, rules, tz)
        }

    @staticmethod
    def satisfied_at(
        entry: CompletionEntry, tz: ZoneInfo | None = None
    ) -> datetime | None:
        """Return the instant an entry was recorded.

        Entries without `recorded_at` are treated as recorded at the start of
        their day, so derived timestamps stay deterministic.
        """
        recorded_at = dt_parse(entry.get(const.DATA_ENTRY_RECORDED_AT), tz)
        if recorded_at is not None:
            return recorded_at
        day = dt_parse_date(entry.get(const.DATA_ENTRY_DATE))
        if day is None:
            return None
        return start_of_local_day(day, tz)
