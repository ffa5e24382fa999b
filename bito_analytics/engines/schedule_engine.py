"""Schedule Engine for Bito analytics.

Decides whether a habit was due on a calendar date:
- `dateutil.rrule` generates due dates for fixed-day patterns (DAILY, WEEKLY
  with BYDAY)
- weekly_count rules (N times per week, no fixed days) are window rules:
  every day is eligible and the week is judged as a whole by the streak and
  statistics engines

IMPORTANT: This module must NOT import from managers to avoid circular imports.
Only import from const.py, type_defs.py, utils and standard libraries.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING, ClassVar

from dateutil.rrule import DAILY, FR, MO, SA, SU, TH, TU, WE, WEEKLY, rrule

from .. import const
from ..utils.dt_utils import week_start

if TYPE_CHECKING:
    from ..type_defs import RecurrenceRule


class ScheduleEngine:
    """Due-day evaluation for a single recurrence rule.

    Handles all recurrence kinds:
    - daily: due every day
    - specific_days: due when the weekday is in the configured set
    - weekly_count: every day is eligible; judged per ISO week

    Note:
        Unknown kinds fall back to daily (logged at debug).
        Weekday entries outside 0-6 are filtered out.
    """

    RRULE_WEEKDAYS: ClassVar[list] = [MO, TU, WE, TH, FR, SA, SU]
    RRULE_DAY_CODES: ClassVar[dict[int, str]] = {
        0: "MO",
        1: "TU",
        2: "WE",
        3: "TH",
        4: "FR",
        5: "SA",
        6: "SU",
    }

    def __init__(self, rule: RecurrenceRule | None) -> None:
        """Initialize the engine for a recurrence rule.

        Args:
            rule: RecurrenceRule TypedDict; None is treated as daily.
        """
        rule = rule or {}
        kind = rule.get(const.DATA_RECURRENCE_KIND, const.RECURRENCE_DAILY)
        if kind not in const.RECURRENCE_KINDS:
            const.LOGGER.debug(
                "ScheduleEngine: Unknown recurrence kind %s, treating as daily", kind
            )
            kind = const.RECURRENCE_DAILY
        self._kind: str = kind

        raw_days = rule.get(const.DATA_RECURRENCE_DAYS) or []
        self._days: frozenset[int] = frozenset(
            d for d in raw_days if isinstance(d, int) and 0 <= d <= 6
        )

        times = rule.get(const.DATA_RECURRENCE_TIMES_PER_WEEK) or 1
        self._times_per_week: int = max(1, min(int(times), const.DAYS_PER_WEEK))

    @property
    def kind(self) -> str:
        """Return the normalized recurrence kind."""
        return self._kind

    @property
    def is_window_rule(self) -> bool:
        """True when due-ness is a property of a week, not of a day."""
        return self._kind == const.RECURRENCE_WEEKLY_COUNT

    @property
    def times_per_week(self) -> int:
        """Completions required per week (weekly_count rules)."""
        return self._times_per_week

    @property
    def days(self) -> frozenset[int]:
        """Configured weekdays (specific_days rules)."""
        return self._days

    def is_due(self, day: date) -> bool:
        """Return whether the habit is due (or, for window rules, eligible) on a day."""
        if self._kind == const.RECURRENCE_SPECIFIC_DAYS:
            return day.weekday() in self._days
        return True

    def due_dates(self, start: date, end: date) -> list[date]:
        """Return every due date in [start, end], inclusive.

        Args:
            start: First calendar date of the range.
            end: Last calendar date of the range.

        Returns:
            Ascending list of due dates (empty when end < start).
        """
        if end < start:
            return []
        if self._kind == const.RECURRENCE_SPECIFIC_DAYS and not self._days:
            return []

        dtstart = datetime.combine(start, time.min)
        until = datetime.combine(end, time.min)

        if self._kind == const.RECURRENCE_SPECIFIC_DAYS:
            # Type stubs expect Literal weekday objects; list is fine at runtime
            rule = rrule(
                WEEKLY,
                dtstart=dtstart,
                until=until,
                byweekday=[self.RRULE_WEEKDAYS[d] for d in sorted(self._days)],  # type: ignore[arg-type]
            )
        else:
            rule = rrule(DAILY, dtstart=dtstart, until=until)

        return [occurrence.date() for occurrence in rule]

    def most_recent_due(self, on_or_before: date) -> date | None:
        """Return the latest due day <= `on_or_before`.

        Looks back at most one week; a rule with no due days returns None.
        """
        cursor = on_or_before
        for _ in range(const.DAYS_PER_WEEK):
            if self.is_due(cursor):
                return cursor
            cursor -= timedelta(days=1)
        return None

    def previous_due(self, before: date) -> date | None:
        """Return the latest due day strictly before `before`."""
        return self.most_recent_due(before - timedelta(days=1))

    def to_rrule_string(self) -> str:
        """Generate an RFC 5545 RRULE string for calendar export.

        Returns:
            RRULE string (e.g., "FREQ=WEEKLY;INTERVAL=1;BYDAY=MO,WE,FR"),
            or empty string when the rule has no fixed days.
        """
        if self._kind == const.RECURRENCE_DAILY:
            return "FREQ=DAILY;INTERVAL=1"
        if self._kind == const.RECURRENCE_SPECIFIC_DAYS and self._days:
            codes = ",".join(self.RRULE_DAY_CODES[d] for d in sorted(self._days))
            return f"FREQ=WEEKLY;INTERVAL=1;BYDAY={codes}"
        return ""


# =============================================================================
# Module-level convenience functions
# =============================================================================


def is_due(rule: RecurrenceRule | None, day: date) -> bool:
    """Return whether a rule makes `day` a due day."""
    return ScheduleEngine(rule).is_due(day)


def iter_weeks(start: date, end: date) -> Iterator[tuple[date, date, date]]:
    """Yield the ISO weeks overlapping [start, end].

    Yields:
        (monday, first_day_in_range, last_day_in_range) per week, ascending.
    """
    if end < start:
        return
    monday = week_start(start)
    while monday <= end:
        sunday = monday + timedelta(days=const.DAYS_PER_WEEK - 1)
        yield monday, max(monday, start), min(sunday, end)
        monday += timedelta(days=const.DAYS_PER_WEEK)
