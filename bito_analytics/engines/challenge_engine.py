"""Challenge Engine - Pure logic for challenge status and participant progress.

This engine provides stateless, pure Python functions for:
- Challenge status derivation (upcoming -> active -> completed, cancel)
- Per-participant day timelines (schedule + habit match per day)
- Progress routing by challenge type (streak, cumulative, consistency,
  team_goal)
- Completion detection and team-wide completion
- Join validation, leave, and aggregate challenge stats

ARCHITECTURE: This is a pure logic engine with no persistence.
Every method takes snapshots and returns new records; inputs are never
mutated. State management belongs in ChallengeManager.

Progress is always recomputed from the completion ledger over the
participant's window, so an incremental update and a full recompute over the
same ledger produce identical records.
"""

from __future__ import annotations

import copy
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import TYPE_CHECKING, Final

from .. import const
from ..type_defs import (
    ChallengeStats,
    DayRecord,
    MetricPoint,
    ParticipantData,
    ParticipantProgress,
)
from ..utils.dt_utils import (
    as_local,
    dt_parse,
    dt_parse_date,
    dt_to_iso,
    end_of_local_day,
    iter_days,
    week_start,
)
from ..utils.math_utils import calculate_percentage, round_percent, round_value
from .completion_engine import CompletionEngine
from .gamification_engine import GamificationEngine
from .match_engine import HabitMatch, day_credit, validate_links
from .schedule_engine import ScheduleEngine, iter_weeks
from .streak_engine import StreakEngine

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from zoneinfo import ZoneInfo

    from ..type_defs import (
        ChallengeData,
        ChallengeRules,
        ChallengeSettings,
        CompletionEntry,
        HabitData,
        MilestoneCrossing,
    )


# Forward order of the non-terminal lifecycle; status never moves backward
_STATUS_ORDER: Final[dict[str, int]] = {
    const.CHALLENGE_STATUS_UPCOMING: 0,
    const.CHALLENGE_STATUS_ACTIVE: 1,
    const.CHALLENGE_STATUS_COMPLETED: 2,
}

_CANCELLABLE_STATUSES: Final[frozenset[str]] = frozenset(
    {const.CHALLENGE_STATUS_UPCOMING, const.CHALLENGE_STATUS_ACTIVE}
)


# =============================================================================
# EXCEPTIONS
# =============================================================================


class ChallengeStateError(Exception):
    """Raised when a status transition is not allowed.

    Attributes:
        entity_id: Challenge id (or user id for participant transitions)
        current_status: Status before the attempted transition
        requested_status: Status that was requested
    """

    def __init__(
        self, entity_id: str, current_status: str, requested_status: str
    ) -> None:
        """Initialize ChallengeStateError.

        Args:
            entity_id: Challenge id (or user id for participant transitions)
            current_status: Status before the attempted transition
            requested_status: Status that was requested
        """
        self.entity_id = entity_id
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            f"Cannot move {entity_id} from {current_status} to {requested_status}"
        )


class ChallengeJoinError(Exception):
    """Raised when a user may not join a challenge.

    Attributes:
        challenge_id: Challenge being joined
        user_id: User attempting to join
        reason: Human-readable explanation
    """

    def __init__(self, challenge_id: str, user_id: str, reason: str) -> None:
        """Initialize ChallengeJoinError.

        Args:
            challenge_id: Challenge being joined
            user_id: User attempting to join
            reason: Human-readable explanation
        """
        self.challenge_id = challenge_id
        self.user_id = user_id
        self.reason = reason
        super().__init__(
            f"User {user_id} cannot join challenge {challenge_id}: {reason}"
        )


# =============================================================================
# PROGRESS UPDATE DATA STRUCTURE
# =============================================================================


@dataclass
class ProgressUpdate:
    """Result of recomputing one participant.

    Attributes:
        user_id: Participant the update belongs to
        progress: Freshly computed progress record
        status: New participant status
        completed_at: Completion instant (ISO) or None
        crossings: Milestones newly crossed (append-only)
        timeline: Evaluated challenge days, ascending
        contributions: Per credited day value and instant (team pool input)
    """

    user_id: str
    progress: ParticipantProgress
    status: str
    completed_at: str | None = None
    crossings: list[MilestoneCrossing] = field(default_factory=list)
    timeline: list[DayRecord] = field(default_factory=list)
    contributions: list[MetricPoint] = field(default_factory=list)


@dataclass(frozen=True)
class _Period:
    """One judged day (or ISO week) of a participant's window."""

    key: date
    credit: bool
    value: float
    at: str | None
    achieved: int
    expected: int = 1


def _empty_progress() -> ParticipantProgress:
    return ParticipantProgress(
        current_value=0.0,
        current_streak=0,
        best_streak=0,
        completion_rate=0.0,
        last_logged_at=None,
        value_reached_at=None,
    )


class ChallengeEngine:
    """Pure logic engine for challenge lifecycle and progress.

    All methods are static - no instance state.

    Evaluation Flow (per participant):
        1. Window = [max(start_date, joined day), min(as_of, end_date)]
        2. Each day: linked habits due that day -> {habit_id: satisfied}
        3. Day is due iff any linked habit is due; credit via habit match
        4. Route credits by challenge type into the progress metric
        5. Derive completion and milestone crossings from the metric timeline

    When every linked habit is weekly_count, streak and consistency are
    judged per ISO week against `weekly_quota` instead of per day.

    The as_of day is still open: a due but unsatisfied as_of neither breaks a
    streak nor counts against consistency.
    """

    # =========================================================================
    # CONFIGURATION ACCESSORS
    # =========================================================================

    @staticmethod
    def get_rules(challenge: ChallengeData) -> ChallengeRules:
        """Return the challenge rules with defaults filled in."""
        rules: ChallengeRules = {
            const.DATA_RULES_GRACE_PERIOD_HOURS: const.DEFAULT_GRACE_PERIOD_HOURS,
            const.DATA_RULES_ALLOW_MAKEUP_DAYS: const.DEFAULT_ALLOW_MAKEUP_DAYS,
            const.DATA_RULES_MINIMUM_DAILY_VALUE: None,
        }
        rules.update(challenge.get(const.DATA_CHALLENGE_RULES) or {})
        return rules

    @staticmethod
    def get_settings(challenge: ChallengeData) -> ChallengeSettings:
        """Return the challenge settings with defaults filled in."""
        settings: ChallengeSettings = {
            const.DATA_SETTINGS_MAX_PARTICIPANTS: None,
            const.DATA_SETTINGS_ALLOW_LATE_JOIN: const.DEFAULT_ALLOW_LATE_JOIN,
            const.DATA_SETTINGS_SHOW_LEADERBOARD: const.DEFAULT_SHOW_LEADERBOARD,
            const.DATA_SETTINGS_ANONYMIZE_LEADERBOARD: (
                const.DEFAULT_ANONYMIZE_LEADERBOARD
            ),
        }
        settings.update(challenge.get(const.DATA_CHALLENGE_SETTINGS) or {})
        return settings

    @staticmethod
    def target_value(challenge: ChallengeData) -> float | None:
        """Return the challenge target, or None when unset or not positive."""
        target = (challenge.get(const.DATA_CHALLENGE_RULES) or {}).get(
            const.DATA_RULES_TARGET_VALUE
        )
        if target is None or float(target) <= 0:
            return None
        return float(target)

    # =========================================================================
    # STATUS STATE MACHINE
    # =========================================================================

    @staticmethod
    def derive_status(challenge: ChallengeData, today: date | str) -> str:
        """Return the challenge status implied by the calendar.

        upcoming -> active on start_date -> completed after end_date.
        Cancelled and completed are terminal; status never regresses.
        """
        current = challenge.get(
            const.DATA_CHALLENGE_STATUS, const.CHALLENGE_STATUS_UPCOMING
        )
        if current in const.CHALLENGE_TERMINAL_STATUSES:
            return current

        today_day = dt_parse_date(today)
        start = dt_parse_date(challenge.get(const.DATA_CHALLENGE_START_DATE))
        end = dt_parse_date(challenge.get(const.DATA_CHALLENGE_END_DATE))
        if today_day is None or start is None or end is None:
            const.LOGGER.debug(
                "ChallengeEngine: Cannot derive status for %s (invalid dates)",
                challenge.get(const.DATA_CHALLENGE_ID),
            )
            return current

        if today_day > end:
            derived = const.CHALLENGE_STATUS_COMPLETED
        elif today_day >= start:
            derived = const.CHALLENGE_STATUS_ACTIVE
        else:
            derived = const.CHALLENGE_STATUS_UPCOMING

        if _STATUS_ORDER.get(derived, 0) < _STATUS_ORDER.get(current, 0):
            return current
        return derived

    @staticmethod
    def cancel(challenge: ChallengeData) -> ChallengeData:
        """Return a cancelled copy of the challenge.

        Raises:
            ChallengeStateError: If the challenge is already completed or
                cancelled.
        """
        current = challenge.get(
            const.DATA_CHALLENGE_STATUS, const.CHALLENGE_STATUS_UPCOMING
        )
        if current not in _CANCELLABLE_STATUSES:
            raise ChallengeStateError(
                challenge.get(const.DATA_CHALLENGE_ID, ""),
                current,
                const.CHALLENGE_STATUS_CANCELLED,
            )
        cancelled = copy.deepcopy(challenge)
        cancelled[const.DATA_CHALLENGE_STATUS] = const.CHALLENGE_STATUS_CANCELLED
        return cancelled

    @staticmethod
    def days_remaining(challenge: ChallengeData, today: date | str) -> int | None:
        """Return whole days left in an active challenge (None otherwise)."""
        if (
            ChallengeEngine.derive_status(challenge, today)
            != const.CHALLENGE_STATUS_ACTIVE
        ):
            return None
        today_day = dt_parse_date(today)
        end = dt_parse_date(challenge.get(const.DATA_CHALLENGE_END_DATE))
        if today_day is None or end is None:
            return None
        return max(0, (end - today_day).days)

    @staticmethod
    def duration_days(challenge: ChallengeData) -> int:
        """Return the number of days between start_date and end_date."""
        start = dt_parse_date(challenge.get(const.DATA_CHALLENGE_START_DATE))
        end = dt_parse_date(challenge.get(const.DATA_CHALLENGE_END_DATE))
        if start is None or end is None:
            return 0
        return max(0, (end - start).days)

    # =========================================================================
    # PARTICIPATION
    # =========================================================================

    @staticmethod
    def validate_join(
        challenge: ChallengeData,
        participants: Iterable[ParticipantData],
        user_id: str,
        linked_habit_ids: Sequence[str],
        today: date | str,
        habits: Mapping[str, HabitData] | None = None,
    ) -> None:
        """Validate that a user may join with the given linked habits.

        Raises:
            ChallengeConfigurationError: Linked habits do not fit the
                challenge's habit-match mode.
            ChallengeJoinError: Challenge closed, late join disallowed,
                challenge full, user already a member, or a linked habit is
                not an active habit of the user.
        """
        challenge_id = challenge.get(const.DATA_CHALLENGE_ID, "")
        status = ChallengeEngine.derive_status(challenge, today)
        settings = ChallengeEngine.get_settings(challenge)

        if status in const.CHALLENGE_TERMINAL_STATUSES:
            raise ChallengeJoinError(challenge_id, user_id, f"challenge is {status}")
        if status == const.CHALLENGE_STATUS_ACTIVE and not settings.get(
            const.DATA_SETTINGS_ALLOW_LATE_JOIN, const.DEFAULT_ALLOW_LATE_JOIN
        ):
            raise ChallengeJoinError(
                challenge_id, user_id, "late joining is not allowed"
            )

        members = [
            p
            for p in participants
            if p.get(const.DATA_PARTICIPANT_STATUS) != const.PARTICIPANT_STATUS_DROPPED
        ]
        if any(p.get(const.DATA_PARTICIPANT_USER_ID) == user_id for p in members):
            raise ChallengeJoinError(challenge_id, user_id, "already a participant")

        max_participants = settings.get(const.DATA_SETTINGS_MAX_PARTICIPANTS)
        if max_participants and len(members) >= max_participants:
            raise ChallengeJoinError(
                challenge_id,
                user_id,
                f"challenge is full ({max_participants} participants)",
            )

        validate_links(HabitMatch.from_challenge(challenge), linked_habit_ids)

        if habits is None:
            return
        for habit_id in linked_habit_ids:
            habit = habits.get(habit_id)
            if habit is None:
                raise ChallengeJoinError(
                    challenge_id, user_id, f"unknown habit {habit_id}"
                )
            if habit.get(const.DATA_HABIT_OWNER_ID) != user_id:
                raise ChallengeJoinError(
                    challenge_id, user_id, f"habit {habit_id} belongs to another user"
                )
            if not habit.get(const.DATA_HABIT_IS_ACTIVE, True):
                raise ChallengeJoinError(
                    challenge_id, user_id, f"habit {habit_id} is not active"
                )

    @staticmethod
    def make_participant(
        challenge: ChallengeData,
        user_id: str,
        linked_habit_ids: Sequence[str],
        joined_at: str,
    ) -> ParticipantData:
        """Create a fresh participant record with zeroed progress."""
        return ParticipantData(
            challenge_id=challenge.get(const.DATA_CHALLENGE_ID, ""),
            user_id=user_id,
            linked_habit_ids=list(linked_habit_ids),
            joined_at=joined_at,
            progress=_empty_progress(),
            status=const.PARTICIPANT_STATUS_ACTIVE,
            completed_at=None,
        )

    @staticmethod
    def drop_participant(participant: ParticipantData) -> ParticipantData:
        """Return a dropped copy of an active participant (explicit leave).

        Raises:
            ChallengeStateError: If the participant is not active.
        """
        current = participant.get(const.DATA_PARTICIPANT_STATUS)
        if current != const.PARTICIPANT_STATUS_ACTIVE:
            raise ChallengeStateError(
                participant.get(const.DATA_PARTICIPANT_USER_ID, ""),
                str(current),
                const.PARTICIPANT_STATUS_DROPPED,
            )
        dropped = copy.deepcopy(participant)
        dropped[const.DATA_PARTICIPANT_STATUS] = const.PARTICIPANT_STATUS_DROPPED
        return dropped

    @staticmethod
    def apply_update(
        participant: ParticipantData, update: ProgressUpdate
    ) -> ParticipantData:
        """Return a copy of the participant carrying the update."""
        updated = copy.deepcopy(participant)
        updated[const.DATA_PARTICIPANT_PROGRESS] = copy.deepcopy(update.progress)
        updated[const.DATA_PARTICIPANT_STATUS] = update.status
        updated[const.DATA_PARTICIPANT_COMPLETED_AT] = update.completed_at
        return updated

    # =========================================================================
    # TIMELINE
    # =========================================================================

    @staticmethod
    def evaluation_window(
        challenge: ChallengeData,
        participant: ParticipantData,
        as_of: date,
        tz: ZoneInfo | None = None,
    ) -> tuple[date, date] | None:
        """Return [max(start_date, joined day), min(as_of, end_date)] or None."""
        start = dt_parse_date(challenge.get(const.DATA_CHALLENGE_START_DATE))
        end = dt_parse_date(challenge.get(const.DATA_CHALLENGE_END_DATE))
        if start is None or end is None:
            return None

        joined = dt_parse(participant.get(const.DATA_PARTICIPANT_JOINED_AT), tz)
        if joined is not None:
            start = max(start, as_local(joined, tz).date())

        last = min(as_of, end)
        if last < start:
            return None
        return start, last

    @staticmethod
    def weekly_quota(
        challenge: ChallengeData,
        participant: ParticipantData,
        habits: Mapping[str, HabitData],
    ) -> int | None:
        """Return the credited days a week needs, or None for day-based challenges.

        Only set when every linked habit is known and has a weekly_count
        rule. `any` needs the smallest times_per_week; every other mode
        needs the largest.
        """
        linked = participant.get(const.DATA_PARTICIPANT_LINKED_HABIT_IDS) or []
        quotas: list[int] = []
        for habit_id in linked:
            habit = habits.get(habit_id)
            if habit is None:
                return None
            schedule = ScheduleEngine(habit.get(const.DATA_HABIT_RECURRENCE))
            if not schedule.is_window_rule:
                return None
            quotas.append(schedule.times_per_week)
        if not quotas:
            return None
        if HabitMatch.from_challenge(challenge).mode == const.HABIT_MATCH_ANY:
            return min(quotas)
        return max(quotas)

    @staticmethod
    def build_timeline(
        challenge: ChallengeData,
        participant: ParticipantData,
        habits: Mapping[str, HabitData],
        completions: Iterable[CompletionEntry],
        as_of: date | str,
        tz: ZoneInfo | None = None,
    ) -> list[DayRecord]:
        """Evaluate every day of the participant's window.

        Linked habits that are archived (from `archived_on`) or missing from
        `habits` stay in the day's states as unsatisfied slots; a missing
        habit is assumed due daily.

        weekly_count habits are judged per week, so a day they were not
        logged never makes the day due. When every linked habit is weekly
        the day states hold all of them and a day is due only when credited.

        Returns:
            DayRecord per calendar day, ascending.
        """
        as_of_day = dt_parse_date(as_of)
        if as_of_day is None:
            return []
        window = ChallengeEngine.evaluation_window(
            challenge, participant, as_of_day, tz
        )
        if window is None:
            return []
        start, end = window

        match = HabitMatch.from_challenge(challenge)
        rules = ChallengeEngine.get_rules(challenge)
        linked = list(participant.get(const.DATA_PARTICIPANT_LINKED_HABIT_IDS, []))
        entries = list(completions)

        by_habit = {
            habit_id: CompletionEngine.index_by_date(entries, habit_id)
            for habit_id in linked
        }
        schedules: dict[str, ScheduleEngine] = {}
        archived_on: dict[str, date | None] = {}
        for habit_id in linked:
            habit = habits.get(habit_id)
            schedules[habit_id] = ScheduleEngine(
                habit.get(const.DATA_HABIT_RECURRENCE) if habit else None
            )
            archived_on[habit_id] = (
                dt_parse_date(habit.get(const.DATA_HABIT_ARCHIVED_ON)) if habit else None
            )

        known = [habits[h] for h in linked if h in habits]
        all_boolean = all(CompletionEngine.is_boolean_habit(h) for h in known)
        weekly = ChallengeEngine.weekly_quota(challenge, participant, habits) is not None

        records: list[DayRecord] = []
        for day in iter_days(start, end):
            states: dict[str, bool] = {}
            counting: list[tuple[HabitData, CompletionEntry]] = []
            fixed_due = False
            for habit_id in linked:
                schedule = schedules[habit_id]
                if not schedule.is_due(day):
                    continue
                habit = habits.get(habit_id)
                entry = by_habit[habit_id].get(day)
                archived = archived_on[habit_id]
                satisfied = (
                    habit is not None
                    and (archived is None or day < archived)
                    and entry is not None
                    and CompletionEngine.counts(entry, habit, rules, tz)
                )
                if schedule.is_window_rule:
                    # An unlogged eligible day is not an unmet due day
                    if not satisfied and not weekly:
                        continue
                else:
                    fixed_due = True
                states[habit_id] = satisfied
                if satisfied:
                    counting.append((habit, entry))

            credit = bool(states) and day_credit(match, states)
            due = fixed_due or credit
            value = 0.0
            satisfied_at = None
            if credit:
                if all_boolean:
                    value = 1.0
                else:
                    value = round_value(
                        sum(
                            CompletionEngine.entry_value(entry)
                            for habit, entry in counting
                            if not CompletionEngine.is_boolean_habit(habit)
                        )
                    )
                instants = [
                    instant
                    for _habit, entry in counting
                    if (instant := CompletionEngine.satisfied_at(entry, tz))
                ]
                satisfied_at = dt_to_iso(max(instants)) if instants else None

            records.append(
                DayRecord(
                    date=day.isoformat(),
                    due=due,
                    credit=credit,
                    value=value,
                    satisfied_at=satisfied_at,
                )
            )
        return records

    # =========================================================================
    # PROGRESS
    # =========================================================================

    @staticmethod
    def compute_progress(
        challenge: ChallengeData,
        participant: ParticipantData,
        habits: Mapping[str, HabitData],
        completions: Iterable[CompletionEntry],
        as_of: date | str,
        tz: ZoneInfo | None = None,
    ) -> ProgressUpdate:
        """Recompute a participant's progress from the ledger.

        Args:
            challenge: Challenge snapshot
            participant: Participant snapshot (joined_at, linked habits, status)
            habits: Habit snapshots keyed by habit id
            completions: Ledger entries (entries of other habits are ignored)
            as_of: The caller's canonical "today"
            tz: Timezone for end-of-day checks

        Returns:
            ProgressUpdate; team_goal completion and milestones are settled
            across participants by `complete_team_if_reached`.
        """
        user_id = participant.get(const.DATA_PARTICIPANT_USER_ID, "")
        prior_status = participant.get(
            const.DATA_PARTICIPANT_STATUS, const.PARTICIPANT_STATUS_ACTIVE
        )
        as_of_day = dt_parse_date(as_of)
        entries = list(completions)
        timeline = ChallengeEngine.build_timeline(
            challenge, participant, habits, entries, as_of, tz
        )
        if as_of_day is None or not timeline:
            return ProgressUpdate(
                user_id=user_id,
                progress=_empty_progress(),
                status=prior_status
                if prior_status == const.PARTICIPANT_STATUS_DROPPED
                else const.PARTICIPANT_STATUS_ACTIVE,
            )

        challenge_type = challenge.get(const.DATA_CHALLENGE_TYPE)
        if challenge_type not in const.CHALLENGE_TYPES:
            const.LOGGER.debug(
                "ChallengeEngine: Unknown challenge type %s, scoring as cumulative",
                challenge_type,
            )
            challenge_type = const.CHALLENGE_TYPE_CUMULATIVE

        end_date = dt_parse_date(challenge.get(const.DATA_CHALLENGE_END_DATE))
        last_day = dt_parse_date(timeline[-1]["date"])
        open_day = as_of_day if end_date is None or as_of_day <= end_date else None

        day_periods = ChallengeEngine._day_periods(timeline, open_day, tz)
        quota = ChallengeEngine.weekly_quota(challenge, participant, habits)
        if quota is None:
            judged = day_periods
            last_key = last_day
        else:
            closing = end_date if end_date is not None else last_day
            judged = ChallengeEngine._week_periods(
                timeline, quota, open_day, closing, tz
            )
            last_key = week_start(last_day)
        if challenge_type in (
            const.CHALLENGE_TYPE_STREAK,
            const.CHALLENGE_TYPE_CONSISTENCY,
        ):
            metric_periods = judged
        else:
            metric_periods = day_periods

        # Metric timeline over closed periods
        series: list[MetricPoint] = []
        contributions: list[MetricPoint] = []
        run = 0
        total = 0.0
        achieved = 0
        expected = 0
        metric = 0.0
        value_reached_at: str | None = None

        for period in metric_periods:
            achieved += period.achieved
            expected += period.expected
            if period.credit:
                run += 1
                total = round_value(total + period.value)
                if period.value:
                    contributions.append(
                        MetricPoint(value=period.value, at=period.at)
                    )
            else:
                run = 0

            match challenge_type:
                case const.CHALLENGE_TYPE_STREAK:
                    new_metric = float(run)
                case const.CHALLENGE_TYPE_CONSISTENCY:
                    new_metric = calculate_percentage(achieved, expected)
                case _:
                    new_metric = total

            if new_metric != metric:
                value_reached_at = period.at
                metric = new_metric
            series.append(MetricPoint(value=metric, at=period.at))

        streak = StreakEngine.run_from_credits(
            {period.key: period.credit for period in judged},
            last_key,
            unit=const.STREAK_UNIT_DAYS if quota is None else const.STREAK_UNIT_WEEKS,
            as_of_open=open_day is not None,
        )
        completion_rate = calculate_percentage(
            sum(period.achieved for period in judged),
            sum(period.expected for period in judged),
            const.PERCENT_PRECISION,
        )

        progress = ParticipantProgress(
            current_value=metric,
            current_streak=streak["current"],
            best_streak=streak["longest"],
            completion_rate=completion_rate,
            last_logged_at=ChallengeEngine._last_logged_at(
                participant, entries, timeline, tz
            ),
            value_reached_at=value_reached_at,
        )

        update = ProgressUpdate(
            user_id=user_id,
            progress=progress,
            status=const.PARTICIPANT_STATUS_ACTIVE,
            timeline=timeline,
            contributions=contributions,
        )

        if prior_status == const.PARTICIPANT_STATUS_DROPPED:
            update.status = const.PARTICIPANT_STATUS_DROPPED
            return update
        if challenge_type == const.CHALLENGE_TYPE_TEAM_GOAL:
            return update

        target = ChallengeEngine.target_value(challenge)
        milestones = challenge.get(const.DATA_CHALLENGE_MILESTONES) or []

        if challenge_type == const.CHALLENGE_TYPE_CONSISTENCY:
            window_closed = end_date is not None and as_of_day > end_date
            if window_closed and target is not None and metric >= target:
                update.completed_at = dt_to_iso(end_of_local_day(end_date, tz))
            update.crossings = GamificationEngine.evaluate_milestones(
                milestones,
                user_id,
                [MetricPoint(value=metric, at=value_reached_at)],
            )
        else:
            if target is not None:
                for point in series:
                    if point["value"] >= target:
                        update.completed_at = point["at"]
                        break
            update.crossings = GamificationEngine.evaluate_milestones(
                milestones, user_id, series
            )

        if update.completed_at is not None:
            update.status = const.PARTICIPANT_STATUS_COMPLETED
        return update

    @staticmethod
    def _day_periods(
        timeline: Sequence[DayRecord], open_day: date | None, tz: ZoneInfo | None
    ) -> list[_Period]:
        """Closed due days; an unsatisfied open day is skipped."""
        periods: list[_Period] = []
        for record in timeline:
            if not record["due"]:
                continue
            day = dt_parse_date(record["date"])
            credit = record["credit"]
            if day == open_day and not credit:
                continue
            periods.append(
                _Period(
                    key=day,
                    credit=credit,
                    value=record["value"],
                    at=record["satisfied_at"]
                    if credit
                    else dt_to_iso(end_of_local_day(day, tz)),
                    achieved=int(credit),
                )
            )
        return periods

    @staticmethod
    def _week_periods(
        timeline: Sequence[DayRecord],
        quota: int,
        open_day: date | None,
        closing: date,
        tz: ZoneInfo | None,
    ) -> list[_Period]:
        """Judge each ISO week of the window against the weekly quota.

        A week cut by the challenge start, the join day or `closing` needs
        min(quota, days inside). The open week is skipped until it is met.
        """
        first = dt_parse_date(timeline[0]["date"])
        last = dt_parse_date(timeline[-1]["date"])
        hits: dict[date, list[DayRecord]] = defaultdict(list)
        for record in timeline:
            if record["credit"]:
                hits[week_start(dt_parse_date(record["date"]))].append(record)

        periods: list[_Period] = []
        for monday, week_first, week_last in iter_weeks(first, last):
            sunday = monday + timedelta(days=const.DAYS_PER_WEEK - 1)
            inside = (min(sunday, closing) - week_first).days + 1
            required = min(quota, inside)
            credited = hits.get(monday, [])
            met = len(credited) >= required
            is_open = open_day is not None and week_first <= open_day <= week_last
            if is_open and not met:
                continue
            if met:
                instants = [
                    instant
                    for record in credited[:required]
                    if (instant := dt_parse(record["satisfied_at"], tz))
                ]
                at = dt_to_iso(max(instants)) if instants else None
            else:
                at = dt_to_iso(end_of_local_day(week_last, tz))
            periods.append(
                _Period(
                    key=monday,
                    credit=met,
                    value=round_value(sum(record["value"] for record in credited)),
                    at=at,
                    achieved=min(len(credited), required),
                    expected=required,
                )
            )
        return periods

    @staticmethod
    def _last_logged_at(
        participant: ParticipantData,
        entries: Sequence[CompletionEntry],
        timeline: Sequence[DayRecord],
        tz: ZoneInfo | None,
    ) -> str | None:
        """Latest instant any linked habit was logged inside the window."""
        if not timeline:
            return None
        first = timeline[0]["date"]
        last = timeline[-1]["date"]
        linked = set(participant.get(const.DATA_PARTICIPANT_LINKED_HABIT_IDS, []))
        instants = []
        for entry in entries:
            if entry.get(const.DATA_ENTRY_HABIT_ID) not in linked:
                continue
            day = dt_parse_date(entry.get(const.DATA_ENTRY_DATE))
            if day is None or not first <= day.isoformat() <= last:
                continue
            if not entry.get(const.DATA_ENTRY_COMPLETED) and entry.get(
                const.DATA_ENTRY_VALUE
            ) is None:
                continue
            instant = CompletionEngine.satisfied_at(entry, tz)
            if instant is not None:
                instants.append(instant)
        return dt_to_iso(max(instants)) if instants else None

    # =========================================================================
    # TEAM GOAL
    # =========================================================================

    @staticmethod
    def team_pool_total(
        challenge: ChallengeData, participants: Iterable[ParticipantData]
    ) -> float:
        """Return the shared pool: sum of non-dropped contributions.

        Computed at read time; the pool is never stored.
        """
        if challenge.get(const.DATA_CHALLENGE_TYPE) != const.CHALLENGE_TYPE_TEAM_GOAL:
            const.LOGGER.debug(
                "ChallengeEngine: team_pool_total on non-team challenge %s",
                challenge.get(const.DATA_CHALLENGE_ID),
            )
        return round_value(
            sum(
                float(p.get(const.DATA_PARTICIPANT_PROGRESS, {}).get(
                    const.DATA_PROGRESS_CURRENT_VALUE, 0.0
                ))
                for p in participants
                if p.get(const.DATA_PARTICIPANT_STATUS)
                != const.PARTICIPANT_STATUS_DROPPED
            )
        )

    @staticmethod
    def complete_team_if_reached(
        challenge: ChallengeData, updates: Mapping[str, ProgressUpdate]
    ) -> dict[str, ProgressUpdate]:
        """Settle team_goal completion and milestones across participants.

        The pool timeline merges every non-dropped participant's credited-day
        contributions in time order. When it meets the target, every
        non-dropped participant completes at the crossing instant.

        Args:
            challenge: team_goal challenge snapshot
            updates: ProgressUpdate per user for ALL participants

        Returns:
            New {user_id: ProgressUpdate}; dropped participants unchanged.
        """
        members = {
            user_id: update
            for user_id, update in updates.items()
            if update.status != const.PARTICIPANT_STATUS_DROPPED
        }
        contributions = sorted(
            (point for update in members.values() for point in update.contributions),
            key=lambda point: (dt_parse(point["at"]) is None, point["at"] or ""),
        )

        pool_series: list[MetricPoint] = []
        pool = 0.0
        for point in contributions:
            pool = round_value(pool + point["value"])
            pool_series.append(MetricPoint(value=pool, at=point["at"]))

        target = ChallengeEngine.target_value(challenge)
        completed_at = None
        if target is not None:
            for point in pool_series:
                if point["value"] >= target:
                    completed_at = point["at"]
                    break

        milestones = challenge.get(const.DATA_CHALLENGE_MILESTONES) or []
        settled: dict[str, ProgressUpdate] = dict(updates)
        for user_id, update in members.items():
            settled[user_id] = replace(
                update,
                status=const.PARTICIPANT_STATUS_COMPLETED
                if completed_at is not None
                else const.PARTICIPANT_STATUS_ACTIVE,
                completed_at=completed_at,
                crossings=GamificationEngine.evaluate_milestones(
                    milestones, user_id, pool_series
                ),
            )
        return settled

    @staticmethod
    def percent_complete(challenge: ChallengeData, value: float) -> float:
        """Return value as a percentage of the target (0.0 if no target)."""
        target = ChallengeEngine.target_value(challenge)
        if target is None:
            return 0.0
        return calculate_percentage(value, target)

    # =========================================================================
    # AGGREGATES
    # =========================================================================

    @staticmethod
    def summarize_stats(
        challenge: ChallengeData, participants: Iterable[ParticipantData]
    ) -> ChallengeStats:
        """Aggregate stats over non-dropped participants.

        average_progress is the mean current_value (one decimal); top_streak
        is the highest current streak.
        """
        members = [
            p
            for p in participants
            if p.get(const.DATA_PARTICIPANT_STATUS) != const.PARTICIPANT_STATUS_DROPPED
        ]
        values = [
            float(p[const.DATA_PARTICIPANT_PROGRESS][const.DATA_PROGRESS_CURRENT_VALUE])
            for p in members
        ]
        streaks = [
            int(p[const.DATA_PARTICIPANT_PROGRESS][const.DATA_PROGRESS_CURRENT_STREAK])
            for p in members
        ]
        return ChallengeStats(
            participant_count=len(members),
            completed_count=sum(
                1
                for p in members
                if p.get(const.DATA_PARTICIPANT_STATUS)
                == const.PARTICIPANT_STATUS_COMPLETED
            ),
            average_progress=round_percent(sum(values) / len(values)) if values else 0.0,
            top_streak=max(streaks, default=0),
        )
