"""Type definitions for Bito analytics records.

ARCHITECTURE DECISION: TypedDict records in, TypedDict records out
==================================================================

The persistence layer hands the engines plain dict snapshots of habits,
completion entries, challenges and participants. This file pins their shape:

1. **TypedDict for STATIC structures** (fixed keys known at design time):
   - Entity snapshots: HabitData, CompletionEntry, ChallengeData, ...
   - Engine results: StreakResult, ProgressUpdate payloads, LeaderboardEntry
   - Benefit: Full type safety, IDE autocomplete, catch bugs early

2. **Mapping[str, X] for DYNAMIC structures** (keys determined at runtime):
   - Habit snapshots keyed by habit id
   - Per-day habit states keyed by habit id

Engines treat every record they receive as read-only and return new records.
Calendar dates travel as ISO date strings ("2026-01-18"), instants as ISO
8601 datetime strings ("2026-01-18T21:30:00+00:00").

NOTE: TypedDict is STATIC ANALYSIS ONLY. It does not validate at runtime;
the caller validates records before invoking the engines.
"""

from typing import Literal, NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

HabitId = str
UserId = str
ChallengeId = str
ISODatetime = str  # ISO 8601 datetime string "2026-01-18T12:30:00+00:00"
ISODate = str  # ISO 8601 date string (no time) "2026-01-18"

RecurrenceKind = Literal["daily", "specific_days", "weekly_count"]
Methodology = Literal["boolean", "numeric", "duration", "rating"]
ChallengeType = Literal["streak", "cumulative", "consistency", "team_goal"]
ChallengeStatus = Literal["upcoming", "active", "completed", "cancelled"]
ParticipantStatus = Literal["active", "completed", "dropped"]
HabitMatchMode = Literal["single", "any", "all", "minimum"]


# =============================================================================
# Habits and the completion ledger
# =============================================================================


class RecurrenceRule(TypedDict, total=False):
    """When a habit expects a completion.

    - daily: due every day
    - specific_days: due on the listed weekdays (0=Mon, 6=Sun)
    - weekly_count: N completions per ISO week, on any days
    """

    kind: RecurrenceKind
    days: list[int]  # specific_days only
    times_per_week: int  # weekly_count only


class HabitData(TypedDict):
    """Snapshot of a habit definition.

    Habits referenced by an active challenge are soft-archived, never deleted;
    `archived_on` marks the first day the habit stops counting.
    """

    internal_id: HabitId
    owner_id: UserId
    name: str
    recurrence: RecurrenceRule
    methodology: Methodology
    target_value: float
    target_unit: str
    is_active: bool
    archived_on: NotRequired[ISODate | None]
    created_on: NotRequired[ISODate | None]


class CompletionEntry(TypedDict):
    """One row of the completion ledger.

    Unique per (habit_id, date); a check/uncheck overwrites the row.
    """

    habit_id: HabitId
    date: ISODate
    completed: bool
    value: float | None
    recorded_at: ISODatetime | None


HabitsCollection = dict[HabitId, HabitData]


# =============================================================================
# Challenges
# =============================================================================


class ChallengeRules(TypedDict, total=False):
    """Scoring rules of a challenge."""

    target_value: float
    target_unit: str
    minimum_daily_value: float | None
    grace_period_hours: int
    allow_makeup_days: bool


class ChallengeSettings(TypedDict, total=False):
    """Participation and display settings of a challenge."""

    max_participants: int | None
    allow_late_join: bool
    show_leaderboard: bool
    anonymize_leaderboard: bool


class MilestoneReach(TypedDict):
    """A single user's crossing of a milestone."""

    user_id: UserId
    reached_at: ISODatetime


class MilestoneData(TypedDict):
    """A challenge milestone. `reached_by` is append-only, one entry per user."""

    value: float
    label: str
    reached_by: list[MilestoneReach]


class ChallengeData(TypedDict):
    """Snapshot of a challenge definition."""

    internal_id: ChallengeId
    workspace_id: str
    created_by: UserId
    name: str
    challenge_type: ChallengeType
    rules: ChallengeRules
    habit_match_mode: HabitMatchMode
    habit_match_minimum: NotRequired[int | None]
    start_date: ISODate
    end_date: ISODate
    status: ChallengeStatus
    milestones: list[MilestoneData]
    settings: NotRequired[ChallengeSettings]


class ParticipantProgress(TypedDict):
    """Recomputed progress of a participant. Never hand-edited."""

    current_value: float
    current_streak: int
    best_streak: int
    completion_rate: float
    last_logged_at: ISODatetime | None
    value_reached_at: ISODatetime | None  # When current_value was first attained


class ParticipantData(TypedDict):
    """Snapshot of a challenge participant."""

    challenge_id: ChallengeId
    user_id: UserId
    linked_habit_ids: list[HabitId]
    joined_at: ISODatetime
    progress: ParticipantProgress
    status: ParticipantStatus
    completed_at: NotRequired[ISODatetime | None]


class ChallengeStats(TypedDict):
    """Aggregate challenge statistics shown on challenge cards."""

    participant_count: int
    completed_count: int
    average_progress: float
    top_streak: int


# =============================================================================
# Engine Results
# =============================================================================


class StreakResult(TypedDict):
    """Result of StreakEngine.compute_streak()."""

    current: int
    longest: int
    unit: str  # "days" or "weeks"
    resets: list[ISODate]  # Due days on which a running streak was broken


class HabitStats(TypedDict):
    """Cached per-habit statistics."""

    total_checks: int
    current_streak: int
    longest_streak: int
    last_checked: ISODate | None
    completion_rate: float


class DayRecord(TypedDict):
    """One evaluated challenge day for a participant."""

    date: ISODate
    due: bool
    credit: bool
    value: float
    satisfied_at: ISODatetime | None


class MetricPoint(TypedDict):
    """A challenge metric as it stood at an instant (metric timeline)."""

    value: float
    at: ISODatetime | None


class MilestoneCrossing(TypedDict):
    """A milestone newly crossed by a user, ready to append."""

    milestone_index: int
    milestone_value: float
    milestone_label: str
    reach: MilestoneReach


class LeaderboardEntry(TypedDict):
    """A computed leaderboard row. Never persisted."""

    rank: int
    user_id: UserId
    display_name: str
    metric_value: float
    status: ParticipantStatus


# =============================================================================
# Event Payload Types (Manager events)
# =============================================================================


class ProgressUpdatedEvent(TypedDict, total=False):
    """Payload for SIGNAL_SUFFIX_PROGRESS_UPDATED."""

    challenge_id: ChallengeId
    user_id: UserId
    progress: ParticipantProgress
    status: ParticipantStatus


class MilestoneReachedEvent(TypedDict, total=False):
    """Payload for SIGNAL_SUFFIX_MILESTONE_REACHED."""

    challenge_id: ChallengeId
    user_id: UserId
    milestone_value: float
    milestone_label: str
    reached_at: ISODatetime


class ParticipantCompletedEvent(TypedDict, total=False):
    """Payload for SIGNAL_SUFFIX_PARTICIPANT_COMPLETED."""

    challenge_id: ChallengeId
    user_id: UserId
    completed_at: ISODatetime
