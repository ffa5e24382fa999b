"""Record factories for Bito analytics tests.

Builds minimal, valid TypedDict snapshots so each test states only the
fields it cares about.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from bito_analytics import const
from bito_analytics.type_defs import (
    ChallengeData,
    CompletionEntry,
    HabitData,
    ParticipantData,
    RecurrenceRule,
)

UTC_TZ = ZoneInfo("UTC")

# Monday 2026-01-05; every scenario date is derived from it
BASE_MONDAY = date(2026, 1, 5)


def day(offset: int) -> date:
    """Return BASE_MONDAY shifted by `offset` days."""
    return BASE_MONDAY + timedelta(days=offset)


def recorded(d: date, hour: int = 20, minute: int = 0) -> str:
    """Return an ISO instant on day `d` (UTC)."""
    return datetime.combine(d, time(hour, minute), tzinfo=UTC_TZ).isoformat()


def make_rule(
    kind: str = const.RECURRENCE_DAILY,
    days: list[int] | None = None,
    times_per_week: int | None = None,
) -> RecurrenceRule:
    """Create a RecurrenceRule."""
    rule: RecurrenceRule = {"kind": kind}  # type: ignore[typeddict-item]
    if days is not None:
        rule["days"] = days
    if times_per_week is not None:
        rule["times_per_week"] = times_per_week
    return rule


def make_habit(
    habit_id: str = "habit-1",
    *,
    owner_id: str = "user-1",
    rule: RecurrenceRule | None = None,
    methodology: str = const.METHODOLOGY_BOOLEAN,
    target_value: float = 1,
    target_unit: str = "times",
    is_active: bool = True,
    archived_on: str | None = None,
    created_on: str | None = None,
) -> HabitData:
    """Create a HabitData snapshot."""
    habit: HabitData = {
        "internal_id": habit_id,
        "owner_id": owner_id,
        "name": f"Habit {habit_id}",
        "recurrence": rule or make_rule(),
        "methodology": methodology,  # type: ignore[typeddict-item]
        "target_value": target_value,
        "target_unit": target_unit,
        "is_active": is_active,
    }
    if archived_on is not None:
        habit["archived_on"] = archived_on
    if created_on is not None:
        habit["created_on"] = created_on
    return habit


def make_entry(
    habit_id: str,
    d: date,
    *,
    completed: bool = True,
    value: float | None = None,
    recorded_at: str | None = None,
) -> CompletionEntry:
    """Create a CompletionEntry recorded on its own day unless overridden."""
    return {
        "habit_id": habit_id,
        "date": d.isoformat(),
        "completed": completed,
        "value": value,
        "recorded_at": recorded_at if recorded_at is not None else recorded(d),
    }


def make_entries(habit_id: str, days: list[date], **kwargs: Any) -> list[CompletionEntry]:
    """Create one entry per day."""
    return [make_entry(habit_id, d, **kwargs) for d in days]


def make_challenge(
    challenge_id: str = "challenge-1",
    *,
    challenge_type: str = const.CHALLENGE_TYPE_STREAK,
    target_value: float = 7,
    match_mode: str = const.HABIT_MATCH_SINGLE,
    match_minimum: int | None = None,
    start: date = BASE_MONDAY,
    end: date | None = None,
    status: str = const.CHALLENGE_STATUS_ACTIVE,
    milestones: list[float] | None = None,
    rules: dict[str, Any] | None = None,
    settings: dict[str, Any] | None = None,
) -> ChallengeData:
    """Create a ChallengeData snapshot (30 days long by default)."""
    challenge: ChallengeData = {
        "internal_id": challenge_id,
        "workspace_id": "workspace-1",
        "created_by": "user-1",
        "name": f"Challenge {challenge_id}",
        "challenge_type": challenge_type,  # type: ignore[typeddict-item]
        "rules": {"target_value": target_value, **(rules or {})},  # type: ignore[typeddict-item]
        "habit_match_mode": match_mode,  # type: ignore[typeddict-item]
        "start_date": start.isoformat(),
        "end_date": (end or start + timedelta(days=29)).isoformat(),
        "status": status,  # type: ignore[typeddict-item]
        "milestones": [
            {"value": value, "label": f"{value:g} days", "reached_by": []}
            for value in (milestones or [])
        ],
    }
    if match_minimum is not None:
        challenge["habit_match_minimum"] = match_minimum
    if settings is not None:
        challenge["settings"] = settings  # type: ignore[typeddict-item]
    return challenge


def make_participant(
    user_id: str = "user-1",
    linked_habit_ids: list[str] | None = None,
    *,
    challenge_id: str = "challenge-1",
    joined_at: str | None = None,
    status: str = const.PARTICIPANT_STATUS_ACTIVE,
    current_value: float = 0.0,
    current_streak: int = 0,
    value_reached_at: str | None = None,
) -> ParticipantData:
    """Create a ParticipantData snapshot (joined at BASE_MONDAY midnight)."""
    return {
        "challenge_id": challenge_id,
        "user_id": user_id,
        "linked_habit_ids": linked_habit_ids or ["habit-1"],
        "joined_at": joined_at or recorded(BASE_MONDAY, hour=0),
        "progress": {
            "current_value": current_value,
            "current_streak": current_streak,
            "best_streak": current_streak,
            "completion_rate": 0.0,
            "last_logged_at": None,
            "value_reached_at": value_reached_at,
        },
        "status": status,  # type: ignore[typeddict-item]
        "completed_at": None,
    }
