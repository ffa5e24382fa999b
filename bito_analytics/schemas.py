# File: schemas.py
"""Record schemas for Bito analytics.

Validates habit, challenge and completion records where they enter the
managers and the ledger. Engines stay lenient and never validate; a record
that passed these schemas is guaranteed to be readable by every engine.
"""

from __future__ import annotations

from typing import Any

import voluptuous as vol

from . import const
from .utils.dt_utils import dt_parse, dt_parse_date

# =============================================================================
# INPUT VALIDATION HELPERS
# =============================================================================


def valid_date(value: Any) -> str:
    """Validate an ISO date string (a datetime prefix is accepted).

    Raises:
        vol.Invalid: If the value is not a parseable date
    """
    if not isinstance(value, str) or dt_parse_date(value) is None:
        raise vol.Invalid(f"Invalid date: {value!r}")
    return value


def valid_instant(value: Any) -> str:
    """Validate an ISO datetime string.

    Raises:
        vol.Invalid: If the value is not a parseable instant
    """
    if not isinstance(value, str) or dt_parse(value) is None:
        raise vol.Invalid(f"Invalid datetime: {value!r}")
    return value


def _non_empty_str() -> vol.All:
    return vol.All(str, vol.Length(min=1))


# --- Record Schemas ---
RECURRENCE_RULE_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_RECURRENCE_KIND): vol.In(
            sorted(const.RECURRENCE_KINDS)
        ),
        vol.Optional(const.DATA_RECURRENCE_DAYS): [
            vol.All(int, vol.Range(min=0, max=const.DAYS_PER_WEEK - 1))
        ],
        vol.Optional(const.DATA_RECURRENCE_TIMES_PER_WEEK): vol.All(
            int, vol.Range(min=1, max=const.DAYS_PER_WEEK)
        ),
    }
)

HABIT_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_HABIT_ID): _non_empty_str(),
        vol.Required(const.DATA_HABIT_OWNER_ID): _non_empty_str(),
        vol.Optional(const.DATA_HABIT_NAME): str,
        vol.Optional(const.DATA_HABIT_RECURRENCE): RECURRENCE_RULE_SCHEMA,
        vol.Optional(const.DATA_HABIT_METHODOLOGY): vol.In(
            [
                const.METHODOLOGY_BOOLEAN,
                const.METHODOLOGY_NUMERIC,
                const.METHODOLOGY_DURATION,
                const.METHODOLOGY_RATING,
            ]
        ),
        vol.Optional(const.DATA_HABIT_TARGET_VALUE): vol.Any(None, vol.Coerce(float)),
        vol.Optional(const.DATA_HABIT_IS_ACTIVE): bool,
        vol.Optional(const.DATA_HABIT_ARCHIVED_ON): vol.Any(None, valid_date),
        vol.Optional(const.DATA_HABIT_CREATED_ON): vol.Any(None, valid_date),
    },
    extra=vol.ALLOW_EXTRA,
)

COMPLETION_ENTRY_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_ENTRY_HABIT_ID): str,
        vol.Required(const.DATA_ENTRY_DATE): str,
        vol.Optional(const.DATA_ENTRY_COMPLETED): bool,
        vol.Optional(const.DATA_ENTRY_VALUE): vol.Any(None, vol.Coerce(float)),
        vol.Optional(const.DATA_ENTRY_RECORDED_AT): vol.Any(None, valid_instant),
    },
    extra=vol.ALLOW_EXTRA,
)

CHALLENGE_RULES_SCHEMA = vol.Schema(
    {
        vol.Optional(const.DATA_RULES_TARGET_VALUE): vol.Any(None, vol.Coerce(float)),
        vol.Optional(const.DATA_RULES_TARGET_UNIT): str,
        vol.Optional(const.DATA_RULES_MINIMUM_DAILY_VALUE): vol.Any(
            None, vol.Coerce(float)
        ),
        vol.Optional(const.DATA_RULES_GRACE_PERIOD_HOURS): vol.Any(
            None, vol.All(int, vol.Range(min=0, max=const.MAX_GRACE_PERIOD_HOURS))
        ),
        vol.Optional(const.DATA_RULES_ALLOW_MAKEUP_DAYS): bool,
    },
    extra=vol.ALLOW_EXTRA,
)

CHALLENGE_SETTINGS_SCHEMA = vol.Schema(
    {
        vol.Optional(const.DATA_SETTINGS_MAX_PARTICIPANTS): vol.Any(
            None, vol.All(int, vol.Range(min=1))
        ),
        vol.Optional(const.DATA_SETTINGS_ALLOW_LATE_JOIN): bool,
        vol.Optional(const.DATA_SETTINGS_SHOW_LEADERBOARD): bool,
        vol.Optional(const.DATA_SETTINGS_ANONYMIZE_LEADERBOARD): bool,
    },
    extra=vol.ALLOW_EXTRA,
)

MILESTONE_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_MILESTONE_VALUE): vol.Coerce(float),
        vol.Optional(const.DATA_MILESTONE_LABEL): str,
        vol.Optional(const.DATA_MILESTONE_REACHED_BY): list,
    },
    extra=vol.ALLOW_EXTRA,
)

CHALLENGE_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_CHALLENGE_ID): _non_empty_str(),
        vol.Required(const.DATA_CHALLENGE_TYPE): vol.In(sorted(const.CHALLENGE_TYPES)),
        vol.Required(const.DATA_CHALLENGE_START_DATE): valid_date,
        vol.Required(const.DATA_CHALLENGE_END_DATE): valid_date,
        vol.Optional(const.DATA_CHALLENGE_STATUS): vol.In(
            [
                const.CHALLENGE_STATUS_UPCOMING,
                const.CHALLENGE_STATUS_ACTIVE,
                const.CHALLENGE_STATUS_COMPLETED,
                const.CHALLENGE_STATUS_CANCELLED,
            ]
        ),
        vol.Optional(const.DATA_CHALLENGE_HABIT_MATCH_MODE): vol.In(
            [
                const.HABIT_MATCH_SINGLE,
                const.HABIT_MATCH_ANY,
                const.HABIT_MATCH_ALL,
                const.HABIT_MATCH_MINIMUM,
            ]
        ),
        vol.Optional(const.DATA_CHALLENGE_HABIT_MATCH_MINIMUM): vol.Any(
            None, vol.All(int, vol.Range(min=1))
        ),
        vol.Optional(const.DATA_CHALLENGE_RULES): CHALLENGE_RULES_SCHEMA,
        vol.Optional(const.DATA_CHALLENGE_SETTINGS): CHALLENGE_SETTINGS_SCHEMA,
        vol.Optional(const.DATA_CHALLENGE_MILESTONES): [MILESTONE_SCHEMA],
    },
    extra=vol.ALLOW_EXTRA,
)
