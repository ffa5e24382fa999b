# File: helpers/auth_helpers.py
"""Visibility helper functions for Bito analytics.

Decides which statistics fields a workspace member may see on another
member's habit. One capability function covers every share level so that
callers never re-implement the privacy switch.

Share levels:
    - full: every field, including personal settings
    - progress-only: current streak, total checks, completion rate
    - streaks-only: current and longest streak
    - private: base fields only (the owner still sees everything)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Final

from .. import const

if TYPE_CHECKING:
    from collections.abc import Mapping


# ==============================================================================
# Field Sets
# ==============================================================================

BASE_FIELDS: Final[frozenset[str]] = frozenset(
    {
        const.FIELD_USER_ID,
        const.FIELD_HABIT_ID,
        const.FIELD_WORKSPACE_ID,
        const.FIELD_IS_ACTIVE,
        const.FIELD_ADOPTED_AT,
    }
)

_STAT_FIELDS: Final[frozenset[str]] = frozenset(
    {
        const.FIELD_CURRENT_STREAK,
        const.FIELD_LONGEST_STREAK,
        const.FIELD_TOTAL_CHECKS,
        const.FIELD_LAST_CHECKED,
        const.FIELD_COMPLETION_RATE,
    }
)

ALL_FIELDS: Final[frozenset[str]] = (
    BASE_FIELDS | _STAT_FIELDS | {const.FIELD_PERSONAL_SETTINGS}
)

SHARE_LEVEL_FIELDS: Final[dict[str, frozenset[str]]] = {
    const.SHARE_LEVEL_FULL: ALL_FIELDS,
    const.SHARE_LEVEL_PROGRESS_ONLY: BASE_FIELDS
    | {
        const.FIELD_CURRENT_STREAK,
        const.FIELD_TOTAL_CHECKS,
        const.FIELD_COMPLETION_RATE,
    },
    const.SHARE_LEVEL_STREAKS_ONLY: BASE_FIELDS
    | {const.FIELD_CURRENT_STREAK, const.FIELD_LONGEST_STREAK},
    const.SHARE_LEVEL_PRIVATE: BASE_FIELDS,
}


# ==============================================================================
# Capability Checks
# ==============================================================================


def visible_fields(
    viewer_role: str,
    share_level: str | None,
    is_self: bool = False,
) -> frozenset[str]:
    """Return the fields a viewer may see on a member's habit statistics.

    Args:
        viewer_role: Workspace role of the viewer (owner/admin/member/viewer)
        share_level: The habit owner's share level; None uses the default
        is_self: True when the viewer owns the habit

    Returns:
        Frozen set of visible field names.
    """
    if is_self:
        return ALL_FIELDS

    level = share_level or const.DEFAULT_SHARE_LEVEL
    if level not in SHARE_LEVEL_FIELDS:
        const.LOGGER.debug(
            "visible_fields: Unknown share level %s, treating as private", level
        )
        level = const.SHARE_LEVEL_PRIVATE

    # Workspace owners see private habits in full
    if level == const.SHARE_LEVEL_PRIVATE and viewer_role == const.ROLE_OWNER:
        return ALL_FIELDS

    return SHARE_LEVEL_FIELDS[level]


def filter_visible(
    record: Mapping[str, Any], fields: frozenset[str]
) -> dict[str, Any]:
    """Return only the visible keys of a statistics record."""
    return {key: value for key, value in record.items() if key in fields}
