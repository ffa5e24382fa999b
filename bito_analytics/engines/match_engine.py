"""Match Engine - reduce per-habit states into one day credit.

A challenge participant links one or more habits. On each challenge day the
linked habits produce a {habit_id: satisfied} map, and the challenge's
habit-match mode collapses it into a single boolean:

- single: exactly one linked habit; its state is the credit
- any: at least one linked habit satisfied
- all: every linked habit satisfied (an empty map is never satisfied)
- minimum: at least `minimum` linked habits satisfied

ARCHITECTURE: This is a pure logic engine with no state.
Misconfigured matches are rejected by `validate_links` at join/configure
time and are never silently coerced.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .. import const

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from ..type_defs import ChallengeData


class ChallengeConfigurationError(Exception):
    """Raised when a challenge's habit-match configuration is unusable.

    Attributes:
        mode: The habit-match mode being validated
        reason: Human-readable explanation
    """

    def __init__(self, mode: str, reason: str) -> None:
        """Initialize ChallengeConfigurationError.

        Args:
            mode: The habit-match mode being validated
            reason: Human-readable explanation
        """
        self.mode = mode
        self.reason = reason
        super().__init__(f"Invalid habit match configuration ({mode}): {reason}")


@dataclass(frozen=True, slots=True)
class HabitMatch:
    """Habit-match mode of a challenge, with its minimum for `minimum` mode."""

    mode: str
    minimum: int | None = None

    @classmethod
    def from_challenge(cls, challenge: ChallengeData) -> HabitMatch:
        """Build the match variant stored on a challenge record."""
        return cls(
            mode=challenge.get(
                const.DATA_CHALLENGE_HABIT_MATCH_MODE, const.HABIT_MATCH_SINGLE
            ),
            minimum=challenge.get(const.DATA_CHALLENGE_HABIT_MATCH_MINIMUM),
        )


def day_credit(match: HabitMatch, states: Mapping[str, bool]) -> bool:
    """Reduce a day's habit states into one credit.

    Args:
        match: Habit-match variant
        states: {habit_id: satisfied} for the linked habits due that day

    Returns:
        True if the day counts for the participant.

    Raises:
        ChallengeConfigurationError: For an unknown mode.
    """
    satisfied = sum(1 for state in states.values() if state)

    match match.mode:
        case const.HABIT_MATCH_SINGLE:
            return len(states) == 1 and satisfied == 1
        case const.HABIT_MATCH_ANY:
            return satisfied >= 1
        case const.HABIT_MATCH_ALL:
            return bool(states) and satisfied == len(states)
        case const.HABIT_MATCH_MINIMUM:
            return match.minimum is not None and satisfied >= match.minimum
        case _:
            raise ChallengeConfigurationError(match.mode, "unknown habit match mode")


def validate_links(match: HabitMatch, linked_habit_ids: Sequence[str]) -> None:
    """Validate linked habits against the match mode.

    Raises:
        ChallengeConfigurationError: No linked habits, `single` with other
            than one habit, or `minimum` without a positive minimum or with a
            minimum larger than the number of linked habits.
    """
    count = len(linked_habit_ids)
    if count == 0:
        raise ChallengeConfigurationError(match.mode, "no linked habits")
    if len(set(linked_habit_ids)) != count:
        raise ChallengeConfigurationError(match.mode, "duplicate linked habits")

    match match.mode:
        case const.HABIT_MATCH_SINGLE:
            if count != 1:
                raise ChallengeConfigurationError(
                    match.mode, f"requires exactly 1 linked habit, got {count}"
                )
        case const.HABIT_MATCH_ANY | const.HABIT_MATCH_ALL:
            pass
        case const.HABIT_MATCH_MINIMUM:
            if match.minimum is None or match.minimum < 1:
                raise ChallengeConfigurationError(
                    match.mode, "habit_match_minimum must be a positive integer"
                )
            if match.minimum > count:
                raise ChallengeConfigurationError(
                    match.mode,
                    f"habit_match_minimum {match.minimum} exceeds "
                    f"{count} linked habits",
                )
        case _:
            raise ChallengeConfigurationError(match.mode, "unknown habit match mode")
