"""Leaderboard Engine - deterministic participant ranking.

Ranks the non-dropped participants of a challenge by the type-specific
metric stored in `progress.current_value`:
- streak: current streak length
- cumulative: accumulated value
- consistency: completion percentage
- team_goal: individual contribution to the pool

Ordering ties are broken by who reached the value first
(`progress.value_reached_at`), then who joined first, then by user id, so the
order is total and stable. Ranks use standard competition ranking ("1224"):
equal metric values share a rank and the next rank skips.

Leaderboards are computed on read and never persisted.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

from .. import const
from ..type_defs import LeaderboardEntry
from ..utils.dt_utils import dt_parse
from .challenge_engine import ChallengeEngine

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from ..type_defs import ChallengeData, ParticipantData


# Sorts missing timestamps after every real one
_LATEST: Final = datetime.max.replace(tzinfo=UTC)


def _instant(value: str | None) -> datetime:
    parsed = dt_parse(value)
    return parsed if parsed is not None else _LATEST


class LeaderboardEngine:
    """Stateless leaderboard ranking."""

    @staticmethod
    def metric_value(participant: ParticipantData) -> float:
        """Return the ranking metric of a participant."""
        progress = participant.get(const.DATA_PARTICIPANT_PROGRESS) or {}
        return float(progress.get(const.DATA_PROGRESS_CURRENT_VALUE, 0.0) or 0.0)

    @staticmethod
    def sort_key(participant: ParticipantData) -> tuple[float, datetime, datetime, str]:
        """Return the total ordering key (metric descending, then tie-breaks)."""
        progress = participant.get(const.DATA_PARTICIPANT_PROGRESS) or {}
        return (
            -LeaderboardEngine.metric_value(participant),
            _instant(progress.get(const.DATA_PROGRESS_VALUE_REACHED_AT)),
            _instant(participant.get(const.DATA_PARTICIPANT_JOINED_AT)),
            str(participant.get(const.DATA_PARTICIPANT_USER_ID, "")),
        )

    @staticmethod
    def rank(
        challenge: ChallengeData,
        participants: Iterable[ParticipantData],
        display_names: Mapping[str, str] | Callable[[str], str] | None = None,
        force: bool = False,
    ) -> list[LeaderboardEntry]:
        """Rank the challenge's participants.

        Args:
            challenge: Challenge snapshot (settings control visibility)
            participants: Participant snapshots
            display_names: Optional user_id -> name mapping or callable;
                defaults to the user id
            force: Build the board even when the challenge hides it

        Returns:
            LeaderboardEntry list in rank order; [] when hidden or empty.
        """
        settings = ChallengeEngine.get_settings(challenge)
        if not force and not settings.get(
            const.DATA_SETTINGS_SHOW_LEADERBOARD, const.DEFAULT_SHOW_LEADERBOARD
        ):
            return []
        anonymize = bool(
            settings.get(
                const.DATA_SETTINGS_ANONYMIZE_LEADERBOARD,
                const.DEFAULT_ANONYMIZE_LEADERBOARD,
            )
        )

        ranked = sorted(
            (
                p
                for p in participants
                if p.get(const.DATA_PARTICIPANT_STATUS)
                != const.PARTICIPANT_STATUS_DROPPED
            ),
            key=LeaderboardEngine.sort_key,
        )

        entries: list[LeaderboardEntry] = []
        previous_value: float | None = None
        current_rank = 0
        for position, participant in enumerate(ranked, start=1):
            value = LeaderboardEngine.metric_value(participant)
            if value != previous_value:
                current_rank = position
                previous_value = value

            user_id = str(participant.get(const.DATA_PARTICIPANT_USER_ID, ""))
            if anonymize:
                display_name = const.LEADERBOARD_ANONYMOUS_LABEL.format(
                    position=position
                )
            else:
                display_name = LeaderboardEngine._display_name(user_id, display_names)

            entries.append(
                LeaderboardEntry(
                    rank=current_rank,
                    user_id=user_id,
                    display_name=display_name,
                    metric_value=value,
                    status=participant.get(
                        const.DATA_PARTICIPANT_STATUS, const.PARTICIPANT_STATUS_ACTIVE
                    ),
                )
            )
        return entries

    @staticmethod
    def _display_name(
        user_id: str,
        display_names: Mapping[str, str] | Callable[[str], str] | None,
    ) -> str:
        if display_names is None:
            return user_id
        if callable(display_names):
            return display_names(user_id)
        return display_names.get(user_id, user_id)
