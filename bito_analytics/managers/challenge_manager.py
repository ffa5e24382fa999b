"""Challenge Manager - Orchestrates ledger writes and challenge recomputation.

This manager handles the stateful side of challenges:
- Completion writes (atomic ledger upsert)
- Incremental recompute of the participants a write affects
- Batch recompute from scratch
- Join / leave / cancel workflows
- Leaderboard, team pool and stats reads
- Event emission for progress, milestones and completions

ARCHITECTURE:
- ChallengeManager = STATEFUL orchestration (snapshots, events, logging)
- ChallengeEngine / GamificationEngine / LeaderboardEngine = pure logic

Both recompute paths call the same engine function over the same ledger,
so an incremental update and a full recompute always agree on progress,
status and completion. The team pool is summed at read time.
"""

from __future__ import annotations

import copy
import threading
from typing import TYPE_CHECKING, Any

from .. import const
from ..engines.challenge_engine import (
    ChallengeEngine,
    ChallengeJoinError,
    ChallengeStateError,
    ProgressUpdate,
)
from ..engines.gamification_engine import GamificationEngine
from ..engines.leaderboard_engine import LeaderboardEngine
from ..engines.match_engine import ChallengeConfigurationError
from ..ledger import CompletionLedger
from ..schemas import CHALLENGE_SCHEMA, HABIT_SCHEMA
from ..utils.dt_utils import dt_now_utc, dt_parse_date, dt_to_iso, dt_today_local
from .base_manager import BaseManager

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence
    from datetime import date
    from zoneinfo import ZoneInfo

    from ..type_defs import (
        ChallengeData,
        ChallengeStats,
        CompletionEntry,
        HabitData,
        LeaderboardEntry,
        ParticipantData,
    )
    from .base_manager import Dispatcher


# Re-export exceptions for external use
__all__ = [
    "ChallengeConfigurationError",
    "ChallengeJoinError",
    "ChallengeManager",
    "ChallengeNotFoundError",
    "ChallengeStateError",
]


class ChallengeNotFoundError(Exception):
    """Raised when an operation names an unknown challenge.

    Attributes:
        challenge_id: The id that was not found
    """

    def __init__(self, challenge_id: str) -> None:
        """Initialize ChallengeNotFoundError."""
        self.challenge_id = challenge_id
        super().__init__(f"Challenge not found: {challenge_id}")


class ChallengeManager(BaseManager):
    """Manager for challenge participation and progress.

    Responsibilities:
    - Own habit, challenge and participant snapshots for one workspace
    - Write completions to the ledger and recompute affected participants
    - Append milestone crossings (append-only) and emit events
    - Log referential gaps (linked habit missing or archived)

    NOT responsible for:
    - Analytics math (engines)
    - Persistence (the caller stores returned records)
    - Habit statistics caching (StatisticsManager)
    """

    def __init__(
        self,
        instance_id: str,
        ledger: CompletionLedger | None = None,
        habits: dict[str, HabitData] | None = None,
        dispatcher: Dispatcher | None = None,
        tz: ZoneInfo | None = None,
    ) -> None:
        """Initialize the challenge manager.

        Args:
            instance_id: Workspace id; scopes emitted events
            ledger: Shared completion ledger (a new one if omitted)
            habits: Shared habit snapshots keyed by habit id
            dispatcher: Shared event dispatcher
            tz: Canonical timezone for day boundaries
        """
        super().__init__(instance_id, dispatcher)
        self.ledger = ledger if ledger is not None else CompletionLedger()
        self.habits: dict[str, HabitData] = habits if habits is not None else {}
        self.tz = tz
        self._lock = threading.RLock()
        self._challenges: dict[str, ChallengeData] = {}
        self._participants: dict[str, dict[str, ParticipantData]] = {}

    # =========================================================================
    # Snapshots
    # =========================================================================

    def upsert_habit(self, habit: HabitData) -> None:
        """Store (or replace) a habit snapshot.

        Raises:
            vol.Invalid: If the habit record is malformed.
        """
        HABIT_SCHEMA(dict(habit))
        habit_id = habit[const.DATA_HABIT_ID]
        with self._lock:
            self.habits[habit_id] = copy.deepcopy(habit)
        self.emit(const.SIGNAL_SUFFIX_HABIT_UPDATED, habit_id=habit_id)

    def archive_habit(self, habit_id: str, archived_on: str) -> None:
        """Soft-archive a habit from `archived_on` onward.

        Habits referenced by challenges are never deleted; archived days
        count as unsatisfied for every linked participant.
        """
        with self._lock:
            habit = self.habits.get(habit_id)
            if habit is None:
                const.LOGGER.warning("Cannot archive habit %s - not found", habit_id)
                return
            habit[const.DATA_HABIT_ARCHIVED_ON] = archived_on
            habit[const.DATA_HABIT_IS_ACTIVE] = False
        const.LOGGER.info("Archived habit %s from %s", habit_id, archived_on)
        self.emit(const.SIGNAL_SUFFIX_HABIT_UPDATED, habit_id=habit_id)

    def add_challenge(
        self,
        challenge: ChallengeData,
        participants: Iterable[ParticipantData] = (),
    ) -> None:
        """Register a challenge and any existing participants.

        Raises:
            vol.Invalid: If the challenge record is malformed.
        """
        CHALLENGE_SCHEMA(dict(challenge))
        challenge_id = challenge[const.DATA_CHALLENGE_ID]
        with self._lock:
            self._challenges[challenge_id] = copy.deepcopy(challenge)
            self._participants[challenge_id] = {
                p[const.DATA_PARTICIPANT_USER_ID]: copy.deepcopy(p)
                for p in participants
            }
        const.LOGGER.debug("Registered challenge %s", challenge_id)

    def get_challenge(self, challenge_id: str) -> ChallengeData:
        """Return a copy of a challenge snapshot."""
        with self._lock:
            return copy.deepcopy(self._get_challenge(challenge_id))

    def get_participants(self, challenge_id: str) -> list[ParticipantData]:
        """Return copies of every participant of a challenge."""
        with self._lock:
            self._get_challenge(challenge_id)
            return copy.deepcopy(list(self._participants[challenge_id].values()))

    def get_participant(
        self, challenge_id: str, user_id: str
    ) -> ParticipantData | None:
        """Return a copy of one participant, or None."""
        with self._lock:
            self._get_challenge(challenge_id)
            participant = self._participants[challenge_id].get(user_id)
            return copy.deepcopy(participant) if participant else None

    def _get_challenge(self, challenge_id: str) -> ChallengeData:
        challenge = self._challenges.get(challenge_id)
        if challenge is None:
            raise ChallengeNotFoundError(challenge_id)
        return challenge

    # =========================================================================
    # Workflows
    # =========================================================================

    def join(
        self,
        challenge_id: str,
        user_id: str,
        linked_habit_ids: Sequence[str],
        joined_at: str | None = None,
        today: date | None = None,
    ) -> ParticipantData:
        """Add a participant after validation and compute their progress.

        Raises:
            ChallengeNotFoundError: Unknown challenge.
            ChallengeConfigurationError: Linked habits do not fit the match mode.
            ChallengeJoinError: Join rejected (closed, full, duplicate, ...).
        """
        today = today or dt_today_local(self.tz)
        joined_at = joined_at or dt_to_iso(dt_now_utc())
        with self._lock:
            challenge = self._get_challenge(challenge_id)
            participants = self._participants[challenge_id]
            ChallengeEngine.validate_join(
                challenge,
                participants.values(),
                user_id,
                linked_habit_ids,
                today,
                self.habits,
            )
            participants[user_id] = ChallengeEngine.make_participant(
                challenge, user_id, linked_habit_ids, joined_at
            )
            const.LOGGER.info(
                "User %s joined challenge %s with habits %s",
                user_id,
                challenge_id,
                list(linked_habit_ids),
            )
            self._recompute(challenge_id, [user_id], today)
            return copy.deepcopy(participants[user_id])

    def record_completion(
        self, entry: CompletionEntry, as_of: date | None = None
    ) -> list[ProgressUpdate]:
        """Upsert a completion and recompute the participants it affects.

        Only participants linking the entry's habit are recomputed (the
        whole team for team_goal challenges, see `_recompute`).

        Args:
            entry: Completion entry (check, uncheck or value change)
            as_of: The caller's canonical "today"

        Returns:
            ProgressUpdates applied, across all affected challenges.
        """
        as_of = as_of or dt_today_local(self.tz)
        row = self.ledger.upsert(entry)
        habit_id = row[const.DATA_ENTRY_HABIT_ID]
        self.emit(
            const.SIGNAL_SUFFIX_COMPLETION_RECORDED,
            habit_id=habit_id,
            date=row[const.DATA_ENTRY_DATE],
            completed=row[const.DATA_ENTRY_COMPLETED],
        )

        applied: list[ProgressUpdate] = []
        with self._lock:
            for challenge_id, challenge in self._challenges.items():
                if (
                    challenge.get(const.DATA_CHALLENGE_STATUS)
                    == const.CHALLENGE_STATUS_CANCELLED
                ):
                    continue
                participants = self._participants[challenge_id]
                affected = [
                    user_id
                    for user_id, p in participants.items()
                    if habit_id in p.get(const.DATA_PARTICIPANT_LINKED_HABIT_IDS, [])
                ]
                if not affected:
                    continue
                applied.extend(self._recompute(challenge_id, affected, as_of))
        return applied

    def recompute_all(
        self, as_of: date | None = None
    ) -> dict[str, list[ProgressUpdate]]:
        """Recompute every participant of every non-cancelled challenge."""
        as_of = as_of or dt_today_local(self.tz)
        results: dict[str, list[ProgressUpdate]] = {}
        with self._lock:
            for challenge_id, challenge in self._challenges.items():
                if (
                    challenge.get(const.DATA_CHALLENGE_STATUS)
                    == const.CHALLENGE_STATUS_CANCELLED
                ):
                    continue
                results[challenge_id] = self._recompute(
                    challenge_id, list(self._participants[challenge_id]), as_of
                )
        const.LOGGER.debug(
            "Recomputed %d challenges as of %s", len(results), as_of
        )
        return results

    def refresh_statuses(self, today: date | None = None) -> dict[str, str]:
        """Advance challenge statuses by the calendar. Returns new statuses."""
        today = today or dt_today_local(self.tz)
        with self._lock:
            return {
                challenge_id: self._refresh_status(challenge_id, today)
                for challenge_id in self._challenges
            }

    def leave(self, challenge_id: str, user_id: str) -> ParticipantData:
        """Drop a participant (explicit leave only).

        Raises:
            ChallengeNotFoundError: Unknown challenge.
            ChallengeStateError: The user is not an active participant.
        """
        with self._lock:
            self._get_challenge(challenge_id)
            participant = self._participants[challenge_id].get(user_id)
            if participant is None:
                raise ChallengeStateError(
                    user_id, "not_joined", const.PARTICIPANT_STATUS_DROPPED
                )
            dropped = ChallengeEngine.drop_participant(participant)
            self._participants[challenge_id][user_id] = dropped

        const.LOGGER.info("User %s left challenge %s", user_id, challenge_id)
        self.emit(
            const.SIGNAL_SUFFIX_PARTICIPANT_DROPPED,
            challenge_id=challenge_id,
            user_id=user_id,
        )
        return copy.deepcopy(dropped)

    def cancel(self, challenge_id: str) -> ChallengeData:
        """Cancel an upcoming or active challenge.

        Raises:
            ChallengeNotFoundError: Unknown challenge.
            ChallengeStateError: The challenge is already terminal.
        """
        with self._lock:
            challenge = self._get_challenge(challenge_id)
            old_status = challenge.get(const.DATA_CHALLENGE_STATUS)
            cancelled = ChallengeEngine.cancel(challenge)
            self._challenges[challenge_id] = cancelled

        const.LOGGER.info(
            "Challenge %s cancelled (was %s)", challenge_id, old_status
        )
        self.emit(
            const.SIGNAL_SUFFIX_CHALLENGE_STATUS_CHANGED,
            challenge_id=challenge_id,
            old_status=old_status,
            new_status=const.CHALLENGE_STATUS_CANCELLED,
        )
        return copy.deepcopy(cancelled)

    # =========================================================================
    # Reads
    # =========================================================================

    def leaderboard(
        self,
        challenge_id: str,
        display_names: Mapping[str, str] | Callable[[str], str] | None = None,
        force: bool = False,
    ) -> list[LeaderboardEntry]:
        """Return the challenge leaderboard, computed fresh."""
        with self._lock:
            challenge = self._get_challenge(challenge_id)
            participants = list(self._participants[challenge_id].values())
            return LeaderboardEngine.rank(
                challenge, participants, display_names, force=force
            )

    def team_pool(self, challenge_id: str) -> float:
        """Return the team_goal pool, summed at read time."""
        with self._lock:
            challenge = self._get_challenge(challenge_id)
            return ChallengeEngine.team_pool_total(
                challenge, self._participants[challenge_id].values()
            )

    def stats(self, challenge_id: str) -> ChallengeStats:
        """Return aggregate challenge statistics."""
        with self._lock:
            challenge = self._get_challenge(challenge_id)
            return ChallengeEngine.summarize_stats(
                challenge, self._participants[challenge_id].values()
            )

    # =========================================================================
    # Internals
    # =========================================================================

    def _refresh_status(self, challenge_id: str, today: date) -> str:
        challenge = self._challenges[challenge_id]
        old_status = challenge.get(const.DATA_CHALLENGE_STATUS)
        new_status = ChallengeEngine.derive_status(challenge, today)
        if new_status != old_status:
            challenge[const.DATA_CHALLENGE_STATUS] = new_status
            const.LOGGER.info(
                "Challenge %s status %s -> %s", challenge_id, old_status, new_status
            )
            self.emit(
                const.SIGNAL_SUFFIX_CHALLENGE_STATUS_CHANGED,
                challenge_id=challenge_id,
                old_status=old_status,
                new_status=new_status,
            )
        return new_status

    def _warn_referential_gaps(
        self, challenge_id: str, participant: ParticipantData, as_of: date
    ) -> None:
        for habit_id in participant.get(const.DATA_PARTICIPANT_LINKED_HABIT_IDS, []):
            habit = self.habits.get(habit_id)
            if habit is None:
                const.LOGGER.warning(
                    "Challenge %s: linked habit %s of user %s is missing; "
                    "its days count as unsatisfied",
                    challenge_id,
                    habit_id,
                    participant.get(const.DATA_PARTICIPANT_USER_ID),
                )
                continue
            archived_on = dt_parse_date(habit.get(const.DATA_HABIT_ARCHIVED_ON))
            if archived_on is not None and archived_on <= as_of:
                const.LOGGER.warning(
                    "Challenge %s: linked habit %s of user %s archived on %s",
                    challenge_id,
                    habit_id,
                    participant.get(const.DATA_PARTICIPANT_USER_ID),
                    archived_on,
                )

    def _recompute(
        self, challenge_id: str, user_ids: Iterable[str], as_of: date
    ) -> list[ProgressUpdate]:
        """Recompute the given participants and apply the results.

        team_goal completion depends on the shared pool, so any recompute
        of a team_goal challenge settles every participant together.
        """
        self._refresh_status(challenge_id, as_of)
        challenge = self._challenges[challenge_id]
        participants = self._participants[challenge_id]
        team_goal = (
            challenge.get(const.DATA_CHALLENGE_TYPE) == const.CHALLENGE_TYPE_TEAM_GOAL
        )
        if team_goal:
            user_ids = list(participants)

        updates: dict[str, ProgressUpdate] = {}
        for user_id in user_ids:
            participant = participants[user_id]
            self._warn_referential_gaps(challenge_id, participant, as_of)
            entries = self.ledger.entries_for(
                participant.get(const.DATA_PARTICIPANT_LINKED_HABIT_IDS, [])
            )
            updates[user_id] = ChallengeEngine.compute_progress(
                challenge, participant, self.habits, entries, as_of, self.tz
            )

        if team_goal:
            updates = ChallengeEngine.complete_team_if_reached(challenge, updates)

        for update in updates.values():
            self._apply(challenge_id, update)
        return list(updates.values())

    def _apply(self, challenge_id: str, update: ProgressUpdate) -> None:
        """Store an update, append milestone crossings, emit events."""
        challenge = self._challenges[challenge_id]
        participants = self._participants[challenge_id]
        previous = participants[update.user_id]
        old_status = previous.get(const.DATA_PARTICIPANT_STATUS)
        participants[update.user_id] = ChallengeEngine.apply_update(previous, update)

        if previous.get(const.DATA_PARTICIPANT_PROGRESS) != update.progress:
            self.emit(
                const.SIGNAL_SUFFIX_PROGRESS_UPDATED,
                challenge_id=challenge_id,
                user_id=update.user_id,
                progress=copy.deepcopy(update.progress),
                status=update.status,
            )

        if (
            update.status == const.PARTICIPANT_STATUS_COMPLETED
            and old_status != const.PARTICIPANT_STATUS_COMPLETED
        ):
            const.LOGGER.info(
                "User %s completed challenge %s at %s",
                update.user_id,
                challenge_id,
                update.completed_at,
            )
            self.emit(
                const.SIGNAL_SUFFIX_PARTICIPANT_COMPLETED,
                challenge_id=challenge_id,
                user_id=update.user_id,
                completed_at=update.completed_at,
            )

        if not update.crossings:
            return
        milestones = challenge.get(const.DATA_CHALLENGE_MILESTONES) or []
        challenge[const.DATA_CHALLENGE_MILESTONES] = GamificationEngine.apply_crossings(
            milestones, update.crossings
        )
        for crossing in update.crossings:
            if GamificationEngine.has_reached(
                milestones[crossing["milestone_index"]], update.user_id
            ):
                continue
            payload: dict[str, Any] = {
                "challenge_id": challenge_id,
                "user_id": update.user_id,
                "milestone_value": crossing["milestone_value"],
                "milestone_label": crossing["milestone_label"],
                "reached_at": crossing["reach"]["reached_at"],
            }
            const.LOGGER.info(
                "User %s reached milestone %s in challenge %s",
                update.user_id,
                crossing["milestone_label"] or crossing["milestone_value"],
                challenge_id,
            )
            self.emit(const.SIGNAL_SUFFIX_MILESTONE_REACHED, **payload)
