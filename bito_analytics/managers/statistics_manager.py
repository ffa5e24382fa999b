"""Statistics Manager - Cached per-habit statistics with visibility filtering.

Keeps the cached HabitStats of each habit current:
- Invalidates a habit's cache when a completion for it is recorded or the
  habit itself is updated or archived
- Recomputes lazily on read via StatisticsEngine
- Filters what other workspace members may see via auth_helpers

ARCHITECTURE:
- StatisticsManager = STATEFUL cache + event listening
- StatisticsEngine = pure statistics math
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any

from .. import const
from ..engines.statistics_engine import StatisticsEngine
from ..helpers.auth_helpers import filter_visible, visible_fields
from ..utils.dt_utils import dt_today_local
from .base_manager import BaseManager

if TYPE_CHECKING:
    from datetime import date
    from zoneinfo import ZoneInfo

    from ..ledger import CompletionLedger
    from ..type_defs import HabitData, HabitStats
    from .base_manager import Dispatcher


class StatisticsManager(BaseManager):
    """Manager for cached habit statistics.

    Listens to SIGNAL_SUFFIX_COMPLETION_RECORDED and SIGNAL_SUFFIX_HABIT_UPDATED
    on the shared dispatcher, so it must be constructed with the same
    instance id and dispatcher as the ChallengeManager that writes
    completions and habits.
    """

    def __init__(
        self,
        instance_id: str,
        ledger: CompletionLedger,
        habits: dict[str, HabitData],
        dispatcher: Dispatcher | None = None,
        tz: ZoneInfo | None = None,
    ) -> None:
        """Initialize the statistics manager.

        Args:
            instance_id: Workspace id; scopes listened events
            ledger: Shared completion ledger
            habits: Shared habit snapshots keyed by habit id
            dispatcher: Shared event dispatcher
            tz: Canonical timezone for day boundaries
        """
        super().__init__(instance_id, dispatcher)
        self.ledger = ledger
        self.habits = habits
        self.tz = tz
        self._lock = threading.Lock()
        # habit_id -> (as_of ISO date, stats); only the latest as_of is kept
        self._cache: dict[str, tuple[str, HabitStats]] = {}
        self.listen(const.SIGNAL_SUFFIX_COMPLETION_RECORDED, self._invalidate)
        self.listen(const.SIGNAL_SUFFIX_HABIT_UPDATED, self._invalidate)

    def _invalidate(self, payload: dict[str, Any]) -> None:
        with self._lock:
            self._cache.pop(payload.get("habit_id"), None)

    def habit_stats(self, habit_id: str, as_of: date | None = None) -> HabitStats:
        """Return (cached) statistics of a habit as of a day.

        Raises:
            KeyError: If the habit is unknown.
        """
        as_of_key = (as_of or dt_today_local(self.tz)).isoformat()
        with self._lock:
            cached = self._cache.get(habit_id)
        if cached is not None and cached[0] == as_of_key:
            return dict(cached[1])  # type: ignore[return-value]

        habit = self.habits[habit_id]
        stats = StatisticsEngine.compute_habit_stats(
            habit, self.ledger.entries_for([habit_id]), as_of_key, tz=self.tz
        )
        with self._lock:
            current = self._cache.get(habit_id)
            if current is None or current[0] <= as_of_key:
                self._cache[habit_id] = (as_of_key, stats)
        return dict(stats)  # type: ignore[return-value]

    def cached_days(self, habit_id: str) -> list[str]:
        """Return the as_of days currently cached for a habit."""
        with self._lock:
            cached = self._cache.get(habit_id)
        return [cached[0]] if cached is not None else []

    def visible_stats(
        self,
        habit_id: str,
        viewer_role: str,
        share_level: str | None,
        is_self: bool = False,
        as_of: date | None = None,
        base: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Return a habit's stats record filtered for a viewer.

        Args:
            habit_id: Habit whose stats are shown
            viewer_role: Workspace role of the viewer
            share_level: Owner's share level for this habit
            is_self: True when the viewer owns the habit
            as_of: Evaluation day
            base: Extra base fields (workspace_id, adopted_at, ...) to merge in
        """
        stats = self.habit_stats(habit_id, as_of)
        habit = self.habits[habit_id]
        record: dict[str, Any] = {
            const.FIELD_USER_ID: habit.get(const.DATA_HABIT_OWNER_ID),
            const.FIELD_HABIT_ID: habit_id,
            const.FIELD_IS_ACTIVE: habit.get(const.DATA_HABIT_IS_ACTIVE, True),
            **(base or {}),
            const.FIELD_CURRENT_STREAK: stats["current_streak"],
            const.FIELD_LONGEST_STREAK: stats["longest_streak"],
            const.FIELD_TOTAL_CHECKS: stats["total_checks"],
            const.FIELD_LAST_CHECKED: stats["last_checked"],
            const.FIELD_COMPLETION_RATE: stats["completion_rate"],
        }
        return filter_visible(record, visible_fields(viewer_role, share_level, is_self))
