"""Tests for StatisticsManager and the visibility helpers.

Tests cover:
- Cached habit stats and invalidation on completion writes, habit updates
  and archiving
- Share-level field filtering (full, progress-only, streaks-only, private)
- Owner override for private habits and self view
"""

from __future__ import annotations

import pytest

from bito_analytics import const
from bito_analytics.helpers.auth_helpers import (
    ALL_FIELDS,
    BASE_FIELDS,
    filter_visible,
    visible_fields,
)
from bito_analytics.managers import ChallengeManager, StatisticsManager

from tests.helpers import day, make_entry, make_habit, make_rule


@pytest.fixture
def seeded(manager: ChallengeManager, stats_manager: StatisticsManager) -> StatisticsManager:
    """A stats manager over habit-1 with checks on days 0-2."""
    manager.upsert_habit(make_habit("habit-1", created_on=day(0).isoformat()))
    for i in range(3):
        manager.record_completion(make_entry("habit-1", day(i)), as_of=day(i))
    return stats_manager


class TestHabitStats:
    """Cached statistics."""

    def test_stats_values(self, seeded: StatisticsManager) -> None:
        """Three consecutive checks."""
        stats = seeded.habit_stats("habit-1", as_of=day(2))
        assert stats == {
            "total_checks": 3,
            "current_streak": 3,
            "longest_streak": 3,
            "last_checked": day(2).isoformat(),
            "completion_rate": 100.0,
        }

    def test_cache_invalidated_on_write(
        self, manager: ChallengeManager, seeded: StatisticsManager
    ) -> None:
        """A new completion is reflected on the next read."""
        assert seeded.habit_stats("habit-1", as_of=day(3))["total_checks"] == 3
        manager.record_completion(make_entry("habit-1", day(3)), as_of=day(3))
        assert seeded.habit_stats("habit-1", as_of=day(3))["total_checks"] == 4

    def test_rule_change_invalidates(
        self, manager: ChallengeManager, stats_manager: StatisticsManager
    ) -> None:
        """A new recurrence is reflected on the next read."""
        manager.upsert_habit(make_habit("habit-7"))
        for i in (0, 2, 4):
            manager.record_completion(make_entry("habit-7", day(i)), as_of=day(i))
        assert stats_manager.habit_stats("habit-7", as_of=day(4))["current_streak"] == 1

        manager.upsert_habit(
            make_habit(
                "habit-7", rule=make_rule(const.RECURRENCE_SPECIFIC_DAYS, days=[0, 2, 4])
            )
        )
        assert stats_manager.habit_stats("habit-7", as_of=day(4))["current_streak"] == 3

    def test_archive_invalidates(
        self, manager: ChallengeManager, seeded: StatisticsManager
    ) -> None:
        """Archiving a habit drops its cached stats."""
        seeded.habit_stats("habit-1", as_of=day(2))
        assert seeded.cached_days("habit-1") == [day(2).isoformat()]

        manager.archive_habit("habit-1", day(3).isoformat())
        assert seeded.cached_days("habit-1") == []

    def test_only_latest_day_cached(self, seeded: StatisticsManager) -> None:
        """Reading older days never grows or rolls back the cache."""
        seeded.habit_stats("habit-1", as_of=day(1))
        seeded.habit_stats("habit-1", as_of=day(2))
        older = seeded.habit_stats("habit-1", as_of=day(1))

        assert older["total_checks"] == 2
        assert seeded.cached_days("habit-1") == [day(2).isoformat()]

    def test_returned_stats_are_copies(self, seeded: StatisticsManager) -> None:
        """Mutating a result does not poison the cache."""
        stats = seeded.habit_stats("habit-1", as_of=day(2))
        stats["total_checks"] = 99
        assert seeded.habit_stats("habit-1", as_of=day(2))["total_checks"] == 3

    def test_unknown_habit(self, stats_manager: StatisticsManager) -> None:
        """Unknown habits raise KeyError."""
        with pytest.raises(KeyError):
            stats_manager.habit_stats("ghost", as_of=day(0))


class TestVisibleStats:
    """Share-level filtering of member stats."""

    BASE = {"workspace_id": "workspace-1", "adopted_at": "2026-01-01T00:00:00+00:00"}

    def _visible(self, seeded, role, share_level, is_self=False):
        return seeded.visible_stats(
            "habit-1", role, share_level, is_self, as_of=day(2), base=self.BASE
        )

    def test_progress_only(self, seeded: StatisticsManager) -> None:
        """progress-only hides longest streak and last check."""
        record = self._visible(seeded, const.ROLE_MEMBER, const.SHARE_LEVEL_PROGRESS_ONLY)
        assert set(record) == BASE_FIELDS | {
            "current_streak",
            "total_checks",
            "completion_rate",
        }
        assert record["total_checks"] == 3

    def test_streaks_only(self, seeded: StatisticsManager) -> None:
        """streaks-only shows the two streak fields."""
        record = self._visible(seeded, const.ROLE_MEMBER, const.SHARE_LEVEL_STREAKS_ONLY)
        assert set(record) - BASE_FIELDS == {"current_streak", "longest_streak"}

    def test_private_hides_stats(self, seeded: StatisticsManager) -> None:
        """Private habits show only base fields to members."""
        record = self._visible(seeded, const.ROLE_ADMIN, const.SHARE_LEVEL_PRIVATE)
        assert set(record) == BASE_FIELDS
        assert record["user_id"] == "user-1"

    def test_owner_sees_private(self, seeded: StatisticsManager) -> None:
        """Workspace owners see private habits in full."""
        record = self._visible(seeded, const.ROLE_OWNER, const.SHARE_LEVEL_PRIVATE)
        assert "longest_streak" in record

    def test_self_sees_everything(self, seeded: StatisticsManager) -> None:
        """The habit owner always sees every stat."""
        record = self._visible(
            seeded, const.ROLE_VIEWER, const.SHARE_LEVEL_PRIVATE, is_self=True
        )
        assert "last_checked" in record


class TestVisibleFields:
    """Tests for the visibility capability function."""

    def test_default_share_level(self) -> None:
        """None falls back to progress-only."""
        assert visible_fields(const.ROLE_MEMBER, None) == visible_fields(
            const.ROLE_MEMBER, const.SHARE_LEVEL_PROGRESS_ONLY
        )

    def test_unknown_level_is_private(self) -> None:
        """Unknown share levels are treated as private."""
        assert visible_fields(const.ROLE_MEMBER, "friends") == BASE_FIELDS

    def test_full_includes_personal_settings(self) -> None:
        """full exposes personal settings."""
        fields = visible_fields(const.ROLE_VIEWER, const.SHARE_LEVEL_FULL)
        assert fields == ALL_FIELDS
        assert const.FIELD_PERSONAL_SETTINGS in fields

    def test_filter_visible(self) -> None:
        """filter_visible keeps only listed keys."""
        record = {"user_id": "u", "current_streak": 2, "secret": True}
        assert filter_visible(record, BASE_FIELDS) == {"user_id": "u"}
