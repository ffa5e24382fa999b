"""Tests for GamificationEngine milestone evaluation.

Tests cover:
- Threshold detection in ascending order
- reached_at is the first timeline point meeting the threshold
- Idempotent re-evaluation and append-only application
"""

from __future__ import annotations

from bito_analytics.engines.gamification_engine import GamificationEngine
from bito_analytics.type_defs import MetricPoint, MilestoneData

from tests.helpers import day, recorded


def _milestones(*values: float) -> list[MilestoneData]:
    return [
        MilestoneData(value=value, label=f"{value:g} days", reached_by=[])
        for value in values
    ]


def _timeline(*values: float) -> list[MetricPoint]:
    return [
        MetricPoint(value=value, at=recorded(day(offset)))
        for offset, value in enumerate(values)
    ]


class TestEvaluateMilestones:
    """Tests for evaluate_milestones."""

    def test_crosses_in_ascending_order(self) -> None:
        """Unsorted milestone lists are evaluated low to high."""
        crossings = GamificationEngine.evaluate_milestones(
            _milestones(7, 3, 30), "user-1", _timeline(1, 2, 3, 4, 5, 6, 7)
        )
        assert [(c["milestone_index"], c["milestone_value"]) for c in crossings] == [
            (1, 3.0),
            (0, 7.0),
        ]
        assert crossings[0]["milestone_label"] == "3 days"

    def test_reached_at_is_first_crossing(self) -> None:
        """A metric that dips and recovers keeps the first instant."""
        crossings = GamificationEngine.evaluate_milestones(
            _milestones(3), "user-1", _timeline(1, 2, 3, 0, 1, 2, 3)
        )
        assert crossings[0]["reach"] == {
            "user_id": "user-1",
            "reached_at": recorded(day(2)),
        }

    def test_nothing_reached(self) -> None:
        """An empty or short timeline crosses nothing."""
        assert GamificationEngine.evaluate_milestones(_milestones(3), "u", []) == []
        assert (
            GamificationEngine.evaluate_milestones(_milestones(3), "u", _timeline(2))
            == []
        )

    def test_skips_users_already_credited(self) -> None:
        """Another user's reach does not hide the milestone from this user."""
        milestones = _milestones(3)
        milestones[0]["reached_by"].append(
            {"user_id": "user-2", "reached_at": recorded(day(0))}
        )
        crossings = GamificationEngine.evaluate_milestones(
            milestones, "user-1", _timeline(3)
        )
        assert len(crossings) == 1


class TestIdempotency:
    """Re-evaluation never duplicates a milestone reach."""

    def test_three_day_milestone_recorded_once(self) -> None:
        """Milestone 3 reached on day 3 and re-evaluated on day 4."""
        milestones = _milestones(3)

        first = GamificationEngine.evaluate_milestones(
            milestones, "user-1", _timeline(1, 2, 3)
        )
        milestones = GamificationEngine.apply_crossings(milestones, first)

        second = GamificationEngine.evaluate_milestones(
            milestones, "user-1", _timeline(1, 2, 3, 4)
        )
        milestones = GamificationEngine.apply_crossings(milestones, second)

        assert second == []
        assert milestones[0]["reached_by"] == [
            {"user_id": "user-1", "reached_at": recorded(day(2))}
        ]

    def test_apply_twice_does_not_duplicate(self) -> None:
        """Applying the same crossings again is a no-op."""
        milestones = _milestones(3)
        crossings = GamificationEngine.evaluate_milestones(
            milestones, "user-1", _timeline(3)
        )
        once = GamificationEngine.apply_crossings(milestones, crossings)
        twice = GamificationEngine.apply_crossings(once, crossings)
        assert twice == once
        assert milestones[0]["reached_by"] == []

    def test_out_of_range_index_ignored(self) -> None:
        """Crossings pointing at a missing milestone are dropped."""
        crossing = {
            "milestone_index": 5,
            "milestone_value": 3.0,
            "milestone_label": "3 days",
            "reach": {"user_id": "user-1", "reached_at": recorded(day(0))},
        }
        milestones = _milestones(3)
        assert GamificationEngine.apply_crossings(milestones, [crossing]) == milestones
