"""Gamification Engine - Pure logic for challenge milestone evaluation.

This engine provides stateless, pure Python functions for:
- Milestone crossing detection over a metric timeline
- Append-only application of crossings to milestone records

ARCHITECTURE: This is a pure logic engine with no state.
All functions are static methods that operate on passed-in data.

PURITY REQUIREMENT: This engine receives ALL data via parameters.
The ChallengeEngine builds the metric timeline; the ChallengeManager applies
the crossings and emits events.

Milestone Rules:
- Thresholds are scanned in ascending order
- A user appears at most once in a milestone's `reached_by`
- `reached_at` is the instant the metric first met the threshold
- Re-evaluating an unchanged timeline appends nothing (idempotent)
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING

from .. import const
from ..type_defs import MilestoneReach

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ..type_defs import MetricPoint, MilestoneCrossing, MilestoneData


class GamificationEngine:
    """Pure logic engine for milestone evaluation.

    All methods are static - no instance state.

    Evaluation Flow:
        1. ChallengeEngine derives the metric timeline from the ledger
        2. Engine reports thresholds newly crossed by the user
        3. Manager applies them (append-only) and emits milestone events
    """

    @staticmethod
    def has_reached(milestone: MilestoneData, user_id: str) -> bool:
        """Return True if the user already appears in `reached_by`."""
        return any(
            reach.get(const.DATA_MILESTONE_REACH_USER_ID) == user_id
            for reach in milestone.get(const.DATA_MILESTONE_REACHED_BY, [])
        )

    @staticmethod
    def evaluate_milestones(
        milestones: Sequence[MilestoneData],
        user_id: str,
        timeline: Sequence[MetricPoint],
    ) -> list[MilestoneCrossing]:
        """Return the milestones the user has crossed but not yet been credited.

        Args:
            milestones: Challenge milestone records (read-only)
            user_id: Participant being evaluated
            timeline: Metric values in time order

        Returns:
            Crossings in ascending threshold order. Empty when nothing new
            was crossed.
        """
        crossings: list[MilestoneCrossing] = []
        ordered = sorted(
            enumerate(milestones),
            key=lambda item: float(item[1].get(const.DATA_MILESTONE_VALUE, 0)),
        )

        for index, milestone in ordered:
            if GamificationEngine.has_reached(milestone, user_id):
                continue
            threshold = float(milestone.get(const.DATA_MILESTONE_VALUE, 0))
            point = GamificationEngine._first_reaching(timeline, threshold)
            if point is None:
                # Later thresholds cannot be reached either
                break
            crossings.append(
                GamificationEngine._make_crossing(
                    index, milestone, user_id, point.get("at") or ""
                )
            )

        return crossings

    @staticmethod
    def apply_crossings(
        milestones: Sequence[MilestoneData],
        crossings: Sequence[MilestoneCrossing],
    ) -> list[MilestoneData]:
        """Return a copy of `milestones` with the crossings appended.

        Crossings for a user already present are ignored, so applying the
        same crossings twice never duplicates a user.
        """
        updated: list[MilestoneData] = copy.deepcopy(list(milestones))
        for crossing in crossings:
            index = crossing["milestone_index"]
            if not 0 <= index < len(updated):
                const.LOGGER.debug(
                    "GamificationEngine: Milestone index %s out of range", index
                )
                continue
            milestone = updated[index]
            user_id = crossing["reach"]["user_id"]
            if GamificationEngine.has_reached(milestone, user_id):
                continue
            milestone.setdefault(const.DATA_MILESTONE_REACHED_BY, []).append(
                MilestoneReach(
                    user_id=user_id, reached_at=crossing["reach"]["reached_at"]
                )
            )
        return updated

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    @staticmethod
    def _first_reaching(
        timeline: Sequence[MetricPoint], threshold: float
    ) -> MetricPoint | None:
        """Return the first timeline point whose value meets `threshold`."""
        for point in timeline:
            if point["value"] >= threshold:
                return point
        return None

    @staticmethod
    def _make_crossing(
        index: int,
        milestone: MilestoneData,
        user_id: str,
        reached_at: str,
    ) -> MilestoneCrossing:
        """Create a standardized MilestoneCrossing.

        Args:
            index: Position of the milestone in the challenge's list
            milestone: Milestone record
            user_id: Participant who crossed it
            reached_at: ISO instant of the crossing

        Returns:
            MilestoneCrossing TypedDict
        """
        return {
            "milestone_index": index,
            "milestone_value": float(milestone.get(const.DATA_MILESTONE_VALUE, 0)),
            "milestone_label": str(milestone.get(const.DATA_MILESTONE_LABEL, "")),
            "reach": {"user_id": user_id, "reached_at": reached_at},
        }
