"""Tests for record schemas and their use at the manager/ledger boundary."""

from __future__ import annotations

import pytest
import voluptuous as vol

from bito_analytics import const
from bito_analytics.ledger import CompletionLedger
from bito_analytics.managers import ChallengeManager
from bito_analytics.schemas import (
    CHALLENGE_SCHEMA,
    HABIT_SCHEMA,
    RECURRENCE_RULE_SCHEMA,
    valid_date,
    valid_instant,
)

from tests.helpers import day, make_challenge, make_entry, make_habit, make_rule


class TestValidators:
    """Date and instant validators."""

    def test_valid_date(self) -> None:
        """ISO dates pass through unchanged."""
        assert valid_date("2026-01-05") == "2026-01-05"

    @pytest.mark.parametrize("value", ["", "yesterday", None, 20260105])
    def test_invalid_date(self, value) -> None:
        """Non-dates are rejected."""
        with pytest.raises(vol.Invalid):
            valid_date(value)

    def test_invalid_instant(self) -> None:
        """Garbage instants are rejected."""
        with pytest.raises(vol.Invalid):
            valid_instant("noon-ish")


class TestRecordSchemas:
    """Schema acceptance of factory records."""

    def test_factory_records_are_valid(self) -> None:
        """The test factories build schema-valid records."""
        HABIT_SCHEMA(dict(make_habit()))
        CHALLENGE_SCHEMA(
            dict(
                make_challenge(
                    match_mode=const.HABIT_MATCH_MINIMUM,
                    match_minimum=2,
                    milestones=[3, 7],
                    settings={"max_participants": 5},
                )
            )
        )

    def test_rule_weekday_range(self) -> None:
        """Weekdays outside 0..6 are rejected at the boundary."""
        with pytest.raises(vol.Invalid):
            RECURRENCE_RULE_SCHEMA(make_rule(const.RECURRENCE_SPECIFIC_DAYS, days=[7]))

    def test_grace_period_capped(self) -> None:
        """Grace periods above the maximum are rejected."""
        with pytest.raises(vol.Invalid):
            CHALLENGE_SCHEMA(dict(make_challenge(rules={"grace_period_hours": 13})))


class TestBoundaries:
    """Managers and the ledger validate on entry."""

    def test_manager_rejects_unknown_challenge_type(
        self, manager: ChallengeManager
    ) -> None:
        """Unknown challenge types never reach the engines."""
        with pytest.raises(vol.Invalid):
            manager.add_challenge(make_challenge(challenge_type="marathon"))

    def test_manager_rejects_bad_habit(self, manager: ChallengeManager) -> None:
        """Habits need an owner."""
        habit = make_habit()
        habit["owner_id"] = ""
        with pytest.raises(vol.Invalid):
            manager.upsert_habit(habit)

    def test_ledger_rejects_wrong_types(self) -> None:
        """Non-boolean completed flags are rejected as ValueError."""
        entry = make_entry("habit-1", day(0))
        entry["completed"] = "yes"
        with pytest.raises(ValueError, match="Invalid completion entry"):
            CompletionLedger().upsert(entry)
