"""Tests for CompletionLedger.

Tests cover:
- Upsert keyed on (habit_id, date) with date normalization
- Invalid rows rejected
- Read-only snapshots and per-habit reads
- Concurrent writers never duplicate a row
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from bito_analytics.ledger import CompletionLedger

from tests.helpers import day, make_entry


class TestUpsert:
    """Tests for upsert and get."""

    def test_same_day_overwrites(self) -> None:
        """A second write for the same habit and day replaces the first."""
        ledger = CompletionLedger()
        ledger.upsert(make_entry("habit-1", day(0)))
        ledger.upsert(make_entry("habit-1", day(0), completed=False))

        assert len(ledger) == 1
        assert ledger.get("habit-1", day(0).isoformat())["completed"] is False

    def test_datetime_date_is_normalized(self) -> None:
        """An ISO datetime in the date field addresses the same row."""
        ledger = CompletionLedger()
        ledger.upsert(make_entry("habit-1", day(0)))
        entry = make_entry("habit-1", day(0), value=3)
        entry["date"] = f"{day(0).isoformat()}T08:00:00"

        stored = ledger.upsert(entry)

        assert stored["date"] == day(0).isoformat()
        assert len(ledger) == 1

    @pytest.mark.parametrize(
        "entry",
        [
            {"habit_id": "", "date": "2026-01-05", "completed": True},
            {"habit_id": "habit-1", "date": "not-a-date", "completed": True},
        ],
    )
    def test_invalid_rows_rejected(self, entry) -> None:
        """Rows need a habit id and a parseable date."""
        with pytest.raises(ValueError, match="habit_id and a valid date"):
            CompletionLedger().upsert(entry)

    def test_get_missing(self) -> None:
        """Unknown rows and bad dates return None."""
        ledger = CompletionLedger()
        assert ledger.get("habit-1", day(0).isoformat()) is None
        assert ledger.get("habit-1", "garbage") is None

    def test_returned_rows_are_copies(self) -> None:
        """Mutating a returned row does not touch the ledger."""
        ledger = CompletionLedger([make_entry("habit-1", day(0))])
        row = ledger.get("habit-1", day(0).isoformat())
        row["completed"] = False
        assert ledger.get("habit-1", day(0).isoformat())["completed"] is True


class TestReads:
    """Tests for snapshot and entries_for."""

    def test_snapshot_is_read_only(self) -> None:
        """Snapshots cannot be written to."""
        snapshot = CompletionLedger([make_entry("habit-1", day(0))]).snapshot()
        with pytest.raises(TypeError):
            snapshot[("habit-1", "2026-01-06")] = make_entry("habit-1", day(1))

    def test_entries_for_filters_and_orders(self) -> None:
        """Rows of the requested habits, ordered by date."""
        ledger = CompletionLedger(
            [
                make_entry("habit-1", day(2)),
                make_entry("habit-2", day(0)),
                make_entry("habit-1", day(0)),
                make_entry("habit-3", day(1)),
            ]
        )
        rows = ledger.entries_for(["habit-1", "habit-2"])
        assert [(r["habit_id"], r["date"]) for r in rows] == [
            ("habit-1", day(0).isoformat()),
            ("habit-2", day(0).isoformat()),
            ("habit-1", day(2).isoformat()),
        ]

    def test_iteration(self) -> None:
        """Iterating yields every row."""
        ledger = CompletionLedger([make_entry("habit-1", day(i)) for i in range(3)])
        assert len(list(ledger)) == 3


class TestConcurrency:
    """Concurrent upserts."""

    def test_concurrent_writes_never_duplicate(self) -> None:
        """Many threads checking the same habit-day leave exactly one row."""
        ledger = CompletionLedger()

        def _write(i: int) -> None:
            ledger.upsert(make_entry("habit-1", day(i % 3), value=i))

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(_write, range(300)))

        assert len(ledger) == 3
        assert {row["date"] for row in ledger} == {
            day(0).isoformat(),
            day(1).isoformat(),
            day(2).isoformat(),
        }
