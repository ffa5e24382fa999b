# File: ledger.py
"""In-memory completion ledger for Bito analytics.

Holds one CompletionEntry per (habit_id, date). Writes are atomic upserts:
concurrent checks of the same habit on the same day keep the last write and
never produce a duplicate row. Readers receive immutable snapshots and can
recompute while writers continue.
"""

from __future__ import annotations

import copy
import threading
from types import MappingProxyType
from typing import TYPE_CHECKING

import voluptuous as vol

from . import const
from .schemas import COMPLETION_ENTRY_SCHEMA
from .type_defs import CompletionEntry
from .utils.dt_utils import dt_parse_date

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

LedgerKey = tuple[str, str]


class CompletionLedger:
    """Thread-safe ledger keyed on (habit_id, ISO date).

    Thin in-memory cache; the persistence layer owns durability. Utilizes
    the normalized ISO date as part of the primary key so "2026-01-05" and
    "2026-01-05T08:00:00" address the same row.
    """

    def __init__(self, entries: Iterable[CompletionEntry] | None = None) -> None:
        """Initialize the ledger.

        Args:
            entries: Optional initial rows (later duplicates overwrite earlier).
        """
        self._lock = threading.Lock()
        self._rows: dict[LedgerKey, CompletionEntry] = {}
        for entry in entries or ():
            self.upsert(entry)

    @staticmethod
    def _key(entry: CompletionEntry) -> LedgerKey:
        habit_id = entry.get(const.DATA_ENTRY_HABIT_ID)
        day = dt_parse_date(entry.get(const.DATA_ENTRY_DATE))
        if not habit_id or day is None:
            raise ValueError(
                f"Completion entry needs a habit_id and a valid date: {entry!r}"
            )
        return habit_id, day.isoformat()

    def upsert(self, entry: CompletionEntry) -> CompletionEntry:
        """Insert or overwrite the row for (habit_id, date).

        Args:
            entry: Completion entry to store

        Returns:
            The stored row (date normalized to an ISO date).

        Raises:
            ValueError: If the entry has no habit_id, an invalid date, or
                fields of the wrong type.
        """
        try:
            validated = COMPLETION_ENTRY_SCHEMA(dict(entry))
        except vol.Invalid as err:
            raise ValueError(f"Invalid completion entry: {err}") from err
        key = self._key(validated)
        row = CompletionEntry(
            habit_id=key[0],
            date=key[1],
            completed=validated.get(const.DATA_ENTRY_COMPLETED, False),
            value=validated.get(const.DATA_ENTRY_VALUE),
            recorded_at=validated.get(const.DATA_ENTRY_RECORDED_AT),
        )
        with self._lock:
            self._rows[key] = row
        return copy.copy(row)

    def get(self, habit_id: str, day: str) -> CompletionEntry | None:
        """Return a copy of the row for (habit_id, day), if any."""
        parsed = dt_parse_date(day)
        if parsed is None:
            return None
        with self._lock:
            row = self._rows.get((habit_id, parsed.isoformat()))
        return copy.copy(row) if row is not None else None

    def snapshot(self) -> Mapping[LedgerKey, CompletionEntry]:
        """Return a read-only point-in-time view of every row."""
        with self._lock:
            rows = {key: copy.copy(row) for key, row in self._rows.items()}
        return MappingProxyType(rows)

    def entries_for(self, habit_ids: Iterable[str]) -> list[CompletionEntry]:
        """Return copies of the rows of the given habits, ordered by date."""
        wanted = set(habit_ids)
        with self._lock:
            rows = [
                copy.copy(row)
                for (habit_id, _day), row in self._rows.items()
                if habit_id in wanted
            ]
        return sorted(
            rows,
            key=lambda row: (row[const.DATA_ENTRY_DATE], row[const.DATA_ENTRY_HABIT_ID]),
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def __iter__(self) -> Iterator[CompletionEntry]:
        return iter(list(self.snapshot().values()))
