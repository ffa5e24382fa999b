"""Test helpers for Bito analytics tests.

This module re-exports the record factories for convenient imports:

    from tests.helpers import make_habit, make_entry, make_challenge, day

See factories.py for full documentation.
"""

from tests.helpers.factories import (
    BASE_MONDAY,
    UTC_TZ,
    day,
    make_challenge,
    make_entries,
    make_entry,
    make_habit,
    make_participant,
    make_rule,
    recorded,
)

__all__ = [
    "BASE_MONDAY",
    "UTC_TZ",
    "day",
    "make_challenge",
    "make_entries",
    "make_entry",
    "make_habit",
    "make_participant",
    "make_rule",
    "recorded",
]
