# File: __init__.py
"""Bito analytics: the temporal habit-completion analytics engine.

Turns a per-day completion ledger into streaks, consistency percentages,
challenge progress, milestone crossings and leaderboard rankings.

Key Features:
- Pure engines (engines/) operating on TypedDict snapshots.
- Stateful managers (managers/) that own the ledger, apply results and emit
  events.
- Incremental and batch recompute that always agree.
"""

from __future__ import annotations

from . import const
from .ledger import CompletionLedger
from .managers import ChallengeManager, StatisticsManager

__version__ = "0.1.0"

__all__ = [
    "ChallengeManager",
    "CompletionLedger",
    "StatisticsManager",
    "const",
]
