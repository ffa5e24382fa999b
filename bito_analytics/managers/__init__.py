"""Manager modules for Bito analytics.

Managers orchestrate workflows and coordinate between engines.
They are stateful, event-aware, and handle cross-cutting concerns.
"""

from .base_manager import BaseManager, Dispatcher
from .challenge_manager import ChallengeManager, ChallengeNotFoundError
from .statistics_manager import StatisticsManager

__all__ = [
    "BaseManager",
    "ChallengeManager",
    "ChallengeNotFoundError",
    "Dispatcher",
    "StatisticsManager",
]
