"""Engine modules for Bito analytics.

Contains specialized computation engines:
- schedule_engine: Due-day evaluation and RRULE generation
- completion_engine: Qualifying completions and grace/makeup timeliness
- streak_engine: Current/longest streaks and reset events
- statistics_engine: Consistency percentages and habit statistics
- match_engine: Habit-match day credit (single/any/all/minimum)
- challenge_engine: Challenge status, progress and completion
- gamification_engine: Milestone crossings
- leaderboard_engine: Deterministic competition ranking
"""

# Use relative imports within package to avoid mypy module resolution issues
from .challenge_engine import (
    ChallengeEngine,
    ChallengeJoinError,
    ChallengeStateError,
    ProgressUpdate,
)
from .completion_engine import CompletionEngine
from .gamification_engine import GamificationEngine
from .leaderboard_engine import LeaderboardEngine
from .match_engine import (
    ChallengeConfigurationError,
    HabitMatch,
    day_credit,
    validate_links,
)
from .schedule_engine import ScheduleEngine, is_due, iter_weeks
from .statistics_engine import StatisticsEngine
from .streak_engine import StreakEngine

__all__ = [
    "ChallengeConfigurationError",
    "ChallengeEngine",
    "ChallengeJoinError",
    "ChallengeStateError",
    "CompletionEngine",
    "GamificationEngine",
    "HabitMatch",
    "LeaderboardEngine",
    "ProgressUpdate",
    "ScheduleEngine",
    "StatisticsEngine",
    "StreakEngine",
    "day_credit",
    "is_due",
    "iter_weeks",
    "validate_links",
]
