# File: const.py
"""Constants for the Bito analytics engine.

This file centralizes record keys, enumerated values, defaults, and event
names so that engines, managers and tests share a single vocabulary.
"""

import logging

# ------------------------------------------------------------------------------------------------
# General
# ------------------------------------------------------------------------------------------------
BITO_TITLE = "Bito Analytics"

# Logger
LOGGER = logging.getLogger(__package__)

# ------------------------------------------------------------------------------------------------
# Recurrence rules
# ------------------------------------------------------------------------------------------------
RECURRENCE_DAILY = "daily"
RECURRENCE_SPECIFIC_DAYS = "specific_days"
RECURRENCE_WEEKLY_COUNT = "weekly_count"

RECURRENCE_KINDS = frozenset(
    {RECURRENCE_DAILY, RECURRENCE_SPECIFIC_DAYS, RECURRENCE_WEEKLY_COUNT}
)

DATA_RECURRENCE_KIND = "kind"
DATA_RECURRENCE_DAYS = "days"
DATA_RECURRENCE_TIMES_PER_WEEK = "times_per_week"

# Weekday integers follow datetime.weekday(): 0=Monday .. 6=Sunday
WEEKDAY_OPTIONS = {
    "mon": 0,
    "tue": 1,
    "wed": 2,
    "thu": 3,
    "fri": 4,
    "sat": 5,
    "sun": 6,
}
DAYS_PER_WEEK = 7

# Streak units
STREAK_UNIT_DAYS = "days"
STREAK_UNIT_WEEKS = "weeks"

# ------------------------------------------------------------------------------------------------
# Habits
# ------------------------------------------------------------------------------------------------
METHODOLOGY_BOOLEAN = "boolean"
METHODOLOGY_NUMERIC = "numeric"
METHODOLOGY_DURATION = "duration"
METHODOLOGY_RATING = "rating"

DATA_HABIT_ID = "internal_id"
DATA_HABIT_OWNER_ID = "owner_id"
DATA_HABIT_NAME = "name"
DATA_HABIT_RECURRENCE = "recurrence"
DATA_HABIT_METHODOLOGY = "methodology"
DATA_HABIT_TARGET_VALUE = "target_value"
DATA_HABIT_TARGET_UNIT = "target_unit"
DATA_HABIT_IS_ACTIVE = "is_active"
DATA_HABIT_ARCHIVED_ON = "archived_on"
DATA_HABIT_CREATED_ON = "created_on"

DEFAULT_HABIT_TARGET_VALUE = 1

# ------------------------------------------------------------------------------------------------
# Completion entries
# ------------------------------------------------------------------------------------------------
DATA_ENTRY_HABIT_ID = "habit_id"
DATA_ENTRY_DATE = "date"
DATA_ENTRY_COMPLETED = "completed"
DATA_ENTRY_VALUE = "value"
DATA_ENTRY_RECORDED_AT = "recorded_at"

# ------------------------------------------------------------------------------------------------
# Challenges
# ------------------------------------------------------------------------------------------------
CHALLENGE_TYPE_STREAK = "streak"
CHALLENGE_TYPE_CUMULATIVE = "cumulative"
CHALLENGE_TYPE_CONSISTENCY = "consistency"
CHALLENGE_TYPE_TEAM_GOAL = "team_goal"

CHALLENGE_TYPES = frozenset(
    {
        CHALLENGE_TYPE_STREAK,
        CHALLENGE_TYPE_CUMULATIVE,
        CHALLENGE_TYPE_CONSISTENCY,
        CHALLENGE_TYPE_TEAM_GOAL,
    }
)

CHALLENGE_STATUS_UPCOMING = "upcoming"
CHALLENGE_STATUS_ACTIVE = "active"
CHALLENGE_STATUS_COMPLETED = "completed"
CHALLENGE_STATUS_CANCELLED = "cancelled"

CHALLENGE_TERMINAL_STATUSES = frozenset(
    {CHALLENGE_STATUS_COMPLETED, CHALLENGE_STATUS_CANCELLED}
)

HABIT_MATCH_SINGLE = "single"
HABIT_MATCH_ANY = "any"
HABIT_MATCH_ALL = "all"
HABIT_MATCH_MINIMUM = "minimum"

DATA_CHALLENGE_ID = "internal_id"
DATA_CHALLENGE_WORKSPACE_ID = "workspace_id"
DATA_CHALLENGE_CREATED_BY = "created_by"
DATA_CHALLENGE_NAME = "name"
DATA_CHALLENGE_TYPE = "challenge_type"
DATA_CHALLENGE_RULES = "rules"
DATA_CHALLENGE_HABIT_MATCH_MODE = "habit_match_mode"
DATA_CHALLENGE_HABIT_MATCH_MINIMUM = "habit_match_minimum"
DATA_CHALLENGE_START_DATE = "start_date"
DATA_CHALLENGE_END_DATE = "end_date"
DATA_CHALLENGE_STATUS = "status"
DATA_CHALLENGE_MILESTONES = "milestones"
DATA_CHALLENGE_SETTINGS = "settings"

DATA_RULES_TARGET_VALUE = "target_value"
DATA_RULES_TARGET_UNIT = "target_unit"
DATA_RULES_MINIMUM_DAILY_VALUE = "minimum_daily_value"
DATA_RULES_GRACE_PERIOD_HOURS = "grace_period_hours"
DATA_RULES_ALLOW_MAKEUP_DAYS = "allow_makeup_days"

DATA_SETTINGS_MAX_PARTICIPANTS = "max_participants"
DATA_SETTINGS_ALLOW_LATE_JOIN = "allow_late_join"
DATA_SETTINGS_SHOW_LEADERBOARD = "show_leaderboard"
DATA_SETTINGS_ANONYMIZE_LEADERBOARD = "anonymize_leaderboard"

TARGET_UNIT_DAYS = "days"
TARGET_UNIT_COMPLETIONS = "completions"
TARGET_UNIT_MINUTES = "minutes"
TARGET_UNIT_HOURS = "hours"
TARGET_UNIT_PERCENT = "percent"
TARGET_UNIT_CUSTOM = "custom"

DEFAULT_GRACE_PERIOD_HOURS = 4
MAX_GRACE_PERIOD_HOURS = 12
DEFAULT_ALLOW_MAKEUP_DAYS = False
DEFAULT_ALLOW_LATE_JOIN = True
DEFAULT_SHOW_LEADERBOARD = True
DEFAULT_ANONYMIZE_LEADERBOARD = False

# ------------------------------------------------------------------------------------------------
# Participants
# ------------------------------------------------------------------------------------------------
PARTICIPANT_STATUS_ACTIVE = "active"
PARTICIPANT_STATUS_COMPLETED = "completed"
PARTICIPANT_STATUS_DROPPED = "dropped"

DATA_PARTICIPANT_CHALLENGE_ID = "challenge_id"
DATA_PARTICIPANT_USER_ID = "user_id"
DATA_PARTICIPANT_LINKED_HABIT_IDS = "linked_habit_ids"
DATA_PARTICIPANT_JOINED_AT = "joined_at"
DATA_PARTICIPANT_PROGRESS = "progress"
DATA_PARTICIPANT_STATUS = "status"
DATA_PARTICIPANT_COMPLETED_AT = "completed_at"

DATA_PROGRESS_CURRENT_VALUE = "current_value"
DATA_PROGRESS_CURRENT_STREAK = "current_streak"
DATA_PROGRESS_BEST_STREAK = "best_streak"
DATA_PROGRESS_COMPLETION_RATE = "completion_rate"
DATA_PROGRESS_LAST_LOGGED_AT = "last_logged_at"
DATA_PROGRESS_VALUE_REACHED_AT = "value_reached_at"

# ------------------------------------------------------------------------------------------------
# Milestones
# ------------------------------------------------------------------------------------------------
DATA_MILESTONE_VALUE = "value"
DATA_MILESTONE_LABEL = "label"
DATA_MILESTONE_REACHED_BY = "reached_by"
DATA_MILESTONE_REACH_USER_ID = "user_id"
DATA_MILESTONE_REACH_REACHED_AT = "reached_at"

# ------------------------------------------------------------------------------------------------
# Leaderboard
# ------------------------------------------------------------------------------------------------
LEADERBOARD_ANONYMOUS_LABEL = "Participant {position}"

# ------------------------------------------------------------------------------------------------
# Workspace visibility
# ------------------------------------------------------------------------------------------------
ROLE_OWNER = "owner"
ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"
ROLE_VIEWER = "viewer"

SHARE_LEVEL_FULL = "full"
SHARE_LEVEL_PROGRESS_ONLY = "progress-only"
SHARE_LEVEL_STREAKS_ONLY = "streaks-only"
SHARE_LEVEL_PRIVATE = "private"

DEFAULT_SHARE_LEVEL = SHARE_LEVEL_PROGRESS_ONLY

FIELD_USER_ID = "user_id"
FIELD_HABIT_ID = "habit_id"
FIELD_WORKSPACE_ID = "workspace_id"
FIELD_IS_ACTIVE = "is_active"
FIELD_ADOPTED_AT = "adopted_at"
FIELD_PERSONAL_SETTINGS = "personal_settings"
FIELD_CURRENT_STREAK = "current_streak"
FIELD_LONGEST_STREAK = "longest_streak"
FIELD_TOTAL_CHECKS = "total_checks"
FIELD_LAST_CHECKED = "last_checked"
FIELD_COMPLETION_RATE = "completion_rate"

# ------------------------------------------------------------------------------------------------
# Statistics
# ------------------------------------------------------------------------------------------------
PERIOD_DAILY = "daily"
PERIOD_WEEKLY = "weekly"
PERIOD_MONTHLY = "monthly"
PERIOD_YEARLY = "yearly"

PERIOD_FORMAT_DAILY = "%Y-%m-%d"
PERIOD_FORMAT_WEEKLY = "%G-W%V"
PERIOD_FORMAT_MONTHLY = "%Y-%m"
PERIOD_FORMAT_YEARLY = "%Y"

DEFAULT_STATS_WINDOW_DAYS = 30

# Percentages are rounded to one decimal for reproducibility
PERCENT_PRECISION = 1
PERCENT_MIN = 0.0
PERCENT_MAX = 100.0

# Float precision for accumulated values
DATA_FLOAT_PRECISION = 2

# Safety limit for backward walks over a schedule
MAX_DATE_CALCULATION_ITERATIONS = 100

# ------------------------------------------------------------------------------------------------
# Manager events
# ------------------------------------------------------------------------------------------------
SIGNAL_SUFFIX_COMPLETION_RECORDED = "completion_recorded"
SIGNAL_SUFFIX_PROGRESS_UPDATED = "progress_updated"
SIGNAL_SUFFIX_MILESTONE_REACHED = "milestone_reached"
SIGNAL_SUFFIX_PARTICIPANT_COMPLETED = "participant_completed"
SIGNAL_SUFFIX_PARTICIPANT_DROPPED = "participant_dropped"
SIGNAL_SUFFIX_CHALLENGE_STATUS_CHANGED = "challenge_status_changed"
SIGNAL_SUFFIX_HABIT_UPDATED = "habit_updated"
