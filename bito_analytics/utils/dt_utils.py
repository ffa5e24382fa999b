# File: utils/dt_utils.py
"""Date and time utilities for Bito analytics.

Pure Python date/time functions. Uses the standard library `datetime` and
`zoneinfo` plus `dateutil` for tolerant parsing.

The engines work on calendar dates. The caller resolves "today" to a single
canonical day (workspace- or user-local midnight) and configures the timezone
used for end-of-day arithmetic with `set_default_timezone()`; nothing here
guesses a timezone from the environment.

Functions:
    - set_default_timezone / get_default_timezone
    - dt_today_local: Today's date in the configured timezone
    - dt_now_utc: Current UTC datetime
    - as_utc / as_local: Timezone conversion
    - start_of_local_day / end_of_local_day: Day boundaries for a calendar date
    - dt_parse_date: Parse ISO (or common) date strings
    - dt_parse: Parse ISO datetime strings (timezone-aware)
    - dt_to_iso: Format a datetime as an ISO string
    - iter_days: Inclusive day iteration
    - week_start: Monday of the ISO week containing a date
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, date, datetime, time, timedelta
import logging
from zoneinfo import ZoneInfo

from dateutil import parser as dateutil_parser

# Module-level logger
_LOGGER = logging.getLogger(__name__)

# Default timezone - can be overridden by caller
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")


# ==============================================================================
# Timezone Configuration
# ==============================================================================


def set_default_timezone(tz: ZoneInfo) -> None:
    """Set the canonical timezone used for day boundaries.

    Call this once during setup with the workspace's timezone.

    Args:
        tz: ZoneInfo object representing the default timezone
    """
    global DEFAULT_TIME_ZONE  # noqa: PLW0603
    DEFAULT_TIME_ZONE = tz


def get_default_timezone() -> ZoneInfo:
    """Get the current default timezone."""
    return DEFAULT_TIME_ZONE


# ==============================================================================
# Current Date/Time Functions
# ==============================================================================


def dt_today_local(tz: ZoneInfo | None = None) -> date:
    """Return today's date in the configured timezone.

    Args:
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.

    Example:
        datetime.date(2026, 4, 7)
    """
    return datetime.now(tz or DEFAULT_TIME_ZONE).date()


def dt_now_utc() -> datetime:
    """Return the current datetime in UTC (timezone-aware)."""
    return datetime.now(UTC)


# ==============================================================================
# Timezone Conversion
# ==============================================================================


def as_utc(dt_obj: datetime) -> datetime:
    """Convert a datetime to UTC. Naive values are taken as DEFAULT_TIME_ZONE."""
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=DEFAULT_TIME_ZONE)
    return dt_obj.astimezone(UTC)


def as_local(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Convert a datetime to the configured timezone. Naive values are UTC."""
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=UTC)
    return dt_obj.astimezone(tz or DEFAULT_TIME_ZONE)


def start_of_local_day(day: date, tz: ZoneInfo | None = None) -> datetime:
    """Return local midnight at the start of a calendar date.

    Args:
        day: Calendar date (a datetime is reduced to its date)
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.

    Returns:
        Timezone-aware datetime at 00:00:00 local time.
    """
    if isinstance(day, datetime):
        day = day.date()
    return datetime.combine(day, time.min, tzinfo=tz or DEFAULT_TIME_ZONE)


def end_of_local_day(day: date, tz: ZoneInfo | None = None) -> datetime:
    """Return the instant a calendar date ends (next local midnight).

    Built from the following day's midnight rather than by adding 24 hours so
    that DST transitions produce 23- and 25-hour days.
    """
    if isinstance(day, datetime):
        day = day.date()
    return start_of_local_day(day + timedelta(days=1), tz)


# ==============================================================================
# Parsing / Formatting
# ==============================================================================


def dt_parse_date(value: str | date | None) -> date | None:
    """Safely parse a calendar date.

    Accepts a `date`, a `datetime` (its date part), or a string in ISO format
    ("2026-04-07"), ISO datetime format, or "%m/%d/%Y".

    Returns:
        datetime.date or None if parsing fails.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value:
        return None

    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        pass

    try:
        return datetime.strptime(value, "%m/%d/%Y").date()
    except ValueError:
        _LOGGER.debug("dt_parse_date: could not parse %r", value)
        return None


def dt_parse(
    value: str | datetime | None, default_tzinfo: ZoneInfo | None = None
) -> datetime | None:
    """Parse an instant into a timezone-aware datetime.

    Args:
        value: ISO 8601 string or datetime, or None
        default_tzinfo: Timezone applied to naive values
                        (defaults to DEFAULT_TIME_ZONE)

    Returns:
        Timezone-aware datetime, or None if the input could not be parsed.
    """
    if not value:
        return None

    if isinstance(value, datetime):
        result = value
    elif isinstance(value, str):
        try:
            result = datetime.fromisoformat(value)
        except ValueError:
            try:
                result = dateutil_parser.isoparse(value)
            except (ValueError, OverflowError):
                _LOGGER.debug("dt_parse: could not parse %r", value)
                return None
    else:
        return None

    if result.tzinfo is None:
        result = result.replace(tzinfo=default_tzinfo or DEFAULT_TIME_ZONE)
    return result


def dt_to_iso(value: datetime | None) -> str | None:
    """Format a datetime as an ISO 8601 string in UTC."""
    if value is None:
        return None
    return as_utc(value).isoformat()


# ==============================================================================
# Calendar Helpers
# ==============================================================================


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every date from start to end inclusive (nothing if end < start)."""
    current = start
    one_day = timedelta(days=1)
    while current <= end:
        yield current
        current += one_day


def week_start(day: date) -> date:
    """Return the Monday of the ISO week containing `day`."""
    return day - timedelta(days=day.weekday())
