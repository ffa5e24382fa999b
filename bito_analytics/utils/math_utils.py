# File: utils/math_utils.py
"""Math and calculation utilities for Bito analytics.

Functions:
    - round_value: Consistent rounding of accumulated values
    - round_percent: Percent rounding to the documented precision
    - calculate_percentage: Progress percentage with zero-denominator guard
    - clamp: Bound a value to a range
"""

from __future__ import annotations

import logging

_LOGGER = logging.getLogger(__name__)

# ==============================================================================
# Constants (local copies to avoid circular imports)
# ==============================================================================

DATA_FLOAT_PRECISION = 2
PERCENT_PRECISION = 1


def round_value(value: float, precision: int = DATA_FLOAT_PRECISION) -> float:
    """Round an accumulated value (reps, minutes, ...) to the configured precision.

    Prevents float drift when summing many daily values
    (e.g., 0.1 + 0.2 -> 0.30000000000000004).

    Examples:
        round_value(10.456) → 10.46
        round_value(10.0) → 10.0
    """
    return round(value, precision)


def round_percent(value: float, precision: int = PERCENT_PRECISION) -> float:
    """Round a percentage to one decimal.

    Examples:
        round_percent(66.6666) → 66.7
        round_percent(80) → 80.0
    """
    return round(float(value), precision)


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp a value between minimum and maximum bounds.

    Examples:
        clamp(150, 0, 100) → 100
        clamp(-10, 0, 100) → 0
    """
    return max(min_val, min(value, max_val))


def calculate_percentage(
    current: float,
    target: float,
    precision: int = PERCENT_PRECISION,
    cap: bool = True,
) -> float:
    """Calculate a progress percentage.

    Args:
        current: Current progress value
        target: Target/total value
        precision: Number of decimal places for rounding
        cap: Clamp the result to [0, 100]

    Returns:
        Percentage rounded to `precision`, or 0.0 if target is 0

    Examples:
        calculate_percentage(650, 1000) → 65.0
        calculate_percentage(2, 3) → 66.7
        calculate_percentage(5, 0) → 0.0
    """
    if target <= 0:
        _LOGGER.debug("calculate_percentage: non-positive target %s", target)
        return 0.0
    percent = (current / target) * 100
    if cap:
        percent = clamp(percent, 0.0, 100.0)
    return round_percent(percent, precision)
