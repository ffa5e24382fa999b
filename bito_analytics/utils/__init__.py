"""Pure Python utilities for Bito analytics.

Submodules:
    - dt_utils: Date parsing, day boundaries, calendar iteration
    - math_utils: Value rounding and percentage calculations

Usage:
    from . import dt_utils
    from .math_utils import round_percent
"""

from . import dt_utils, math_utils

__all__ = ["dt_utils", "math_utils"]
