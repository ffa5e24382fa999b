# File: helpers/__init__.py
"""Caller-facing helper functions for Bito analytics.

Helpers sit between the engines and the persistence/API layer. They never
compute analytics themselves.

Submodules:
    - auth_helpers: Share-level visibility of habit statistics

Usage:
    from .auth_helpers import visible_fields
"""

from . import auth_helpers

__all__ = ["auth_helpers"]
