"""Shared utility functions for the GymManager data layer.

Convenience re-exports so consumers can import directly from
``gym_manager.utils`` while full module imports remain supported.
"""

from gym_manager.utils.dates import DATE_FORMAT, format_date, now_millis, parse_date
from gym_manager.utils.string_helpers import (
    denormalize_keys,
    normalize_keys,
    to_camel_case,
    to_snake_case,
)

__all__ = [
    "DATE_FORMAT",
    "denormalize_keys",
    "format_date",
    "normalize_keys",
    "now_millis",
    "parse_date",
    "to_camel_case",
    "to_snake_case",
]
