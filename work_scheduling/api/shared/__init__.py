"""
Shared utilities for the Work Scheduling API.
"""

from .validators import (
    validate_date_string,
    validate_horizon_days,
    validate_payload,
    validate_zone_id,
)

__all__ = [
    "validate_date_string",
    "validate_horizon_days",
    "validate_payload",
    "validate_zone_id",
]
