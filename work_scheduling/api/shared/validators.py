"""
Payload Validators

Validation utilities for the dict payloads accepted at the API boundary.
Engine-level validation (schedules, ranges, durations) lives with the
record types; these only check the shape of the incoming fields.
"""

import re
from typing import Any, Mapping, Optional

from work_scheduling.config import settings
from work_scheduling.work_scheduling.scheduling.exceptions import UnknownTimezone, ValidationError
from work_scheduling.work_scheduling.scheduling.timezone import is_valid_zone


def validate_payload(payload: Any, field_name: str = "payload") -> Mapping[str, Any]:
    """
    Validate that a payload is a JSON object.

    Raises:
        ValidationError: If payload is not a mapping
    """
    if not isinstance(payload, Mapping):
        raise ValidationError(f"{field_name} must be an object")
    return payload


def validate_date_string(date_str: str, field_name: str = "date") -> str:
    """
    Validate date string format (YYYY-MM-DD).

    Args:
        date_str: Date string to validate
        field_name: Name of field for error messages

    Returns:
        str: Validated date string

    Raises:
        ValidationError: If date format is invalid
    """
    if not date_str:
        raise ValidationError(f"{field_name} is required")

    date_str = str(date_str).strip()

    # Basic format check
    if not re.match(r"^\d{4}-\d{2}-\d{2}$", date_str):
        raise ValidationError(f"Invalid {field_name} format. Use YYYY-MM-DD")

    return date_str


def validate_zone_id(zone_id: Optional[str], field_name: str = "professionalZone") -> str:
    """
    Validate an IANA timezone identifier.

    Raises:
        ValidationError: If the zone is missing
        UnknownTimezone: If the zone is not in the IANA database
    """
    if not zone_id:
        raise ValidationError(f"{field_name} is required")

    zone_id = str(zone_id).strip()
    if not is_valid_zone(zone_id):
        raise UnknownTimezone(zone_id)

    return zone_id


def validate_horizon_days(value: Any, field_name: str = "horizonDays") -> int:
    """
    Validate a search horizon in days.

    Returns:
        int: The horizon, or the configured default when missing

    Raises:
        ValidationError: If not a positive integer within the configured maximum
    """
    if value is None or value == "":
        return settings.search_horizon_days

    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")

    try:
        days = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer") from None

    if days != value and str(days) != str(value).strip():
        raise ValidationError(f"{field_name} must be an integer")

    if not 1 <= days <= settings.max_horizon_days:
        raise ValidationError(f"{field_name} must be between 1 and {settings.max_horizon_days}")

    return days
