"""
Work Scheduling API

Boundary functions consumed by the booking service and calendar UI.

Structure:
    api/
    ├── __init__.py              # This file
    ├── availability_api.py      # Resolution and schedule proposal endpoints
    └── shared/                  # Shared utilities
        ├── __init__.py
        └── validators.py        # Payload validators

Usage:
    from work_scheduling.api import availability_api
    availability_api.get_schedule_proposals({...})
"""

from . import availability_api
from . import shared

__all__ = [
    "availability_api",
    "shared",
]
