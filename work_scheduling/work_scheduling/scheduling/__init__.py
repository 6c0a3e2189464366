"""
Scheduling Services Module

This module provides the availability and booking-window engine:
- Timezone conversion, DST-aware (timezone.py)
- Availability resolution per date (availability.py)
- Earliest / shortest booking windows (windows.py)
- Multi-resource overlap (overlap.py)
- Dual-zone labels for display (formatting.py)
- Error kinds (exceptions.py)
"""
