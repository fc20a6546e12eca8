"""
Services module for evstats.

Composes the pure calculations for callers and carries the logging around
them.
"""

from .analytics_service import (
    build_dashboard,
    process_trips,
)
from .battery_service import (
    assess_battery_health,
    estimate_session_start_soc,
    find_previous_charge,
)

__all__ = [
    # Analytics service
    'process_trips',
    'build_dashboard',
    # Battery service
    'assess_battery_health',
    'estimate_session_start_soc',
    'find_previous_charge',
]
