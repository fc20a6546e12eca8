"""
evstats - trip analytics and battery health estimation for personal EVs.

Usage:
    from evstats import aggregate, estimate_soh, build_dashboard

    result = aggregate(trips, charges, settings, locale="en")
    health = estimate_soh(charges, "2023-05-10", 60.48)
"""

__version__ = "1.0.0"

from .calculations import aggregate, estimate_initial_soc, estimate_soh, summarize_charges
from .exceptions import (
    ChargeRecordError,
    ConfigurationError,
    EvStatsError,
    RecordValidationError,
    TripRecordError,
)
from .models import Charge, ChargerType, Settings, Trip
from .services import (
    assess_battery_health,
    build_dashboard,
    estimate_session_start_soc,
    process_trips,
)
from .utils.wide_events import configure_logging

__all__ = [
    '__version__',
    'aggregate',
    'estimate_soh',
    'estimate_initial_soc',
    'summarize_charges',
    'process_trips',
    'build_dashboard',
    'assess_battery_health',
    'estimate_session_start_soc',
    'configure_logging',
    'Trip',
    'Charge',
    'ChargerType',
    'Settings',
    'EvStatsError',
    'RecordValidationError',
    'TripRecordError',
    'ChargeRecordError',
    'ConfigurationError',
]
