"""
evstats Calculation Module

Pure calculations over trip and charge records: battery health, efficiency,
pricing and the dashboard aggregation.

Nothing in this package performs I/O, logs or keeps module-level state.

Usage:
    from evstats.calculations import aggregate, estimate_soh
    from evstats.calculations.constants import STATIONARY_DISTANCE_KM
"""

# Battery health
from .battery import (
    calculate_calendar_degradation,
    calculate_charging_stress,
    calculate_cycle_degradation,
    calculate_sei_drop,
    classify_charging_speed,
    estimate_initial_soc,
    estimate_soh,
    resolve_charging_efficiency,
    resolve_net_capacity,
    speed_based_efficiency,
)

# Efficiency calculations
from .efficiency import (
    calculate_average_speed,
    calculate_kwh_per_100km,
    calculate_liters_per_100km,
    estimate_range,
    estimate_ranges,
    is_stationary_trip,
    scatter_point,
)

# Financial calculations
from .financial import (
    PriceSchedule,
    build_price_schedule,
    calculate_average_price,
    calculate_cost_per_100km,
    calculate_effective_price,
    calculate_trip_cost,
    summarize_charges,
)

# Aggregation
from .aggregation import aggregate

# Constants (re-export for convenience)
from .constants import (
    CHARGING_SPEED_TIERS,
    DEFAULT_BATTERY_NET_CAPACITY_KWH,
    STATIONARY_DISTANCE_KM,
    TOP_RECORDS_LIMIT,
    TRIP_DISTANCE_BUCKETS,
)

__all__ = [
    # Battery
    "speed_based_efficiency",
    "resolve_charging_efficiency",
    "classify_charging_speed",
    "calculate_charging_stress",
    "calculate_sei_drop",
    "calculate_cycle_degradation",
    "calculate_calendar_degradation",
    "resolve_net_capacity",
    "estimate_soh",
    "estimate_initial_soc",
    # Efficiency
    "is_stationary_trip",
    "calculate_kwh_per_100km",
    "calculate_liters_per_100km",
    "calculate_average_speed",
    "estimate_range",
    "estimate_ranges",
    "scatter_point",
    # Financial
    "PriceSchedule",
    "build_price_schedule",
    "calculate_average_price",
    "calculate_effective_price",
    "calculate_trip_cost",
    "calculate_cost_per_100km",
    "summarize_charges",
    # Aggregation
    "aggregate",
    # Constants
    "DEFAULT_BATTERY_NET_CAPACITY_KWH",
    "CHARGING_SPEED_TIERS",
    "STATIONARY_DISTANCE_KM",
    "TOP_RECORDS_LIMIT",
    "TRIP_DISTANCE_BUCKETS",
]
