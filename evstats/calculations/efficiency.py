"""
Efficiency-related Calculations

Handles consumption ratios for driving trips:
- Electric consumption (kWh/100km)
- Fuel consumption (L/100km)
- Average speed
- Estimated range from usable battery energy
"""

from typing import Optional

from ..utils.numbers import safe_divide
from .constants import (
    CITY_CONSUMPTION_FACTOR,
    HIGHWAY_CONSUMPTION_FACTOR,
    MAX_SCATTER_EFFICIENCY,
    SECONDS_PER_HOUR,
    STATIONARY_DISTANCE_KM,
)


def is_stationary_trip(distance_km: float, threshold_km: float = STATIONARY_DISTANCE_KM) -> bool:
    """
    Whether a record covers too little distance to count as a drive.

    Parked climate control and similar records land here.

    Examples:
        >>> is_stationary_trip(0.3)
        True
        >>> is_stationary_trip(0.5)
        False
    """
    return distance_km < threshold_km


def calculate_kwh_per_100km(kwh_used: float, distance_km: float) -> float:
    """
    Calculate electric consumption in kWh/100km.

    Examples:
        >>> calculate_kwh_per_100km(15, 100)
        15.0
        >>> calculate_kwh_per_100km(5, 0)  # No distance
        0.0
    """
    if distance_km <= 0:
        return 0.0
    return safe_divide(kwh_used * 100, distance_km)


def calculate_liters_per_100km(fuel_liters: float, distance_km: float) -> float:
    """Calculate fuel consumption in L/100km (0 without distance)."""
    if distance_km <= 0:
        return 0.0
    return safe_divide(fuel_liters * 100, distance_km)


def calculate_average_speed(distance_km: float, duration_seconds: float) -> float:
    """
    Average speed in km/h.

    Examples:
        >>> calculate_average_speed(100, 3600)
        100.0
        >>> calculate_average_speed(10, 0)
        0.0
    """
    return safe_divide(distance_km, duration_seconds / SECONDS_PER_HOUR)


def estimate_range(
    battery_size_kwh: float,
    soh_percent: float,
    kwh_per_100km: float,
    consumption_factor: float = 1.0,
) -> int:
    """
    Estimate range in km from the usable battery energy.

    Range = battery * SoH / (consumption * factor) * 100. Highway driving
    uses a 1.2 factor and city driving 0.8.

    Args:
        battery_size_kwh: Net battery capacity
        soh_percent: State of Health (0-100)
        kwh_per_100km: Average consumption
        consumption_factor: Multiplier applied to consumption

    Returns:
        Range in whole km, 0 when battery or consumption is not positive
        or the quotient is not finite

    Examples:
        >>> estimate_range(60, 100, 15)
        400
        >>> estimate_range(60, 100, 15, consumption_factor=1.2)
        333
    """
    effective_battery = battery_size_kwh * (soh_percent / 100)
    consumption = kwh_per_100km * consumption_factor
    if effective_battery <= 0 or consumption <= 0:
        return 0
    # Overflowing quotients (near-zero consumption) read as no estimate
    return int(round(safe_divide(effective_battery * 100, consumption)))


def estimate_ranges(battery_size_kwh: float, soh_percent: float, kwh_per_100km: float) -> dict:
    """Mixed, highway and city range estimates."""
    return {
        "estimated_range_km": estimate_range(battery_size_kwh, soh_percent, kwh_per_100km),
        "estimated_range_highway_km": estimate_range(
            battery_size_kwh, soh_percent, kwh_per_100km, HIGHWAY_CONSUMPTION_FACTOR
        ),
        "estimated_range_city_km": estimate_range(
            battery_size_kwh, soh_percent, kwh_per_100km, CITY_CONSUMPTION_FACTOR
        ),
    }


def scatter_point(distance_km: float, energy_kwh: float, fuel_liters: float) -> Optional[dict]:
    """
    Efficiency scatter point for a driving trip.

    Only trips with positive distance and energy whose consumption falls
    strictly between 0 and 50 kWh/100km are plotted.
    """
    if distance_km <= 0 or energy_kwh <= 0:
        return None

    efficiency = calculate_kwh_per_100km(energy_kwh, distance_km)
    if not 0 < efficiency < MAX_SCATTER_EFFICIENCY:
        return None

    return {"x": distance_km, "y": round(efficiency, 2), "fuel": fuel_liters}
