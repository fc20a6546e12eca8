"""
Battery-related Calculations

Handles battery health estimation for LFP packs from charging history:
- Charging efficiency (grid kWh -> battery kWh)
- Charging speed tiers and stress
- SEI, cycle and calendar degradation terms
- State-of-Health estimate and initial SoC projection
"""

from datetime import datetime
from typing import Dict, Iterable, Mapping, Optional

from ..models import Charge, ChargerType, load_charger_types, load_charges
from ..utils.numbers import round_half_up, safe_divide, to_number_or_default, to_optional_number
from ..utils.time_utils import calculate_age_years, parse_datetime
from .constants import (
    CALENDAR_AGING_PCT_PER_YEAR,
    CHARGING_SPEED_TIERS,
    CYCLE_AGING_RATE,
    DEFAULT_BATTERY_NET_CAPACITY_KWH,
    FAST_CHARGE_EFFICIENCY,
    FULL_CHARGE_THRESHOLD_PCT,
    MAX_PERCENTAGE,
    MIN_FULL_CHARGE_RATIO,
    MIN_PERCENTAGE,
    NEUTRAL_CHARGING_STRESS,
    OUTPUT_DECIMALS,
    SEI_FORMATION_CYCLES,
    SEI_MAX_DROP_PCT,
    SLOW_CHARGE_EFFICIENCY,
    SLOW_CHARGE_MAX_KW,
)


def speed_based_efficiency(speed_kw: float) -> float:
    """
    Default charging efficiency from charging power.

    Examples:
        >>> speed_based_efficiency(2.3)
        0.85
        >>> speed_based_efficiency(3.5)
        0.85
        >>> speed_based_efficiency(3.51)
        0.95
        >>> speed_based_efficiency(0)  # Unknown speed
        0.95
    """
    if 0 < speed_kw <= SLOW_CHARGE_MAX_KW:
        return SLOW_CHARGE_EFFICIENCY
    return FAST_CHARGE_EFFICIENCY


def resolve_charging_efficiency(speed_kw: float, charger_type: Optional[ChargerType] = None) -> float:
    """
    Efficiency applied to a session: charger override first, speed heuristic second.

    The override only counts when it is strictly between 0 and 1.

    Examples:
        >>> resolve_charging_efficiency(7.4, ChargerType(id="home", efficiency=0.9))
        0.9
        >>> resolve_charging_efficiency(7.4, ChargerType(id="home", efficiency=1.0))
        0.95
    """
    override = charger_type.efficiency if charger_type is not None else None
    if override is not None and 0 < override < 1:
        return override
    return speed_based_efficiency(speed_kw)


def classify_charging_speed(speed_kw: float) -> str:
    """
    Speed tier of a session: slow (<=3.5 kW), ac (<=22), dc (<=70) or hpc.

    Examples:
        >>> classify_charging_speed(2.3)
        'slow'
        >>> classify_charging_speed(11)
        'ac'
        >>> classify_charging_speed(150)
        'hpc'
    """
    for name, upper_kw, _ in CHARGING_SPEED_TIERS:
        if upper_kw is None or speed_kw <= upper_kw:
            return name
    return CHARGING_SPEED_TIERS[-1][0]


def calculate_charging_stress(tier_counts: Mapping[str, int]) -> float:
    """
    Session-weighted mean of the tier stress coefficients.

    Not clamped: an all-HPC history scores 2.8.

    Examples:
        >>> calculate_charging_stress({"slow": 0, "ac": 1, "dc": 0, "hpc": 1})
        1.9
        >>> calculate_charging_stress({})
        1.0
    """
    total_sessions = sum(tier_counts.values())
    if total_sessions <= 0:
        return NEUTRAL_CHARGING_STRESS

    weighted = sum(tier_counts.get(name, 0) * coefficient for name, _, coefficient in CHARGING_SPEED_TIERS)
    return weighted / total_sessions


def calculate_sei_drop(real_cycles: float) -> float:
    """
    SEI formation loss: linear ramp to 2.0 points over the first 50 cycles.

    Examples:
        >>> calculate_sei_drop(25)
        1.0
        >>> calculate_sei_drop(400)
        2.0
    """
    return min(SEI_MAX_DROP_PCT, (real_cycles / SEI_FORMATION_CYCLES) * SEI_MAX_DROP_PCT)


def calculate_cycle_degradation(real_cycles: float, stress_score: float) -> float:
    """Cycle ageing in percentage points, scaled by stress."""
    return real_cycles * CYCLE_AGING_RATE * stress_score * 100


def calculate_calendar_degradation(mfg_date: Optional[str], as_of: Optional[datetime] = None) -> float:
    """
    Calendar ageing in percentage points (0.75 per year since manufacture).

    An unparseable date, or one in the future, contributes nothing.
    """
    manufactured = parse_datetime(mfg_date)
    if manufactured is None:
        return 0.0
    return max(0.0, calculate_age_years(manufactured, as_of) * CALENDAR_AGING_PCT_PER_YEAR)


def resolve_net_capacity(net_capacity_kwh) -> float:
    """Usable capacity, replacing 0/invalid values with the default pack size."""
    capacity = to_number_or_default(net_capacity_kwh)
    return capacity if capacity > 0 else DEFAULT_BATTERY_NET_CAPACITY_KWH


def _baseline_soh(thermal_stress_factor: float) -> dict:
    return {
        "estimated_soh": 100.0,
        "real_cycles_count": 0.0,
        "stress_score": round(NEUTRAL_CHARGING_STRESS * thermal_stress_factor, OUTPUT_DECIMALS),
        "charging_stress": NEUTRAL_CHARGING_STRESS,
        "thermal_stress": round(thermal_stress_factor, OUTPUT_DECIMALS),
        "calibration_warning": False,
        "degradation": {"sei": 0.0, "cycle": 0.0, "calendar": 0.0},
        "sessions_analyzed": 0,
        "charge_tiers": {name: 0 for name, _, _ in CHARGING_SPEED_TIERS},
    }


def estimate_soh(
    charges: Iterable,
    mfg_date: Optional[str],
    net_capacity_kwh=DEFAULT_BATTERY_NET_CAPACITY_KWH,
    charger_types: Iterable = (),
    thermal_stress_factor=1.0,
    as_of: Optional[datetime] = None,
) -> dict:
    """
    Estimate battery State of Health from the charging history.

    Model:
        real kWh     = sum(kWh charged * charging efficiency)   (electric only)
        real cycles  = real kWh / net capacity
        stress score = charging stress (tier mix) * thermal stress factor
        SoH          = 100 - SEI drop - cycle ageing - calendar ageing  (>= 0)

    Args:
        charges: Charge records (Charge instances or raw mappings)
        mfg_date: Manufacturing date; missing/empty returns the baseline
        net_capacity_kwh: Usable capacity; 0/invalid uses the default pack
        charger_types: Charger catalog with optional efficiency overrides
        thermal_stress_factor: Climate multiplier applied to charging stress
        as_of: Instant used as "now" for calendar ageing (default: current UTC time)

    Returns:
        Dict with estimated_soh, real_cycles_count, stress_score,
        charging_stress, thermal_stress, calibration_warning, degradation
        {sei, cycle, calendar}, sessions_analyzed and charge_tiers

    Examples:
        >>> estimate_soh([], "2024-01-01")["estimated_soh"]
        100.0
    """
    thermal_stress_factor = to_number_or_default(thermal_stress_factor, 1.0)
    charge_list, _ = load_charges(charges)

    if not charge_list or not mfg_date:
        return _baseline_soh(thermal_stress_factor)

    net_capacity = resolve_net_capacity(net_capacity_kwh)
    catalog: Dict[Optional[str], ChargerType] = {}
    for charger_type in load_charger_types(charger_types):
        catalog.setdefault(charger_type.id, charger_type)

    tier_counts = {name: 0 for name, _, _ in CHARGING_SPEED_TIERS}
    total_real_kwh = 0.0
    full_charges = 0

    electric_charges = [charge for charge in charge_list if charge.is_electric]
    for charge in electric_charges:
        efficiency = resolve_charging_efficiency(charge.speed_kw, catalog.get(charge.charger_type_id))
        total_real_kwh += charge.kwh_charged * efficiency
        tier_counts[classify_charging_speed(charge.speed_kw)] += 1

        if charge.final_percentage is not None and charge.final_percentage >= FULL_CHARGE_THRESHOLD_PCT:
            full_charges += 1

    total_sessions = len(electric_charges)
    real_cycles = total_real_kwh / net_capacity

    charging_stress = calculate_charging_stress(tier_counts)
    stress_score = charging_stress * thermal_stress_factor

    sei_drop = calculate_sei_drop(real_cycles)
    cycle_degradation = calculate_cycle_degradation(real_cycles, stress_score)
    calendar_degradation = calculate_calendar_degradation(mfg_date, as_of)

    estimated_soh = max(0.0, 100 - sei_drop - cycle_degradation - calendar_degradation)

    calibration_warning = False
    if total_sessions > 0:
        calibration_warning = safe_divide(full_charges, total_sessions) < MIN_FULL_CHARGE_RATIO

    return {
        "estimated_soh": round(estimated_soh, OUTPUT_DECIMALS),
        "real_cycles_count": round(real_cycles, OUTPUT_DECIMALS),
        "stress_score": round(stress_score, OUTPUT_DECIMALS),
        "charging_stress": round(charging_stress, OUTPUT_DECIMALS),
        "thermal_stress": round(thermal_stress_factor, OUTPUT_DECIMALS),
        "calibration_warning": calibration_warning,
        "degradation": {
            "sei": round(sei_drop, OUTPUT_DECIMALS),
            "cycle": round(cycle_degradation, OUTPUT_DECIMALS),
            "calendar": round(calendar_degradation, OUTPUT_DECIMALS),
        },
        "sessions_analyzed": total_sessions,
        "charge_tiers": tier_counts,
    }


def _read_previous_charge(previous_charge):
    if isinstance(previous_charge, Charge):
        return previous_charge.odometer, previous_charge.final_percentage
    if isinstance(previous_charge, Mapping):
        odometer = previous_charge.get("odometer")
        final = previous_charge.get("finalPercentage", previous_charge.get("final_percentage"))
        return to_optional_number(odometer), to_optional_number(final)
    return None, None


def estimate_initial_soc(
    previous_charge,
    current_odometer,
    avg_efficiency,
    battery_size,
) -> Optional[int]:
    """
    Estimate the SoC at the start of a session from the previous one.

    Projects the energy used since the previous session ended:
        consumed kWh = km driven * kWh/100km / 100
        SoC          = previous final SoC - consumed kWh / battery * 100

    Args:
        previous_charge: Earlier session with ``odometer`` and ``finalPercentage``
        current_odometer: Odometer reading at the new session (km)
        avg_efficiency: Average consumption (kWh/100km)
        battery_size: Battery size (kWh)

    Returns:
        Estimated SoC (0-100, rounded), or None when unknown: missing inputs
        or a non-positive distance (stale or out-of-order data)

    Examples:
        >>> estimate_initial_soc({"odometer": 1000, "finalPercentage": 80}, 1100, 15, 60)
        55
        >>> estimate_initial_soc({"odometer": 1000, "finalPercentage": 80}, 900, 15, 60)
        None
    """
    previous_odometer, previous_final = _read_previous_charge(previous_charge)
    current_odometer = to_optional_number(current_odometer)
    avg_efficiency = to_optional_number(avg_efficiency)
    battery_size = to_optional_number(battery_size)

    if previous_odometer is None or previous_final is None:
        return None
    if not current_odometer or not avg_efficiency or not battery_size:
        return None

    distance_km = current_odometer - previous_odometer
    if distance_km <= 0:
        return None

    consumed_kwh = distance_km * avg_efficiency / 100
    soc_consumed = consumed_kwh / battery_size * 100

    estimated = max(MIN_PERCENTAGE, min(MAX_PERCENTAGE, previous_final - soc_consumed))
    return round_half_up(estimated)
