"""
Financial Calculations

Handles cost calculations for trips and charging history:
- Average price paid per kWh / per litre
- Price schedules for the custom, average and dynamic strategies
- Trip cost (electric + fuel)
- Charge history summary
"""

from bisect import bisect_left
from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple

from ..models import ELECTRIC, FUEL, Charge
from ..utils.numbers import safe_divide
from .constants import OUTPUT_DECIMALS


def calculate_effective_price(total_cost: float, units: float) -> float:
    """
    Price actually paid per unit in one session.

    Examples:
        >>> calculate_effective_price(6.0, 40.0)
        0.15
        >>> calculate_effective_price(6.0, 0)  # Nothing delivered
        0.0
    """
    if units <= 0:
        return 0.0
    return safe_divide(total_cost, units)


def _units(charge: Charge, kind: str) -> float:
    return charge.kwh_charged if kind == ELECTRIC else charge.liters_charged


def _of_kind(charges: Iterable[Charge], kind: str) -> list:
    return [charge for charge in charges if charge.type == kind]


def calculate_average_price(charges: Iterable[Charge], kind: str = ELECTRIC) -> float:
    """
    Weighted average price across the charges of one kind.

    sum(cost) / sum(kWh) for electric sessions, sum(cost) / sum(litres) for
    fuel sessions; 0 when nothing was delivered.
    """
    matching = _of_kind(charges, kind)
    units = sum(_units(charge, kind) for charge in matching)
    if units <= 0:
        return 0.0
    return safe_divide(sum(charge.total_cost for charge in matching), units)


@dataclass(frozen=True)
class PriceSchedule:
    """
    Price lookup for one energy kind under a pricing strategy.

    ``timeline`` holds (timestamp, effective price) pairs sorted by time and
    is only populated for the dynamic strategy; ``moments`` holds the same
    timestamps for bisecting.
    """

    strategy: str
    custom_price: float
    average_price: float = 0.0
    timeline: Tuple[Tuple[float, float], ...] = ()
    moments: Tuple[float, ...] = field(init=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "moments", tuple(moment for moment, _ in self.timeline))

    def price_at(self, timestamp: Optional[float]) -> float:
        """
        Unit price applying to a trip that started at ``timestamp``.

        Dynamic pricing uses the last session strictly before the trip; a
        trip without a start time, or before any session, uses the flat price.
        """
        if self.strategy == "average":
            return self.average_price if self.average_price > 0 else self.custom_price

        if self.strategy == "dynamic" and self.moments and timestamp:
            index = bisect_left(self.moments, timestamp) - 1
            if index >= 0:
                return self.timeline[index][1]

        return self.custom_price


def build_price_schedule(
    charges: Iterable[Charge],
    strategy: str,
    custom_price: float,
    kind: str = ELECTRIC,
    zone=None,
) -> PriceSchedule:
    """
    Prepare the price lookup for one energy kind.

    Args:
        charges: Charge history (both kinds; filtered by ``kind``)
        strategy: "custom", "average" or "dynamic"
        custom_price: Flat configured price per unit
        kind: "electric" (per kWh) or "fuel" (per litre)
        zone: Timezone for session date/time fields (default: local time)

    Returns:
        PriceSchedule ready for per-trip lookups
    """
    charge_list = list(charges)
    average_price = calculate_average_price(charge_list, kind)

    timeline: Tuple[Tuple[float, float], ...] = ()
    if strategy == "dynamic":
        points = []
        for charge in _of_kind(charge_list, kind):
            moment = charge.timestamp(zone)
            if moment is None:
                continue
            points.append((moment, calculate_effective_price(charge.total_cost, _units(charge, kind))))
        # Stable: sessions sharing a timestamp keep their input order
        points.sort(key=lambda point: point[0])
        timeline = tuple(points)

    return PriceSchedule(
        strategy=strategy,
        custom_price=custom_price,
        average_price=average_price,
        timeline=timeline,
    )


def calculate_trip_cost(
    energy_kwh: float,
    fuel_liters: float,
    electric_price: float,
    fuel_price: float,
) -> dict:
    """
    Cost of one trip split into its electric and fuel parts.

    Examples:
        >>> calculate_trip_cost(10, 0, 0.15, 1.5)
        {'electric_cost': 1.5, 'fuel_cost': 0.0, 'calculated_cost': 1.5}
    """
    electric_cost = energy_kwh * electric_price
    fuel_cost = fuel_liters * fuel_price
    return {
        "electric_cost": electric_cost,
        "fuel_cost": fuel_cost,
        "calculated_cost": electric_cost + fuel_cost,
    }


def calculate_cost_per_100km(total_cost: float, distance_km: float) -> float:
    """Cost per 100 km driven (0 without distance)."""
    return safe_divide(total_cost * 100, distance_km)


def summarize_charges(charges: Iterable[Charge]) -> Optional[dict]:
    """
    Totals for the charging history, split by energy kind.

    Average prices are the mean of the per-session effective prices.

    Returns:
        Summary dict, or None for an empty history
    """
    charge_list = list(charges)
    if not charge_list:
        return None

    electric = _of_kind(charge_list, ELECTRIC)
    fuel = _of_kind(charge_list, FUEL)

    electric_cost = sum(charge.total_cost for charge in electric)
    fuel_cost = sum(charge.total_cost for charge in fuel)

    electric_prices = [calculate_effective_price(c.total_cost, c.kwh_charged) for c in electric]
    fuel_prices = [calculate_effective_price(c.total_cost, c.liters_charged) for c in fuel]

    return {
        "charge_count": len(charge_list),
        "electric_count": len(electric),
        "fuel_count": len(fuel),
        "total_kwh": round(sum(charge.kwh_charged for charge in electric), OUTPUT_DECIMALS),
        "total_liters": round(sum(charge.liters_charged for charge in fuel), OUTPUT_DECIMALS),
        "total_cost": round(electric_cost + fuel_cost, OUTPUT_DECIMALS),
        "electric_cost": round(electric_cost, OUTPUT_DECIMALS),
        "fuel_cost": round(fuel_cost, OUTPUT_DECIMALS),
        "avg_price_per_kwh": round(safe_divide(sum(electric_prices), len(electric_prices)), 4),
        "avg_price_per_liter": round(safe_divide(sum(fuel_prices), len(fuel_prices)), 4),
    }
