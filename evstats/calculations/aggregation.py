"""
Trip Aggregation

Turns a filtered list of trips (plus the charging history used for pricing)
into the dashboard data set: summary totals, calendar and clock buckets,
a distance histogram, the efficiency scatter and the top records.

Records shorter than STATIONARY_DISTANCE_KM are parked consumption: their
energy, fuel and cost count towards the totals but they are not trips.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ..models import ELECTRIC, FUEL, Settings, Trip, load_charges, load_trips
from ..utils.labels import WEEKDAY_KEYS, format_date, format_date_range, format_month, weekday_labels
from ..utils.numbers import safe_divide
from ..utils.time_utils import (
    date_key_from_datetime,
    datetime_from_timestamp,
    days_between_timestamps,
    resolve_timezone,
)
from .constants import (
    HOURS_PER_DAY,
    OUTPUT_DECIMALS,
    SECONDS_PER_HOUR,
    SECONDS_PER_MINUTE,
    TOP_RECORDS_LIMIT,
    TRIP_DISTANCE_BUCKETS,
)
from .efficiency import (
    calculate_average_speed,
    calculate_kwh_per_100km,
    calculate_liters_per_100km,
    estimate_ranges,
    is_stationary_trip,
    scatter_point,
)
from .financial import build_price_schedule, calculate_cost_per_100km, calculate_trip_cost


def _r(value: float) -> float:
    # Sums of extreme inputs can overflow; output fields stay finite
    if not math.isfinite(value):
        return 0.0
    return round(value, OUTPUT_DECIMALS)


@dataclass
class _PricedTrip:
    trip: Trip
    electric_cost: float
    fuel_cost: float
    calculated_cost: float
    date_key: Optional[str]
    month_key: Optional[str]
    started: Optional[datetime]  # In the configured zone

    def to_record(self) -> dict:
        record = self.trip.to_dict()
        record.update(
            electric_cost=_r(self.electric_cost),
            fuel_cost=_r(self.fuel_cost),
            calculated_cost=_r(self.calculated_cost),
        )
        return record


@dataclass
class _Totals:
    km: float = 0.0
    total_kwh: float = 0.0
    driving_kwh: float = 0.0
    stationary_kwh: float = 0.0
    fuel: float = 0.0
    duration: float = 0.0
    electric_cost: float = 0.0
    fuel_cost: float = 0.0
    stationary_trips: int = 0
    electric_only_km: float = 0.0
    fuel_used_km: float = 0.0
    electric_only_trips: int = 0
    fuel_used_trips: int = 0
    max_fuel: float = 0.0
    max_cost: Optional[float] = None
    max_cost_date: Optional[str] = None
    has_fuel: bool = False
    dates: set = field(default_factory=set)

    def track_cost(self, priced: _PricedTrip) -> None:
        self.electric_cost += priced.electric_cost
        self.fuel_cost += priced.fuel_cost
        if self.max_cost is None or priced.calculated_cost > self.max_cost:
            self.max_cost = priced.calculated_cost
            self.max_cost_date = priced.date_key


def _empty_period(key_name: str, key: str) -> dict:
    return {key_name: key, "trips": 0, "km": 0.0, "kwh": 0.0, "fuel": 0.0, "duration_seconds": 0.0, "cost": 0.0}


def _add_to_period(bucket: dict, priced: _PricedTrip) -> None:
    trip = priced.trip
    bucket["trips"] += 1
    bucket["km"] += trip.distance_km
    bucket["kwh"] += trip.energy_kwh
    bucket["fuel"] += trip.fuel_liters
    bucket["duration_seconds"] += trip.duration_seconds
    bucket["cost"] += priced.calculated_cost


def _finalize_periods(buckets: Dict[str, dict], key_name: str, formatter, locale: Optional[str]) -> List[dict]:
    result = []
    for key in sorted(buckets):
        bucket = buckets[key]
        km = bucket["km"]
        result.append(
            {
                key_name: key,
                "label": formatter(key, locale),
                "trips": bucket["trips"],
                "km": _r(km),
                "kwh": _r(bucket["kwh"]),
                "fuel": _r(bucket["fuel"]),
                "duration_seconds": _r(bucket["duration_seconds"]),
                "cost": _r(bucket["cost"]),
                "efficiency": _r(calculate_kwh_per_100km(bucket["kwh"], km)),
                "fuel_efficiency": _r(calculate_liters_per_100km(bucket["fuel"], km)),
            }
        )
    return result


def _distance_bucket(distance_km: float) -> int:
    for index, (_, upper_km) in enumerate(TRIP_DISTANCE_BUCKETS):
        if upper_km is None or distance_km <= upper_km:
            return index
    return len(TRIP_DISTANCE_BUCKETS) - 1


def _top(records: List[_PricedTrip], attribute: str, limit: int) -> List[dict]:
    # sorted() is stable with reverse=True: ties keep their input order
    ranked = sorted(records, key=lambda priced: getattr(priced.trip, attribute), reverse=True)
    return [priced.to_record() for priced in ranked[:limit]]


def aggregate(
    trips: Iterable,
    charges: Iterable = (),
    settings=None,
    locale: Optional[str] = None,
) -> Optional[dict]:
    """
    Aggregate trips into the dashboard data set.

    Args:
        trips: Trip rows (mappings or Trip instances), already filtered by the caller
        charges: Charging history, used for the average and dynamic price strategies
        settings: Settings instance or mapping (pricing, battery size, SoH, timezone)
        locale: Locale tag for labels only

    Returns:
        Dict with summary, monthly, daily, hourly, weekday, trip_distribution,
        efficiency_scatter, top, is_hybrid and skipped_records, or None when
        no well-formed trip is present

    Raises:
        ConfigurationError: settings carry an unknown strategy or SoH mode
    """
    settings = Settings.from_dict(settings)

    trip_list, errors = load_trips(trips)
    if not trip_list:
        return None

    charge_list, _ = load_charges(charges)
    zone = resolve_timezone(settings.timezone)
    electric_prices = build_price_schedule(
        charge_list, settings.electric_strategy, settings.electric_price, ELECTRIC, zone
    )
    fuel_prices = build_price_schedule(charge_list, settings.fuel_strategy, settings.fuel_price, FUEL, zone)

    totals = _Totals()
    driving: List[_PricedTrip] = []
    all_dates: List[str] = []
    timestamps: List[float] = []

    for trip in trip_list:
        started = datetime_from_timestamp(trip.start_timestamp, zone)
        costs = calculate_trip_cost(
            trip.energy_kwh,
            trip.fuel_liters,
            electric_prices.price_at(trip.start_timestamp),
            fuel_prices.price_at(trip.start_timestamp),
        )
        date_key = trip.date or (date_key_from_datetime(started) if started else None)
        month_key = trip.month or (date_key[:6] if date_key else None)
        priced = _PricedTrip(trip=trip, date_key=date_key, month_key=month_key, started=started, **costs)

        if trip.fuel_liters > 0:
            totals.has_fuel = True
        if date_key:
            all_dates.append(date_key)
        if started is not None:
            timestamps.append(trip.start_timestamp)

        totals.total_kwh += trip.energy_kwh
        totals.fuel += trip.fuel_liters
        totals.track_cost(priced)

        if is_stationary_trip(trip.distance_km):
            totals.stationary_kwh += trip.energy_kwh
            totals.stationary_trips += 1
            continue

        driving.append(priced)

    monthly: Dict[str, dict] = {}
    daily: Dict[str, dict] = {}
    hourly = [{"hour": hour, "trips": 0, "km": 0.0, "kwh": 0.0} for hour in range(HOURS_PER_DAY)]
    weekday = [
        {"day": key, "label": label, "trips": 0, "km": 0.0, "kwh": 0.0}
        for key, label in zip(WEEKDAY_KEYS, weekday_labels(locale))
    ]
    distribution = [{"range": label, "count": 0} for label, _ in TRIP_DISTANCE_BUCKETS]
    scatter = []
    km_values = []

    for priced in driving:
        trip = priced.trip
        totals.km += trip.distance_km
        totals.driving_kwh += trip.energy_kwh
        totals.duration += trip.duration_seconds
        km_values.append(trip.distance_km)

        if trip.fuel_liters > 0:
            totals.fuel_used_km += trip.distance_km
            totals.fuel_used_trips += 1
            totals.max_fuel = max(totals.max_fuel, trip.fuel_liters)
        else:
            totals.electric_only_km += trip.distance_km
            totals.electric_only_trips += 1

        if priced.month_key:
            _add_to_period(monthly.setdefault(priced.month_key, _empty_period("month", priced.month_key)), priced)
        if priced.date_key:
            totals.dates.add(priced.date_key)
            _add_to_period(daily.setdefault(priced.date_key, _empty_period("date", priced.date_key)), priced)

        if priced.started is not None:
            for bucket in (hourly[priced.started.hour], weekday[priced.started.weekday()]):
                bucket["trips"] += 1
                bucket["km"] += trip.distance_km
                bucket["kwh"] += trip.energy_kwh

        distribution[_distance_bucket(trip.distance_km)]["count"] += 1

        point = scatter_point(trip.distance_km, trip.energy_kwh, trip.fuel_liters)
        if point is not None:
            scatter.append(point)

    for bucket in hourly + weekday:
        bucket["km"] = _r(bucket["km"])
        bucket["kwh"] = _r(bucket["kwh"])

    limit = TOP_RECORDS_LIMIT
    top = {
        "km": _top(driving, "distance_km", limit),
        "kwh": _top(driving, "energy_kwh", limit),
        "duration": _top(driving, "duration_seconds", limit),
        "fuel": _top([p for p in driving if p.trip.fuel_liters > 0], "fuel_liters", limit) if totals.has_fuel else [],
    }

    if timestamps:
        total_days = days_between_timestamps(min(timestamps), max(timestamps))
    else:
        total_days = max(1, len(totals.dates))

    summary = _build_summary(
        totals,
        driving,
        km_values,
        total_days,
        first_date=min(all_dates) if all_dates else None,
        last_date=max(all_dates) if all_dates else None,
        settings=settings,
        locale=locale,
    )

    return {
        "summary": summary,
        "monthly": _finalize_periods(monthly, "month", format_month, locale),
        "daily": _finalize_periods(daily, "date", format_date, locale),
        "hourly": hourly,
        "weekday": weekday,
        "trip_distribution": distribution,
        "efficiency_scatter": scatter,
        "top": top,
        "is_hybrid": totals.has_fuel,
        "skipped_records": len(errors),
    }


def _build_summary(
    totals: _Totals,
    driving: List[_PricedTrip],
    km_values: List[float],
    total_days: int,
    first_date: Optional[str],
    last_date: Optional[str],
    settings: Settings,
    locale: Optional[str],
) -> dict:
    trips_count = len(driving)
    active_days = len(totals.dates)
    avg_efficiency = calculate_kwh_per_100km(totals.driving_kwh, totals.km)
    total_cost = totals.electric_cost + totals.fuel_cost

    summary = {
        "trips_count": trips_count,
        "stationary_trips": totals.stationary_trips,
        "total_km": _r(totals.km),
        "total_kwh": _r(totals.total_kwh),
        "driving_kwh": _r(totals.driving_kwh),
        "stationary_kwh": _r(totals.stationary_kwh),
        "total_fuel": _r(totals.fuel),
        "total_duration_seconds": _r(totals.duration),
        "total_hours": _r(totals.duration / SECONDS_PER_HOUR),
        "avg_efficiency": _r(avg_efficiency),
        "avg_fuel_efficiency": _r(calculate_liters_per_100km(totals.fuel, totals.km)),
        "avg_speed_kmh": _r(calculate_average_speed(totals.km, totals.duration)),
        "avg_distance_km": _r(safe_divide(totals.km, trips_count)),
        "avg_duration_minutes": _r(safe_divide(totals.duration, trips_count) / SECONDS_PER_MINUTE),
        "active_days": active_days,
        "total_days": total_days,
        "trips_per_day": _r(safe_divide(trips_count, active_days)),
        "km_per_day": _r(safe_divide(totals.km, active_days)),
        "first_date": first_date,
        "last_date": last_date,
        "date_range": format_date_range(first_date, last_date, locale),
        "max_km": _r(max(km_values, default=0.0)),
        "min_km": _r(min(km_values, default=0.0)),
        "max_kwh": _r(max((p.trip.energy_kwh for p in driving), default=0.0)),
        "max_duration_minutes": _r(max((p.trip.duration_seconds for p in driving), default=0.0) / SECONDS_PER_MINUTE),
        "max_fuel": _r(totals.max_fuel),
        "max_cost": _r(totals.max_cost or 0.0),
        "max_cost_date": totals.max_cost_date,
        "is_hybrid": totals.has_fuel,
        "electric_only_trips": totals.electric_only_trips,
        "fuel_used_trips": totals.fuel_used_trips,
        "electric_percentage": _r(safe_divide(totals.electric_only_km, totals.km, 1.0) * 100),
        "fuel_percentage": _r(safe_divide(totals.fuel_used_km, totals.km) * 100),
        "ev_mode_usage": _r(safe_divide(totals.electric_only_trips, trips_count, 1.0) * 100),
        "total_cost": _r(total_cost),
        "electric_cost": _r(totals.electric_cost),
        "fuel_cost": _r(totals.fuel_cost),
        "cost_per_100km": _r(calculate_cost_per_100km(total_cost, totals.km)),
        "soh": settings.soh,
    }
    summary.update(estimate_ranges(settings.battery_size_kwh, settings.soh, avg_efficiency))
    return summary
