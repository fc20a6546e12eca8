"""
Plain records consumed by the analytics engine.

Trips, charges, charger types and settings arrive as mappings in whatever
key style the caller stores them (the vehicle's native row keys, camelCase
or snake_case). from_dict() normalizes them into frozen dataclasses; the
engine never mutates or keeps them.
"""

import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from .config import Config
from .exceptions import ChargeRecordError, ConfigurationError, TripRecordError
from .utils.numbers import to_number_or_default, to_optional_number
from .utils.time_utils import charge_timestamp, normalize_date_key, normalize_month_key

ELECTRIC = "electric"
FUEL = "fuel"

PRICE_STRATEGIES = ("custom", "average", "dynamic")
SOH_MODES = ("manual", "calculated")

# Native trip-table columns -> field names
TRIP_KEY_ALIASES = {
    "trip": "distance_km",
    "distance": "distance_km",
    "electricity": "energy_kwh",
    "fuel": "fuel_liters",
    "duration": "duration_seconds",
    "id": "trip_id",
}

CHARGE_KEY_ALIASES = {
    "id": "charge_id",
    "liters": "liters_charged",
}

SETTINGS_KEY_ALIASES = {
    "battery_size": "battery_size_kwh",
    "battery_net_capacity": "battery_size_kwh",
    "electricity_price": "electric_price",
    "odometer_offset": "odometer_offset_km",
    "fuel_price_strategy": "fuel_strategy",
}


def _camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


def _normalize_keys(data: Mapping, aliases: Mapping[str, str]) -> dict:
    """Snake-case every key and apply the alias table; first spelling wins."""
    converted = {}
    for key, value in data.items():
        if not isinstance(key, str):
            continue
        snake = _camel_to_snake(key)
        name = aliases.get(key) or aliases.get(snake) or snake
        converted.setdefault(name, value)
    return converted


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class Trip:
    """One vehicle journey as recorded by the car."""

    distance_km: float
    energy_kwh: float = 0.0
    fuel_liters: float = 0.0
    duration_seconds: float = 0.0
    date: Optional[str] = None  # YYYYMMDD
    month: Optional[str] = None  # YYYYMM
    start_timestamp: Optional[float] = None
    end_timestamp: Optional[float] = None
    trip_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping, record_index: Optional[int] = None) -> "Trip":
        """
        Build a trip from a raw row.

        Raises:
            TripRecordError: the row is not a mapping, or its distance is
                missing, not numeric or negative
        """
        if not isinstance(data, Mapping):
            raise TripRecordError("Trip record is not a mapping", record_index=record_index)

        values = _normalize_keys(data, TRIP_KEY_ALIASES)
        distance = to_optional_number(values.get("distance_km"))
        if distance is None:
            raise TripRecordError(
                "Trip record has no numeric distance",
                record_index=record_index,
                field="distance_km",
                value=values.get("distance_km"),
            )
        if distance < 0:
            raise TripRecordError(
                "Trip record has a negative distance",
                record_index=record_index,
                field="distance_km",
                value=distance,
            )

        return cls(
            distance_km=distance,
            energy_kwh=to_number_or_default(values.get("energy_kwh")),
            fuel_liters=to_number_or_default(values.get("fuel_liters")),
            duration_seconds=max(0.0, to_number_or_default(values.get("duration_seconds"))),
            date=normalize_date_key(values.get("date")),
            month=normalize_month_key(values.get("month")),
            start_timestamp=to_optional_number(values.get("start_timestamp")),
            end_timestamp=to_optional_number(values.get("end_timestamp")),
            trip_id=_optional_text(values.get("trip_id")),
        )

    def to_dict(self) -> dict:
        return {
            "trip_id": self.trip_id,
            "date": self.date,
            "month": self.month,
            "distance_km": self.distance_km,
            "energy_kwh": self.energy_kwh,
            "fuel_liters": self.fuel_liters,
            "duration_seconds": self.duration_seconds,
            "start_timestamp": self.start_timestamp,
            "end_timestamp": self.end_timestamp,
        }


@dataclass(frozen=True)
class Charge:
    """One charging (or refuelling) session entered by the user."""

    charge_id: Optional[str] = None
    date: Optional[str] = None  # YYYY-MM-DD
    time: Optional[str] = None  # HH:MM
    kwh_charged: float = 0.0
    total_cost: float = 0.0
    charger_type_id: Optional[str] = None
    speed_kw: float = 0.0
    initial_percentage: Optional[float] = None
    final_percentage: Optional[float] = None
    odometer: Optional[float] = None
    type: str = ELECTRIC
    liters_charged: float = 0.0

    @property
    def is_electric(self) -> bool:
        return self.type == ELECTRIC

    @property
    def is_fuel(self) -> bool:
        return self.type == FUEL

    def timestamp(self, zone=None) -> Optional[float]:
        """Unix timestamp of the session start, or None without a readable date."""
        return charge_timestamp(self.date, self.time, zone)

    @classmethod
    def from_dict(cls, data: Mapping, record_index: Optional[int] = None) -> "Charge":
        """
        Build a charge from a stored session.

        ``kwhCharged`` wins over the legacy ``kwh`` key when it is non-zero.
        Missing SoC percentages stay None.
        """
        if not isinstance(data, Mapping):
            raise ChargeRecordError("Charge record is not a mapping", record_index=record_index)

        values = _normalize_keys(data, CHARGE_KEY_ALIASES)
        kwh = to_number_or_default(values.get("kwh_charged")) or to_number_or_default(values.get("kwh"))
        charge_type = (_optional_text(values.get("type")) or ELECTRIC).lower()

        return cls(
            charge_id=_optional_text(values.get("charge_id")),
            date=_optional_text(values.get("date")),
            time=_optional_text(values.get("time")),
            kwh_charged=kwh,
            total_cost=to_number_or_default(values.get("total_cost")),
            charger_type_id=_optional_text(values.get("charger_type_id")),
            speed_kw=to_number_or_default(values.get("speed_kw")),
            initial_percentage=to_optional_number(values.get("initial_percentage")),
            final_percentage=to_optional_number(values.get("final_percentage")),
            odometer=to_optional_number(values.get("odometer")),
            type=charge_type,
            liters_charged=to_number_or_default(values.get("liters_charged")),
        )

    def to_dict(self) -> dict:
        return {
            "charge_id": self.charge_id,
            "date": self.date,
            "time": self.time,
            "kwh_charged": self.kwh_charged,
            "total_cost": self.total_cost,
            "charger_type_id": self.charger_type_id,
            "speed_kw": self.speed_kw,
            "initial_percentage": self.initial_percentage,
            "final_percentage": self.final_percentage,
            "odometer": self.odometer,
            "type": self.type,
            "liters_charged": self.liters_charged,
        }


@dataclass(frozen=True)
class ChargerType:
    """A charger the user owns or visits, with an optional efficiency override."""

    id: Optional[str]
    name: str = ""
    speed_kw: float = 0.0
    efficiency: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping) -> "ChargerType":
        values = _normalize_keys(data, {})
        return cls(
            id=_optional_text(values.get("id")),
            name=_optional_text(values.get("name")) or "",
            speed_kw=to_number_or_default(values.get("speed_kw")),
            efficiency=to_optional_number(values.get("efficiency")),
        )


def _check_choice(key: str, value: str, allowed: Tuple[str, ...]) -> str:
    if value not in allowed:
        raise ConfigurationError(
            f"Unsupported {key} {value!r}; expected one of {', '.join(allowed)}",
            config_key=key,
            value=value,
        )
    return value


@dataclass(frozen=True)
class Settings:
    """Caller-owned vehicle and pricing configuration, read-only to the engine."""

    battery_size_kwh: float = Config.BATTERY_NET_CAPACITY_KWH
    soh: float = 100.0
    soh_mode: str = "manual"
    mfg_date: Optional[str] = None
    thermal_stress_factor: float = Config.THERMAL_STRESS_FACTOR
    electric_strategy: str = "custom"
    fuel_strategy: str = "custom"
    electric_price: float = Config.ELECTRICITY_PRICE_PER_KWH
    fuel_price: float = Config.FUEL_PRICE_PER_LITER
    odometer_offset_km: float = 0.0
    charger_types: Tuple[ChargerType, ...] = ()
    timezone: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping]) -> "Settings":
        """
        Build settings from the stored settings object.

        Legacy keys are honoured: ``priceStrategy`` replaces the electric
        strategy and ``useCalculatedPrice``/``useCalculatedFuelPrice`` select
        the average strategy. UI-only keys are ignored.

        Raises:
            ConfigurationError: unknown strategy or SoH mode
        """
        if data is None:
            return cls()
        if isinstance(data, Settings):
            return data
        if not isinstance(data, Mapping):
            raise ConfigurationError("Settings must be a mapping", value=type(data).__name__)

        values = _normalize_keys(data, SETTINGS_KEY_ALIASES)

        electric_strategy = _optional_text(values.get("electric_strategy")) or "custom"
        if _optional_text(values.get("price_strategy")):
            electric_strategy = _optional_text(values.get("price_strategy"))
        if values.get("use_calculated_price"):
            electric_strategy = "average"

        fuel_strategy = _optional_text(values.get("fuel_strategy")) or "custom"
        if values.get("use_calculated_fuel_price"):
            fuel_strategy = "average"

        soh_mode = _optional_text(values.get("soh_mode")) or "manual"

        charger_types = tuple(load_charger_types(values.get("charger_types")))

        return cls(
            battery_size_kwh=to_number_or_default(values.get("battery_size_kwh"), Config.BATTERY_NET_CAPACITY_KWH),
            soh=to_number_or_default(values.get("soh")) or 100.0,
            soh_mode=_check_choice("soh_mode", soh_mode, SOH_MODES),
            mfg_date=_optional_text(values.get("mfg_date")),
            thermal_stress_factor=to_number_or_default(values.get("thermal_stress_factor")) or Config.THERMAL_STRESS_FACTOR,
            electric_strategy=_check_choice("electric_strategy", electric_strategy, PRICE_STRATEGIES),
            fuel_strategy=_check_choice("fuel_strategy", fuel_strategy, PRICE_STRATEGIES),
            electric_price=to_number_or_default(values.get("electric_price"), Config.ELECTRICITY_PRICE_PER_KWH),
            fuel_price=to_number_or_default(values.get("fuel_price"), Config.FUEL_PRICE_PER_LITER),
            odometer_offset_km=to_number_or_default(values.get("odometer_offset_km")),
            charger_types=charger_types,
            timezone=_optional_text(values.get("timezone")),
        )


def load_trips(records: Optional[Iterable[Any]]) -> Tuple[List[Trip], List[TripRecordError]]:
    """
    Convert raw rows to trips, isolating malformed ones.

    Rows flagged ``isDeleted`` are dropped silently. Returns the trips in
    input order and the errors for the rows that were skipped.
    """
    trips: List[Trip] = []
    errors: List[TripRecordError] = []

    for index, record in enumerate(records or ()):
        if isinstance(record, Trip):
            trips.append(record)
            continue
        if isinstance(record, Mapping) and (record.get("isDeleted") or record.get("is_deleted")):
            continue
        try:
            trips.append(Trip.from_dict(record, record_index=index))
        except TripRecordError as e:
            errors.append(e)

    return trips, errors


def load_charges(records: Optional[Iterable[Any]]) -> Tuple[List[Charge], List[ChargeRecordError]]:
    """Convert stored sessions to charges, isolating unreadable ones."""
    charges: List[Charge] = []
    errors: List[ChargeRecordError] = []

    for index, record in enumerate(records or ()):
        if isinstance(record, Charge):
            charges.append(record)
            continue
        try:
            charges.append(Charge.from_dict(record, record_index=index))
        except ChargeRecordError as e:
            errors.append(e)

    return charges, errors


def load_charger_types(records: Optional[Iterable[Any]]) -> List[ChargerType]:
    """Charger catalog entries; non-mapping entries are ignored."""
    result = []
    for record in records or ():
        if isinstance(record, ChargerType):
            result.append(record)
        elif isinstance(record, Mapping):
            result.append(ChargerType.from_dict(record))
    return result
