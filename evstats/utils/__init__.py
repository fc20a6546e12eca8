"""Utility modules for evstats."""

from .numbers import (
    round_half_up,
    safe_divide,
    to_number_or_default,
    to_optional_number,
)
from .time_utils import (
    calculate_age_years,
    charge_timestamp,
    datetime_from_timestamp,
    ensure_utc,
    normalize_date_key,
    normalize_month_key,
    parse_datetime,
    resolve_timezone,
    utc_now,
)
from .labels import (
    format_date,
    format_date_range,
    format_month,
    resolve_language,
    weekday_labels,
)

__all__ = [
    'to_number_or_default',
    'to_optional_number',
    'safe_divide',
    'round_half_up',
    'utc_now',
    'ensure_utc',
    'parse_datetime',
    'resolve_timezone',
    'calculate_age_years',
    'datetime_from_timestamp',
    'charge_timestamp',
    'normalize_date_key',
    'normalize_month_key',
    'format_month',
    'format_date',
    'format_date_range',
    'weekday_labels',
    'resolve_language',
]
