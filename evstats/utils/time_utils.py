"""
Date and time helpers for evstats.

Provides consistent handling of the date shapes found in trip and charge
records:
- Trip calendar keys (YYYYMMDD dates, YYYYMM months)
- Unix start timestamps, resolved in a configurable timezone
- Charge session date + time fields
- Free-form manufacturing dates (parsed with dateutil)
"""

import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional

from dateutil import parser as date_parser
from dateutil import tz

from .numbers import to_optional_number

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 3600
DAYS_PER_JULIAN_YEAR = 365.25


def utc_now() -> datetime:
    """Current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware in UTC.

    Naive datetimes are assumed to already be UTC.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def resolve_timezone(name: Optional[str] = None) -> tzinfo:
    """
    Resolve an IANA timezone name, falling back to the local timezone.

    Examples:
        >>> resolve_timezone("Europe/Madrid")
        tzfile('/usr/share/zoneinfo/Europe/Madrid')
        >>> resolve_timezone(None)
        tzlocal()
    """
    if name:
        zone = tz.gettz(name)
        if zone is not None:
            return zone
        logger.warning(f"Unknown timezone {name!r}, using local time")
    return tz.tzlocal()


def parse_datetime(date_string: Optional[str], default: Optional[datetime] = None) -> Optional[datetime]:
    """
    Parse a date/time string into a UTC datetime.

    Supports ISO 8601, plain dates and the common day-first/month-first
    layouts dateutil understands. Naive results are taken as UTC.

    Args:
        date_string: The date/time string to parse
        default: Value to return if parsing fails

    Returns:
        Timezone-aware datetime or ``default``
    """
    if not date_string or not isinstance(date_string, str):
        return default

    try:
        parsed = date_parser.parse(date_string.strip())
    except (ValueError, OverflowError, TypeError):
        logger.debug(f"Failed to parse datetime string: {date_string!r}")
        return default

    return ensure_utc(parsed)


def calculate_age_years(start: datetime, as_of: Optional[datetime] = None) -> float:
    """
    Elapsed time between two instants in Julian years (365.25 days).

    Negative when ``start`` lies in the future.
    """
    as_of = ensure_utc(as_of) if as_of is not None else utc_now()
    elapsed = as_of - ensure_utc(start)
    return elapsed.total_seconds() / (SECONDS_PER_DAY * DAYS_PER_JULIAN_YEAR)


def datetime_from_timestamp(value, zone: Optional[tzinfo] = None) -> Optional[datetime]:
    """
    Convert a Unix timestamp (seconds) to an aware datetime in ``zone``.

    Returns None for missing, zero, negative or out-of-range timestamps.
    """
    seconds = to_optional_number(value)
    if seconds is None or seconds <= 0:
        return None

    try:
        return datetime.fromtimestamp(seconds, tz=zone or tz.tzlocal())
    except (ValueError, OverflowError, OSError):
        return None


def normalize_date_key(value) -> Optional[str]:
    """
    Normalize a calendar date to its YYYYMMDD key.

    Accepts ``"20240115"`` and ``"2024-01-15"``; anything else is None.
    """
    if not isinstance(value, str):
        return None

    key = value.strip().replace("-", "")
    if len(key) != 8 or not key.isdigit():
        return None

    try:
        datetime.strptime(key, "%Y%m%d")
    except ValueError:
        return None
    return key


def normalize_month_key(value) -> Optional[str]:
    """Normalize a month tag to its YYYYMM key, or None."""
    if not isinstance(value, str):
        return None

    key = value.strip().replace("-", "")
    if len(key) != 6 or not key.isdigit():
        return None
    if not 1 <= int(key[4:]) <= 12:
        return None
    return key


def date_key_from_datetime(dt: datetime) -> str:
    """YYYYMMDD key of a datetime's own calendar date."""
    return dt.strftime("%Y%m%d")


def charge_timestamp(date_value: Optional[str], time_value: Optional[str], zone: Optional[tzinfo] = None) -> Optional[float]:
    """
    Unix timestamp of a charge session from its date and HH:MM time.

    A missing time means midnight; an unreadable date yields None.
    """
    date_key = normalize_date_key(date_value)
    if date_key is None:
        return None

    moment = datetime.strptime(date_key, "%Y%m%d")
    if time_value:
        try:
            clock = datetime.strptime(str(time_value).strip()[:5], "%H:%M")
        except ValueError:
            logger.debug(f"Ignoring unreadable charge time {time_value!r}")
        else:
            moment += timedelta(hours=clock.hour, minutes=clock.minute)

    return moment.replace(tzinfo=zone or tz.tzlocal()).timestamp()


def days_between_timestamps(first: float, last: float) -> int:
    """Inclusive number of days spanned by two timestamps (at least 1)."""
    span = max(0.0, last - first)
    whole_days = int(span // SECONDS_PER_DAY)
    if span % SECONDS_PER_DAY:
        whole_days += 1
    return max(1, whole_days + 1)
