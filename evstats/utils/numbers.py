"""
Numeric coercion helpers.

Every numeric field read from a trip, charge or settings record goes through
these helpers so that missing, blank or garbage values map to one documented
default instead of NaN.
"""

import math
from typing import Any, Optional


def to_optional_number(value: Any) -> Optional[float]:
    """
    Parse a value to a finite float, or None when it is not a number.

    Booleans are not numbers here, and numeric strings are accepted.

    Examples:
        >>> to_optional_number("12.5")
        12.5
        >>> to_optional_number("")
        None
        >>> to_optional_number(float("nan"))
        None
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None

    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None

    if not math.isfinite(number):
        return None
    return number


def to_number_or_default(value: Any, default: float = 0.0) -> float:
    """
    Parse a value to a finite float, falling back to ``default``.

    Examples:
        >>> to_number_or_default("3.2")
        3.2
        >>> to_number_or_default(None)
        0.0
        >>> to_number_or_default("abc", 1.0)
        1.0
    """
    number = to_optional_number(value)
    return default if number is None else number


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning ``default`` for a zero or non-finite denominator."""
    if not denominator or not math.isfinite(denominator):
        return default
    result = numerator / denominator
    return result if math.isfinite(result) else default


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up."""
    return int(math.floor(value + 0.5))
