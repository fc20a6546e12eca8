"""
Locale-aware labels for chart axes.

Labels are the only thing the locale changes; numbers and ordering never
depend on it. Languages follow the dashboard's translations, with Spanish
as the fallback.
"""

from typing import Optional, Tuple

from ..config import Config

FALLBACK_LANGUAGE = "es"

MONTH_ABBREVIATIONS = {
    "es": ("ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sept", "oct", "nov", "dic"),
    "en": ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"),
    "pt": ("jan", "fev", "mar", "abr", "mai", "jun", "jul", "ago", "set", "out", "nov", "dez"),
    "gl": ("xan", "feb", "mar", "abr", "mai", "xuñ", "xul", "ago", "set", "out", "nov", "dec"),
    "ca": ("gen", "febr", "març", "abr", "maig", "juny", "jul", "ag", "set", "oct", "nov", "des"),
    "eu": ("urt", "ots", "mar", "api", "mai", "eka", "uzt", "abu", "ira", "urr", "aza", "abe"),
}

# Monday first
WEEKDAY_ABBREVIATIONS = {
    "es": ("Lun", "Mar", "Mié", "Jue", "Vie", "Sáb", "Dom"),
    "en": ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"),
    "pt": ("Seg", "Ter", "Qua", "Qui", "Sex", "Sáb", "Dom"),
    "gl": ("Lun", "Mar", "Mér", "Xov", "Ven", "Sáb", "Dom"),
    "ca": ("Dl", "Dt", "Dc", "Dj", "Dv", "Ds", "Dg"),
    "eu": ("Al", "Ar", "Az", "Og", "Or", "Lr", "Ig"),
}

WEEKDAY_KEYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

DATE_PATTERNS = {
    "en": "{month}/{day}/{year}",
    "eu": "{year}/{month}/{day}",
}
DEFAULT_DATE_PATTERN = "{day}/{month}/{year}"


def resolve_language(locale: Optional[str]) -> str:
    """
    Reduce a locale tag to a supported language code.

    Examples:
        >>> resolve_language("en-GB")
        'en'
        >>> resolve_language("fr")
        'es'
    """
    tag = locale or Config.DEFAULT_LOCALE or FALLBACK_LANGUAGE
    language = tag.replace("_", "-").split("-")[0].lower()
    if language in MONTH_ABBREVIATIONS:
        return language
    return FALLBACK_LANGUAGE


def format_month(month_key: Optional[str], locale: Optional[str] = None) -> str:
    """
    Format a YYYYMM key as a short month label, e.g. ``Ene 2024``.

    Malformed keys are returned unchanged.
    """
    if not month_key or len(month_key) < 6 or not month_key[:6].isdigit():
        return month_key or ""

    month_index = int(month_key[4:6]) - 1
    if not 0 <= month_index < 12:
        return month_key

    name = MONTH_ABBREVIATIONS[resolve_language(locale)][month_index]
    return f"{name[:1].upper()}{name[1:]} {month_key[:4]}"


def format_date(date_key: Optional[str], locale: Optional[str] = None) -> str:
    """Format a YYYYMMDD key using the locale's numeric date layout."""
    if not date_key or len(date_key) < 8 or not date_key[:8].isdigit():
        return date_key or ""

    pattern = DATE_PATTERNS.get(resolve_language(locale), DEFAULT_DATE_PATTERN)
    return pattern.format(year=date_key[:4], month=date_key[4:6], day=date_key[6:8])


def weekday_labels(locale: Optional[str] = None) -> Tuple[str, ...]:
    """Abbreviated weekday names, Monday first."""
    return WEEKDAY_ABBREVIATIONS[resolve_language(locale)]


def format_date_range(first_key: Optional[str], last_key: Optional[str], locale: Optional[str] = None) -> str:
    """``first - last`` label, or empty when either end is unknown."""
    if not first_key or not last_key:
        return ""
    return f"{format_date(first_key, locale)} - {format_date(last_key, locale)}"
