import os


class Config:
    """Engine defaults and ambient settings from environment variables."""

    # Logging
    LOG_LEVEL = os.environ.get('EVSTATS_LOG_LEVEL', 'INFO')
    EVENT_SAMPLE_RATE = float(os.environ.get('EVSTATS_EVENT_SAMPLE_RATE', 0.05))
    SLOW_OPERATION_MS = float(os.environ.get('EVSTATS_SLOW_OPERATION_MS', 1000))

    # Labels
    DEFAULT_LOCALE = os.environ.get('EVSTATS_DEFAULT_LOCALE', 'es')

    # Vehicle defaults
    BATTERY_NET_CAPACITY_KWH = 60.48  # Blade battery usable capacity
    ELECTRICITY_PRICE_PER_KWH = 0.15
    FUEL_PRICE_PER_LITER = 1.50  # Only used for hybrid vehicles
    THERMAL_STRESS_FACTOR = 1.0  # Temperate climate

    # Aggregation
    STATIONARY_DISTANCE_KM = 0.5  # Below this a record is parked consumption
    TOP_RECORDS_LIMIT = 10

    # Battery health
    SOH_ALERT_THRESHOLD_PCT = float(os.environ.get('EVSTATS_SOH_ALERT_THRESHOLD_PCT', 80))  # Always log below this
