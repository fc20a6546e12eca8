"""
Calculation Constants for evstats

Centralized location for all mathematical and physical constants used in calculations.
Vehicle defaults are imported from Config to keep a single source of truth.
"""

from ..config import Config

# Battery Constants
DEFAULT_BATTERY_NET_CAPACITY_KWH = Config.BATTERY_NET_CAPACITY_KWH  # Fallback when capacity is 0/invalid
MIN_PERCENTAGE = 0.0
MAX_PERCENTAGE = 100.0

# Charging Efficiency (grid energy -> battery energy)
SLOW_CHARGE_EFFICIENCY = 0.85  # Granny/portable charger losses
FAST_CHARGE_EFFICIENCY = 0.95  # Wallbox and DC

# Charging speed tiers: (name, upper bound kW inclusive, stress coefficient)
SLOW_CHARGE_MAX_KW = 3.5
AC_CHARGE_MAX_KW = 22.0
DC_CHARGE_MAX_KW = 70.0
CHARGING_SPEED_TIERS = (
    ("slow", SLOW_CHARGE_MAX_KW, 0.9),
    ("ac", AC_CHARGE_MAX_KW, 1.0),
    ("dc", DC_CHARGE_MAX_KW, 1.2),
    ("hpc", None, 2.8),
)
NEUTRAL_CHARGING_STRESS = 1.0  # No sessions to weigh

# Degradation Model (percentage points)
SEI_MAX_DROP_PCT = 2.0  # Early-life capacity loss
SEI_FORMATION_CYCLES = 50.0  # Cycles over which the SEI loss ramps in
CYCLE_AGING_RATE = 0.00005  # Fraction lost per stress-weighted cycle
CALENDAR_AGING_PCT_PER_YEAR = 0.75

# Calibration
FULL_CHARGE_THRESHOLD_PCT = 99.0  # Final SoC counted as a full charge
MIN_FULL_CHARGE_RATIO = 0.10  # Below this share the cycle estimate is shaky

# Efficiency Constants
STATIONARY_DISTANCE_KM = Config.STATIONARY_DISTANCE_KM  # Parked climate control etc.
MAX_SCATTER_EFFICIENCY = 50.0  # kWh/100km above this is treated as noise
HIGHWAY_CONSUMPTION_FACTOR = 1.2
CITY_CONSUMPTION_FACTOR = 0.8

# Aggregation
TOP_RECORDS_LIMIT = Config.TOP_RECORDS_LIMIT
# (label, upper bound km inclusive)
TRIP_DISTANCE_BUCKETS = (
    ("0-5", 5.0),
    ("5-15", 15.0),
    ("15-30", 30.0),
    ("30-50", 50.0),
    ("50+", None),
)
HOURS_PER_DAY = 24
SECONDS_PER_HOUR = 3600
SECONDS_PER_MINUTE = 60

# Rounding
OUTPUT_DECIMALS = 2
