"""
Battery health service for evstats.

Wraps the State-of-Health estimator and the initial-SoC projection with
settings coercion and wide-event logging.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from ..calculations import estimate_initial_soc, estimate_soh
from ..config import Config
from ..exceptions import ChargeRecordError, ConfigurationError
from ..models import Charge, Settings, load_charges
from ..utils.error_codes import ErrorCode, StructuredError
from ..utils.time_utils import parse_datetime, resolve_timezone
from ..utils.wide_events import WideEvent

logger = logging.getLogger(__name__)


def assess_battery_health(
    charges: Iterable,
    settings=None,
    as_of: Optional[datetime] = None,
    trace_id: Optional[str] = None,
) -> dict:
    """
    Estimate battery health from the charging history and vehicle settings.

    Args:
        charges: Charging sessions (mappings or Charge instances)
        settings: Settings instance or mapping (mfg date, capacity, chargers, thermal factor)
        as_of: Instant treated as "now" for calendar ageing
        trace_id: Links this event to a dashboard build

    Returns:
        SoH result dict (see estimate_soh)
    """
    event = WideEvent("battery_health", trace_id=trace_id)

    try:
        settings = Settings.from_dict(settings)
        with event.timer("load_charges"):
            charge_list, errors = load_charges(charges)

        event.add_context(
            charges_in=len(charge_list) + len(errors),
            mfg_date=settings.mfg_date,
            net_capacity_kwh=settings.battery_size_kwh,
            thermal_stress_factor=settings.thermal_stress_factor,
        )
        if errors:
            event.add_business_metric("records_skipped", len(errors))
            event.add_context(
                skipped_records=StructuredError(
                    ErrorCode.E002_MALFORMED_CHARGE_RECORD,
                    f"{len(errors)} charge record(s) skipped",
                    record_indexes=[error.record_index for error in errors],
                ).to_dict()
            )

        if settings.mfg_date and parse_datetime(settings.mfg_date) is None:
            logger.warning(f"Unreadable manufacturing date {settings.mfg_date!r}; calendar ageing ignored")
            event.add_technical_metric("mfg_date_unparsed", True)
            event.add_context(
                mfg_date_error=StructuredError(
                    ErrorCode.E300_INVALID_MFG_DATE,
                    "Manufacturing date could not be parsed",
                    value=settings.mfg_date,
                ).to_dict()
            )

        with event.timer("estimate_soh"):
            result = estimate_soh(
                charge_list,
                settings.mfg_date,
                settings.battery_size_kwh,
                settings.charger_types,
                settings.thermal_stress_factor,
                as_of=as_of,
            )

        event.add_business_metric("estimated_soh", result["estimated_soh"])
        event.add_business_metric("real_cycles_count", result["real_cycles_count"])
        event.add_business_metric("stress_score", result["stress_score"])
        event.add_business_metric("sessions_analyzed", result["sessions_analyzed"])
        event.add_business_metric("calibration_warning", result["calibration_warning"])
        if result["estimated_soh"] < Config.SOH_ALERT_THRESHOLD_PCT:
            event.add_business_metric("soh_below_threshold", True)

        event.mark_success()
        event.emit(level="warning" if errors else "info")
        return result

    except Exception as e:
        error_code = (
            ErrorCode.E003_INVALID_SETTINGS
            if isinstance(e, ConfigurationError)
            else ErrorCode.E402_SOH_ESTIMATION_FAILED
        )
        event.add_error(StructuredError(error_code, f"Battery health error: {type(e).__name__}", exception=e))
        event.mark_failure(f"battery_health_error: {type(e).__name__}")
        event.emit(level="error", force=True)
        raise


def find_previous_charge(charges: Iterable, new_charge, zone=None) -> Optional[Charge]:
    """
    Latest earlier electric session that carries an odometer and a final SoC.

    "Earlier" is by session date/time when the new session has one, and by
    odometer otherwise. Sessions sharing a start time keep their input order,
    the last one winning.
    """
    charge_list, _ = load_charges(charges)
    if not isinstance(new_charge, Charge):
        new_charge = Charge.from_dict(new_charge)

    new_timestamp = new_charge.timestamp(zone)
    best = None
    best_key = None

    for charge in charge_list:
        if not charge.is_electric or charge.odometer is None or charge.final_percentage is None:
            continue
        if charge is new_charge or (new_charge.charge_id and charge.charge_id == new_charge.charge_id):
            continue

        if new_timestamp is not None:
            moment = charge.timestamp(zone)
            if moment is None or moment >= new_timestamp:
                continue
            key = moment
        else:
            if new_charge.odometer is not None and charge.odometer >= new_charge.odometer:
                continue
            key = charge.odometer

        if best_key is None or key >= best_key:
            best, best_key = charge, key

    return best


def estimate_session_start_soc(
    charges: Iterable,
    new_charge,
    avg_efficiency,
    battery_size,
    timezone_name: Optional[str] = None,
) -> Optional[int]:
    """
    Estimate the SoC at the start of ``new_charge`` from the charging history.

    Returns:
        Estimated SoC (0-100) or None when unknown
    """
    event = WideEvent("initial_soc_estimate")
    zone = resolve_timezone(timezone_name)

    try:
        if not isinstance(new_charge, Charge):
            new_charge = Charge.from_dict(new_charge)

        previous = find_previous_charge(charges, new_charge, zone)
        event.add_context(
            charge_id=new_charge.charge_id,
            current_odometer=new_charge.odometer,
            previous_charge_id=previous.charge_id if previous else None,
        )

        estimate = estimate_initial_soc(previous, new_charge.odometer, avg_efficiency, battery_size)
        event.add_business_metric("estimated_soc", estimate)
        if estimate is None:
            event.add_context(
                soc_unknown=StructuredError(
                    ErrorCode.E403_SOC_UNKNOWN,
                    "No usable previous session or non-positive distance",
                ).to_dict()
            )

        event.mark_success()
        event.emit()
        return estimate

    except Exception as e:
        error_code = (
            ErrorCode.E002_MALFORMED_CHARGE_RECORD
            if isinstance(e, ChargeRecordError)
            else ErrorCode.E500_INTERNAL_ERROR
        )
        event.add_error(StructuredError(error_code, "Initial SoC error", exception=e))
        event.mark_failure(f"initial_soc_error: {type(e).__name__}")
        event.emit(level="error", force=True)
        raise
