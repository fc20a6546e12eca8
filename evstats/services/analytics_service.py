"""
Analytics service for evstats.

Composes the trip aggregation and the battery health estimate into the
dashboard data set, logging one wide event per operation.
"""

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional

from ..calculations import aggregate, summarize_charges
from ..exceptions import ConfigurationError
from ..models import Settings, load_charges
from ..utils.error_codes import ErrorCode, StructuredError
from ..utils.labels import resolve_language
from ..utils.wide_events import WideEvent
from .battery_service import assess_battery_health

logger = logging.getLogger(__name__)


def _error_code_for(error: Exception, default: ErrorCode) -> ErrorCode:
    if isinstance(error, ConfigurationError):
        return ErrorCode.E003_INVALID_SETTINGS
    return default


def process_trips(
    trips: Iterable,
    charges: Iterable = (),
    settings=None,
    locale: Optional[str] = None,
    trace_id: Optional[str] = None,
) -> Optional[dict]:
    """
    Aggregate trips for the dashboard.

    Args:
        trips: Trip rows, already filtered by the caller
        charges: Charging history used for pricing
        settings: Settings instance or mapping
        locale: Locale tag for labels
        trace_id: Links this event to a dashboard build

    Returns:
        Aggregate result, or None when there is no trip data
    """
    event = WideEvent("trip_aggregation", trace_id=trace_id)
    trips = list(trips or ())
    charges = list(charges or ())
    event.add_context(trips_in=len(trips), charges_in=len(charges), locale=resolve_language(locale))

    try:
        settings = Settings.from_dict(settings)
        event.add_context(
            electric_strategy=settings.electric_strategy,
            fuel_strategy=settings.fuel_strategy,
        )

        with event.timer("aggregate"):
            result = aggregate(trips, charges, settings, locale)

        if result is None:
            event.add_context(
                no_data=StructuredError(ErrorCode.E400_NO_TRIP_DATA, "No well-formed trips to aggregate").to_dict()
            )
            event.mark_success()
            event.emit()
            return None

        summary = result["summary"]
        skipped = result["skipped_records"]
        event.add_business_metric("trips_count", summary["trips_count"])
        event.add_business_metric("stationary_trips", summary["stationary_trips"])
        event.add_business_metric("total_km", summary["total_km"])
        event.add_business_metric("total_kwh", summary["total_kwh"])
        event.add_business_metric("avg_efficiency", summary["avg_efficiency"])
        event.add_business_metric("is_hybrid", result["is_hybrid"])

        if skipped:
            logger.warning(f"Skipped {skipped} malformed trip record(s)")
            event.add_business_metric("records_skipped", skipped)
            event.add_context(
                skipped_records=StructuredError(
                    ErrorCode.E001_MALFORMED_TRIP_RECORD,
                    f"{skipped} trip record(s) skipped",
                ).to_dict()
            )

        event.mark_success()
        event.emit(level="warning" if skipped else "info")
        return result

    except Exception as e:
        error_code = _error_code_for(e, ErrorCode.E401_AGGREGATION_FAILED)
        event.add_error(StructuredError(error_code, f"Trip aggregation error: {type(e).__name__}", exception=e))
        event.mark_failure(f"aggregation_error: {type(e).__name__}")
        event.emit(level="error", force=True)
        raise


def build_dashboard(
    trips: Iterable,
    charges: Iterable = (),
    settings=None,
    locale: Optional[str] = None,
    as_of: Optional[datetime] = None,
) -> Optional[dict]:
    """
    Build the full dashboard data set.

    When a manufacturing date is configured the battery health estimate is
    attached as ``soh_data``; with ``soh_mode == "calculated"`` it also
    replaces the manual SoH used for range estimates. ``odometer_km`` adds
    the configured odometer offset to the aggregated distance.

    Args:
        trips: Trip rows, already filtered by the caller
        charges: Full charging history
        settings: Settings instance or mapping
        locale: Locale tag for labels
        as_of: Instant treated as "now" for calendar ageing

    Returns:
        Aggregate result extended with soh_data, odometer_km and
        charges_summary, or None when there is no trip data
    """
    trace_id = str(uuid.uuid4())
    event = WideEvent("dashboard_build", trace_id=trace_id)
    charges = list(charges or ())

    try:
        settings = Settings.from_dict(settings)
        event.add_context(soh_mode=settings.soh_mode, has_mfg_date=bool(settings.mfg_date))

        soh_data = None
        if settings.mfg_date:
            with event.timer("battery_health"):
                soh_data = assess_battery_health(charges, settings, as_of=as_of, trace_id=trace_id)
            if settings.soh_mode == "calculated":
                settings = replace(settings, soh=soh_data["estimated_soh"])

        with event.timer("trip_aggregation"):
            result = process_trips(trips, charges, settings, locale, trace_id=trace_id)

        if result is None:
            event.add_business_metric("no_data", True)
            event.mark_success()
            event.emit()
            return None

        charge_list, _ = load_charges(charges)
        result["summary"]["soh_data"] = soh_data
        result["summary"]["odometer_km"] = round(result["summary"]["total_km"] + settings.odometer_offset_km, 2)
        result["charges_summary"] = summarize_charges(charge_list)

        event.add_business_metric("soh", result["summary"]["soh"])
        event.add_business_metric("odometer_km", result["summary"]["odometer_km"])
        event.mark_success()
        event.emit()
        return result

    except Exception as e:
        error_code = _error_code_for(e, ErrorCode.E500_INTERNAL_ERROR)
        event.add_error(StructuredError(error_code, f"Dashboard build error: {type(e).__name__}", exception=e))
        event.mark_failure(f"dashboard_error: {type(e).__name__}")
        event.emit(level="error", force=True)
        raise
