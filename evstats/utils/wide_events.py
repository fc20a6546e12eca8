"""
Wide Events (Canonical Log Lines) - Structured Logging Utility

Each service operation emits ONE comprehensive JSON event:
- Input sizes and skipped-record counts
- Business metrics (km aggregated, estimated SoH, cycles)
- Performance breakdown per calculation step
- Tail sampling: keep all errors/slow operations, sample the rest

Logging is configured explicitly through configure_logging(); importing
this module leaves structlog untouched.
"""

import logging
import random
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog

from ..config import Config
from .error_codes import StructuredError

# Business events that bypass sampling
CRITICAL_EVENTS = (
    "records_skipped",
    "calibration_warning",
    "soh_below_threshold",
)


def configure_logging(level: Optional[str] = None, json_output: bool = True) -> None:
    """
    Configure stdlib logging and structlog for JSON wide events.

    Args:
        level: Log level name (defaults to Config.LOG_LEVEL)
        json_output: Render JSON lines; False renders a console-friendly format
    """
    log_level = getattr(logging, (level or Config.LOG_LEVEL).upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", level=log_level)

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class WideEvent:
    """
    Accumulates context throughout an operation, then emits one comprehensive log event.

    Usage:
        event = WideEvent("trip_aggregation")
        event.add_context(trips_in=120, locale="es")
        event.add_business_metric("total_km", 1830.4)

        with event.timer("aggregate"):
            aggregate(trips, charges, settings)

        event.emit()
    """

    def __init__(self, operation: str, request_id: Optional[str] = None, trace_id: Optional[str] = None):
        """
        Initialize a wide event for a specific operation.

        Args:
            operation: Name of the operation (e.g., "battery_health")
            request_id: Unique ID for this invocation (auto-generated if not provided)
            trace_id: ID that connects related operations (e.g., one dashboard build)
        """
        self.operation = operation
        self.context: Dict[str, Any] = {
            "operation": operation,
            "service": "evstats",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "start_time": time.time(),
            "request_id": request_id or str(uuid.uuid4()),
        }

        if trace_id:
            self.context["trace_id"] = trace_id

        self.logger = structlog.get_logger("evstats")

    def add_context(self, **kwargs) -> "WideEvent":
        """Add high-cardinality context fields."""
        self.context.update(kwargs)
        return self

    def add_business_metric(self, key: str, value: Any) -> "WideEvent":
        """Add business metrics (trips aggregated, kWh charged, SoH, etc.)."""
        self.context.setdefault("business_metrics", {})[key] = value
        return self

    def add_technical_metric(self, key: str, value: Any) -> "WideEvent":
        """Add technical metrics (input sizes, skipped records, etc.)."""
        self.context.setdefault("technical_metrics", {})[key] = value
        return self

    def add_error(self, error, **kwargs) -> "WideEvent":
        """Add error details to the event; accepts exceptions or StructuredError."""
        if isinstance(error, StructuredError):
            details = error.to_dict()
            details.update(kwargs)
            self.context["error"] = details
        else:
            self.context["error"] = {
                "type": type(error).__name__,
                "message": str(error),
                "details": kwargs,
            }
        self.context["success"] = False
        return self

    def mark_success(self) -> "WideEvent":
        self.context["success"] = True
        return self

    def mark_failure(self, reason: str) -> "WideEvent":
        self.context["success"] = False
        self.context["failure_reason"] = reason
        return self

    @contextmanager
    def timer(self, operation_name: str):
        """
        Time a step of the operation.

        Outputs: {"performance_breakdown": {"aggregate_ms": 12.4}}
        """
        start = time.time()
        try:
            yield
        finally:
            duration_ms = (time.time() - start) * 1000
            self.context.setdefault("performance_breakdown", {})[f"{operation_name}_ms"] = round(duration_ms, 2)

    def set_duration(self) -> "WideEvent":
        """Calculate and set the duration of the operation."""
        if "start_time" in self.context:
            duration_ms = (time.time() - self.context["start_time"]) * 1000
            self.context["duration_ms"] = round(duration_ms, 2)
            del self.context["start_time"]
        return self

    def should_emit(
        self,
        sample_rate: float = Config.EVENT_SAMPLE_RATE,
        slow_threshold_ms: float = Config.SLOW_OPERATION_MS,
    ) -> bool:
        """
        Tail sampling:
        - Always emit errors
        - Always emit slow operations (>slow_threshold_ms)
        - Always emit critical business events (skipped records, calibration warning)
        - Sample the rest at sample_rate
        """
        if not self.context.get("success", True):
            return True

        if self.context.get("duration_ms", 0) > slow_threshold_ms:
            return True

        business_metrics = self.context.get("business_metrics", {})
        if any(business_metrics.get(event) for event in CRITICAL_EVENTS):
            return True

        return random.random() < sample_rate

    def emit(self, level: str = "info", force: bool = False) -> None:
        """
        Emit the wide event as a single log line.

        Args:
            level: Log level (info, warning, error)
            force: Emit even if sampling says no
        """
        self.set_duration()

        if not force and not self.should_emit():
            return

        log_method = getattr(self.logger, level, self.logger.info)
        log_method(f"{self.operation}_complete", **self.context)
