"""
Error Code Taxonomy for evstats

Structured error codes for log events, so skipped records and failed
operations can be grouped and alerted on.

Error Code Format:
- E001-E099: Validation errors (bad input records or settings)
- E300-E399: Parsing errors (dates, timestamps)
- E400-E499: Analytics errors (aggregation, battery estimation)
- E500-E599: System errors
"""

from enum import Enum
from typing import Optional


class ErrorCategory(str, Enum):
    """High-level error categories for grouping and alerting."""

    VALIDATION = "validation"
    PARSING = "parsing"
    ANALYTICS = "analytics"
    SYSTEM = "system"


class ErrorCode(str, Enum):
    """Structured error codes with consistent format."""

    # Validation Errors (E001-E099)
    E001_MALFORMED_TRIP_RECORD = "E001"  # Trip row without usable distance
    E002_MALFORMED_CHARGE_RECORD = "E002"  # Charge record is not a mapping
    E003_INVALID_SETTINGS = "E003"  # Settings value outside the allowed set

    # Parsing Errors (E300-E399)
    E300_INVALID_MFG_DATE = "E300"  # Manufacturing date could not be parsed

    # Analytics Errors (E400-E499)
    E400_NO_TRIP_DATA = "E400"  # Nothing left to aggregate
    E401_AGGREGATION_FAILED = "E401"  # Trip aggregation raised
    E402_SOH_ESTIMATION_FAILED = "E402"  # Battery health estimation raised
    E403_SOC_UNKNOWN = "E403"  # Initial SoC could not be estimated

    # System Errors (E500-E599)
    E500_INTERNAL_ERROR = "E500"  # Unhandled internal error


ERROR_METADATA = {
    ErrorCode.E001_MALFORMED_TRIP_RECORD: {
        "category": ErrorCategory.VALIDATION,
        "description": "Trip record without usable distance",
        "severity": "warning",
        "alert": False,
    },
    ErrorCode.E002_MALFORMED_CHARGE_RECORD: {
        "category": ErrorCategory.VALIDATION,
        "description": "Charge record could not be read",
        "severity": "warning",
        "alert": False,
    },
    ErrorCode.E003_INVALID_SETTINGS: {
        "category": ErrorCategory.VALIDATION,
        "description": "Settings value outside the allowed set",
        "severity": "error",
        "alert": False,
    },
    ErrorCode.E300_INVALID_MFG_DATE: {
        "category": ErrorCategory.PARSING,
        "description": "Manufacturing date could not be parsed",
        "severity": "warning",
        "alert": False,
    },
    ErrorCode.E400_NO_TRIP_DATA: {
        "category": ErrorCategory.ANALYTICS,
        "description": "No trips left to aggregate",
        "severity": "info",
        "alert": False,
    },
    ErrorCode.E401_AGGREGATION_FAILED: {
        "category": ErrorCategory.ANALYTICS,
        "description": "Trip aggregation failed",
        "severity": "error",
        "alert": True,
    },
    ErrorCode.E402_SOH_ESTIMATION_FAILED: {
        "category": ErrorCategory.ANALYTICS,
        "description": "Battery health estimation failed",
        "severity": "error",
        "alert": True,
    },
    ErrorCode.E403_SOC_UNKNOWN: {
        "category": ErrorCategory.ANALYTICS,
        "description": "Initial state of charge could not be estimated",
        "severity": "info",
        "alert": False,
    },
    ErrorCode.E500_INTERNAL_ERROR: {
        "category": ErrorCategory.SYSTEM,
        "description": "Unhandled internal error",
        "severity": "critical",
        "alert": True,
    },
}


def get_error_metadata(error_code: ErrorCode) -> dict:
    """Get metadata for an error code."""
    return ERROR_METADATA.get(
        error_code,
        {
            "category": ErrorCategory.SYSTEM,
            "description": "Unknown error",
            "severity": "error",
            "alert": True,
        },
    )


class StructuredError:
    """Structured error with code, category, and metadata."""

    def __init__(self, code: ErrorCode, message: str, exception: Optional[Exception] = None, **context):
        """
        Create a structured error.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            exception: Original exception (if applicable)
            **context: Additional context fields (record_index, operation, etc.)
        """
        self.code = code
        self.message = message
        self.exception = exception
        self.context = context
        self.metadata = get_error_metadata(code)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging."""
        error_dict = {
            "code": self.code.value,
            "category": self.metadata["category"].value,
            "message": self.message,
            "severity": self.metadata["severity"],
            "alert": self.metadata["alert"],
        }

        if self.exception:
            error_dict["exception_type"] = type(self.exception).__name__
            error_dict["exception_message"] = str(self.exception)

        if self.context:
            error_dict["context"] = self.context

        return error_dict

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"
