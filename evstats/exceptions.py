"""
Custom exceptions for evstats.

This module provides a hierarchy of exceptions for better error handling
and more informative error messages throughout the package.
"""


class EvStatsError(Exception):
    """Base exception for all evstats errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class RecordValidationError(EvStatsError):
    """An input record is structurally unusable."""

    def __init__(
        self,
        message: str,
        record_index: int = None,
        field: str = None,
        value=None
    ):
        details = {}
        if record_index is not None:
            details['record_index'] = record_index
        if field:
            details['field'] = field
        if value is not None:
            details['value'] = value
        super().__init__(message, details)
        self.record_index = record_index
        self.field = field
        self.value = value


class TripRecordError(RecordValidationError):
    """Trip row lacks a usable distance or is not a record at all."""

    pass


class ChargeRecordError(RecordValidationError):
    """Charging session record could not be read."""

    pass


class ConfigurationError(EvStatsError):
    """Invalid or missing configuration."""

    def __init__(self, message: str, config_key: str = None, value=None):
        details = {}
        if config_key:
            details['config_key'] = config_key
        if value is not None:
            details['value'] = value
        super().__init__(message, details)
        self.config_key = config_key
        self.value = value

