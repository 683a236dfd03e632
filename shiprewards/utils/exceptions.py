"""
Custom exceptions for ShipRewards business logic.

Engines and services raise these; the app-level error handler turns them
into a single JSON error response with the matching HTTP status.
"""
from .errors import ErrorCode


class RewardsError(Exception):
    """Base exception for all ShipRewards business logic errors."""

    status_code = 500

    def __init__(self, message: str, code: str = "REWARDS_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(RewardsError):
    """Invalid input data."""

    status_code = 400

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"INVALID_{field.upper()}" if field else ErrorCode.VALIDATION_ERROR
        super().__init__(message, code)


class ConfigurationError(RewardsError):
    """Required program configuration is missing or disabled."""

    def __init__(self, message: str, key: str = None):
        self.key = key
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR)


class DataStoreError(RewardsError):
    """A read or write against the datastore failed."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(message, ErrorCode.DATABASE_ERROR)
