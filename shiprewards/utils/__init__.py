"""
Utility modules for ShipRewards.
"""
from .logging_config import setup_logging
from .errors import (
    ErrorCode,
    error_response,
    bad_request,
    forbidden,
    not_found,
    internal_error
)
from .exceptions import (
    RewardsError,
    ValidationError,
    ConfigurationError,
    DataStoreError
)
