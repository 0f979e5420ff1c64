"""API Error Configuration.

Defines error codes, severity levels, and configuration for
structured error handling across the notification API.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict


class ErrorCode(Enum):
    """Standardized error codes for API responses."""

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_PREFERENCES = "INVALID_PREFERENCES"
    INVALID_PAGINATION = "INVALID_PAGINATION"

    # Authentication errors (401)
    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"

    # Not found errors (404)
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    NOTIFICATION_NOT_FOUND = "NOTIFICATION_NOT_FOUND"

    # Server errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    CONFIG_ERROR = "CONFIG_ERROR"

    # Upstream failures (502)
    REQUEST_FAILED = "REQUEST_FAILED"

    # Service unavailable (503)
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"


class ErrorSeverity(Enum):
    """Severity levels for error logging."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Map error codes to HTTP status codes
ERROR_STATUS_MAP: Dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.INVALID_PREFERENCES: 400,
    ErrorCode.INVALID_PAGINATION: 400,
    ErrorCode.AUTHENTICATION_REQUIRED: 401,
    ErrorCode.RESOURCE_NOT_FOUND: 404,
    ErrorCode.NOTIFICATION_NOT_FOUND: 404,
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.CONFIG_ERROR: 500,
    ErrorCode.REQUEST_FAILED: 502,
    ErrorCode.SERVICE_UNAVAILABLE: 503,
    ErrorCode.TRANSPORT_ERROR: 503,
}

# Map error codes to severity
ERROR_SEVERITY_MAP: Dict[ErrorCode, ErrorSeverity] = {
    ErrorCode.VALIDATION_ERROR: ErrorSeverity.LOW,
    ErrorCode.INVALID_PREFERENCES: ErrorSeverity.LOW,
    ErrorCode.INVALID_PAGINATION: ErrorSeverity.LOW,
    ErrorCode.AUTHENTICATION_REQUIRED: ErrorSeverity.MEDIUM,
    ErrorCode.RESOURCE_NOT_FOUND: ErrorSeverity.LOW,
    ErrorCode.NOTIFICATION_NOT_FOUND: ErrorSeverity.LOW,
    ErrorCode.INTERNAL_ERROR: ErrorSeverity.CRITICAL,
    ErrorCode.CONFIG_ERROR: ErrorSeverity.HIGH,
    ErrorCode.REQUEST_FAILED: ErrorSeverity.MEDIUM,
    ErrorCode.SERVICE_UNAVAILABLE: ErrorSeverity.HIGH,
    ErrorCode.TRANSPORT_ERROR: ErrorSeverity.MEDIUM,
}


@dataclass
class ErrorConfig:
    """Configuration for API error handling."""

    include_stack_trace: bool = False
    include_request_id: bool = True
    log_all_errors: bool = True
    max_error_detail_length: int = 1000
    suppress_internal_details: bool = True
    custom_error_messages: Dict[str, str] = field(default_factory=dict)


DEFAULT_ERROR_CONFIG = ErrorConfig()
