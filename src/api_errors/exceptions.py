"""Custom Exception Hierarchy.

Defines typed exceptions that map to specific HTTP status codes
and error codes for consistent API error responses. The engine's
four failure classes (malformed preferences, transport, request and
validation failures) all live here so a single handler covers them.
"""

from typing import Any, Dict, List, Optional

from src.api_errors.config import ErrorCode, ERROR_STATUS_MAP


class NotificationAPIError(Exception):
    """Base exception for all notification engine errors.

    All custom exceptions inherit from this, allowing a single
    exception handler to catch the entire hierarchy.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = ERROR_STATUS_MAP.get(error_code, 500)
        self.details = details or []
        self.headers = headers or {}


class ValidationError(NotificationAPIError):
    """Raised when request input fails validation."""

    def __init__(
        self,
        message: str = "Validation failed",
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: Optional[List[Dict[str, Any]]] = None,
        field: Optional[str] = None,
    ):
        if field and not details:
            details = [{"field": field, "issue": message}]
        super().__init__(message, error_code, details)


class ConfigError(NotificationAPIError):
    """Raised when a stored preference object cannot be evaluated.

    The resolver catches this and fails closed; it only reaches the
    HTTP layer when raised outside resolution.
    """

    def __init__(
        self,
        message: str = "Invalid notification configuration",
        field: Optional[str] = None,
    ):
        details = [{"field": field, "issue": message}] if field else None
        super().__init__(message, ErrorCode.CONFIG_ERROR, details)
        self.field = field


class TransportError(NotificationAPIError):
    """Raised when the real-time transport cannot connect or authenticate."""

    def __init__(
        self,
        message: str = "Real-time transport failure",
        reason: Optional[str] = None,
    ):
        super().__init__(message, ErrorCode.TRANSPORT_ERROR)
        self.reason = reason


class RequestError(NotificationAPIError):
    """Raised when a request/response operation against the API fails.

    ``status_code`` on the exception is the upstream status when one was
    received; ``None`` means the request never got a response.
    """

    def __init__(
        self,
        message: str = "Request failed",
        status_code: Optional[int] = None,
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(message, ErrorCode.REQUEST_FAILED, details)
        self.upstream_status = status_code
        self.status_code = status_code if status_code is not None else self.status_code


class AuthenticationError(NotificationAPIError):
    """Raised when the caller identity is missing."""

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: ErrorCode = ErrorCode.AUTHENTICATION_REQUIRED,
    ):
        super().__init__(message, error_code)


class NotFoundError(NotificationAPIError):
    """Raised when a requested resource does not exist."""

    def __init__(
        self,
        message: str = "Resource not found",
        error_code: ErrorCode = ErrorCode.RESOURCE_NOT_FOUND,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
    ):
        details = []
        if resource_type or resource_id:
            details = [{"resource_type": resource_type, "resource_id": resource_id}]
        super().__init__(message, error_code, details)


class ServiceUnavailableError(NotificationAPIError):
    """Raised when a dependent service is unavailable."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        error_code: ErrorCode = ErrorCode.SERVICE_UNAVAILABLE,
    ):
        super().__init__(message, error_code)
