"""API Error Handling & Validation.

Provides the engine's typed exception hierarchy, structured error
responses, global exception handlers and input validation utilities
for the notification FastAPI layer.
"""

from src.api_errors.config import (
    ErrorCode,
    ErrorConfig,
    ErrorSeverity,
)
from src.api_errors.exceptions import (
    AuthenticationError,
    ConfigError,
    NotFoundError,
    NotificationAPIError,
    RequestError,
    ServiceUnavailableError,
    TransportError,
    ValidationError,
)
from src.api_errors.handlers import (
    ErrorResponse,
    ErrorDetail,
    create_error_response,
    register_exception_handlers,
)
from src.api_errors.middleware import ErrorHandlingMiddleware
from src.api_errors.validators import (
    validate_pagination,
    validate_time_of_day,
    validate_timezone,
    validate_user_id,
    validate_weekday,
)

__all__ = [
    # Config
    "ErrorCode",
    "ErrorConfig",
    "ErrorSeverity",
    # Exceptions
    "AuthenticationError",
    "ConfigError",
    "NotFoundError",
    "NotificationAPIError",
    "RequestError",
    "ServiceUnavailableError",
    "TransportError",
    "ValidationError",
    # Handlers
    "ErrorResponse",
    "ErrorDetail",
    "create_error_response",
    "register_exception_handlers",
    # Middleware
    "ErrorHandlingMiddleware",
    # Validators
    "validate_pagination",
    "validate_time_of_day",
    "validate_timezone",
    "validate_user_id",
    "validate_weekday",
]
