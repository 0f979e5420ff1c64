"""Input Validation Utilities.

Reusable validators for common notification input patterns:
user identifiers, times of day, IANA timezones, weekdays and
pagination.
"""

import re
from typing import Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.api_errors.config import ErrorCode
from src.api_errors.exceptions import ValidationError

# 24h wall clock, e.g. 07:30 or 22:00
TIME_OF_DAY_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

# Opaque user identifiers: letters, digits and a few separators
USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.@:-]{1,128}$")

# Maximum pagination limits
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20


def validate_user_id(user_id: str) -> str:
    """Validate a caller-supplied user identifier.

    Raises:
        ValidationError: If the identifier is empty or malformed.
    """
    if not user_id or not isinstance(user_id, str):
        raise ValidationError(message="User id is required", field="user_id")

    user_id = user_id.strip()
    if not USER_ID_PATTERN.match(user_id):
        raise ValidationError(
            message=f"Invalid user id: '{user_id[:32]}'",
            field="user_id",
        )
    return user_id


def validate_time_of_day(value: str, field: str = "time") -> str:
    """Validate an ``HH:MM`` 24-hour time string.

    Returns:
        The validated time string.

    Raises:
        ValidationError: If the value is not a valid ``HH:MM`` time.
    """
    if not isinstance(value, str) or not TIME_OF_DAY_PATTERN.match(value):
        raise ValidationError(
            message=f"Invalid time '{value}'. Expected HH:MM (24h)",
            field=field,
        )
    return value


def validate_timezone(value: str, field: str = "timezone") -> str:
    """Validate an IANA timezone name such as ``America/New_York``.

    Raises:
        ValidationError: If the zone is unknown.
    """
    if not isinstance(value, str) or not value:
        raise ValidationError(message="Timezone is required", field=field)
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(message=f"Unknown timezone '{value}'", field=field)
    return value


def validate_weekday(value: int, field: str = "day_of_week") -> int:
    """Validate a weekday number (0=Sunday ... 6=Saturday)."""
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 6:
        raise ValidationError(
            message=f"Invalid weekday {value!r}. Expected 0 (Sunday) to 6 (Saturday)",
            field=field,
        )
    return value


def validate_pagination(
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> Tuple[int, int]:
    """Validate pagination parameters.

    Args:
        page: Page number (1-indexed).
        page_size: Number of items per page.
        max_page_size: Maximum allowed page size.

    Returns:
        Tuple of (page, page_size).

    Raises:
        ValidationError: If pagination parameters are invalid.
    """
    if not isinstance(page, int) or page < 1:
        raise ValidationError(
            message="Page must be a positive integer",
            error_code=ErrorCode.INVALID_PAGINATION,
            field="page",
        )

    if not isinstance(page_size, int) or page_size < 1:
        raise ValidationError(
            message="Page size must be a positive integer",
            error_code=ErrorCode.INVALID_PAGINATION,
            field="page_size",
        )

    if page_size > max_page_size:
        raise ValidationError(
            message=f"Page size {page_size} exceeds maximum of {max_page_size}",
            error_code=ErrorCode.INVALID_PAGINATION,
            field="page_size",
        )

    return page, page_size
