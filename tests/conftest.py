"""Pytest configuration and shared fixtures."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.notifications.config import (  # noqa: E402
    NotificationCategory,
    NotificationPriority,
    NotificationType,
)
from src.notifications.models import NotificationEvent  # noqa: E402


def utc(*args) -> datetime:
    """Shorthand for an aware UTC datetime."""
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_api_services():
    """Start every test with empty shared API services."""
    from src.api.dependencies import reset_services

    reset_services()
    yield
    reset_services()


@pytest.fixture
def make_event():
    def _make(
        category=NotificationCategory.COMMENTS,
        priority=NotificationPriority.MEDIUM,
        type=NotificationType.COMMENT_MENTION,
        user_id="user_1",
        occurred_at=None,
    ):
        return NotificationEvent(
            type=type,
            category=category,
            priority=priority,
            occurred_at=occurred_at or utc(2024, 1, 10, 12, 0),
            user_id=user_id,
        )

    return _make
