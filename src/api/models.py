"""API Request/Response Models.

Pydantic schemas for the notification endpoints. The preference
document itself is validated by ``validate_preferences`` so that every
bad field is reported at once.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field

from src.notifications.config import (
    NotificationCategory,
    NotificationPriority,
    NotificationType,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ─── Common ──────────────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "1.0.0"
    timestamp: datetime = Field(default_factory=_utcnow)
    realtime_sessions: int = 0


# ─── Notifications ───────────────────────────────────────────────────────


class NotificationResponse(BaseModel):
    """A notification as returned to clients."""

    id: str
    user_id: str
    type: NotificationType
    category: NotificationCategory
    priority: NotificationPriority
    title: str
    message: str
    action_url: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    is_read: bool = False
    created_at: datetime
    read_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class NotificationListResponse(BaseModel):
    """One page of notifications."""

    notifications: list[NotificationResponse]
    total: int
    page: int
    limit: int
    unread_count: int


class UnreadCountResponse(BaseModel):
    count: int


class SummaryResponse(BaseModel):
    total: int = 0
    unread: int = 0
    by_category: dict[str, int] = Field(default_factory=dict)
    by_priority: dict[str, int] = Field(default_factory=dict)


class MarkReadResponse(BaseModel):
    notification: NotificationResponse


class MarkAllReadResponse(BaseModel):
    updated: int


class DeleteResponse(BaseModel):
    id: str
    deleted: bool = True


# ─── Producer ingress ────────────────────────────────────────────────────


class DispatchRequest(BaseModel):
    """A notification handed in by a domain-event producer."""

    user_id: str = Field(..., min_length=1, max_length=128)
    type: NotificationType
    category: Optional[NotificationCategory] = None
    priority: NotificationPriority = NotificationPriority.MEDIUM
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., max_length=2000)
    action_url: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    expires_at: Optional[datetime] = None


class DispatchResponse(BaseModel):
    notification: NotificationResponse
    deliver: bool
    reason: str
    channels: list[str] = Field(default_factory=list)
    delivered_channels: list[str] = Field(default_factory=list)
    deferred_channels: list[str] = Field(default_factory=list)
    digest: Optional[dict[str, Any]] = None
    pushed_sessions: int = 0
