"""Notification API.

REST and WebSocket surface for the notification engine:
- Preference fetch / replace / reset
- Inbox listing, unread count, summary, mark-read and delete
- Producer ingress that runs notifications through the dispatcher
- WebSocket endpoint pushing notification:new / notification:updated

Example:
    from src.api import create_app
    app = create_app()
"""

from src.api.config import (
    APIConfig,
    WebSocketConfig,
    DEFAULT_API_CONFIG,
    DEFAULT_WS_CONFIG,
)

from src.api.models import (
    HealthResponse,
    NotificationResponse,
    NotificationListResponse,
    UnreadCountResponse,
    SummaryResponse,
    MarkReadResponse,
    MarkAllReadResponse,
    DeleteResponse,
    DispatchRequest,
    DispatchResponse,
)

from src.api.websocket import (
    HubSession,
    NotificationHub,
)

from src.api.app import create_app

__all__ = [
    # Config
    "APIConfig",
    "WebSocketConfig",
    "DEFAULT_API_CONFIG",
    "DEFAULT_WS_CONFIG",
    # Models
    "HealthResponse",
    "NotificationResponse",
    "NotificationListResponse",
    "UnreadCountResponse",
    "SummaryResponse",
    "MarkReadResponse",
    "MarkAllReadResponse",
    "DeleteResponse",
    "DispatchRequest",
    "DispatchResponse",
    # WebSocket
    "HubSession",
    "NotificationHub",
    # App
    "create_app",
]
