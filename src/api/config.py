"""API Configuration.

Settings for the REST API and the notification WebSocket endpoint.
"""

from dataclasses import dataclass, field


@dataclass
class APIConfig:
    """Core API settings."""

    title: str = "Notification Engine API"
    version: str = "1.0.0"
    description: str = "Notification preferences and real-time delivery"
    prefix: str = "/api/v1"
    docs_url: str = "/docs"
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    cors_methods: list[str] = field(
        default_factory=lambda: ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
    )
    cors_headers: list[str] = field(default_factory=lambda: ["*"])
    max_page_size: int = 100
    default_page_size: int = 20


@dataclass
class WebSocketConfig:
    """WebSocket settings."""

    path: str = "/ws/notifications"
    max_connections_per_user: int = 5
    # Seconds a socket may stay open without sending ``authenticate``
    auth_timeout: float = 10.0


DEFAULT_API_CONFIG = APIConfig()
DEFAULT_WS_CONFIG = WebSocketConfig()
