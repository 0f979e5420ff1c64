"""Configuration for the real-time notification channel."""

from dataclasses import dataclass
from typing import Optional

from src.settings import Settings, get_settings


@dataclass
class RealtimeConfig:
    """Reconnection and heartbeat policy for one client session."""

    url: str = "ws://localhost:8000/ws/notifications"

    # Reconnection
    reconnection: bool = True
    reconnection_attempts: int = 5
    reconnection_delay: float = 1.0
    reconnection_delay_max: float = 5.0
    server_disconnect_delay: float = 1.0

    # Connect timeout and inbound idle limit
    timeout: float = 20.0
    # Send a ping after this long without inbound traffic
    heartbeat_interval: float = 10.0

    def backoff_delay(self, attempt: int) -> float:
        """Delay before reconnect attempt ``attempt`` (1-based)."""
        return min(self.reconnection_delay * 2 ** (attempt - 1), self.reconnection_delay_max)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RealtimeConfig":
        settings = settings or get_settings()
        return cls(
            url=settings.ws_url,
            reconnection_attempts=settings.reconnection_attempts,
            reconnection_delay=settings.reconnection_delay,
            reconnection_delay_max=settings.reconnection_delay_max,
            timeout=settings.connect_timeout,
            heartbeat_interval=settings.heartbeat_interval,
        )


DEFAULT_REALTIME_CONFIG = RealtimeConfig()
