"""Centralized settings for the notification engine.

Uses pydantic-settings to load from environment variables (prefixed NOTIFY_)
with defaults matching the dataclass configs.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Notification engine settings loaded from environment variables."""

    # --- HTTP API ---
    api_base_url: str = "http://localhost:8000/api/v1"
    api_timeout: float = 10.0
    cors_origins: list[str] = ["*"]

    # --- Real-time channel ---
    ws_url: str = "ws://localhost:8000/ws/notifications"
    reconnection_attempts: int = 5
    reconnection_delay: float = 1.0
    reconnection_delay_max: float = 5.0
    connect_timeout: float = 20.0
    heartbeat_interval: float = 10.0

    # --- Client cache ---
    client_cache_size: int = 50

    # --- Logging ---
    log_level: str = "INFO"
    log_format: str = "json"

    model_config = {
        "env_prefix": "NOTIFY_",
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()
