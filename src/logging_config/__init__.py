"""Structured Logging & Request Tracing.

Provides structured JSON logging and request/user ID propagation
for the notification engine.
"""

from src.logging_config.config import LogFormat, LoggingConfig, LogLevel
from src.logging_config.context import RequestContext, generate_request_id
from src.logging_config.middleware import RequestTracingMiddleware
from src.logging_config.setup import configure_logging, get_logger

__all__ = [
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "RequestContext",
    "RequestTracingMiddleware",
    "configure_logging",
    "generate_request_id",
    "get_logger",
]
