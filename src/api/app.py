"""FastAPI Application Factory.

Creates and configures the notification API application with the full
middleware stack: security headers, request tracing, error handling,
and CORS.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from src.api.config import APIConfig, DEFAULT_API_CONFIG
from src.api.dependencies import get_hub
from src.api.models import HealthResponse
from src.api.routes import notifications, notifications_ws
from src.api_errors.handlers import register_exception_handlers
from src.api_errors.middleware import ErrorHandlingMiddleware
from src.logging_config import RequestTracingMiddleware, configure_logging
from src.settings import get_settings

logger = logging.getLogger(__name__)


# ── Security Headers Middleware ───────────────────────────────────────


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds standard security headers to all HTTP responses."""

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if os.environ.get("NOTIFY_ENABLE_HSTS", "").lower() == "true":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response


# ── Lifespan (startup / shutdown) ────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: initialize logging at startup."""
    effective = configure_logging()
    logger.info("Structured logging initialized (%s, %s)", effective.level.value, effective.format.value)

    logger.info("Notification API starting up")
    yield
    logger.info("Notification API shutting down")


# ── App Factory ──────────────────────────────────────────────────────


def create_app(config: Optional[APIConfig] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Middleware stack (outermost → innermost):
        SecurityHeaders → RequestTracing → ErrorHandling → CORS → App

    Args:
        config: API configuration. Uses defaults if not provided.

    Returns:
        Configured FastAPI application.
    """
    config = config or DEFAULT_API_CONFIG

    app = FastAPI(
        title=config.title,
        version=config.version,
        description=config.description,
        docs_url=config.docs_url,
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # add_middleware prepends, so order here is innermost-first.

    # 1. CORS (innermost, handles preflight before routing)
    cors_origins = get_settings().cors_origins or config.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=config.cors_methods,
        allow_headers=config.cors_headers,
    )

    # 2. Error handling (catches exceptions → structured JSON responses)
    app.add_middleware(ErrorHandlingMiddleware)

    # 3. Request tracing (assigns X-Request-ID, logs lifecycle)
    app.add_middleware(RequestTracingMiddleware)

    # 4. Security headers (outermost, always adds headers)
    app.add_middleware(SecurityHeadersMiddleware)

    register_exception_handlers(app)

    # ── Health check ─────────────────────────────────────────────

    @app.get("/health", response_model=HealthResponse)
    async def health():
        stats = get_hub().get_stats()
        return HealthResponse(
            version=config.version,
            realtime_sessions=stats["total_sessions"],
        )

    # ── Route modules ────────────────────────────────────────────

    app.include_router(notifications.router, prefix=config.prefix)

    # WebSocket endpoint (no prefix, path is absolute /ws/notifications)
    app.include_router(notifications_ws.router)

    logger.info(f"Notification API v{config.version} initialized")
    return app
