"""Request and socket tracing for the notification API.

Every HTTP request and every realtime socket runs inside a
``RequestContext`` carrying a request id and, when the caller sent a
well-formed ``X-User-ID``, the user it acts for. HTTP requests log one
completion line; sockets log when they open and when they close.
"""

import logging
import time
from typing import Optional

from src.api_errors.validators import USER_ID_PATTERN
from src.logging_config.config import DEFAULT_LOGGING_CONFIG, LoggingConfig
from src.logging_config.context import RequestContext, generate_request_id

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
USER_ID_HEADER = "X-User-ID"

_REQUEST_ID_KEY = REQUEST_ID_HEADER.lower().encode()


def caller_from_headers(headers: dict) -> str:
    """The X-User-ID value, or "" when it is missing or malformed."""
    raw = headers.get(USER_ID_HEADER.lower().encode())
    if not raw:
        return ""
    user_id = raw.decode("utf-8", errors="replace").strip()
    return user_id if USER_ID_PATTERN.match(user_id) else ""


class RequestTracingMiddleware:
    """Binds request id and caller to the logs of each request or socket.

    The request id comes from ``X-Request-ID`` or is generated, and is
    echoed on HTTP responses. Sockets authenticate in-band, so their
    user is bound later by the endpoint.

    Usage:
        app.add_middleware(RequestTracingMiddleware)
    """

    def __init__(self, app, config: Optional[LoggingConfig] = None):
        self.app = app
        self.config = config or DEFAULT_LOGGING_CONFIG

    async def __call__(self, scope, receive, send):
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        raw_id = headers.get(_REQUEST_ID_KEY)
        request_id = raw_id.decode("utf-8", errors="replace") if raw_id else generate_request_id()

        with RequestContext(request_id=request_id, user_id=caller_from_headers(headers)):
            if scope["type"] == "websocket":
                await self._trace_socket(scope, receive, send)
            else:
                await self._trace_request(scope, receive, send, request_id)

    async def _trace_request(self, scope, receive, send, request_id: str) -> None:
        path = scope.get("path", "")
        started = time.perf_counter()
        status_code = 500

        async def send_with_id(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
                message = {
                    **message,
                    "headers": [*message.get("headers", []), (_REQUEST_ID_KEY, request_id.encode())],
                }
            await send(message)

        try:
            await self.app(scope, receive, send_with_id)
        finally:
            if path not in self.config.exclude_paths:
                logger.log(
                    logging.WARNING if status_code >= 400 else logging.INFO,
                    "%s %s -> %d",
                    scope.get("method", ""), path, status_code,
                    extra={
                        "method": scope.get("method", ""),
                        "path": path,
                        "status_code": status_code,
                        "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    },
                )

    async def _trace_socket(self, scope, receive, send) -> None:
        path = scope.get("path", "")
        started = time.perf_counter()
        close_code: Optional[int] = None

        async def send_traced(message):
            nonlocal close_code
            if message["type"] == "websocket.accept":
                logger.info("Realtime socket opened on %s", path, extra={"path": path})
            elif message["type"] == "websocket.close":
                close_code = message.get("code", 1000)
            await send(message)

        async def receive_traced():
            nonlocal close_code
            message = await receive()
            if message["type"] == "websocket.disconnect" and close_code is None:
                close_code = message.get("code", 1005)
            return message

        try:
            await self.app(scope, receive_traced, send_traced)
        finally:
            logger.info(
                "Realtime socket closed with code %s",
                close_code,
                extra={
                    "path": path,
                    "close_code": close_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                },
            )
