"""Tests for structured logging and request tracing."""

import json
import logging
import sys

import pytest

from src.logging_config.config import LogFormat, LoggingConfig, LogLevel
from src.logging_config.context import (
    RequestContext,
    bind_session,
    bind_user,
    generate_request_id,
    get_context_dict,
    get_request_id,
    get_user_id,
)
from src.logging_config.middleware import (
    REQUEST_ID_HEADER,
    RequestTracingMiddleware,
    caller_from_headers,
)
from src.logging_config.setup import (
    ConsoleFormatter,
    StructuredFormatter,
    configure_logging,
    get_logger,
)


def _record(msg="test", level=logging.INFO, lineno=1, exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="test", level=level, pathname="test.py",
        lineno=lineno, msg=msg, args=(), exc_info=exc_info,
    )


class TestLoggingConfig:
    """Tests for logging configuration dataclasses."""

    def test_default_config_values(self):
        config = LoggingConfig()
        assert config.level == LogLevel.INFO
        assert config.format == LogFormat.JSON
        assert config.service_name == "notify"
        assert config.env_prefix == "NOTIFY_"
        assert "/health" in config.exclude_paths

    def test_log_format_enum_values(self):
        assert LogFormat.JSON.value == "json"
        assert LogFormat.CONSOLE.value == "console"


class TestRequestContext:
    """Tests for request context management."""

    def test_generate_request_id_unique(self):
        ids = {generate_request_id() for _ in range(100)}
        assert len(ids) == 100

    def test_context_sets_and_clears(self):
        with RequestContext(request_id="test-123", user_id="user_42"):
            assert get_request_id() == "test-123"
            assert get_user_id() == "user_42"
        assert get_request_id() == ""
        assert get_user_id() == ""

    def test_correlation_id_defaults_to_request_id(self):
        with RequestContext(request_id="req-777") as ctx:
            assert ctx.correlation_id == "req-777"

    def test_bind_user_and_session_inside_context(self):
        with RequestContext(request_id="r1"):
            bind_user("user_1")
            bind_session("sess-1")
            ctx = get_context_dict()
            assert ctx["user_id"] == "user_1"
            assert ctx["session_id"] == "sess-1"
        assert "session_id" not in get_context_dict()

    def test_context_dict_empty_outside(self):
        assert get_context_dict() == {}


class TestStructuredFormatter:
    """Tests for JSON structured log formatting."""

    def test_formats_as_json(self):
        parsed = json.loads(StructuredFormatter().format(_record("hello world")))
        assert parsed["message"] == "hello world"
        assert parsed["level"] == "INFO"
        assert parsed["service"] == "notify"
        assert "timestamp" in parsed

    def test_caller_info_toggle(self):
        parsed = json.loads(StructuredFormatter(include_caller=True).format(_record(lineno=42)))
        assert parsed["line"] == 42
        parsed = json.loads(StructuredFormatter(include_caller=False).format(_record(lineno=42)))
        assert "line" not in parsed

    def test_includes_request_context(self):
        with RequestContext(request_id="ctx-test", user_id="user_1"):
            parsed = json.loads(StructuredFormatter().format(_record()))
        assert parsed["request_id"] == "ctx-test"
        assert parsed["user_id"] == "user_1"

    def test_formats_exception(self):
        try:
            raise ValueError("test error")
        except ValueError:
            record = _record("failed", level=logging.ERROR, exc_info=sys.exc_info())
        parsed = json.loads(StructuredFormatter().format(record))
        assert parsed["exception"]["type"] == "ValueError"
        assert "test error" in parsed["exception"]["message"]

    def test_includes_delivery_extras(self):
        record = _record()
        record.notification_id = "n1"
        record.channel = "EMAIL"
        record.attempt = 2
        parsed = json.loads(StructuredFormatter().format(record))
        assert parsed["notification_id"] == "n1"
        assert parsed["channel"] == "EMAIL"
        assert parsed["attempt"] == 2


class TestConsoleFormatter:
    """Tests for colored console log formatting."""

    def test_formats_readable_output(self):
        output = ConsoleFormatter().format(_record("hello", level=logging.WARNING))
        assert "hello" in output
        assert "WARNING" in output

    def test_includes_context_info(self):
        with RequestContext(request_id="abc"):
            output = ConsoleFormatter().format(_record())
        assert "request_id=abc" in output

    def test_has_color_codes(self):
        output = ConsoleFormatter().format(_record(level=logging.ERROR))
        assert "\033[31m" in output


class TestConfigureLogging:
    """Tests for the configure_logging setup function."""

    def test_json_format(self):
        configure_logging(LoggingConfig(format=LogFormat.JSON))
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)

    def test_console_format_and_level(self):
        configure_logging(LoggingConfig(format=LogFormat.CONSOLE, level=LogLevel.DEBUG))
        root = logging.getLogger()
        assert isinstance(root.handlers[0].formatter, ConsoleFormatter)
        assert root.level == logging.DEBUG

    def test_quiets_noisy_loggers(self):
        configure_logging()
        assert logging.getLogger("websockets").level >= logging.WARNING
        assert logging.getLogger("httpx").level >= logging.WARNING

    def test_env_var_overrides(self, monkeypatch):
        monkeypatch.setenv("NOTIFY_LOG_LEVEL", "debug")
        monkeypatch.setenv("NOTIFY_LOG_FORMAT", "CONSOLE")
        effective = configure_logging(LoggingConfig(level=LogLevel.ERROR, format=LogFormat.JSON))
        assert effective.level == LogLevel.DEBUG
        assert effective.format == LogFormat.CONSOLE
        assert logging.getLogger().level == logging.DEBUG

    def test_get_logger_returns_logger(self):
        logger = get_logger("test.module")
        assert logger.name == "test.module"


class TestMiddleware:
    """Tests for RequestTracingMiddleware."""

    def test_caller_from_headers(self):
        assert caller_from_headers({b"x-user-id": b"user_1"}) == "user_1"
        assert caller_from_headers({b"x-user-id": b"bad user!"}) == ""
        assert caller_from_headers({}) == ""

    @pytest.mark.asyncio
    async def test_binds_context_and_echoes_request_id(self):
        seen = {}

        async def app(scope, receive, send):
            seen.update(get_context_dict())
            await send({"type": "http.response.start", "status": 200, "headers": []})

        sent = []

        async def send(message):
            sent.append(message)

        scope = {
            "type": "http",
            "method": "GET",
            "path": "/api/v1/notifications",
            "headers": [(b"x-request-id", b"req-9"), (b"x-user-id", b"user_1")],
        }
        await RequestTracingMiddleware(app)(scope, None, send)

        assert seen["request_id"] == "req-9"
        assert seen["user_id"] == "user_1"
        assert dict(sent[0]["headers"])[REQUEST_ID_HEADER.lower().encode()] == b"req-9"

    @pytest.mark.asyncio
    async def test_malformed_user_header_not_bound(self):
        seen = {}

        async def app(scope, receive, send):
            seen.update(get_context_dict())
            await send({"type": "http.response.start", "status": 400, "headers": []})

        async def send(message):
            pass

        scope = {"type": "http", "path": "/x", "headers": [(b"x-user-id", b"a b")]}
        await RequestTracingMiddleware(app)(scope, None, send)

        assert seen["request_id"]
        assert "user_id" not in seen

    @pytest.mark.asyncio
    async def test_socket_lifetime_is_logged(self, caplog):
        seen = {}

        async def app(scope, receive, send):
            seen.update(get_context_dict())
            await send({"type": "websocket.accept"})
            await receive()

        async def receive():
            return {"type": "websocket.disconnect", "code": 1001}

        async def send(message):
            pass

        scope = {"type": "websocket", "path": "/ws/notifications", "headers": []}
        with caplog.at_level(logging.INFO, logger="src.logging_config.middleware"):
            await RequestTracingMiddleware(app)(scope, receive, send)

        assert seen["request_id"]
        messages = [r.getMessage() for r in caplog.records]
        assert messages == [
            "Realtime socket opened on /ws/notifications",
            "Realtime socket closed with code 1001",
        ]
        assert caplog.records[-1].close_code == 1001
