"""Tests for API error handling and input validation."""

import json

import pytest

from src.api_errors.config import (
    DEFAULT_ERROR_CONFIG,
    ERROR_SEVERITY_MAP,
    ERROR_STATUS_MAP,
    ErrorCode,
    ErrorConfig,
    ErrorSeverity,
)
from src.api_errors.exceptions import (
    AuthenticationError,
    ConfigError,
    NotFoundError,
    NotificationAPIError,
    RequestError,
    ServiceUnavailableError,
    TransportError,
    ValidationError,
)
from src.api_errors.handlers import (
    ErrorDetail,
    ErrorResponse,
    create_error_response,
    handle_notification_error,
    handle_unhandled_error,
)
from src.api_errors.middleware import ErrorHandlingMiddleware
from src.api_errors.validators import (
    validate_pagination,
    validate_time_of_day,
    validate_timezone,
    validate_user_id,
    validate_weekday,
)


class TestErrorConfig:
    """Tests for error configuration."""

    def test_error_code_enum_values(self):
        assert ErrorCode.VALIDATION_ERROR.value == "VALIDATION_ERROR"
        assert ErrorCode.INVALID_PREFERENCES.value == "INVALID_PREFERENCES"
        assert ErrorCode.TRANSPORT_ERROR.value == "TRANSPORT_ERROR"

    def test_error_status_map_covers_all_codes(self):
        for code in ErrorCode:
            assert code in ERROR_STATUS_MAP

    def test_error_severity_map_covers_all_codes(self):
        for code in ErrorCode:
            assert code in ERROR_SEVERITY_MAP

    def test_default_config(self):
        assert DEFAULT_ERROR_CONFIG.include_request_id is True
        assert DEFAULT_ERROR_CONFIG.suppress_internal_details is True

    def test_status_families(self):
        assert ERROR_STATUS_MAP[ErrorCode.INVALID_PREFERENCES] == 400
        assert ERROR_STATUS_MAP[ErrorCode.AUTHENTICATION_REQUIRED] == 401
        assert ERROR_STATUS_MAP[ErrorCode.NOTIFICATION_NOT_FOUND] == 404
        assert ERROR_STATUS_MAP[ErrorCode.REQUEST_FAILED] == 502
        assert ERROR_STATUS_MAP[ErrorCode.TRANSPORT_ERROR] == 503
        assert ERROR_SEVERITY_MAP[ErrorCode.INTERNAL_ERROR] == ErrorSeverity.CRITICAL


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_base_error(self):
        err = NotificationAPIError("boom")
        assert err.error_code == ErrorCode.INTERNAL_ERROR
        assert err.status_code == 500
        assert err.details == []

    def test_validation_error_with_field(self):
        err = ValidationError("Bad time", field="quiet_hours.start")
        assert err.status_code == 400
        assert err.details == [{"field": "quiet_hours.start", "issue": "Bad time"}]

    def test_config_error(self):
        err = ConfigError("Unknown timezone", field="quiet_hours.timezone")
        assert err.error_code == ErrorCode.CONFIG_ERROR
        assert err.field == "quiet_hours.timezone"

    def test_transport_error(self):
        err = TransportError("auth timeout", reason="timeout")
        assert err.status_code == 503
        assert err.reason == "timeout"

    def test_request_error_keeps_upstream_status(self):
        err = RequestError("not found", status_code=404)
        assert err.status_code == 404
        assert err.upstream_status == 404

    def test_request_error_without_response(self):
        err = RequestError("connection refused")
        assert err.status_code == 502
        assert err.upstream_status is None

    def test_not_found_details(self):
        err = NotFoundError(
            "Notification not found",
            error_code=ErrorCode.NOTIFICATION_NOT_FOUND,
            resource_type="notification",
            resource_id="n1",
        )
        assert err.status_code == 404
        assert err.details[0]["resource_id"] == "n1"

    def test_inheritance(self):
        for exc_cls in (
            AuthenticationError,
            ConfigError,
            NotFoundError,
            RequestError,
            ServiceUnavailableError,
            TransportError,
            ValidationError,
        ):
            assert issubclass(exc_cls, NotificationAPIError)


class TestErrorResponse:
    """Tests for the error envelope."""

    def test_to_dict(self):
        resp = ErrorResponse(code="VALIDATION_ERROR", message="bad", request_id="req-1")
        body = resp.to_dict()
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert body["error"]["request_id"] == "req-1"
        assert "details" not in body["error"]
        assert body["error"]["timestamp"]

    def test_error_detail_omits_empty(self):
        assert ErrorDetail(field="start").to_dict() == {"field": "start"}

    def test_create_error_response_status(self):
        resp = create_error_response(ErrorCode.NOTIFICATION_NOT_FOUND, "missing")
        assert resp.status_code == 404
        assert resp.code == "NOTIFICATION_NOT_FOUND"


class TestErrorHandlers:
    """Tests for exception-to-response conversion."""

    def test_handle_notification_error(self):
        exc = ValidationError(
            "Invalid notification preferences (1 issue(s))",
            error_code=ErrorCode.INVALID_PREFERENCES,
            details=[{"field": "categories.X", "issue": "unknown"}],
        )
        resp = handle_notification_error(exc)
        assert resp.status_code == 400
        assert resp.details == [{"field": "categories.X", "issue": "unknown"}]

    def test_custom_message_override(self):
        config = ErrorConfig(custom_error_messages={"AUTHENTICATION_REQUIRED": "Who are you?"})
        resp = handle_notification_error(AuthenticationError(), config)
        assert resp.message == "Who are you?"

    def test_unhandled_error_is_opaque(self):
        resp = handle_unhandled_error(RuntimeError("db password leaked"))
        assert resp.status_code == 500
        assert "leaked" not in resp.message

    def test_unhandled_error_with_details(self):
        config = ErrorConfig(suppress_internal_details=False)
        resp = handle_unhandled_error(RuntimeError("kaboom"), config)
        assert "kaboom" in resp.message


class TestMiddleware:
    """Tests for ErrorHandlingMiddleware as a raw ASGI wrapper."""

    @staticmethod
    async def _call(app):
        messages = []

        async def send(message):
            messages.append(message)

        await ErrorHandlingMiddleware(app)({"type": "http", "path": "/x"}, None, send)
        return messages

    @pytest.mark.asyncio
    async def test_typed_error_becomes_envelope(self):
        async def app(scope, receive, send):
            raise NotFoundError("gone", error_code=ErrorCode.NOTIFICATION_NOT_FOUND)

        messages = await self._call(app)
        assert messages[0]["status"] == 404
        body = json.loads(messages[1]["body"])
        assert body["error"]["code"] == "NOTIFICATION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_500(self):
        async def app(scope, receive, send):
            raise KeyError("x")

        messages = await self._call(app)
        assert messages[0]["status"] == 500

    @pytest.mark.asyncio
    async def test_websocket_scope_passes_through(self):
        seen = []

        async def app(scope, receive, send):
            seen.append(scope["type"])

        await ErrorHandlingMiddleware(app)({"type": "websocket"}, None, None)
        assert seen == ["websocket"]


class TestValidators:
    """Tests for the reusable validators."""

    def test_user_id(self):
        assert validate_user_id("  user_1 ") == "user_1"
        assert validate_user_id("a@b.com") == "a@b.com"
        for bad in ("", "has space", "x" * 200):
            with pytest.raises(ValidationError):
                validate_user_id(bad)

    def test_time_of_day(self):
        assert validate_time_of_day("00:00") == "00:00"
        assert validate_time_of_day("23:59") == "23:59"
        for bad in ("24:00", "7:30", "12:60", "noon", None):
            with pytest.raises(ValidationError):
                validate_time_of_day(bad)

    def test_time_of_day_reports_field(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_time_of_day("99:99", field="email_digest.time")
        assert exc_info.value.details[0]["field"] == "email_digest.time"

    def test_timezone(self):
        assert validate_timezone("America/New_York") == "America/New_York"
        for bad in ("", "Mars/Olympus", None):
            with pytest.raises(ValidationError):
                validate_timezone(bad)

    def test_weekday(self):
        assert validate_weekday(0) == 0
        assert validate_weekday(6) == 6
        for bad in (-1, 7, True, "1"):
            with pytest.raises(ValidationError):
                validate_weekday(bad)

    def test_pagination(self):
        assert validate_pagination(2, 10) == (2, 10)
        with pytest.raises(ValidationError) as exc_info:
            validate_pagination(1, 101)
        assert exc_info.value.error_code == ErrorCode.INVALID_PAGINATION
        with pytest.raises(ValidationError):
            validate_pagination(0, 10)
