"""Request Context Management.

Request-scoped context using contextvars for binding request IDs,
user IDs and real-time session IDs to log entries. The same context
is entered for an HTTP request and for one WebSocket session, so
lines logged by the engine carry the user they concern.
"""

import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any


_request_id_var: ContextVar[str] = ContextVar("request_id", default="")
_correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
_user_id_var: ContextVar[str] = ContextVar("user_id", default="")
_session_id_var: ContextVar[str] = ContextVar("session_id", default="")


def generate_request_id() -> str:
    """Generate a unique request ID using UUID4."""
    return str(uuid.uuid4())


def get_request_id() -> str:
    """Get the current request ID from context."""
    return _request_id_var.get()


def get_user_id() -> str:
    """Get the current user ID from context."""
    return _user_id_var.get()


def bind_user(user_id: str) -> None:
    """Attach a user ID to the current context once it becomes known."""
    _user_id_var.set(user_id)


def bind_session(session_id: str) -> None:
    """Attach a real-time session ID to the current context."""
    _session_id_var.set(session_id)


def get_context_dict() -> dict[str, Any]:
    """Get all non-empty context variables for log binding."""
    ctx = {}
    for key, var in (
        ("request_id", _request_id_var),
        ("correlation_id", _correlation_id_var),
        ("user_id", _user_id_var),
        ("session_id", _session_id_var),
    ):
        value = var.get()
        if value:
            ctx[key] = value
    return ctx


@dataclass
class RequestContext:
    """Context manager for request-scoped logging context.

    Example:
        with RequestContext(user_id="user_1"):
            logger.info("resolving preferences")  # includes request_id, user_id
    """

    request_id: str = ""
    correlation_id: str = ""
    user_id: str = ""
    session_id: str = ""

    _tokens: list = field(default_factory=list, repr=False)

    def __post_init__(self):
        if not self.request_id:
            self.request_id = generate_request_id()
        if not self.correlation_id:
            self.correlation_id = self.request_id

    def __enter__(self) -> "RequestContext":
        self._tokens = [
            (_request_id_var, _request_id_var.set(self.request_id)),
            (_correlation_id_var, _correlation_id_var.set(self.correlation_id)),
            (_user_id_var, _user_id_var.set(self.user_id)),
            (_session_id_var, _session_id_var.set(self.session_id)),
        ]
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()
