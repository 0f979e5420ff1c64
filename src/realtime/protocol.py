"""Wire format for the real-time notification channel.

Every frame is a JSON object ``{"event": <name>, "data": <payload>}``.
"""

import json
from dataclasses import dataclass
from typing import Any, Union

# client -> server
AUTHENTICATE = "authenticate"
NOTIFICATION_READ = "notification:read"
PING = "ping"

# server -> client
AUTHENTICATED = "authenticated"
NOTIFICATION_NEW = "notification:new"
NOTIFICATION_UPDATED = "notification:updated"
PONG = "pong"
ERROR = "error"


class ProtocolError(ValueError):
    """Raised when a frame is not a valid message envelope."""


@dataclass(frozen=True)
class Message:
    """One decoded frame."""
    event: str
    data: Any = None


def encode(event: str, data: Any = None) -> str:
    return json.dumps({"event": event, "data": data}, default=str)


def decode(raw: Union[str, bytes]) -> Message:
    """Parse a frame.

    Raises:
        ProtocolError: If the frame is not JSON or has no string ``event``.
    """
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise ProtocolError(f"Invalid JSON frame: {exc}")

    if not isinstance(payload, dict) or not isinstance(payload.get("event"), str):
        raise ProtocolError("Frame must be an object with a string 'event'")
    return Message(event=payload["event"], data=payload.get("data"))
