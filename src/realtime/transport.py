"""Transport layer for the real-time channel.

``Transport`` is the small surface ``RealtimeChannel`` needs: connect,
send and receive text frames, close. ``WebSocketTransport`` implements
it on ``websockets``; tests substitute an in-memory transport.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional, Protocol

import websockets

from src.api_errors.exceptions import TransportError

logger = logging.getLogger(__name__)


class DisconnectReason(str, Enum):
    """Why a session ended."""
    CLIENT = "io client disconnect"
    SERVER = "io server disconnect"
    TRANSPORT_ERROR = "transport error"
    PING_TIMEOUT = "ping timeout"


class TransportClosed(Exception):
    """Raised by ``send``/``recv`` once the connection is gone."""

    def __init__(self, reason: DisconnectReason = DisconnectReason.TRANSPORT_ERROR):
        super().__init__(reason.value)
        self.reason = reason


class Transport(Protocol):
    """Bidirectional text-frame connection."""

    async def connect(self) -> None: ...

    async def send(self, raw: str) -> None: ...

    async def recv(self) -> str: ...

    async def close(self) -> None: ...


class WebSocketTransport:
    """``Transport`` over a single ``websockets`` client connection.

    Keepalive is handled by the channel's own ping/pong frames, so the
    library's protocol-level pings are turned off.
    """

    def __init__(self, url: str, open_timeout: float = 20.0):
        self.url = url
        self.open_timeout = open_timeout
        self._ws = None
        self._closing = False

    async def connect(self) -> None:
        try:
            self._ws = await websockets.connect(
                self.url,
                open_timeout=self.open_timeout,
                ping_interval=None,
            )
        except (OSError, asyncio.TimeoutError, websockets.WebSocketException) as e:
            raise TransportError(
                f"Could not connect to {self.url}: {e}",
                reason=DisconnectReason.TRANSPORT_ERROR.value,
            )
        logger.debug(f"WebSocket connected to {self.url}")

    async def send(self, raw: str) -> None:
        if self._ws is None:
            raise TransportClosed(DisconnectReason.CLIENT)
        try:
            await self._ws.send(raw)
        except websockets.ConnectionClosed as e:
            raise TransportClosed(self._reason_for(e))

    async def recv(self) -> str:
        if self._ws is None:
            raise TransportClosed(DisconnectReason.CLIENT)
        try:
            message = await self._ws.recv()
        except websockets.ConnectionClosed as e:
            raise TransportClosed(self._reason_for(e))
        if isinstance(message, bytes):
            message = message.decode("utf-8", errors="replace")
        return message

    async def close(self) -> None:
        self._closing = True
        if self._ws is not None:
            await self._ws.close()
            self._ws = None

    def _reason_for(self, exc: websockets.ConnectionClosed) -> DisconnectReason:
        if self._closing:
            return DisconnectReason.CLIENT
        # A close frame received before we sent ours means the server hung up
        if exc.rcvd is not None and (exc.sent is None or exc.rcvd_then_sent):
            return DisconnectReason.SERVER
        if exc.sent is not None:
            return DisconnectReason.CLIENT
        return DisconnectReason.TRANSPORT_ERROR
