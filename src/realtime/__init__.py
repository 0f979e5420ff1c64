"""Real-time notification delivery.

Client-side session objects for the push channel: a reconnecting
per-user state machine, the transport it runs on, the JSON frame
protocol shared with the server, and a user-keyed connection manager.
"""

from src.realtime.channel import ChannelState, RealtimeChannel
from src.realtime.config import DEFAULT_REALTIME_CONFIG, RealtimeConfig
from src.realtime.manager import ConnectionManager
from src.realtime.protocol import Message, ProtocolError, decode, encode
from src.realtime.timers import CancellableTimer
from src.realtime.transport import (
    DisconnectReason,
    Transport,
    TransportClosed,
    WebSocketTransport,
)

__all__ = [
    # Config
    "RealtimeConfig",
    "DEFAULT_REALTIME_CONFIG",
    # Channel
    "ChannelState",
    "RealtimeChannel",
    "ConnectionManager",
    "CancellableTimer",
    # Transport
    "DisconnectReason",
    "Transport",
    "TransportClosed",
    "WebSocketTransport",
    # Protocol
    "Message",
    "ProtocolError",
    "decode",
    "encode",
]
