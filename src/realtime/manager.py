"""Per-user ownership of real-time channels.

Each logical user gets at most one ``RealtimeChannel`` per manager, so
there is never more than one authenticated session per user in a
client process. Channels are opened and closed explicitly.
"""

import asyncio
import logging
from typing import Callable, Optional

from src.realtime.channel import RealtimeChannel
from src.realtime.config import DEFAULT_REALTIME_CONFIG, RealtimeConfig
from src.realtime.transport import Transport, WebSocketTransport

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Creates, tracks and closes user-keyed channels."""

    def __init__(
        self,
        config: Optional[RealtimeConfig] = None,
        transport_factory: Optional[Callable[[str], Transport]] = None,
    ):
        self.config = config or DEFAULT_REALTIME_CONFIG
        self._transport_factory = transport_factory or self._websocket_transport
        self._channels: dict[str, RealtimeChannel] = {}

    def _websocket_transport(self, user_id: str) -> Transport:
        return WebSocketTransport(self.config.url, open_timeout=self.config.timeout)

    def channel_for(self, user_id: str) -> RealtimeChannel:
        """Get the user's channel, creating it (unconnected) if needed."""
        channel = self._channels.get(user_id)
        if channel is None:
            channel = RealtimeChannel(
                user_id,
                lambda: self._transport_factory(user_id),
                self.config,
            )
            self._channels[user_id] = channel
            logger.debug("Created realtime channel for %s", user_id)
        return channel

    async def open(self, user_id: str) -> RealtimeChannel:
        """Get the user's channel and make sure it is connecting."""
        channel = self.channel_for(user_id)
        await channel.connect()
        return channel

    def get(self, user_id: str) -> Optional[RealtimeChannel]:
        return self._channels.get(user_id)

    async def close(self, user_id: str) -> bool:
        """Disconnect and forget a user's channel."""
        channel = self._channels.pop(user_id, None)
        if channel is None:
            return False
        await channel.disconnect()
        return True

    async def close_all(self) -> int:
        channels = list(self._channels.values())
        self._channels.clear()
        await asyncio.gather(*(c.disconnect() for c in channels))
        logger.info("Closed %d realtime channel(s)", len(channels))
        return len(channels)

    def active_users(self) -> list[str]:
        """Users whose channel is currently connected."""
        return [uid for uid, c in self._channels.items() if c.is_connected]

    @property
    def channel_count(self) -> int:
        return len(self._channels)
