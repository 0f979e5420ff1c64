"""Real-time notification channel for one user session.

State machine::

    DISCONNECTED -> CONNECTING -> CONNECTED -> AUTHENTICATED
          ^______________|____________|______________|

Any transport failure or an explicit ``disconnect()`` returns the channel
to DISCONNECTED. Every successful (re)connect sends ``authenticate``
again; nothing is assumed to survive a reconnect.

Reconnection:
    - Server hung up on an authenticated session: attempt 1 runs after
      ``server_disconnect_delay``.
    - Anything else (errors, ping timeout, failed attempts): bounded
      exponential backoff, ``reconnection_attempts`` tries, then give up
      until ``connect()`` is called again.
    - Only ``authenticated`` ends a reconnect sequence; a link that drops
      before it counts as another failed attempt.
    - Client ``disconnect()``: never reconnects.

Example:
    channel = RealtimeChannel("user_1", lambda: WebSocketTransport(url))
    channel.on_notification(store.merge_payload)
    channel.on_connectivity_change(lambda up: print("online" if up else "offline"))
    await channel.connect()
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Optional

from src.api_errors.exceptions import TransportError
from src.realtime import protocol
from src.realtime.config import DEFAULT_REALTIME_CONFIG, RealtimeConfig
from src.realtime.timers import CancellableTimer
from src.realtime.transport import DisconnectReason, Transport, TransportClosed

logger = logging.getLogger(__name__)

Callback = Callable[..., Any]
TransportFactory = Callable[[], Transport]


class ChannelState(str, Enum):
    """Connection states of a channel."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    AUTHENTICATED = "authenticated"


_ONLINE = (ChannelState.CONNECTED, ChannelState.AUTHENTICATED)


class RealtimeChannel:
    """One user's live connection to the notification server."""

    def __init__(
        self,
        user_id: str,
        transport_factory: TransportFactory,
        config: Optional[RealtimeConfig] = None,
    ):
        self.user_id = user_id
        self.config = config or DEFAULT_REALTIME_CONFIG
        self._transport_factory = transport_factory
        self._state = ChannelState.DISCONNECTED
        self._transport: Optional[Transport] = None
        self._listener: Optional[asyncio.Task] = None
        self._reconnect_timer: Optional[CancellableTimer] = None
        self._attempts = 0
        self._closing = False
        self.session_id: Optional[str] = None

        self._notification_callbacks: list[Callback] = []
        self._updated_callbacks: list[Callback] = []
        self._connectivity_callbacks: list[Callback] = []
        self._disconnect_callbacks: list[Callback] = []
        self._reconnect_attempt_callbacks: list[Callback] = []
        self._reconnect_callbacks: list[Callback] = []
        self._reconnect_failed_callbacks: list[Callback] = []

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state in _ONLINE

    @property
    def is_authenticated(self) -> bool:
        return self._state == ChannelState.AUTHENTICATED

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_timer is not None and self._reconnect_timer.active

    @property
    def reconnect_attempts(self) -> int:
        return self._attempts

    # ── Callback Registration ─────────────────────────────────────────

    def on_notification(self, callback: Callback) -> None:
        """Register handler for ``notification:new`` payloads."""
        self._notification_callbacks.append(callback)

    def on_notification_updated(self, callback: Callback) -> None:
        """Register handler for ``notification:updated`` payloads."""
        self._updated_callbacks.append(callback)

    def on_connectivity_change(self, callback: Callback) -> None:
        """Register handler called with True/False as the link goes up/down."""
        self._connectivity_callbacks.append(callback)

    def on_disconnect(self, callback: Callback) -> None:
        """Register handler called with the ``DisconnectReason``."""
        self._disconnect_callbacks.append(callback)

    def on_reconnect_attempt(self, callback: Callback) -> None:
        self._reconnect_attempt_callbacks.append(callback)

    def on_reconnect(self, callback: Callback) -> None:
        self._reconnect_callbacks.append(callback)

    def on_reconnect_failed(self, callback: Callback) -> None:
        self._reconnect_failed_callbacks.append(callback)

    # ── Lifecycle ─────────────────────────────────────────────────────

    async def connect(self) -> bool:
        """Open the session. A no-op while already connecting or connected.

        Returns whether the transport came up. A failure is never raised:
        it starts the backoff sequence and shows up as connectivity False.
        """
        if self._state != ChannelState.DISCONNECTED:
            return self.is_connected

        self._closing = False
        self._cancel_reconnect()
        self._attempts = 0
        return await self._open()

    async def disconnect(self) -> None:
        """Close the session for good and cancel any pending reconnect."""
        self._closing = True
        self._cancel_reconnect()

        listener, self._listener = self._listener, None
        if listener is not None and listener is not asyncio.current_task() and not listener.done():
            listener.cancel()
            await asyncio.gather(listener, return_exceptions=True)

        transport, self._transport = self._transport, None
        if transport is not None:
            await self._close_transport(transport)

        if self._state != ChannelState.DISCONNECTED:
            await self._set_state(ChannelState.DISCONNECTED)
            await self._emit(self._disconnect_callbacks, DisconnectReason.CLIENT)
        logger.info("Realtime channel for %s closed by client", self.user_id)

    async def _open(self) -> bool:
        await self._set_state(ChannelState.CONNECTING)
        transport = self._transport_factory()

        try:
            await asyncio.wait_for(transport.connect(), timeout=self.config.timeout)
            await transport.send(protocol.encode(protocol.AUTHENTICATE, {"user_id": self.user_id}))
        except (TransportError, TransportClosed, asyncio.TimeoutError, OSError) as e:
            logger.warning(f"Realtime connect failed for {self.user_id}: {e}")
            await self._close_transport(transport)
            await self._set_state(ChannelState.DISCONNECTED)
            await self._schedule_backoff()
            return False

        if self._closing:
            await self._close_transport(transport)
            await self._set_state(ChannelState.DISCONNECTED)
            return False

        self._transport = transport
        await self._set_state(ChannelState.CONNECTED)
        self._listener = asyncio.create_task(self._listen(transport))
        return True

    # ── Reconnection ──────────────────────────────────────────────────

    def _cancel_reconnect(self) -> None:
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    async def _schedule_backoff(self) -> None:
        if self._closing or not self.config.reconnection:
            return

        if self._attempts >= self.config.reconnection_attempts:
            logger.warning(
                "Giving up on realtime channel for %s after %d attempt(s)",
                self.user_id, self._attempts,
            )
            await self._emit(self._reconnect_failed_callbacks)
            return

        self._attempts += 1
        delay = self.config.backoff_delay(self._attempts)
        logger.info(
            "Reconnecting %s in %.1fs (attempt %d/%d)",
            self.user_id, delay, self._attempts, self.config.reconnection_attempts,
            extra={"attempt": self._attempts},
        )
        self._start_timer(delay)

    def _schedule_server_reconnect(self) -> None:
        if self._closing:
            return
        self._attempts = 1
        logger.info(
            "Server closed session for %s, reconnecting in %.1fs",
            self.user_id, self.config.server_disconnect_delay,
        )
        self._start_timer(self.config.server_disconnect_delay)

    def _start_timer(self, delay: float) -> None:
        self._cancel_reconnect()
        self._reconnect_timer = CancellableTimer(
            delay, self._reconnect_now, name=f"reconnect:{self.user_id}"
        ).start()

    async def _reconnect_now(self) -> None:
        self._reconnect_timer = None
        if self._closing or self._state != ChannelState.DISCONNECTED:
            return
        if self._attempts:
            await self._emit(self._reconnect_attempt_callbacks, self._attempts)
        await self._open()

    # ── Receive Loop ──────────────────────────────────────────────────

    async def _listen(self, transport: Transport) -> None:
        loop = asyncio.get_running_loop()
        last_inbound = loop.time()
        reason = DisconnectReason.TRANSPORT_ERROR

        try:
            while True:
                try:
                    raw = await asyncio.wait_for(
                        transport.recv(), timeout=self.config.heartbeat_interval
                    )
                except asyncio.TimeoutError:
                    if loop.time() - last_inbound >= self.config.timeout:
                        raise TransportClosed(DisconnectReason.PING_TIMEOUT)
                    await transport.send(protocol.encode(protocol.PING))
                    continue

                last_inbound = loop.time()
                await self._handle_frame(transport, raw)
        except TransportClosed as e:
            reason = e.reason
        except Exception as e:
            logger.error(f"Realtime listener for {self.user_id} failed: {e}")

        await self._handle_disconnect(transport, reason)

    async def _handle_frame(self, transport: Transport, raw: str) -> None:
        try:
            message = protocol.decode(raw)
        except protocol.ProtocolError as e:
            logger.warning(f"Dropping malformed frame for {self.user_id}: {e}")
            return

        data = message.data if message.data is not None else {}

        if message.event == protocol.AUTHENTICATED:
            self.session_id = data.get("session_id") if isinstance(data, dict) else None
            attempts, self._attempts = self._attempts, 0
            if attempts:
                logger.info("Realtime channel for %s reconnected after %d attempt(s)", self.user_id, attempts)
                await self._emit(self._reconnect_callbacks, attempts)
            await self._set_state(ChannelState.AUTHENTICATED)

        elif message.event == protocol.NOTIFICATION_NEW:
            await self._emit(self._notification_callbacks, data)
            notification_id = data.get("id") if isinstance(data, dict) else None
            if notification_id:
                # Delivery ack, independent of the user's read state
                await transport.send(
                    protocol.encode(protocol.NOTIFICATION_READ, {"notification_id": notification_id})
                )

        elif message.event == protocol.NOTIFICATION_UPDATED:
            await self._emit(self._updated_callbacks, data)

        elif message.event == protocol.ERROR:
            logger.warning(f"Server error on realtime channel for {self.user_id}: {data}")

        elif message.event != protocol.PONG:
            logger.debug("Ignoring realtime event %s", message.event)

    async def _handle_disconnect(self, transport: Transport, reason: DisconnectReason) -> None:
        if self._transport is not transport:
            return
        self._transport = None
        self._listener = None
        self.session_id = None
        await self._close_transport(transport)
        await self._set_state(ChannelState.DISCONNECTED)
        logger.info(
            "Realtime channel for %s disconnected: %s", self.user_id, reason.value,
            extra={"reason": reason.value},
        )
        await self._emit(self._disconnect_callbacks, reason)

        if self._closing or reason == DisconnectReason.CLIENT:
            return
        if reason == DisconnectReason.SERVER and self._attempts == 0:
            self._schedule_server_reconnect()
        else:
            await self._schedule_backoff()

    # ── Helpers ───────────────────────────────────────────────────────

    async def _set_state(self, new_state: ChannelState) -> None:
        old_state, self._state = self._state, new_state
        if old_state == new_state:
            return
        logger.debug("Realtime channel %s: %s -> %s", self.user_id, old_state.value, new_state.value)
        was_online = old_state in _ONLINE
        now_online = new_state in _ONLINE
        if was_online != now_online:
            await self._emit(self._connectivity_callbacks, now_online)

    async def _emit(self, callbacks: list[Callback], *args: Any) -> None:
        for cb in list(callbacks):
            try:
                result = cb(*args)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Realtime callback error for {self.user_id}: {e}")

    async def _close_transport(self, transport: Transport) -> None:
        try:
            await transport.close()
        except Exception as e:
            logger.debug(f"Ignoring error while closing transport for {self.user_id}: {e}")
