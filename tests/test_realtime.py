"""Tests for the real-time channel, its reconnection policy and the connection manager."""

import asyncio
from typing import Optional

import pytest

from src.api_errors.exceptions import TransportError
from src.realtime import protocol
from src.realtime.channel import ChannelState, RealtimeChannel
from src.realtime.config import RealtimeConfig
from src.realtime.manager import ConnectionManager
from src.realtime.timers import CancellableTimer
from src.realtime.transport import DisconnectReason, TransportClosed
from src.settings import Settings

FAST = RealtimeConfig(
    url="ws://test/ws/notifications",
    reconnection_attempts=5,
    reconnection_delay=0.01,
    reconnection_delay_max=0.04,
    server_disconnect_delay=0.01,
    timeout=0.5,
    heartbeat_interval=0.05,
)


class FakeServer:
    """Hands out in-memory transports and plays the server side."""

    def __init__(
        self,
        fail_connects: int = 0,
        answer_pings: bool = True,
        reject_auth: Optional[DisconnectReason] = None,
    ):
        self.fail_connects = fail_connects
        self.answer_pings = answer_pings
        # Accept the socket, then drop it instead of answering authenticate
        self.reject_auth = reject_auth
        self.transports: list["FakeTransport"] = []
        self.connect_calls = 0

    def factory(self, user_id: Optional[str] = None) -> "FakeTransport":
        transport = FakeTransport(self)
        self.transports.append(transport)
        return transport

    @property
    def latest(self) -> "FakeTransport":
        return self.transports[-1]

    def frames(self, event: str) -> list:
        return [m for t in self.transports for m in t.sent if m.event == event]


class FakeTransport:
    def __init__(self, server: FakeServer):
        self.server = server
        self.inbound: asyncio.Queue = asyncio.Queue()
        self.sent: list[protocol.Message] = []
        self.closed = False

    async def connect(self) -> None:
        self.server.connect_calls += 1
        if self.server.fail_connects > 0:
            self.server.fail_connects -= 1
            raise TransportError("connection refused")

    async def send(self, raw: str) -> None:
        if self.closed:
            raise TransportClosed(DisconnectReason.CLIENT)
        message = protocol.decode(raw)
        self.sent.append(message)
        if message.event == protocol.AUTHENTICATE and self.server.reject_auth:
            self.drop(self.server.reject_auth)
        elif message.event == protocol.AUTHENTICATE:
            self.push(protocol.AUTHENTICATED, {
                "user_id": message.data["user_id"],
                "session_id": f"s{len(self.server.transports)}",
            })
        elif message.event == protocol.PING and self.server.answer_pings:
            self.push(protocol.PONG)

    async def recv(self) -> str:
        item = await self.inbound.get()
        if isinstance(item, TransportClosed):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True
        self.inbound.put_nowait(TransportClosed(DisconnectReason.CLIENT))

    def push(self, event: str, data=None) -> None:
        self.inbound.put_nowait(protocol.encode(event, data))

    def drop(self, reason: DisconnectReason) -> None:
        self.inbound.put_nowait(TransportClosed(reason))


async def _eventually(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


def _channel(server: FakeServer, config: RealtimeConfig = FAST) -> RealtimeChannel:
    return RealtimeChannel("user_1", server.factory, config)


class TestProtocol:
    """Tests for the frame codec."""

    def test_encode_decode(self):
        message = protocol.decode(protocol.encode(protocol.NOTIFICATION_READ, {"notification_id": "n1"}))
        assert message.event == "notification:read"
        assert message.data == {"notification_id": "n1"}

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", '{"data": 1}', '{"event": 5}'])
    def test_decode_rejects(self, raw):
        with pytest.raises(protocol.ProtocolError):
            protocol.decode(raw)


class TestRealtimeConfig:
    """Tests for the backoff schedule."""

    def test_backoff_delay(self):
        config = RealtimeConfig()
        assert [config.backoff_delay(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_defaults(self):
        config = RealtimeConfig()
        assert config.reconnection_attempts == 5
        assert config.timeout == 20.0
        assert config.server_disconnect_delay == 1.0

    def test_from_env_settings(self, monkeypatch):
        monkeypatch.setenv("NOTIFY_RECONNECTION_ATTEMPTS", "3")
        monkeypatch.setenv("NOTIFY_WS_URL", "wss://notify.example.com/ws/notifications")
        config = RealtimeConfig.from_settings(Settings())
        assert config.reconnection_attempts == 3
        assert config.url == "wss://notify.example.com/ws/notifications"
        assert config.heartbeat_interval == 10.0


class TestConnect:
    """Tests for connecting and authenticating."""

    @pytest.mark.asyncio
    async def test_connect_authenticates(self):
        server = FakeServer()
        channel = _channel(server)
        connectivity = []
        channel.on_connectivity_change(connectivity.append)

        assert await channel.connect() is True
        await _eventually(lambda: channel.is_authenticated)

        assert channel.state == ChannelState.AUTHENTICATED
        assert channel.session_id == "s1"
        assert connectivity == [True]
        auth = server.frames(protocol.AUTHENTICATE)
        assert [m.data for m in auth] == [{"user_id": "user_1"}]
        await channel.disconnect()

    @pytest.mark.asyncio
    async def test_connect_is_idempotent(self):
        server = FakeServer()
        channel = _channel(server)
        await channel.connect()
        await channel.connect()
        assert server.connect_calls == 1
        await channel.disconnect()

    @pytest.mark.asyncio
    async def test_heartbeat_pings(self):
        server = FakeServer()
        channel = _channel(server)
        await channel.connect()
        await _eventually(lambda: len(server.frames(protocol.PING)) >= 2)
        assert channel.is_connected
        await channel.disconnect()


class TestMessages:
    """Tests for inbound pushes."""

    @pytest.mark.asyncio
    async def test_new_notification_is_delivered_and_acked(self):
        server = FakeServer()
        channel = _channel(server)
        received = []
        channel.on_notification(received.append)
        await channel.connect()

        server.latest.push(protocol.NOTIFICATION_NEW, {"id": "n1", "title": "Hi"})
        await _eventually(lambda: server.frames(protocol.NOTIFICATION_READ))

        assert received == [{"id": "n1", "title": "Hi"}]
        assert server.frames(protocol.NOTIFICATION_READ)[0].data == {"notification_id": "n1"}
        await channel.disconnect()

    @pytest.mark.asyncio
    async def test_updated_notification(self):
        server = FakeServer()
        channel = _channel(server)
        updates = []

        async def on_update(payload):
            updates.append(payload)

        channel.on_notification_updated(on_update)
        await channel.connect()

        payload = {"notification_id": "n1", "update": {"is_read": True}}
        server.latest.push(protocol.NOTIFICATION_UPDATED, payload)
        await _eventually(lambda: updates)
        assert updates == [payload]
        await channel.disconnect()

    @pytest.mark.asyncio
    async def test_callback_error_does_not_break_channel(self):
        server = FakeServer()
        channel = _channel(server)

        def explode(payload):
            raise RuntimeError("ui crashed")

        channel.on_notification(explode)
        await channel.connect()
        server.latest.push(protocol.NOTIFICATION_NEW, {"id": "n1"})
        await _eventually(lambda: server.frames(protocol.NOTIFICATION_READ))
        assert channel.is_connected
        await channel.disconnect()

    @pytest.mark.asyncio
    async def test_malformed_frame_ignored(self):
        server = FakeServer()
        channel = _channel(server)
        received = []
        channel.on_notification(received.append)
        await channel.connect()

        server.latest.inbound.put_nowait("{garbage")
        server.latest.push(protocol.NOTIFICATION_NEW, {"id": "n2"})
        await _eventually(lambda: received)
        assert received == [{"id": "n2"}]
        await channel.disconnect()


class TestDisconnect:
    """Tests for disconnects and the reconnection policy."""

    @pytest.mark.asyncio
    async def test_client_disconnect_never_reconnects(self):
        server = FakeServer()
        channel = _channel(server)
        reasons = []
        channel.on_disconnect(reasons.append)
        await channel.connect()

        await channel.disconnect()
        await asyncio.sleep(0.1)

        assert channel.state == ChannelState.DISCONNECTED
        assert reasons == [DisconnectReason.CLIENT]
        assert server.connect_calls == 1
        assert server.latest.closed

    @pytest.mark.asyncio
    async def test_server_disconnect_reconnects_once(self):
        server = FakeServer()
        channel = _channel(server)
        reasons, attempts, reconnects, connectivity = [], [], [], []
        channel.on_disconnect(reasons.append)
        channel.on_reconnect_attempt(attempts.append)
        channel.on_reconnect(reconnects.append)
        channel.on_connectivity_change(connectivity.append)
        await channel.connect()
        await _eventually(lambda: channel.is_authenticated)

        server.latest.drop(DisconnectReason.SERVER)
        await _eventually(lambda: len(server.transports) == 2 and channel.is_authenticated)

        assert reasons == [DisconnectReason.SERVER]
        assert attempts == [1]
        assert reconnects == [1]
        assert channel.reconnect_attempts == 0
        assert connectivity == [True, False, True]
        assert channel.session_id == "s2"
        # Authentication is sent again on the new transport
        assert len(server.latest.sent) >= 1
        assert server.latest.sent[0].event == protocol.AUTHENTICATE
        await channel.disconnect()

    @pytest.mark.asyncio
    async def test_transport_error_backs_off(self):
        server = FakeServer()
        channel = _channel(server)
        attempts = []
        channel.on_reconnect_attempt(attempts.append)
        await channel.connect()

        server.latest.drop(DisconnectReason.TRANSPORT_ERROR)
        await _eventually(lambda: len(server.transports) == 2 and channel.is_authenticated)

        assert attempts == [1]
        assert channel.reconnect_attempts == 0
        await channel.disconnect()

    @pytest.mark.asyncio
    async def test_recovers_after_failed_attempts(self):
        server = FakeServer(fail_connects=3)
        channel = _channel(server)
        attempts, reconnects, connectivity = [], [], []
        channel.on_reconnect_attempt(attempts.append)
        channel.on_reconnect(reconnects.append)
        channel.on_connectivity_change(connectivity.append)

        assert await channel.connect() is False
        assert channel.is_connected is False
        await _eventually(lambda: channel.is_authenticated)

        assert attempts == [1, 2, 3]
        assert reconnects == [3]
        assert server.connect_calls == 4
        assert connectivity == [True]
        # Only the transport that connected ever authenticated
        assert len(server.frames(protocol.AUTHENTICATE)) == 1
        await channel.disconnect()

    @pytest.mark.asyncio
    async def test_stays_offline_while_failing(self):
        server = FakeServer(fail_connects=100)
        channel = _channel(server)
        connectivity = []
        channel.on_connectivity_change(connectivity.append)

        await channel.connect()
        await _eventually(lambda: server.connect_calls >= 4)

        assert channel.is_connected is False
        assert connectivity == []
        assert server.frames(protocol.AUTHENTICATE) == []
        await channel.disconnect()

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        server = FakeServer(fail_connects=100)
        config = RealtimeConfig(
            reconnection_attempts=3, reconnection_delay=0.01, reconnection_delay_max=0.02, timeout=0.5
        )
        channel = _channel(server, config)
        failed = []
        channel.on_reconnect_failed(lambda: failed.append(True))

        await channel.connect()
        await _eventually(lambda: failed)
        await asyncio.sleep(0.05)

        assert server.connect_calls == 4
        assert channel.state == ChannelState.DISCONNECTED
        assert channel.reconnect_pending is False

        # An explicit connect starts over
        server.fail_connects = 0
        assert await channel.connect() is True
        await channel.disconnect()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "reason", [DisconnectReason.TRANSPORT_ERROR, DisconnectReason.SERVER]
    )
    async def test_drop_before_authenticated_is_bounded(self, reason):
        server = FakeServer(reject_auth=reason)
        channel = _channel(server)
        attempts, reconnects, failed = [], [], []
        channel.on_reconnect_attempt(attempts.append)
        channel.on_reconnect(reconnects.append)
        channel.on_reconnect_failed(lambda: failed.append(True))

        await channel.connect()
        await _eventually(lambda: failed)
        await asyncio.sleep(0.1)

        assert attempts == [1, 2, 3, 4, 5]
        assert len(server.transports) == 1 + FAST.reconnection_attempts
        assert reconnects == []
        assert channel.state == ChannelState.DISCONNECTED
        assert channel.reconnect_pending is False
        await channel.disconnect()

    @pytest.mark.asyncio
    async def test_disconnect_cancels_pending_reconnect(self):
        server = FakeServer(fail_connects=100)
        config = RealtimeConfig(reconnection_delay=0.05, reconnection_delay_max=0.05, timeout=0.5)
        channel = _channel(server, config)

        await channel.connect()
        assert channel.reconnect_pending is True
        await channel.disconnect()
        assert channel.reconnect_pending is False

        await asyncio.sleep(0.1)
        assert server.connect_calls == 1

    @pytest.mark.asyncio
    async def test_reconnection_disabled(self):
        server = FakeServer(fail_connects=1)
        config = RealtimeConfig(reconnection=False, timeout=0.5)
        channel = _channel(server, config)

        assert await channel.connect() is False
        assert channel.reconnect_pending is False
        await channel.disconnect()

    @pytest.mark.asyncio
    async def test_ping_timeout(self):
        server = FakeServer(answer_pings=False)
        config = RealtimeConfig(
            reconnection=False, timeout=0.15, heartbeat_interval=0.03
        )
        channel = _channel(server, config)
        reasons = []
        channel.on_disconnect(reasons.append)

        await channel.connect()
        await _eventually(lambda: reasons)

        assert reasons == [DisconnectReason.PING_TIMEOUT]
        assert channel.state == ChannelState.DISCONNECTED
        await channel.disconnect()


class TestConnectionManager:
    """Tests for user-keyed channel ownership."""

    @pytest.mark.asyncio
    async def test_one_channel_per_user(self):
        server = FakeServer()
        manager = ConnectionManager(FAST, transport_factory=server.factory)

        first = await manager.open("user_1")
        second = await manager.open("user_1")
        other = await manager.open("user_2")

        assert first is second
        assert other is not first
        assert manager.channel_count == 2
        assert sorted(manager.active_users()) == ["user_1", "user_2"]
        assert server.connect_calls == 2
        await manager.close_all()

    @pytest.mark.asyncio
    async def test_close(self):
        server = FakeServer()
        manager = ConnectionManager(FAST, transport_factory=server.factory)
        channel = await manager.open("user_1")

        assert await manager.close("user_1") is True
        assert await manager.close("user_1") is False
        assert manager.get("user_1") is None
        assert channel.state == ChannelState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_sessions_are_independent(self):
        server = FakeServer()
        manager = ConnectionManager(FAST, transport_factory=server.factory)
        one = await manager.open("user_1")
        two = await manager.open("user_2")

        await manager.close("user_1")
        assert one.is_connected is False
        assert two.is_connected is True
        assert await manager.close_all() == 1


class TestCancellableTimer:
    """Tests for CancellableTimer."""

    @pytest.mark.asyncio
    async def test_fires_once(self):
        fired = []
        timer = CancellableTimer(0.01, lambda: fired.append(1)).start()
        assert timer.active
        await asyncio.sleep(0.05)
        assert fired == [1]
        assert timer.active is False

    @pytest.mark.asyncio
    async def test_cancel(self):
        fired = []
        timer = CancellableTimer(0.02, lambda: fired.append(1)).start()
        assert timer.cancel() is True
        await asyncio.sleep(0.05)
        assert fired == []
        assert timer.cancel() is False

    @pytest.mark.asyncio
    async def test_coroutine_callback_error_is_contained(self):
        async def boom():
            raise RuntimeError("boom")

        timer = CancellableTimer(0.0, boom).start()
        await asyncio.sleep(0.02)
        assert timer.active is False
