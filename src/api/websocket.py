"""Notification Hub.

Server-side registry of authenticated real-time sessions, used to push
``notification:new`` and ``notification:updated`` to a user's sockets.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from src.api.config import DEFAULT_WS_CONFIG, WebSocketConfig
from src.realtime.protocol import encode

logger = logging.getLogger(__name__)

SendText = Callable[[str], Awaitable[None]]


@dataclass
class HubSession:
    """One authenticated socket."""

    session_id: str
    user_id: str
    send: SendText = field(repr=False)
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_heartbeat: float = field(default_factory=time.time)
    message_count: int = 0
    acks: int = 0


class NotificationHub:
    """Routes outgoing real-time messages to a user's sessions.

    A send failure on one socket drops that session only; the other
    sessions, and other users, are unaffected.
    """

    def __init__(self, config: Optional[WebSocketConfig] = None):
        self.config = config or DEFAULT_WS_CONFIG
        # session_id -> HubSession
        self._sessions: dict[str, HubSession] = {}
        # user_id -> list of session_ids
        self._user_sessions: dict[str, list[str]] = {}

    def register(self, session_id: str, user_id: str, send: SendText) -> tuple[bool, str]:
        """Register an authenticated session.

        Returns:
            Tuple of (success, message).
        """
        user_sessions = self._user_sessions.get(user_id, [])
        if len(user_sessions) >= self.config.max_connections_per_user:
            return False, "Max connections per user exceeded"

        self._sessions[session_id] = HubSession(session_id=session_id, user_id=user_id, send=send)
        self._user_sessions.setdefault(user_id, []).append(session_id)

        logger.info(f"Realtime session registered: {session_id} (user={user_id})")
        return True, "registered"

    def unregister(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if not session:
            return

        user_sessions = self._user_sessions.get(session.user_id, [])
        if session_id in user_sessions:
            user_sessions.remove(session_id)
        if not user_sessions:
            self._user_sessions.pop(session.user_id, None)

        logger.info(f"Realtime session closed: {session_id}")

    def sessions_for(self, user_id: str) -> list[str]:
        return list(self._user_sessions.get(user_id, []))

    async def send_to_user(self, user_id: str, event: str, data: Any) -> int:
        """Send one message to every session of ``user_id``.

        Returns:
            Number of sessions the message was written to.
        """
        message = encode(event, data)
        delivered = 0
        for session_id in self.sessions_for(user_id):
            session = self._sessions.get(session_id)
            if session is None:
                continue
            try:
                await session.send(message)
            except Exception as e:
                logger.warning(f"Dropping realtime session {session_id}: {e}")
                self.unregister(session_id)
                continue
            session.message_count += 1
            delivered += 1
        return delivered

    def heartbeat(self, session_id: str) -> bool:
        session = self._sessions.get(session_id)
        if session:
            session.last_heartbeat = time.time()
            return True
        return False

    def record_ack(self, session_id: str) -> None:
        session = self._sessions.get(session_id)
        if session:
            session.acks += 1

    def get_session_info(self, session_id: str) -> Optional[dict]:
        session = self._sessions.get(session_id)
        if not session:
            return None
        return {
            "session_id": session.session_id,
            "user_id": session.user_id,
            "connected_at": session.connected_at.isoformat(),
            "message_count": session.message_count,
            "acks": session.acks,
        }

    def get_stats(self) -> dict:
        return {
            "total_sessions": len(self._sessions),
            "total_users": len(self._user_sessions),
        }
