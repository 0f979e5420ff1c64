"""Notification WebSocket endpoint.

Clients connect to /ws/notifications and must send ``authenticate``
before anything else. Once registered with the hub they receive
``notification:new`` / ``notification:updated`` pushes, acknowledge
deliveries with ``notification:read`` and keep the link alive with
``ping``.
"""

import asyncio
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from src.api.dependencies import get_hub, get_inbox
from src.api_errors.exceptions import ValidationError
from src.api_errors.validators import validate_user_id
from src.logging_config.context import bind_session, bind_user
from src.realtime import protocol

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notifications-websocket"])


@router.websocket("/ws/notifications")
async def notifications_websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    session_id = uuid.uuid4().hex[:16]
    user_id: Optional[str] = None
    hub = get_hub()
    bind_session(session_id)
    # Frames before authenticate do not extend the window
    loop = asyncio.get_running_loop()
    auth_deadline = loop.time() + hub.config.auth_timeout

    try:
        while True:
            if user_id is None:
                try:
                    raw = await asyncio.wait_for(
                        websocket.receive_text(),
                        timeout=max(0.0, auth_deadline - loop.time()),
                    )
                except asyncio.TimeoutError:
                    logger.info("Closing unauthenticated realtime socket %s", session_id)
                    await websocket.close(code=4001, reason="Authentication timeout")
                    return
            else:
                raw = await websocket.receive_text()
            try:
                message = protocol.decode(raw)
            except protocol.ProtocolError as e:
                await websocket.send_text(protocol.encode(protocol.ERROR, {"message": str(e)}))
                continue

            if message.event == protocol.AUTHENTICATE:
                user_id = await _authenticate(websocket, session_id, user_id, message.data)
            elif message.event == protocol.PING:
                hub.heartbeat(session_id)
                await websocket.send_text(protocol.encode(protocol.PONG))
            elif user_id is None:
                await websocket.send_text(
                    protocol.encode(protocol.ERROR, {"message": "Not authenticated"})
                )
            elif message.event == protocol.NOTIFICATION_READ:
                _acknowledge(session_id, user_id, message.data)
            else:
                await websocket.send_text(
                    protocol.encode(protocol.ERROR, {"message": f"Unknown event: {message.event}"})
                )
    except WebSocketDisconnect:
        pass
    finally:
        hub.unregister(session_id)


async def _authenticate(
    websocket: WebSocket,
    session_id: str,
    current_user: Optional[str],
    data,
) -> Optional[str]:
    """Bind the socket to a user. Re-authenticating replaces the binding."""
    hub = get_hub()
    candidate = data.get("user_id") if isinstance(data, dict) else None
    try:
        user_id = validate_user_id(candidate)
    except ValidationError as e:
        await websocket.send_text(protocol.encode(protocol.ERROR, {"message": e.message}))
        return current_user

    if current_user is not None:
        hub.unregister(session_id)

    ok, msg = hub.register(session_id, user_id, websocket.send_text)
    if not ok:
        await websocket.send_text(protocol.encode(protocol.ERROR, {"message": msg}))
        return None

    bind_user(user_id)
    await websocket.send_text(
        protocol.encode(protocol.AUTHENTICATED, {"user_id": user_id, "session_id": session_id})
    )
    return user_id


def _acknowledge(session_id: str, user_id: str, data) -> None:
    notification_id = data.get("notification_id") if isinstance(data, dict) else None
    if not notification_id:
        return
    if get_inbox().acknowledge_delivery(user_id, notification_id):
        get_hub().record_ack(session_id)
    else:
        logger.debug("Delivery ack for unknown notification %s", notification_id)
