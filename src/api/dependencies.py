"""FastAPI Dependencies.

Provides the shared notification services and the caller identity.
Authentication proper happens upstream; the API trusts the X-User-ID
header set by the gateway.
"""

import logging
from typing import Optional

from fastapi import Depends, Header

from src.api.websocket import NotificationHub
from src.api_errors.exceptions import AuthenticationError
from src.api_errors.validators import validate_user_id
from src.logging_config.context import bind_user
from src.notifications.digest import DigestQueue
from src.notifications.dispatcher import NotificationDispatcher
from src.notifications.inbox import NotificationInbox
from src.notifications.preferences import PreferenceStore

logger = logging.getLogger(__name__)

# ── Singleton instances (shared per process) ──────────────────────────

_preference_store: Optional[PreferenceStore] = None
_inbox: Optional[NotificationInbox] = None
_hub: Optional[NotificationHub] = None
_digest_queue: Optional[DigestQueue] = None
_dispatcher: Optional[NotificationDispatcher] = None


def get_preference_store() -> PreferenceStore:
    """Return (or create) the global PreferenceStore singleton."""
    global _preference_store
    if _preference_store is None:
        _preference_store = PreferenceStore()
    return _preference_store


def get_inbox() -> NotificationInbox:
    """Return (or create) the global NotificationInbox singleton."""
    global _inbox
    if _inbox is None:
        _inbox = NotificationInbox()
    return _inbox


def get_hub() -> NotificationHub:
    """Return (or create) the global NotificationHub singleton."""
    global _hub
    if _hub is None:
        _hub = NotificationHub()
    return _hub


def get_digest_queue() -> DigestQueue:
    global _digest_queue
    if _digest_queue is None:
        _digest_queue = DigestQueue()
    return _digest_queue


def get_dispatcher(
    preferences: PreferenceStore = Depends(get_preference_store),
    inbox: NotificationInbox = Depends(get_inbox),
    hub: NotificationHub = Depends(get_hub),
    digest_queue: DigestQueue = Depends(get_digest_queue),
) -> NotificationDispatcher:
    """Return (or create) the dispatcher wired to the shared services."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher(
            preferences=preferences,
            inbox=inbox,
            publisher=hub,
            digest_queue=digest_queue,
        )
    return _dispatcher


def reset_services() -> None:
    """Drop all singletons so the next request starts from empty state."""
    global _preference_store, _inbox, _hub, _digest_queue, _dispatcher
    _preference_store = None
    _inbox = None
    _hub = None
    _digest_queue = None
    _dispatcher = None


# ── Caller identity ───────────────────────────────────────────────────


async def require_user(
    x_user_id: Optional[str] = Header(default=None),
) -> str:
    """Resolve the calling user from the X-User-ID header.

    Usage::

        @router.get("/notifications")
        async def list_notifications(user_id: str = Depends(require_user)):
            ...
    """
    if not x_user_id:
        raise AuthenticationError("Missing X-User-ID header")
    user_id = validate_user_id(x_user_id)
    bind_user(user_id)
    return user_id
