"""Notification REST endpoints.

Preferences (fetch, whole-object replace, reset), the inbox operations
(list, unread count, summary, mark read, mark all read, delete) and the
producer ingress that runs a notification through the dispatcher.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from src.api.dependencies import (
    get_dispatcher,
    get_hub,
    get_inbox,
    get_preference_store,
    require_user,
)
from src.api.models import (
    DeleteResponse,
    DispatchRequest,
    DispatchResponse,
    MarkAllReadResponse,
    MarkReadResponse,
    NotificationListResponse,
    SummaryResponse,
    UnreadCountResponse,
)
from src.api.websocket import NotificationHub
from src.notifications.config import NotificationCategory
from src.notifications.dispatcher import NotificationDispatcher
from src.notifications.inbox import NotificationInbox
from src.notifications.models import Notification, parse_datetime
from src.notifications.preferences import PreferenceStore
from src.realtime.protocol import NOTIFICATION_UPDATED

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/notifications", tags=["Notifications"])


# ── Preferences ───────────────────────────────────────────────────────


@router.get("/preferences")
async def get_preferences(
    user_id: str = Depends(require_user),
    store: PreferenceStore = Depends(get_preference_store),
) -> dict:
    return store.get(user_id).to_dict()


@router.put("/preferences")
async def replace_preferences(
    document: dict = Body(...),
    user_id: str = Depends(require_user),
    store: PreferenceStore = Depends(get_preference_store),
) -> dict:
    """Replace the caller's preferences with a complete new document."""
    return store.replace(user_id, document).to_dict()


@router.post("/preferences/reset")
async def reset_preferences(
    user_id: str = Depends(require_user),
    store: PreferenceStore = Depends(get_preference_store),
) -> dict:
    return store.reset(user_id).to_dict()


# ── Inbox ─────────────────────────────────────────────────────────────


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = False,
    category: Optional[NotificationCategory] = None,
    user_id: str = Depends(require_user),
    inbox: NotificationInbox = Depends(get_inbox),
):
    items, total = inbox.list_notifications(
        user_id, page=page, limit=limit, unread_only=unread_only, category=category
    )
    return {
        "notifications": [n.to_dict() for n in items],
        "total": total,
        "page": page,
        "limit": limit,
        "unread_count": inbox.unread_count(user_id),
    }


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user_id: str = Depends(require_user),
    inbox: NotificationInbox = Depends(get_inbox),
):
    return {"count": inbox.unread_count(user_id)}


@router.get("/summary", response_model=SummaryResponse)
async def summary(
    user_id: str = Depends(require_user),
    inbox: NotificationInbox = Depends(get_inbox),
):
    return inbox.summary(user_id).to_dict()


@router.patch("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    user_id: str = Depends(require_user),
    inbox: NotificationInbox = Depends(get_inbox),
    hub: NotificationHub = Depends(get_hub),
):
    changed = inbox.mark_all_read(user_id)
    for notification in changed:
        await _push_read_update(hub, notification)
    return {"updated": len(changed)}


@router.patch("/{notification_id}/read", response_model=MarkReadResponse)
async def mark_read(
    notification_id: str,
    user_id: str = Depends(require_user),
    inbox: NotificationInbox = Depends(get_inbox),
    hub: NotificationHub = Depends(get_hub),
):
    notification = inbox.mark_read(user_id, notification_id)
    await _push_read_update(hub, notification)
    return {"notification": notification.to_dict()}


@router.delete("/{notification_id}", response_model=DeleteResponse)
async def delete_notification(
    notification_id: str,
    user_id: str = Depends(require_user),
    inbox: NotificationInbox = Depends(get_inbox),
):
    inbox.delete(user_id, notification_id)
    return {"id": notification_id, "deleted": True}


async def _push_read_update(hub: NotificationHub, notification: Notification) -> None:
    await hub.send_to_user(
        notification.user_id,
        NOTIFICATION_UPDATED,
        {
            "notification_id": notification.notification_id,
            "update": {
                "is_read": True,
                "read_at": notification.read_at.isoformat() if notification.read_at else None,
            },
        },
    )


# ── Producer ingress ──────────────────────────────────────────────────


@router.post("/dispatch", response_model=DispatchResponse)
async def dispatch_notification(
    request: DispatchRequest,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Run a produced notification through preference resolution and delivery."""
    notification = Notification(
        user_id=request.user_id,
        type=request.type,
        category=request.category,
        priority=request.priority,
        title=request.title,
        message=request.message,
        action_url=request.action_url,
        metadata=request.metadata,
        expires_at=parse_datetime(request.expires_at),
    )
    logger.debug("Dispatch requested for %s (%s)", request.user_id, request.type.value)
    result = await dispatcher.dispatch(notification)
    decision = result.decision
    body = result.to_dict()
    return {
        "notification": notification.to_dict(),
        "deliver": decision.deliver,
        "reason": decision.reason,
        "channels": sorted(c.value for c in decision.channels),
        "delivered_channels": body["delivered_channels"],
        "deferred_channels": sorted(c.value for c in decision.deferred_channels),
        "digest": body["digest"],
        "pushed_sessions": result.pushed_sessions,
    }
