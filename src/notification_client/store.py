"""Client-side notification cache.

Keeps the most recent notifications (50 by default) for display, with
an unread counter that always equals the number of cached unread items.
The cache is not the full history: items past the cap are dropped and
only a ``refresh()`` brings back anything missed while offline.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from src.api_errors.exceptions import RequestError
from src.notifications.config import DEFAULT_NOTIFICATION_CONFIG
from src.notifications.models import Notification, NotificationPreferences, parse_datetime

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = ("title", "message", "action_url", "metadata", "expires_at", "delivered_at")


class NotificationApi(Protocol):
    """The request/response operations the store relies on."""

    async def list_notifications(self, page: int = 1, limit: int = 50, **kwargs: Any): ...

    async def unread_count(self) -> int: ...

    async def mark_as_read(self, notification_id: str): ...

    async def mark_all_as_read(self) -> int: ...

    async def delete(self, notification_id: str) -> None: ...


@dataclass(frozen=True)
class MergeResult:
    """What a merge did, and which presentation side effects it calls for."""
    added: bool
    play_sound: bool = False
    show_desktop: bool = False


class ClientNotificationStore:
    """UI-facing cache fed by snapshot fetches and real-time pushes."""

    def __init__(
        self,
        api: NotificationApi,
        cache_size: Optional[int] = None,
        sound_enabled: bool = True,
        desktop_notifications: bool = True,
    ):
        self.api = api
        self.cache_size = cache_size or DEFAULT_NOTIFICATION_CONFIG.client_cache_size
        self.sound_enabled = sound_enabled
        self.desktop_notifications = desktop_notifications
        self._items: list[Notification] = []
        self._unread = 0
        self.server_unread_count: Optional[int] = None
        self.error: Optional[str] = None

    @property
    def notifications(self) -> list[Notification]:
        return list(self._items)

    @property
    def unread_count(self) -> int:
        return self._unread

    def get(self, notification_id: str) -> Optional[Notification]:
        for item in self._items:
            if item.notification_id == notification_id:
                return item
        return None

    def apply_preferences(self, prefs: NotificationPreferences) -> None:
        self.sound_enabled = prefs.sound_enabled
        self.desktop_notifications = prefs.desktop_notifications

    # ── Local updates ────────────────────────────────────────────────

    def merge(self, notification: Notification) -> MergeResult:
        """Insert or replace one notification.

        A known id is replaced in place, keeping its position; a new one
        goes to the front and the cache is truncated to ``cache_size``.
        A cached read item never becomes unread again.
        """
        for index, existing in enumerate(self._items):
            if existing.notification_id != notification.notification_id:
                continue
            if existing.is_read and not notification.is_read:
                notification = dataclasses.replace(
                    notification, is_read=True, read_at=existing.read_at
                )
            elif not existing.is_read and notification.is_read:
                self._unread = max(0, self._unread - 1)
            self._items[index] = notification
            return MergeResult(added=False)

        self._items.insert(0, notification)
        if not notification.is_read:
            self._unread += 1

        evicted = self._items[self.cache_size:]
        if evicted:
            del self._items[self.cache_size:]
            dropped_unread = sum(1 for n in evicted if not n.is_read)
            self._unread = max(0, self._unread - dropped_unread)

        fresh_unread = not notification.is_read
        return MergeResult(
            added=True,
            play_sound=fresh_unread and self.sound_enabled,
            show_desktop=fresh_unread and self.desktop_notifications,
        )

    def merge_payload(self, payload: dict) -> MergeResult:
        """Merge a ``notification:new`` payload from the real-time channel."""
        try:
            notification = Notification.from_dict(payload)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed notification payload: {e}")
            return MergeResult(added=False)
        return self.merge(notification)

    def apply_update(self, notification_id: str, patch: dict) -> bool:
        """Apply a partial update to a cached item.

        Returns False when the id is not cached. ``is_read`` only moves
        from False to True.
        """
        item = self.get(notification_id)
        if item is None:
            return False

        if patch.get("is_read") and not item.is_read:
            item.mark_read(parse_datetime(patch.get("read_at")))
            self._unread = max(0, self._unread - 1)

        for key in _UPDATABLE_FIELDS:
            if key not in patch:
                continue
            value = patch[key]
            if key in ("expires_at", "delivered_at"):
                value = parse_datetime(value)
            setattr(item, key, value)
        return True

    def handle_update_payload(self, payload: dict) -> bool:
        """Apply a ``notification:updated`` payload from the real-time channel."""
        if not isinstance(payload, dict) or not payload.get("notification_id"):
            return False
        return self.apply_update(payload["notification_id"], payload.get("update") or {})

    def attach(self, channel) -> None:
        """Feed this store from a ``RealtimeChannel``."""
        channel.on_notification(self.merge_payload)
        channel.on_notification_updated(self.handle_update_payload)

    # ── Server operations ────────────────────────────────────────────

    async def refresh(self) -> None:
        """Reload the first page and the server-wide unread count."""
        try:
            page = await self.api.list_notifications(page=1, limit=self.cache_size)
            server_count = await self.api.unread_count()
        except RequestError as e:
            self.error = e.message
            raise

        self._items = list(page.notifications[: self.cache_size])
        self._unread = sum(1 for n in self._items if not n.is_read)
        self.server_unread_count = server_count
        self.error = None

    async def mark_as_read(self, notification_id: str) -> None:
        """Mark one item read on the server, then locally."""
        await self.api.mark_as_read(notification_id)
        item = self.get(notification_id)
        if item is not None and item.mark_read():
            self._unread = max(0, self._unread - 1)

    async def mark_all_as_read(self) -> int:
        """Optimistically mark everything read, then tell the server.

        On failure the local state is left as is and the ``RequestError``
        is raised; call ``refresh()`` to reconcile with the server.
        """
        for item in self._items:
            item.mark_read()
        self._unread = 0
        try:
            return await self.api.mark_all_as_read()
        except RequestError as e:
            self.error = e.message
            logger.warning(f"mark_all_as_read failed, cache left optimistic: {e.message}")
            raise

    async def delete(self, notification_id: str) -> None:
        """Delete on the server, then drop from the cache."""
        await self.api.delete(notification_id)
        item = self.get(notification_id)
        if item is None:
            return
        self._items.remove(item)
        if not item.is_read:
            self._unread = max(0, self._unread - 1)
