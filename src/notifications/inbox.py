"""Server-side notification inbox.

Backs the request/response operations: listing, unread count, summary,
mark-read, mark-all-read and delete. It also records the in-app
delivery acknowledgment sent by clients, which is separate from the
read state only the user can change.
"""

import logging
import threading
from collections import defaultdict
from datetime import datetime, timezone
from typing import Optional

from src.api_errors.config import ErrorCode
from src.api_errors.exceptions import NotFoundError
from src.api_errors.validators import validate_pagination
from src.notifications.config import (
    DEFAULT_NOTIFICATION_CONFIG,
    NotificationCategory,
    NotificationConfig,
)
from src.notifications.models import Notification, NotificationSummary

logger = logging.getLogger(__name__)


class NotificationInbox:
    """In-memory per-user notification storage, newest first."""

    def __init__(self, config: Optional[NotificationConfig] = None):
        self.config = config or DEFAULT_NOTIFICATION_CONFIG
        # user_id -> notification_id -> notification (insertion ordered)
        self._items: dict[str, dict[str, Notification]] = defaultdict(dict)
        self._lock = threading.Lock()

    def add(self, notification: Notification) -> Notification:
        """Store a notification, evicting the oldest past the retention cap."""
        with self._lock:
            items = self._items[notification.user_id]
            items[notification.notification_id] = notification
            while len(items) > self.config.max_inbox_size:
                oldest = next(iter(items))
                del items[oldest]
        return notification

    def get(self, user_id: str, notification_id: str) -> Notification:
        notification = self._items.get(user_id, {}).get(notification_id)
        if notification is None:
            raise NotFoundError(
                f"Notification {notification_id} not found",
                error_code=ErrorCode.NOTIFICATION_NOT_FOUND,
                resource_type="notification",
                resource_id=notification_id,
            )
        return notification

    def _visible(self, user_id: str, now: Optional[datetime] = None) -> list[Notification]:
        now = now or datetime.now(timezone.utc)
        with self._lock:
            items = list(self._items.get(user_id, {}).values())
        visible = [n for n in items if not n.is_expired(now)]
        visible.sort(key=lambda n: n.created_at, reverse=True)
        return visible

    def list_notifications(
        self,
        user_id: str,
        page: int = 1,
        limit: Optional[int] = None,
        unread_only: bool = False,
        category: Optional[NotificationCategory] = None,
        now: Optional[datetime] = None,
    ) -> tuple[list[Notification], int]:
        """Return one page of notifications and the total matching count."""
        limit = limit or self.config.default_page_size
        page, limit = validate_pagination(page, limit, self.config.max_page_size)

        items = self._visible(user_id, now)
        if unread_only:
            items = [n for n in items if not n.is_read]
        if category is not None:
            items = [n for n in items if n.category == category]

        start = (page - 1) * limit
        return items[start:start + limit], len(items)

    def unread_count(self, user_id: str, now: Optional[datetime] = None) -> int:
        return sum(1 for n in self._visible(user_id, now) if not n.is_read)

    def mark_read(self, user_id: str, notification_id: str) -> Notification:
        """Mark one notification read. Re-reading is a no-op."""
        notification = self.get(user_id, notification_id)
        with self._lock:
            changed = notification.mark_read()
        if changed:
            logger.debug("Marked notification %s read", notification_id)
        return notification

    def mark_all_read(self, user_id: str) -> list[Notification]:
        """Mark every unread notification read. Returns the ones that changed."""
        at = datetime.now(timezone.utc)
        with self._lock:
            changed = [n for n in self._items.get(user_id, {}).values() if n.mark_read(at)]
        logger.info("Marked %d notification(s) read for user %s", len(changed), user_id)
        return changed

    def delete(self, user_id: str, notification_id: str) -> None:
        self.get(user_id, notification_id)
        with self._lock:
            self._items[user_id].pop(notification_id, None)
        logger.debug("Deleted notification %s", notification_id)

    def acknowledge_delivery(self, user_id: str, notification_id: str) -> bool:
        """Record that a client session received the notification.

        Unknown ids are ignored; returns whether one was found.
        """
        notification = self._items.get(user_id, {}).get(notification_id)
        if notification is None:
            return False
        with self._lock:
            notification.mark_delivered()
        return True

    def summary(self, user_id: str, now: Optional[datetime] = None) -> NotificationSummary:
        items = self._visible(user_id, now)
        summary = NotificationSummary(total=len(items))
        for n in items:
            if not n.is_read:
                summary.unread += 1
            summary.by_category[n.category.value] = summary.by_category.get(n.category.value, 0) + 1
            summary.by_priority[n.priority.value] = summary.by_priority.get(n.priority.value, 0) + 1
        return summary
