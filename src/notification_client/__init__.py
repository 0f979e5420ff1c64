"""Consumer-side notification access.

An httpx client for the request/response operations and the capped
in-memory cache that UIs render from.
"""

from src.notification_client.api import NotificationApiClient, NotificationPage
from src.notification_client.store import ClientNotificationStore, MergeResult

__all__ = [
    "NotificationApiClient",
    "NotificationPage",
    "ClientNotificationStore",
    "MergeResult",
]
