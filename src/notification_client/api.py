"""HTTP client for the notification request/response operations."""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import httpx

from src.api_errors.exceptions import RequestError
from src.notifications.config import NotificationCategory
from src.notifications.models import (
    Notification,
    NotificationPreferences,
    NotificationSummary,
)
from src.notifications.validators import validate_preferences
from src.settings import get_settings

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-ID"


@dataclass
class NotificationPage:
    """One page of a notification listing."""
    notifications: list[Notification] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 50


class NotificationApiClient:
    """Async client for the notification REST API.

    Every failure, whether a network error or an error status, is raised
    as ``RequestError``; nothing is retried.

    Example:
        async with NotificationApiClient("user_1") as api:
            page = await api.list_notifications(limit=50)
            await api.mark_as_read(page.notifications[0].notification_id)
    """

    def __init__(
        self,
        user_id: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        self.user_id = user_id
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=timeout or settings.api_timeout,
        )
        self._request_count = 0

    async def __aenter__(self) -> "NotificationApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    @property
    def request_count(self) -> int:
        return self._request_count

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        self._request_count += 1
        headers = {USER_ID_HEADER: self.user_id}
        try:
            resp = await self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise RequestError(f"{method} {path} failed: {e}")

        if resp.is_error:
            message, details = f"{method} {path} returned {resp.status_code}", None
            try:
                error = resp.json().get("error", {})
                message = error.get("message", message)
                details = error.get("details")
            except (ValueError, AttributeError):
                pass
            raise RequestError(message, status_code=resp.status_code, details=details)

        return resp.json() if resp.content else None

    # ── Preferences ──────────────────────────────────────────────────

    async def get_preferences(self) -> NotificationPreferences:
        data = await self._request("GET", "/notifications/preferences")
        return validate_preferences(self.user_id, data)

    async def replace_preferences(
        self, preferences: Union[NotificationPreferences, dict]
    ) -> NotificationPreferences:
        """Replace the whole preference object on the server."""
        body = preferences.to_dict() if isinstance(preferences, NotificationPreferences) else preferences
        data = await self._request("PUT", "/notifications/preferences", json=body)
        return validate_preferences(self.user_id, data)

    async def reset_preferences(self) -> NotificationPreferences:
        data = await self._request("POST", "/notifications/preferences/reset")
        return validate_preferences(self.user_id, data)

    # ── Notifications ────────────────────────────────────────────────

    async def list_notifications(
        self,
        page: int = 1,
        limit: int = 50,
        unread_only: bool = False,
        category: Optional[NotificationCategory] = None,
    ) -> NotificationPage:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if unread_only:
            params["unread_only"] = "true"
        if category is not None:
            params["category"] = category.value
        data = await self._request("GET", "/notifications", params=params)
        return NotificationPage(
            notifications=[Notification.from_dict(n) for n in data.get("notifications", [])],
            total=data.get("total", 0),
            page=data.get("page", page),
            limit=data.get("limit", limit),
        )

    async def unread_count(self) -> int:
        data = await self._request("GET", "/notifications/unread-count")
        return int(data.get("count", 0))

    async def summary(self) -> NotificationSummary:
        data = await self._request("GET", "/notifications/summary")
        return NotificationSummary(
            total=data.get("total", 0),
            unread=data.get("unread", 0),
            by_category=data.get("by_category", {}),
            by_priority=data.get("by_priority", {}),
        )

    async def mark_as_read(self, notification_id: str) -> Notification:
        data = await self._request("PATCH", f"/notifications/{notification_id}/read")
        return Notification.from_dict(data["notification"])

    async def mark_all_as_read(self) -> int:
        data = await self._request("PATCH", "/notifications/read-all")
        return int(data.get("updated", 0))

    async def delete(self, notification_id: str) -> None:
        await self._request("DELETE", f"/notifications/{notification_id}")
