"""Data models for notification preferences and delivery.

Preference objects are frozen snapshots: the engine never edits one in
place, a change always produces a new ``NotificationPreferences``.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping, Optional
import uuid

from src.notifications.config import (
    CATEGORY_CONFIGS,
    EVENT_TYPE_CATEGORIES,
    DigestFrequency,
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)


def _new_id() -> str:
    return uuid.uuid4().hex[:16]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _channel_list(channels) -> list[str]:
    return sorted(c.value for c in channels)


# ---------------------------------------------------------------------------
# Preference snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChannelDefaults:
    """Per-channel defaults offered when a user configures a new category."""

    in_app: bool = True
    email: bool = True
    push: bool = False
    sms: bool = False

    def to_dict(self) -> dict:
        return {"in_app": self.in_app, "email": self.email, "push": self.push, "sms": self.sms}


@dataclass(frozen=True)
class CategoryPreference:
    """Delivery settings for one notification category."""

    enabled: bool = True
    channels: frozenset = frozenset({NotificationChannel.IN_APP})
    min_priority: NotificationPriority = NotificationPriority.LOW

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "channels": _channel_list(self.channels),
            "min_priority": self.min_priority.value,
        }


@dataclass(frozen=True)
class EmailDigestPreference:
    """Batching rules for the email channel.

    ``day_of_week`` follows 0=Sunday ... 6=Saturday; ``time`` is HH:MM in
    ``timezone``. An empty ``include_categories`` admits every category.
    """

    enabled: bool = False
    frequency: DigestFrequency = DigestFrequency.DAILY
    time: str = "09:00"
    day_of_week: int = 1
    timezone: str = "UTC"
    include_categories: frozenset = frozenset()
    min_priority: NotificationPriority = NotificationPriority.LOW

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "frequency": self.frequency.value,
            "time": self.time,
            "day_of_week": self.day_of_week,
            "timezone": self.timezone,
            "include_categories": sorted(c.value for c in self.include_categories),
            "min_priority": self.min_priority.value,
        }


@dataclass(frozen=True)
class QuietHoursPreference:
    """Daily window during which immediate channels are suppressed.

    ``days_of_week`` uses 0=Sunday ... 6=Saturday; empty means every day.
    """

    enabled: bool = False
    start: str = "22:00"
    end: str = "07:00"
    timezone: str = "UTC"
    allow_critical: bool = True
    days_of_week: frozenset = frozenset()

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "start": self.start,
            "end": self.end,
            "timezone": self.timezone,
            "allow_critical": self.allow_critical,
            "days_of_week": sorted(self.days_of_week),
        }


@dataclass(frozen=True)
class EventOverride:
    """Per-event-type rule that replaces category resolution."""

    type: NotificationType
    enabled: bool = True
    channels: frozenset = frozenset()
    priority: Optional[NotificationPriority] = None

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "enabled": self.enabled,
            "channels": _channel_list(self.channels),
            "priority": self.priority.value if self.priority else None,
        }


@dataclass(frozen=True)
class NotificationPreferences:
    """A user's complete notification preferences."""

    user_id: str
    enabled: bool = True
    default_channels: ChannelDefaults = field(default_factory=ChannelDefaults)
    categories: Mapping[NotificationCategory, CategoryPreference] = field(default_factory=dict)
    email_digest: EmailDigestPreference = field(default_factory=EmailDigestPreference)
    quiet_hours: QuietHoursPreference = field(default_factory=QuietHoursPreference)
    event_overrides: tuple = ()
    batch_notifications: bool = False
    sound_enabled: bool = True
    desktop_notifications: bool = True
    updated_at: datetime = field(default_factory=_now)

    def __post_init__(self):
        object.__setattr__(self, "categories", MappingProxyType(dict(self.categories)))
        object.__setattr__(self, "event_overrides", tuple(self.event_overrides))

    def override_for(self, event_type: NotificationType) -> Optional[EventOverride]:
        """Return the first override matching ``event_type``, if any."""
        for override in self.event_overrides:
            if override.type == event_type:
                return override
        return None

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "enabled": self.enabled,
            "default_channels": self.default_channels.to_dict(),
            "categories": {
                category.value: pref.to_dict() for category, pref in self.categories.items()
            },
            "email_digest": self.email_digest.to_dict(),
            "quiet_hours": self.quiet_hours.to_dict(),
            "event_overrides": [o.to_dict() for o in self.event_overrides],
            "batch_notifications": self.batch_notifications,
            "sound_enabled": self.sound_enabled,
            "desktop_notifications": self.desktop_notifications,
            "updated_at": self.updated_at.isoformat(),
        }


def default_preferences(user_id: str) -> NotificationPreferences:
    """Build the preferences a new user starts with."""
    categories = {
        category: CategoryPreference(
            enabled=cfg["default_enabled"],
            channels=frozenset(cfg["default_channels"]),
            min_priority=cfg["default_min_priority"],
        )
        for category, cfg in CATEGORY_CONFIGS.items()
    }
    return NotificationPreferences(user_id=user_id, categories=categories)


# ---------------------------------------------------------------------------
# Events & notifications
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NotificationEvent:
    """The raw facts about an event that resolution and batching look at."""

    type: NotificationType
    category: NotificationCategory
    priority: NotificationPriority
    occurred_at: datetime = field(default_factory=_now)
    user_id: str = ""


@dataclass
class Notification:
    """An in-app notification as stored and pushed to clients."""

    user_id: str
    type: NotificationType
    title: str
    message: str
    category: Optional[NotificationCategory] = None
    priority: NotificationPriority = NotificationPriority.MEDIUM
    notification_id: str = field(default_factory=_new_id)
    action_url: Optional[str] = None
    metadata: dict = field(default_factory=dict)
    is_read: bool = False
    created_at: datetime = field(default_factory=_now)
    read_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    def __post_init__(self):
        if self.category is None:
            self.category = EVENT_TYPE_CATEGORIES[self.type]

    def mark_read(self, at: Optional[datetime] = None) -> bool:
        """Mark as read. Returns False if it was already read."""
        if self.is_read:
            return False
        self.is_read = True
        self.read_at = at or _now()
        return True

    def mark_delivered(self, at: Optional[datetime] = None) -> None:
        """Record the in-app delivery acknowledgment (first one wins)."""
        if self.delivered_at is None:
            self.delivered_at = at or _now()

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or _now()) >= self.expires_at

    def to_event(self) -> NotificationEvent:
        return NotificationEvent(
            type=self.type,
            category=self.category,
            priority=self.priority,
            occurred_at=self.created_at,
            user_id=self.user_id,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.notification_id,
            "user_id": self.user_id,
            "type": self.type.value,
            "category": self.category.value,
            "priority": self.priority.value,
            "title": self.title,
            "message": self.message,
            "action_url": self.action_url,
            "metadata": dict(self.metadata),
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat(),
            "read_at": _iso(self.read_at),
            "delivered_at": _iso(self.delivered_at),
            "expires_at": _iso(self.expires_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Notification":
        """Rebuild a notification from its ``to_dict`` form."""
        category = data.get("category")
        return cls(
            notification_id=data["id"],
            user_id=data["user_id"],
            type=NotificationType(data["type"]),
            category=NotificationCategory(category) if category else None,
            priority=NotificationPriority(data.get("priority", NotificationPriority.MEDIUM.value)),
            title=data.get("title", ""),
            message=data.get("message", ""),
            action_url=data.get("action_url"),
            metadata=dict(data.get("metadata") or {}),
            is_read=bool(data.get("is_read", False)),
            created_at=parse_datetime(data.get("created_at")) or _now(),
            read_at=parse_datetime(data.get("read_at")),
            delivered_at=parse_datetime(data.get("delivered_at")),
            expires_at=parse_datetime(data.get("expires_at")),
        )


@dataclass(frozen=True)
class DeliveryDecision:
    """Outcome of resolving one event against one user's preferences.

    ``deferred_channels`` holds channels that quiet hours suppressed; the
    dispatcher may still hand EMAIL among them to the digest.
    """

    deliver: bool
    channels: frozenset = frozenset()
    reason: str = "delivered"
    effective_priority: Optional[NotificationPriority] = None
    deferred_channels: frozenset = frozenset()

    def to_dict(self) -> dict:
        return {
            "deliver": self.deliver,
            "channels": _channel_list(self.channels),
            "reason": self.reason,
            "effective_priority": self.effective_priority.value if self.effective_priority else None,
            "deferred_channels": _channel_list(self.deferred_channels),
        }


@dataclass
class NotificationSummary:
    """Counts over a user's inbox."""

    total: int = 0
    unread: int = 0
    by_category: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "unread": self.unread,
            "by_category": dict(self.by_category),
            "by_priority": dict(self.by_priority),
        }
