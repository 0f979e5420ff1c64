"""Notification preference resolution and delivery.

Decides, for each domain event and user, whether to notify and on which
channels, honoring per-category settings, per-event overrides, quiet
hours and email digests:
- Immutable per-user preference snapshots with validated replacement
- Quiet-hours evaluation in the user's timezone
- Digest scheduling and batching for email
- Server-side inbox and channel dispatch
"""

from src.notifications.config import (
    NotificationPriority,
    NotificationCategory,
    NotificationChannel,
    DigestFrequency,
    NotificationType,
    EVENT_TYPE_CATEGORIES,
    NotificationConfig,
    DEFAULT_NOTIFICATION_CONFIG,
    CATEGORY_CONFIGS,
)
from src.notifications.models import (
    ChannelDefaults,
    CategoryPreference,
    EmailDigestPreference,
    QuietHoursPreference,
    EventOverride,
    NotificationPreferences,
    NotificationEvent,
    Notification,
    DeliveryDecision,
    NotificationSummary,
    default_preferences,
)
from src.notifications.quiet_hours import QuietHoursEvaluator
from src.notifications.digest import (
    DigestAction,
    DigestDecision,
    DigestScheduler,
    DigestBucket,
    DigestQueue,
    next_fire_time,
)
from src.notifications.resolver import PreferenceResolver
from src.notifications.validators import validate_preferences
from src.notifications.preferences import PreferenceStore
from src.notifications.inbox import NotificationInbox
from src.notifications.sender import SendResult, ChannelSender, LoggingSender, SenderRegistry
from src.notifications.dispatcher import DispatchResult, NotificationDispatcher

__all__ = [
    # Config
    "NotificationPriority",
    "NotificationCategory",
    "NotificationChannel",
    "DigestFrequency",
    "NotificationType",
    "EVENT_TYPE_CATEGORIES",
    "NotificationConfig",
    "DEFAULT_NOTIFICATION_CONFIG",
    "CATEGORY_CONFIGS",
    # Models
    "ChannelDefaults",
    "CategoryPreference",
    "EmailDigestPreference",
    "QuietHoursPreference",
    "EventOverride",
    "NotificationPreferences",
    "NotificationEvent",
    "Notification",
    "DeliveryDecision",
    "NotificationSummary",
    "default_preferences",
    # Resolution
    "QuietHoursEvaluator",
    "PreferenceResolver",
    "validate_preferences",
    # Digest
    "DigestAction",
    "DigestDecision",
    "DigestScheduler",
    "DigestBucket",
    "DigestQueue",
    "next_fire_time",
    # Managers
    "PreferenceStore",
    "NotificationInbox",
    "SendResult",
    "ChannelSender",
    "LoggingSender",
    "SenderRegistry",
    "DispatchResult",
    "NotificationDispatcher",
]
