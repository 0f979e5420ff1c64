"""Configuration for Notification Preferences & Delivery."""

from dataclasses import dataclass
from enum import Enum


class NotificationPriority(Enum):
    """Notification priority levels, totally ordered LOW < MEDIUM < HIGH < CRITICAL."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _PRIORITY_ORDER.index(self)


_PRIORITY_ORDER = (
    NotificationPriority.LOW,
    NotificationPriority.MEDIUM,
    NotificationPriority.HIGH,
    NotificationPriority.CRITICAL,
)


class NotificationCategory(Enum):
    """Notification categories."""
    HR_ACTIVITIES = "HR_ACTIVITIES"
    SECURITY_ALERTS = "SECURITY_ALERTS"
    SYSTEM_UPDATES = "SYSTEM_UPDATES"
    COMMENTS = "COMMENTS"
    INTERVIEWS = "INTERVIEWS"
    ADMIN = "ADMIN"


class NotificationChannel(Enum):
    """Delivery channels."""
    IN_APP = "IN_APP"
    EMAIL = "EMAIL"
    PUSH = "PUSH"
    SMS = "SMS"


class DigestFrequency(Enum):
    """Email digest cadence."""
    IMMEDIATE = "IMMEDIATE"
    HOURLY = "HOURLY"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"


class NotificationType(Enum):
    """Domain event types that can produce a notification."""
    # Candidates
    CANDIDATE_APPLIED = "CANDIDATE_APPLIED"
    CANDIDATE_ASSIGNED = "CANDIDATE_ASSIGNED"
    CANDIDATE_STATUS_CHANGED = "CANDIDATE_STATUS_CHANGED"
    CANDIDATE_DOCUMENT_UPLOADED = "CANDIDATE_DOCUMENT_UPLOADED"
    CANDIDATE_AI_ANALYSIS_COMPLETE = "CANDIDATE_AI_ANALYSIS_COMPLETE"
    # Comments
    COMMENT_MENTION = "COMMENT_MENTION"
    COMMENT_REPLY = "COMMENT_REPLY"
    COMMENT_ON_CANDIDATE = "COMMENT_ON_CANDIDATE"
    # Jobs
    JOB_POSTED = "JOB_POSTED"
    JOB_CREATED = "JOB_CREATED"
    JOB_UPDATED = "JOB_UPDATED"
    JOB_CLOSED = "JOB_CLOSED"
    # Interviews
    INTERVIEW_SCHEDULED = "INTERVIEW_SCHEDULED"
    INTERVIEW_REMINDER = "INTERVIEW_REMINDER"
    INTERVIEW_COMPLETED = "INTERVIEW_COMPLETED"
    # Users & security
    USER_CREATED = "USER_CREATED"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"
    SECURITY_ALERT = "SECURITY_ALERT"
    # System & admin
    SYSTEM_ALERT = "SYSTEM_ALERT"
    SYSTEM_UPDATE = "SYSTEM_UPDATE"
    ADMIN_ANNOUNCEMENT = "ADMIN_ANNOUNCEMENT"


# Default category for each event type, used when a producer omits one
EVENT_TYPE_CATEGORIES: dict[NotificationType, NotificationCategory] = {
    NotificationType.CANDIDATE_APPLIED: NotificationCategory.HR_ACTIVITIES,
    NotificationType.CANDIDATE_ASSIGNED: NotificationCategory.HR_ACTIVITIES,
    NotificationType.CANDIDATE_STATUS_CHANGED: NotificationCategory.HR_ACTIVITIES,
    NotificationType.CANDIDATE_DOCUMENT_UPLOADED: NotificationCategory.HR_ACTIVITIES,
    NotificationType.CANDIDATE_AI_ANALYSIS_COMPLETE: NotificationCategory.HR_ACTIVITIES,
    NotificationType.COMMENT_MENTION: NotificationCategory.COMMENTS,
    NotificationType.COMMENT_REPLY: NotificationCategory.COMMENTS,
    NotificationType.COMMENT_ON_CANDIDATE: NotificationCategory.COMMENTS,
    NotificationType.JOB_POSTED: NotificationCategory.HR_ACTIVITIES,
    NotificationType.JOB_CREATED: NotificationCategory.HR_ACTIVITIES,
    NotificationType.JOB_UPDATED: NotificationCategory.HR_ACTIVITIES,
    NotificationType.JOB_CLOSED: NotificationCategory.HR_ACTIVITIES,
    NotificationType.INTERVIEW_SCHEDULED: NotificationCategory.INTERVIEWS,
    NotificationType.INTERVIEW_REMINDER: NotificationCategory.INTERVIEWS,
    NotificationType.INTERVIEW_COMPLETED: NotificationCategory.INTERVIEWS,
    NotificationType.USER_CREATED: NotificationCategory.ADMIN,
    NotificationType.USER_UPDATED: NotificationCategory.ADMIN,
    NotificationType.PASSWORD_CHANGED: NotificationCategory.SECURITY_ALERTS,
    NotificationType.SECURITY_ALERT: NotificationCategory.SECURITY_ALERTS,
    NotificationType.SYSTEM_ALERT: NotificationCategory.SYSTEM_UPDATES,
    NotificationType.SYSTEM_UPDATE: NotificationCategory.SYSTEM_UPDATES,
    NotificationType.ADMIN_ANNOUNCEMENT: NotificationCategory.ADMIN,
}


@dataclass
class NotificationConfig:
    """Notification engine configuration."""

    # Client-side cache
    client_cache_size: int = 50

    # Listing
    default_page_size: int = 20
    max_page_size: int = 100

    # Inbox retention, per user
    max_inbox_size: int = 1000


DEFAULT_NOTIFICATION_CONFIG = NotificationConfig()


# Default per-category preference values for a new user
CATEGORY_CONFIGS = {
    NotificationCategory.HR_ACTIVITIES: {
        "default_enabled": True,
        "default_channels": (NotificationChannel.IN_APP,),
        "default_min_priority": NotificationPriority.LOW,
    },
    NotificationCategory.SECURITY_ALERTS: {
        "default_enabled": True,
        "default_channels": (NotificationChannel.IN_APP, NotificationChannel.EMAIL),
        "default_min_priority": NotificationPriority.LOW,
    },
    NotificationCategory.SYSTEM_UPDATES: {
        "default_enabled": True,
        "default_channels": (NotificationChannel.IN_APP,),
        "default_min_priority": NotificationPriority.LOW,
    },
    NotificationCategory.COMMENTS: {
        "default_enabled": True,
        "default_channels": (NotificationChannel.IN_APP,),
        "default_min_priority": NotificationPriority.LOW,
    },
    NotificationCategory.INTERVIEWS: {
        "default_enabled": True,
        "default_channels": (NotificationChannel.IN_APP,),
        "default_min_priority": NotificationPriority.LOW,
    },
    NotificationCategory.ADMIN: {
        "default_enabled": True,
        "default_channels": (NotificationChannel.IN_APP,),
        "default_min_priority": NotificationPriority.LOW,
    },
}
