"""Validation of a complete preference document.

``validate_preferences`` turns the dict form of a preference object into
a ``NotificationPreferences`` snapshot, or raises a single
``ValidationError`` listing every offending field. Nothing is applied
unless the whole document is valid.
"""

from enum import Enum
from typing import Any, Optional, Type

from src.api_errors.config import ErrorCode
from src.api_errors.exceptions import ValidationError
from src.api_errors.validators import validate_time_of_day, validate_timezone, validate_weekday
from src.notifications.config import (
    DigestFrequency,
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)
from src.notifications.models import (
    CategoryPreference,
    ChannelDefaults,
    EmailDigestPreference,
    EventOverride,
    NotificationPreferences,
    QuietHoursPreference,
    default_preferences,
)


class _Issues:
    """Collects field problems while a document is walked."""

    def __init__(self):
        self.details: list[dict] = []

    def add(self, field: str, issue: str) -> None:
        self.details.append({"field": field, "issue": issue})

    def check(self, func, value, field: str) -> Any:
        try:
            return func(value, field=field)
        except ValidationError as exc:
            self.details.extend(exc.details)
            return None

    def boolean(self, section: dict, key: str, default: bool, prefix: str) -> bool:
        value = section.get(key, default)
        if not isinstance(value, bool):
            self.add(f"{prefix}{key}", "must be a boolean")
            return default
        return value

    def enum(self, enum_cls: Type[Enum], value: Any, field: str) -> Optional[Enum]:
        if isinstance(value, enum_cls):
            return value
        try:
            return enum_cls(value)
        except ValueError:
            allowed = ", ".join(m.value for m in enum_cls)
            self.add(field, f"{value!r} is not one of: {allowed}")
            return None

    def enum_set(self, enum_cls: Type[Enum], values: Any, field: str) -> frozenset:
        if not isinstance(values, (list, tuple, set, frozenset)):
            self.add(field, "must be a list")
            return frozenset()
        parsed = (self.enum(enum_cls, v, f"{field}[{i}]") for i, v in enumerate(values))
        return frozenset(p for p in parsed if p is not None)

    def section(self, data: dict, key: str) -> dict:
        value = data.get(key) or {}
        if not isinstance(value, dict):
            self.add(key, "must be an object")
            return {}
        return value


def _channel_defaults(issues: _Issues, raw: dict) -> ChannelDefaults:
    base = ChannelDefaults()
    return ChannelDefaults(
        in_app=issues.boolean(raw, "in_app", base.in_app, "default_channels."),
        email=issues.boolean(raw, "email", base.email, "default_channels."),
        push=issues.boolean(raw, "push", base.push, "default_channels."),
        sms=issues.boolean(raw, "sms", base.sms, "default_channels."),
    )


def _categories(issues: _Issues, raw: dict, defaults: dict) -> dict:
    categories = dict(defaults)
    for key, value in raw.items():
        field = f"categories.{key}"
        category = issues.enum(NotificationCategory, key, field)
        if category is None:
            continue
        if not isinstance(value, dict):
            issues.add(field, "must be an object")
            continue
        base = defaults[category]
        min_priority = issues.enum(
            NotificationPriority,
            value.get("min_priority", base.min_priority.value),
            f"{field}.min_priority",
        )
        categories[category] = CategoryPreference(
            enabled=issues.boolean(value, "enabled", base.enabled, f"{field}."),
            channels=issues.enum_set(
                NotificationChannel,
                value.get("channels", [c.value for c in base.channels]),
                f"{field}.channels",
            ),
            min_priority=min_priority or base.min_priority,
        )
    return categories


def _email_digest(issues: _Issues, raw: dict) -> EmailDigestPreference:
    base = EmailDigestPreference()
    frequency = issues.enum(
        DigestFrequency, raw.get("frequency", base.frequency.value), "email_digest.frequency"
    )
    min_priority = issues.enum(
        NotificationPriority,
        raw.get("min_priority", base.min_priority.value),
        "email_digest.min_priority",
    )
    time_of_day = issues.check(validate_time_of_day, raw.get("time", base.time), "email_digest.time")
    day_of_week = issues.check(
        validate_weekday, raw.get("day_of_week", base.day_of_week), "email_digest.day_of_week"
    )
    tz = issues.check(validate_timezone, raw.get("timezone", base.timezone), "email_digest.timezone")
    return EmailDigestPreference(
        enabled=issues.boolean(raw, "enabled", base.enabled, "email_digest."),
        frequency=frequency or base.frequency,
        time=time_of_day or base.time,
        day_of_week=base.day_of_week if day_of_week is None else day_of_week,
        timezone=tz or base.timezone,
        include_categories=issues.enum_set(
            NotificationCategory,
            raw.get("include_categories", []),
            "email_digest.include_categories",
        ),
        min_priority=min_priority or base.min_priority,
    )


def _quiet_hours(issues: _Issues, raw: dict) -> QuietHoursPreference:
    base = QuietHoursPreference()
    start = issues.check(validate_time_of_day, raw.get("start", base.start), "quiet_hours.start")
    end = issues.check(validate_time_of_day, raw.get("end", base.end), "quiet_hours.end")
    tz = issues.check(validate_timezone, raw.get("timezone", base.timezone), "quiet_hours.timezone")

    days = raw.get("days_of_week", [])
    if not isinstance(days, (list, tuple, set, frozenset)):
        issues.add("quiet_hours.days_of_week", "must be a list")
        days = []
    checked_days = [
        issues.check(validate_weekday, d, f"quiet_hours.days_of_week[{i}]")
        for i, d in enumerate(days)
    ]

    return QuietHoursPreference(
        enabled=issues.boolean(raw, "enabled", base.enabled, "quiet_hours."),
        start=start or base.start,
        end=end or base.end,
        timezone=tz or base.timezone,
        allow_critical=issues.boolean(raw, "allow_critical", base.allow_critical, "quiet_hours."),
        days_of_week=frozenset(d for d in checked_days if d is not None),
    )


def _event_overrides(issues: _Issues, raw: Any) -> tuple:
    if not isinstance(raw, (list, tuple)):
        issues.add("event_overrides", "must be a list")
        return ()

    overrides = []
    seen = set()
    for i, item in enumerate(raw):
        field = f"event_overrides[{i}]"
        if not isinstance(item, dict):
            issues.add(field, "must be an object")
            continue
        event_type = issues.enum(NotificationType, item.get("type"), f"{field}.type")
        enabled = issues.boolean(item, "enabled", True, f"{field}.")
        channels = issues.enum_set(NotificationChannel, item.get("channels", []), f"{field}.channels")
        priority = None
        if item.get("priority") is not None:
            priority = issues.enum(NotificationPriority, item["priority"], f"{field}.priority")

        if event_type is None:
            continue
        if event_type in seen:
            issues.add(f"{field}.type", f"duplicate override for {event_type.value}")
            continue
        if enabled and not channels:
            issues.add(f"{field}.channels", "an enabled override needs at least one channel")
            continue
        seen.add(event_type)
        overrides.append(
            EventOverride(type=event_type, enabled=enabled, channels=channels, priority=priority)
        )
    return tuple(overrides)


def validate_preferences(user_id: str, data: dict) -> NotificationPreferences:
    """Build a preferences snapshot from a whole preference document.

    Sections left out of the document take default values; categories
    not mentioned keep their default entry.

    Raises:
        ValidationError: With one detail entry per invalid field.
    """
    if not isinstance(data, dict):
        raise ValidationError(
            "Preferences must be an object",
            error_code=ErrorCode.INVALID_PREFERENCES,
            field="body",
        )

    issues = _Issues()
    defaults = default_preferences(user_id)

    prefs = NotificationPreferences(
        user_id=user_id,
        enabled=issues.boolean(data, "enabled", True, ""),
        default_channels=_channel_defaults(issues, issues.section(data, "default_channels")),
        categories=_categories(issues, issues.section(data, "categories"), dict(defaults.categories)),
        email_digest=_email_digest(issues, issues.section(data, "email_digest")),
        quiet_hours=_quiet_hours(issues, issues.section(data, "quiet_hours")),
        event_overrides=_event_overrides(issues, data.get("event_overrides") or []),
        batch_notifications=issues.boolean(data, "batch_notifications", False, ""),
        sound_enabled=issues.boolean(data, "sound_enabled", True, ""),
        desktop_notifications=issues.boolean(data, "desktop_notifications", True, ""),
    )

    if issues.details:
        raise ValidationError(
            f"Invalid notification preferences ({len(issues.details)} issue(s))",
            error_code=ErrorCode.INVALID_PREFERENCES,
            details=issues.details,
        )
    return prefs
