"""Preference resolution: event + preferences -> delivery decision."""

import logging
from datetime import datetime, timezone
from typing import Optional

from src.api_errors.exceptions import ConfigError
from src.notifications.config import NotificationPriority
from src.notifications.models import (
    DeliveryDecision,
    NotificationEvent,
    NotificationPreferences,
)
from src.notifications.quiet_hours import QuietHoursEvaluator

logger = logging.getLogger(__name__)


class PreferenceResolver:
    """Decides whether and through which channels an event is delivered.

    Resolution order:
        1. Global switch.
        2. An event-type override, which replaces category rules entirely.
        3. Otherwise the category entry: enabled flag and minimum priority.
        4. Quiet hours, unless the effective priority is CRITICAL and the
           user allows critical notifications through.
        5. Deliver when at least one channel is left.

    ``default_channels`` on the preferences is never consulted here; it
    only seeds new categories in a settings UI.

    ``resolve`` never raises. Malformed preferences fail closed.
    """

    def __init__(self, quiet_hours: Optional[QuietHoursEvaluator] = None):
        self.quiet_hours = quiet_hours or QuietHoursEvaluator()

    def resolve(
        self,
        prefs: NotificationPreferences,
        event: NotificationEvent,
        now: Optional[datetime] = None,
    ) -> DeliveryDecision:
        now = now or datetime.now(timezone.utc)
        try:
            return self._resolve(prefs, event, now)
        except (ConfigError, AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning(
                "Failing closed for user %s on %s: %s",
                getattr(prefs, "user_id", "?"),
                getattr(getattr(event, "type", None), "value", "?"),
                exc,
                extra={"reason": "invalid_preferences"},
            )
            return DeliveryDecision(deliver=False, reason="invalid_preferences")

    def _resolve(
        self,
        prefs: NotificationPreferences,
        event: NotificationEvent,
        now: datetime,
    ) -> DeliveryDecision:
        if not prefs.enabled:
            return DeliveryDecision(deliver=False, reason="globally_disabled")

        override = prefs.override_for(event.type)
        if override is not None:
            if not override.enabled:
                return DeliveryDecision(deliver=False, reason="override_disabled")
            channels = frozenset(override.channels)
            effective_priority = override.priority or event.priority
        else:
            category_pref = prefs.categories.get(event.category)
            if category_pref is None:
                return DeliveryDecision(deliver=False, reason="unknown_category")
            if not category_pref.enabled:
                return DeliveryDecision(deliver=False, reason="category_disabled")
            if event.priority.rank < category_pref.min_priority.rank:
                return DeliveryDecision(
                    deliver=False,
                    reason="below_min_priority",
                    effective_priority=event.priority,
                )
            channels = frozenset(category_pref.channels)
            effective_priority = event.priority

        quiet = prefs.quiet_hours
        if quiet.enabled and self.quiet_hours.is_quiet(quiet, now):
            critical_allowed = (
                effective_priority == NotificationPriority.CRITICAL and quiet.allow_critical
            )
            if not critical_allowed:
                return DeliveryDecision(
                    deliver=False,
                    reason="quiet_hours",
                    effective_priority=effective_priority,
                    deferred_channels=channels,
                )

        if not channels:
            return DeliveryDecision(
                deliver=False, reason="no_channels", effective_priority=effective_priority
            )

        return DeliveryDecision(
            deliver=True,
            channels=channels,
            reason="delivered",
            effective_priority=effective_priority,
        )
