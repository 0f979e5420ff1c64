"""User notification preferences management."""

import logging
import threading
from typing import Optional

from src.notifications.models import NotificationPreferences, default_preferences
from src.notifications.validators import validate_preferences

logger = logging.getLogger(__name__)


class PreferenceStore:
    """Holds one preferences snapshot per user.

    Readers take no lock: they read whichever snapshot is current. Writers
    build and validate a complete new snapshot first and then swap it in,
    so a failed replace leaves the previous preferences untouched.
    """

    def __init__(self):
        self._preferences: dict[str, NotificationPreferences] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> NotificationPreferences:
        """Get a user's preferences, creating defaults if none exist."""
        prefs = self._preferences.get(user_id)
        if prefs is not None:
            return prefs

        with self._lock:
            prefs = self._preferences.get(user_id)
            if prefs is None:
                prefs = default_preferences(user_id)
                self._preferences[user_id] = prefs
                logger.debug("Created default preferences for user %s", user_id)
        return prefs

    def find(self, user_id: str) -> Optional[NotificationPreferences]:
        """Get a user's preferences without creating them."""
        return self._preferences.get(user_id)

    def replace(self, user_id: str, data: dict) -> NotificationPreferences:
        """Replace a user's preferences with a whole new document.

        Raises:
            ValidationError: If the document is invalid; nothing changes.
        """
        prefs = validate_preferences(user_id, data)
        return self.put(prefs)

    def put(self, prefs: NotificationPreferences) -> NotificationPreferences:
        """Install an already-built snapshot."""
        with self._lock:
            self._preferences[prefs.user_id] = prefs
        logger.info("Replaced notification preferences for user %s", prefs.user_id)
        return prefs

    def reset(self, user_id: str) -> NotificationPreferences:
        """Reset a user's preferences to the defaults."""
        prefs = default_preferences(user_id)
        with self._lock:
            self._preferences[user_id] = prefs
        logger.info("Reset notification preferences for user %s", user_id)
        return prefs

    def user_count(self) -> int:
        return len(self._preferences)
