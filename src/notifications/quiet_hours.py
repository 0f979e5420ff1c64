"""Quiet hours evaluation."""

from datetime import datetime, time, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.api_errors.exceptions import ConfigError
from src.notifications.models import QuietHoursPreference


def parse_time_of_day(value: str, field: str = "time") -> time:
    """Parse ``HH:MM`` into a ``datetime.time``.

    Raises:
        ConfigError: If the value is not a 24h HH:MM string.
    """
    try:
        hour_str, minute_str = value.split(":")
        return time(int(hour_str), int(minute_str))
    except (AttributeError, TypeError, ValueError):
        raise ConfigError(f"Invalid time of day: {value!r}", field=field)


def load_zone(name: str, field: str = "timezone") -> ZoneInfo:
    """Look up an IANA zone, raising ConfigError when it is unknown."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, TypeError):
        raise ConfigError(f"Unknown timezone: {name!r}", field=field)


def local_weekday(local: datetime) -> int:
    """Weekday of a datetime as 0=Sunday ... 6=Saturday."""
    return (local.weekday() + 1) % 7


class QuietHoursEvaluator:
    """Decides whether an instant falls inside a user's quiet window.

    The evaluator has no clock of its own: callers pass the instant, so
    the same inputs always give the same answer. ``config.enabled`` is
    left to the caller.
    """

    def is_quiet(self, config: QuietHoursPreference, instant: datetime) -> bool:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)

        local = instant.astimezone(load_zone(config.timezone, "quiet_hours.timezone"))
        start = parse_time_of_day(config.start, "quiet_hours.start")
        end = parse_time_of_day(config.end, "quiet_hours.end")

        if config.days_of_week and local_weekday(local) not in config.days_of_week:
            return False

        now = local.time().replace(second=0, microsecond=0, tzinfo=None)

        if start == end:
            return True
        if start < end:
            return start <= now < end
        # Overnight window, e.g. 22:00 - 06:00
        return now >= start or now < end
