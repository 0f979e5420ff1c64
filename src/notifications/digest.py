"""Email digest scheduling.

``DigestScheduler`` decides whether an email goes out now, joins a batch
or is left out of email entirely, and computes when the batch fires.
Fire times derive only from the stored digest settings, so recomputing
after a restart lands in the same bucket. ``DigestQueue`` holds batched
notifications until a worker drains the due buckets.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from src.notifications.config import DigestFrequency
from src.notifications.models import (
    EmailDigestPreference,
    Notification,
    NotificationEvent,
)
from src.notifications.quiet_hours import load_zone, local_weekday, parse_time_of_day

logger = logging.getLogger(__name__)


def _as_utc(moment: datetime) -> datetime:
    # Naive datetimes are taken as UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class DigestAction(Enum):
    """What to do with the email for one event."""
    IMMEDIATE = "immediate"
    QUEUE = "queue"
    DROP = "drop"


@dataclass(frozen=True)
class DigestDecision:
    """Result of ``DigestScheduler.on_event``."""

    action: DigestAction
    bucket_key: Optional[str] = None
    fire_at: Optional[datetime] = None
    reason: str = ""


def next_fire_time(
    frequency: DigestFrequency,
    time_of_day: str,
    day_of_week: int,
    tz: str,
    now: datetime,
) -> datetime:
    """Next digest send time strictly after ``now``, returned in UTC.

    Hourly fires at the top of the next local hour. Daily and weekly fire
    at ``time_of_day`` in ``tz``; a slot at exactly ``now`` counts as
    passed. ``day_of_week`` uses 0=Sunday.
    """
    now = _as_utc(now)
    zone = load_zone(tz, "email_digest.timezone")
    local = now.astimezone(zone)

    if frequency == DigestFrequency.HOURLY:
        floored = local.replace(minute=0, second=0, microsecond=0)
        return floored.astimezone(timezone.utc) + timedelta(hours=1)

    slot = parse_time_of_day(time_of_day, "email_digest.time")

    if frequency == DigestFrequency.DAILY:
        candidate = datetime.combine(local.date(), slot, tzinfo=zone)
        if candidate <= local:
            candidate = datetime.combine(local.date() + timedelta(days=1), slot, tzinfo=zone)
        return candidate.astimezone(timezone.utc)

    if frequency == DigestFrequency.WEEKLY:
        days_ahead = (day_of_week - local_weekday(local)) % 7
        candidate = datetime.combine(local.date() + timedelta(days=days_ahead), slot, tzinfo=zone)
        if candidate <= local:
            candidate = datetime.combine(
                local.date() + timedelta(days=days_ahead + 7), slot, tzinfo=zone
            )
        return candidate.astimezone(timezone.utc)

    raise ValueError(f"No fire time for frequency {frequency}")


def bucket_key_for(user_id: str, frequency: DigestFrequency, fire_at: datetime) -> str:
    return f"{user_id}:{frequency.value}:{fire_at.isoformat()}"


class DigestScheduler:
    """Batching rules for the email channel only.

    Other channels are never batched; the dispatcher sends them directly.
    """

    def on_event(
        self,
        digest: EmailDigestPreference,
        event: NotificationEvent,
        now: Optional[datetime] = None,
    ) -> DigestDecision:
        if not digest.enabled or digest.frequency == DigestFrequency.IMMEDIATE:
            return DigestDecision(DigestAction.IMMEDIATE, reason="immediate")

        if digest.include_categories and event.category not in digest.include_categories:
            return DigestDecision(DigestAction.DROP, reason="category_not_included")

        if event.priority.rank < digest.min_priority.rank:
            return DigestDecision(DigestAction.DROP, reason="below_min_priority")

        fire_at = next_fire_time(
            digest.frequency,
            digest.time,
            digest.day_of_week,
            digest.timezone,
            now or event.occurred_at,
        )
        return DigestDecision(
            DigestAction.QUEUE,
            bucket_key=bucket_key_for(event.user_id, digest.frequency, fire_at),
            fire_at=fire_at,
            reason="queued",
        )


@dataclass
class DigestBucket:
    """Notifications waiting for one digest email."""

    key: str
    user_id: str
    fire_at: datetime
    notifications: list[Notification] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "user_id": self.user_id,
            "fire_at": self.fire_at.isoformat(),
            "notification_ids": [n.notification_id for n in self.notifications],
        }


class DigestQueue:
    """In-memory store of pending digest buckets."""

    def __init__(self):
        self._buckets: dict[str, DigestBucket] = {}
        self._lock = threading.Lock()

    def enqueue(self, decision: DigestDecision, notification: Notification) -> DigestBucket:
        """Add a notification to the bucket named by ``decision``.

        Enqueueing the same notification twice is a no-op.
        """
        if decision.action != DigestAction.QUEUE:
            raise ValueError(f"Cannot enqueue a {decision.action.value} decision")

        with self._lock:
            bucket = self._buckets.get(decision.bucket_key)
            if bucket is None:
                bucket = DigestBucket(
                    key=decision.bucket_key,
                    user_id=notification.user_id,
                    fire_at=decision.fire_at,
                )
                self._buckets[decision.bucket_key] = bucket
            if all(n.notification_id != notification.notification_id for n in bucket.notifications):
                bucket.notifications.append(notification)

        logger.debug(
            "Queued notification %s into digest %s",
            notification.notification_id, decision.bucket_key,
        )
        return bucket

    def due(self, now: datetime) -> list[DigestBucket]:
        """Buckets whose fire time has arrived, oldest first."""
        now = _as_utc(now)
        with self._lock:
            ready = [b for b in self._buckets.values() if b.fire_at <= now]
        return sorted(ready, key=lambda b: b.fire_at)

    def pop_due(self, now: datetime) -> list[DigestBucket]:
        """Remove and return the due buckets."""
        now = _as_utc(now)
        with self._lock:
            ready = [b for b in self._buckets.values() if b.fire_at <= now]
            for bucket in ready:
                del self._buckets[bucket.key]
        if ready:
            logger.info("Drained %d digest bucket(s)", len(ready))
        return sorted(ready, key=lambda b: b.fire_at)

    def pending_count(self, user_id: Optional[str] = None) -> int:
        with self._lock:
            return sum(
                len(b.notifications)
                for b in self._buckets.values()
                if user_id is None or b.user_id == user_id
            )
