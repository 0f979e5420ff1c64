"""Notification dispatch: resolve preferences, then hand off per channel.

In-app notifications are stored in the inbox and pushed to the user's
live sessions. Email goes through the digest scheduler. Push and SMS go
straight to their senders.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from src.api_errors.exceptions import ConfigError
from src.notifications.config import NotificationChannel
from src.notifications.digest import DigestAction, DigestDecision, DigestQueue, DigestScheduler
from src.notifications.inbox import NotificationInbox
from src.notifications.models import DeliveryDecision, Notification
from src.notifications.preferences import PreferenceStore
from src.notifications.resolver import PreferenceResolver
from src.notifications.sender import SendResult, SenderRegistry
from src.realtime.protocol import NOTIFICATION_NEW

logger = logging.getLogger(__name__)


class RealtimePublisher(Protocol):
    """Anything that can push a named message to a user's live sessions."""

    async def send_to_user(self, user_id: str, event: str, data: Any) -> int: ...


@dataclass
class DispatchResult:
    """What happened to one notification."""

    notification_id: str
    decision: DeliveryDecision
    delivered_channels: list[NotificationChannel] = field(default_factory=list)
    digest: Optional[DigestDecision] = None
    pushed_sessions: int = 0
    send_results: list[SendResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "notification_id": self.notification_id,
            "decision": self.decision.to_dict(),
            "delivered_channels": [c.value for c in self.delivered_channels],
            "digest": {
                "action": self.digest.action.value,
                "bucket_key": self.digest.bucket_key,
                "fire_at": self.digest.fire_at.isoformat() if self.digest.fire_at else None,
            } if self.digest else None,
            "pushed_sessions": self.pushed_sessions,
            "send_results": [r.to_dict() for r in self.send_results],
        }


class NotificationDispatcher:
    """Routes produced notifications to the channels a user wants."""

    def __init__(
        self,
        preferences: PreferenceStore,
        inbox: NotificationInbox,
        publisher: Optional[RealtimePublisher] = None,
        senders: Optional[SenderRegistry] = None,
        resolver: Optional[PreferenceResolver] = None,
        digest: Optional[DigestScheduler] = None,
        digest_queue: Optional[DigestQueue] = None,
    ):
        self.preferences = preferences
        self.inbox = inbox
        self.publisher = publisher
        self.senders = senders or SenderRegistry()
        self.resolver = resolver or PreferenceResolver()
        self.digest = digest or DigestScheduler()
        self.digest_queue = digest_queue or DigestQueue()

    async def dispatch(
        self,
        notification: Notification,
        now: Optional[datetime] = None,
    ) -> DispatchResult:
        now = now or datetime.now(timezone.utc)
        prefs = self.preferences.get(notification.user_id)
        event = notification.to_event()
        decision = self.resolver.resolve(prefs, event, now)
        result = DispatchResult(notification_id=notification.notification_id, decision=decision)

        channels = decision.channels if decision.deliver else frozenset()
        in_quiet_hours = decision.reason == "quiet_hours"

        if NotificationChannel.IN_APP in channels:
            self.inbox.add(notification)
            result.delivered_channels.append(NotificationChannel.IN_APP)
            if self.publisher is not None:
                result.pushed_sessions = await self.publisher.send_to_user(
                    notification.user_id, NOTIFICATION_NEW, notification.to_dict()
                )

        wants_email = NotificationChannel.EMAIL in channels or (
            in_quiet_hours and NotificationChannel.EMAIL in decision.deferred_channels
        )
        if wants_email:
            await self._handle_email(notification, prefs.email_digest, in_quiet_hours, now, result)

        for channel in (NotificationChannel.PUSH, NotificationChannel.SMS):
            if channel in channels:
                send_result = await self.senders.send(channel, notification)
                result.send_results.append(send_result)
                if send_result.success:
                    result.delivered_channels.append(channel)

        logger.info(
            "Dispatched notification %s: %s via %s",
            notification.notification_id,
            decision.reason,
            ",".join(c.value for c in result.delivered_channels) or "none",
            extra={"notification_id": notification.notification_id, "reason": decision.reason},
        )
        return result

    async def _handle_email(self, notification, digest_prefs, in_quiet_hours, now, result) -> None:
        try:
            digest_decision = self.digest.on_event(digest_prefs, notification.to_event(), now)
        except ConfigError as exc:
            logger.warning(
                "Skipping email for %s, digest settings unusable: %s",
                notification.notification_id, exc,
            )
            return
        result.digest = digest_decision

        if digest_decision.action == DigestAction.QUEUE:
            self.digest_queue.enqueue(digest_decision, notification)
        elif digest_decision.action == DigestAction.IMMEDIATE and not in_quiet_hours:
            send_result = await self.senders.send(NotificationChannel.EMAIL, notification)
            result.send_results.append(send_result)
            if send_result.success:
                result.delivered_channels.append(NotificationChannel.EMAIL)

    async def flush_digests(self, now: Optional[datetime] = None) -> list[SendResult]:
        """Send one email per due digest bucket."""
        now = now or datetime.now(timezone.utc)
        sender = self.senders.get(NotificationChannel.EMAIL)
        results = []
        for bucket in self.digest_queue.pop_due(now):
            if sender is None:
                logger.warning("No email sender; dropping digest %s", bucket.key)
                continue
            try:
                results.append(await sender.send_batch(bucket.user_id, bucket.notifications))
            except Exception as exc:
                logger.error("Digest %s failed: %s", bucket.key, exc)
                results.append(
                    SendResult(channel=NotificationChannel.EMAIL, success=False, error=str(exc))
                )
        return results
