"""Outbound channel senders.

Email, SMS and push providers are external to the engine. The senders
here only log what would be sent; a deployment registers real ones
under the same protocol.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol, Sequence, runtime_checkable

from src.notifications.config import NotificationChannel
from src.notifications.models import Notification

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    """Result of one outbound delivery attempt."""
    channel: NotificationChannel = NotificationChannel.EMAIL
    success: bool = False
    message_id: str = ""
    error: str = ""
    sent_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "channel": self.channel.value,
            "success": self.success,
            "message_id": self.message_id,
            "error": self.error,
        }


@runtime_checkable
class ChannelSender(Protocol):
    """Protocol for outbound channel providers."""

    @property
    def channel(self) -> NotificationChannel: ...

    async def send(self, notification: Notification) -> SendResult: ...

    async def send_batch(self, user_id: str, notifications: Sequence[Notification]) -> SendResult: ...


class LoggingSender:
    """Sender that writes each delivery to the log instead of a provider."""

    def __init__(self, channel: NotificationChannel, max_body: Optional[int] = None):
        self._channel = channel
        self._max_body = max_body
        self.sent: list[str] = []

    @property
    def channel(self) -> NotificationChannel:
        return self._channel

    async def send(self, notification: Notification) -> SendResult:
        body = notification.message
        if self._max_body:
            body = body[: self._max_body]
        logger.info(f"[{self._channel.value}] {notification.title}: {body}")
        self.sent.append(notification.notification_id)
        return SendResult(
            channel=self._channel,
            success=True,
            message_id=f"{self._channel.value.lower()}_{notification.notification_id}",
        )

    async def send_batch(self, user_id: str, notifications: Sequence[Notification]) -> SendResult:
        logger.info(
            f"[{self._channel.value}] digest for {user_id}: {len(notifications)} notification(s)"
        )
        self.sent.extend(n.notification_id for n in notifications)
        return SendResult(
            channel=self._channel,
            success=True,
            message_id=f"{self._channel.value.lower()}_digest_{user_id}",
        )


class SenderRegistry:
    """Outbound senders keyed by channel."""

    def __init__(self):
        self._senders: dict[NotificationChannel, ChannelSender] = {
            NotificationChannel.EMAIL: LoggingSender(NotificationChannel.EMAIL),
            NotificationChannel.SMS: LoggingSender(NotificationChannel.SMS, max_body=160),
            NotificationChannel.PUSH: LoggingSender(NotificationChannel.PUSH),
        }

    def register(self, sender: ChannelSender) -> None:
        self._senders[sender.channel] = sender

    def get(self, channel: NotificationChannel) -> Optional[ChannelSender]:
        return self._senders.get(channel)

    async def send(self, channel: NotificationChannel, notification: Notification) -> SendResult:
        """Send through one channel. Provider errors become a failed result."""
        sender = self._senders.get(channel)
        if sender is None:
            return SendResult(channel=channel, success=False, error="no sender registered")
        try:
            return await sender.send(notification)
        except Exception as exc:
            logger.error(
                "Sender for %s failed on notification %s: %s",
                channel.value, notification.notification_id, exc,
            )
            return SendResult(channel=channel, success=False, error=str(exc))
