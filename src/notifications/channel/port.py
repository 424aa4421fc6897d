"""Uniform channel sender contract and its result types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime

from notifications.notification.request import CHANNEL_ADDRESS_FIELD


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one send to one recipient over one channel."""

    channel: str
    success: bool
    message_id: str | None = None
    error: str | None = None
    retryable: bool = False
    delivered_at: datetime | None = None
    recipient_key: str | None = None

    @classmethod
    def sent(cls, channel, message_id=None, recipient_key=None):
        return cls(
            channel=channel,
            success=True,
            message_id=message_id,
            delivered_at=datetime.now(UTC),
            recipient_key=recipient_key,
        )

    @classmethod
    def failed(cls, channel, error, retryable=False, recipient_key=None):
        return cls(
            channel=channel,
            success=False,
            error=error,
            retryable=retryable,
            recipient_key=recipient_key,
        )


@dataclass(frozen=True)
class ChannelHealth:
    channel: str
    status: str  # healthy | unhealthy | not_configured
    detail: str | None = None
    checked_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def healthy(self) -> bool:
        return self.status == "healthy"

    def to_dict(self) -> dict:
        return {
            "channel": self.channel,
            "status": self.status,
            "detail": self.detail,
            "checked_at": self.checked_at.isoformat(),
        }


class ChannelSender(ABC):
    """Delivers rendered content to a recipient over one channel.

    ``send`` may raise ``TransientProviderError``, ``PermanentRecipientError``
    or ``ConfigurationError``; the router turns those into DeliveryResults.
    """

    channel: str

    @abstractmethod
    def send(self, recipient, content, notification) -> DeliveryResult:
        ...

    def validate_recipient(self, recipient) -> bool:
        """True when the recipient carries an address usable by this channel."""
        return bool(getattr(recipient, CHANNEL_ADDRESS_FIELD[self.channel], None))

    def health(self) -> ChannelHealth:
        return ChannelHealth(channel=self.channel, status="healthy")
