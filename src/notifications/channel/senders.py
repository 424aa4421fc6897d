"""Channel senders: one per NotificationChannel, each over a provider port.

Senders translate rendered content into a provider call and the provider's
``{"status", "message_id", "error"}`` answer into a DeliveryResult. Provider
failures are raised as TransientProviderError or PermanentRecipientError so
the router can classify them uniformly.
"""

from datetime import UTC, datetime

import structlog
from notifications.channel import get_channel
from notifications.channel.port import ChannelHealth, ChannelSender, DeliveryResult
from notifications.errors import PermanentRecipientError, TransientProviderError
from notifications.inbox.inbox import InAppNotification
from notifications.notification.notification import NotificationChannel
from notifications.settings import get_settings
from notifications.webhook.signing import USER_AGENT, serialize
from notifications.webhook.transport import get_transport
from protean.utils.globals import current_domain

logger = structlog.get_logger(__name__)


def _provider_outcome(channel, response, recipient):
    if response.get("status") == "sent":
        return DeliveryResult.sent(channel, response.get("message_id"), recipient.key)
    error = response.get("error") or f"{channel} provider reported failure"
    if response.get("permanent"):
        raise PermanentRecipientError(error)
    raise TransientProviderError(error)


class _ProviderSender(ChannelSender):
    def health(self) -> ChannelHealth:
        provider = get_channel(self.channel)
        report = provider.health()
        return ChannelHealth(channel=self.channel, status=report["status"], detail=report.get("detail"))


class EmailSender(_ProviderSender):
    channel = NotificationChannel.EMAIL.value

    def send(self, recipient, content, notification) -> DeliveryResult:
        response = get_channel(self.channel).send(
            to=recipient.email,
            subject=content.subject or content.title or "",
            body=content.content,
            html_body=content.html_content,
        )
        return _provider_outcome(self.channel, response, recipient)


class SmsSender(_ProviderSender):
    channel = NotificationChannel.SMS.value

    def send(self, recipient, content, notification) -> DeliveryResult:
        response = get_channel(self.channel).send(to=recipient.phone, body=content.content)
        return _provider_outcome(self.channel, response, recipient)


class PushSender(_ProviderSender):
    channel = NotificationChannel.PUSH.value

    def send(self, recipient, content, notification) -> DeliveryResult:
        response = get_channel(self.channel).send(
            device_token=recipient.device_token,
            title=content.title or content.subject or "",
            body=content.content,
            data={
                "notification_id": str(notification.id),
                "type": notification.notification_type,
            },
        )
        return _provider_outcome(self.channel, response, recipient)


class InAppSender(ChannelSender):
    """Writes the message into the recipient's inbox."""

    channel = NotificationChannel.IN_APP.value

    def send(self, recipient, content, notification) -> DeliveryResult:
        item = InAppNotification.create(
            user_id=recipient.user_id,
            notification_id=str(notification.id),
            notification_type=notification.notification_type,
            title=content.title or content.subject,
            content=content.content,
            data=notification.variables(),
        )
        current_domain.repository_for(InAppNotification).add(item)
        return DeliveryResult.sent(self.channel, str(item.id), recipient.key)


class WebhookSender(ChannelSender):
    """Posts the rendered message to a recipient-level webhook URL."""

    channel = NotificationChannel.WEBHOOK.value

    def send(self, recipient, content, notification) -> DeliveryResult:
        body = serialize(
            {
                "id": str(notification.id),
                "type": notification.notification_type,
                "timestamp": datetime.now(UTC).isoformat(),
                "data": {
                    "title": content.title or content.subject,
                    "content": content.content,
                    "variables": notification.variables(),
                },
            }
        )
        response = get_transport().post(
            recipient.webhook_url,
            body,
            {"Content-Type": "application/json", "User-Agent": USER_AGENT},
            get_settings().provider_timeout_seconds,
        )
        if response.ok:
            return DeliveryResult.sent(self.channel, f"webhook-{response.status_code}", recipient.key)
        if response.status_code is not None and 400 <= response.status_code < 500 and response.status_code != 429:
            raise PermanentRecipientError(f"Webhook rejected with HTTP {response.status_code}")
        raise TransientProviderError(response.error or f"Webhook returned HTTP {response.status_code}")


def default_senders() -> dict[str, ChannelSender]:
    return {
        sender.channel: sender
        for sender in (EmailSender(), SmsSender(), PushSender(), InAppSender(), WebhookSender())
    }

