"""Channel router: one entry point for delivering to any channel.

Looks the sender up in a registry keyed by channel, enforces a deadline on
the provider call and folds every failure into a DeliveryResult. Nothing
raised by a sender escapes ``deliver``.
"""

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout

import structlog
from notifications.channel.port import ChannelHealth, DeliveryResult
from notifications.errors import (
    ConfigurationError,
    PermanentRecipientError,
    TransientProviderError,
)
from notifications.notification.notification import NotificationChannel

logger = structlog.get_logger(__name__)


class ChannelRouter:
    def __init__(self, senders: dict, timeout: float = 10.0, domain=None, max_workers: int = 16):
        missing = [c.value for c in NotificationChannel if c.value not in senders]
        if missing:
            raise ConfigurationError(f"No sender registered for channel(s): {', '.join(missing)}")

        self.senders = dict(senders)
        self.timeout = timeout
        self.domain = domain
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="provider")

    def _call(self, sender, recipient, content, notification):
        if self.domain is None:
            return sender.send(recipient, content, notification)
        with self.domain.domain_context():
            return sender.send(recipient, content, notification)

    def deliver(self, channel, recipient, content, notification) -> DeliveryResult:
        sender = self.senders[channel]
        key = recipient.key

        if not sender.validate_recipient(recipient):
            return DeliveryResult.failed(channel, f"Recipient has no {channel} address", recipient_key=key)

        future = self._executor.submit(self._call, sender, recipient, content, notification)
        try:
            result = future.result(timeout=self.timeout)
        except FutureTimeout:
            future.cancel()
            logger.warning("Provider call timed out", channel=channel, timeout=self.timeout)
            return DeliveryResult.failed(channel, f"Timed out after {self.timeout}s", retryable=True, recipient_key=key)
        except TransientProviderError as exc:
            return DeliveryResult.failed(channel, str(exc), retryable=True, recipient_key=key)
        except PermanentRecipientError as exc:
            return DeliveryResult.failed(channel, str(exc), recipient_key=key)
        except ConfigurationError as exc:
            logger.error("Channel not configured", channel=channel, error=str(exc))
            return DeliveryResult.failed(channel, str(exc), recipient_key=key)
        except Exception as exc:
            logger.exception("Unexpected sender error", channel=channel)
            return DeliveryResult.failed(channel, f"{type(exc).__name__}: {exc}", retryable=True, recipient_key=key)

        return result

    def health(self) -> dict[str, ChannelHealth]:
        report = {}
        for channel, sender in self.senders.items():
            try:
                report[channel] = sender.health()
            except Exception as exc:
                report[channel] = ChannelHealth(channel=channel, status="unhealthy", detail=str(exc))
        return report

    def shutdown(self):
        self._executor.shutdown(wait=False, cancel_futures=True)
