"""WebhookDeliveryAttempt aggregate: one event to one subscription.

Unlike channel DeliveryAttempts, a webhook attempt is a single row mutated
across retries: PENDING while retries remain, then SUCCESS or FAILED.
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum

from notifications.domain import notifications
from notifications.webhook.backoff import retry_delay
from notifications.webhook.events import (
    WebhookDelivered,
    WebhookDeliveryFailed,
    WebhookRetryScheduled,
)
from protean.fields import DateTime, Identifier, Integer, String, Text


class WebhookAttemptStatus(Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


@notifications.aggregate
class WebhookDeliveryAttempt:
    subscription_id: Identifier(required=True)
    event_id: String(required=True, max_length=100)
    event_type: String(required=True, max_length=100)
    payload: Text(required=True)  # JSON {id, type, timestamp, data}
    status: String(choices=WebhookAttemptStatus, default=WebhookAttemptStatus.PENDING.value)
    attempts: Integer(default=0)
    next_retry_at: DateTime()
    response_status: Integer()
    response_body: Text()
    error: String(max_length=1000)
    created_at: DateTime()
    completed_at: DateTime()

    @classmethod
    def create(cls, subscription_id, event_id, event_type, payload):
        return cls(
            subscription_id=str(subscription_id),
            event_id=event_id,
            event_type=event_type,
            payload=json.dumps(payload, sort_keys=True, default=str),
            status=WebhookAttemptStatus.PENDING.value,
            attempts=0,
            created_at=datetime.now(UTC),
        )

    def payload_dict(self) -> dict:
        return json.loads(self.payload)

    @property
    def is_terminal(self) -> bool:
        return self.status != WebhookAttemptStatus.PENDING.value

    def succeed(self, response_status, response_body, at):
        self.attempts += 1
        self.status = WebhookAttemptStatus.SUCCESS.value
        self.response_status = response_status
        self.response_body = response_body
        self.error = None
        self.next_retry_at = None
        self.completed_at = at
        self.raise_(
            WebhookDelivered(
                attempt_id=str(self.id),
                subscription_id=str(self.subscription_id),
                event_type=self.event_type,
                response_status=response_status,
                attempts=self.attempts,
                delivered_at=at,
            )
        )

    def abandon(self, reason, at):
        """Dead-letter without trying, e.g. when the subscription is gone."""
        self.status = WebhookAttemptStatus.FAILED.value
        self.error = reason[:1000]
        self.next_retry_at = None
        self.completed_at = at
        self.raise_(
            WebhookDeliveryFailed(
                attempt_id=str(self.id),
                subscription_id=str(self.subscription_id),
                event_type=self.event_type,
                attempts=self.attempts,
                error=self.error,
                failed_at=at,
            )
        )

    def fail(self, subscription, response_status, response_body, error, at, base_delay=1.0):
        """Count a failed try; schedule the next one or dead-letter the attempt."""
        self.attempts += 1
        self.response_status = response_status
        self.response_body = response_body
        self.error = (error or f"HTTP {response_status}")[:1000]

        if self.attempts < subscription.max_retries:
            delay = retry_delay(
                self.attempts,
                subscription.retry_backoff,
                subscription.retry_multiplier,
                subscription.max_retry_delay_seconds,
                base_delay,
            )
            self.next_retry_at = at + timedelta(seconds=delay)
            self.raise_(
                WebhookRetryScheduled(
                    attempt_id=str(self.id),
                    subscription_id=str(self.subscription_id),
                    attempts=self.attempts,
                    next_retry_at=self.next_retry_at,
                    error=self.error,
                )
            )
            return

        self.status = WebhookAttemptStatus.FAILED.value
        self.next_retry_at = None
        self.completed_at = at
        self.raise_(
            WebhookDeliveryFailed(
                attempt_id=str(self.id),
                subscription_id=str(self.subscription_id),
                event_type=self.event_type,
                attempts=self.attempts,
                error=self.error,
                failed_at=at,
            )
        )
