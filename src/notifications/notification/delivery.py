"""DeliveryAttempt aggregate: append-only outcome of one recipient/channel send.

A NotificationRecord fans out into many attempts. Each is written exactly
once, after the channel router returns a DeliveryResult; a retry appends a
new row with ``attempts`` incremented instead of mutating the old one.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from notifications.domain import notifications
from notifications.notification.events import DeliveryRecorded
from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text


class DeliveryStatus(Enum):
    SENT = "SENT"
    FAILED = "FAILED"


@notifications.aggregate
class DeliveryAttempt:
    notification_id: Identifier(required=True)
    notification_type: String(required=True, max_length=100)
    tenant_id: String(max_length=100)
    channel: String(required=True, max_length=20)
    recipient: Text(required=True)  # JSON recipient dict
    recipient_key: String(required=True, max_length=255)

    status: String(choices=DeliveryStatus, required=True)
    success: Boolean(default=False)
    message_id: String(max_length=255)
    error: String(max_length=1000)
    retryable: Boolean(default=False)
    attempts: Integer(default=1)

    delivered_at: DateTime()
    created_at: DateTime()

    @classmethod
    def record(cls, notification, recipient, result, attempts=1):
        """Persistable attempt for ``result``; raises DeliveryRecorded."""
        now = datetime.now(UTC)

        attempt = cls(
            notification_id=str(notification.id),
            notification_type=notification.notification_type,
            tenant_id=notification.tenant_id,
            channel=result.channel,
            recipient=json.dumps(recipient.to_dict()),
            recipient_key=recipient.key,
            status=DeliveryStatus.SENT.value if result.success else DeliveryStatus.FAILED.value,
            success=result.success,
            message_id=result.message_id,
            error=result.error[:1000] if result.error else None,
            retryable=result.retryable,
            attempts=attempts,
            delivered_at=result.delivered_at,
            created_at=now,
        )

        attempt.raise_(
            DeliveryRecorded(
                attempt_id=str(attempt.id),
                notification_id=str(notification.id),
                notification_type=notification.notification_type,
                channel=result.channel,
                tenant_id=notification.tenant_id,
                success=result.success,
                error=attempt.error,
                attempts=attempts,
                recorded_at=now,
            )
        )

        return attempt
