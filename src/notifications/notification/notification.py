"""NotificationRecord aggregate — one persisted record per accepted request.

The record is the orchestrator's view of a fan-out: which recipients and
channels were requested, where it sits in the dispatch pipeline, and the
aggregate outcome once every recipient/channel pair has been attempted.
Channel senders never touch it; they append DeliveryAttempt rows instead.

State Machine:
    PENDING → QUEUED → PROCESSING → SENT | FAILED
    PENDING → SCHEDULED → (due) → QUEUED
    SCHEDULED → EXPIRED                    (scanner found it past expires_at)
    QUEUED → CANCELLED                     (worker found it past expires_at)
    PENDING | SCHEDULED | QUEUED → CANCELLED (explicit cancel)
    FAILED → QUEUED                        (retry scanner)
"""

import json
from datetime import UTC, datetime
from enum import Enum

from notifications.domain import notifications
from notifications.notification.events import (
    NotificationCancelled,
    NotificationExpired,
    NotificationFailed,
    NotificationProcessingStarted,
    NotificationQueued,
    NotificationRequested,
    NotificationRetried,
    NotificationScheduled,
    NotificationSent,
)
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class NotificationType(Enum):
    # Orders
    ORDER_CONFIRMATION = "ORDER_CONFIRMATION"
    ORDER_SHIPPED = "ORDER_SHIPPED"
    ORDER_DELIVERED = "ORDER_DELIVERED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    ORDER_REFUNDED = "ORDER_REFUNDED"
    # Payments
    PAYMENT_SUCCESS = "PAYMENT_SUCCESS"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    PAYMENT_REFUNDED = "PAYMENT_REFUNDED"
    # Products & inventory
    PRODUCT_APPROVED = "PRODUCT_APPROVED"
    PRODUCT_REJECTED = "PRODUCT_REJECTED"
    PRODUCT_BACK_IN_STOCK = "PRODUCT_BACK_IN_STOCK"
    LOW_STOCK_ALERT = "LOW_STOCK_ALERT"
    PRICE_DROP_ALERT = "PRICE_DROP_ALERT"
    # Sellers & settlements
    SELLER_APPLICATION_APPROVED = "SELLER_APPLICATION_APPROVED"
    SELLER_APPLICATION_REJECTED = "SELLER_APPLICATION_REJECTED"
    SETTLEMENT_PROCESSED = "SETTLEMENT_PROCESSED"
    SETTLEMENT_FAILED = "SETTLEMENT_FAILED"
    # Reviews & promotions
    REVIEW_RECEIVED = "REVIEW_RECEIVED"
    PROMOTION_ACTIVATED = "PROMOTION_ACTIVATED"
    MARKETING_CAMPAIGN = "MARKETING_CAMPAIGN"
    # Account & system
    WELCOME = "WELCOME"
    PASSWORD_RESET = "PASSWORD_RESET"
    SECURITY_ALERT = "SECURITY_ALERT"
    SYSTEM_MAINTENANCE = "SYSTEM_MAINTENANCE"


class NotificationChannel(Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"
    PUSH = "PUSH"
    IN_APP = "IN_APP"
    WEBHOOK = "WEBHOOK"


class NotificationPriority(Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


# Used for min-priority filtering and bulk queue ordering
PRIORITY_RANK = {
    NotificationPriority.LOW.value: 1,
    NotificationPriority.MEDIUM.value: 2,
    NotificationPriority.HIGH.value: 3,
    NotificationPriority.URGENT.value: 4,
}


class NotificationCategory(Enum):
    TRANSACTIONAL = "TRANSACTIONAL"
    MARKETING = "MARKETING"
    SYSTEM = "SYSTEM"
    SECURITY = "SECURITY"
    OPERATIONAL = "OPERATIONAL"


class NotificationStatus(Enum):
    PENDING = "PENDING"
    QUEUED = "QUEUED"
    SCHEDULED = "SCHEDULED"
    PROCESSING = "PROCESSING"
    SENT = "SENT"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class DispatchLane(Enum):
    IMMEDIATE = "immediate"
    BULK = "bulk"


# ---------------------------------------------------------------------------
# State Machine
# ---------------------------------------------------------------------------
_VALID_TRANSITIONS = {
    NotificationStatus.PENDING: {
        NotificationStatus.QUEUED,
        NotificationStatus.SCHEDULED,
        NotificationStatus.CANCELLED,
    },
    NotificationStatus.SCHEDULED: {
        NotificationStatus.QUEUED,
        NotificationStatus.EXPIRED,
        NotificationStatus.CANCELLED,
    },
    NotificationStatus.QUEUED: {
        NotificationStatus.PROCESSING,
        NotificationStatus.CANCELLED,
    },
    NotificationStatus.PROCESSING: {
        NotificationStatus.SENT,
        NotificationStatus.FAILED,
    },
    NotificationStatus.FAILED: {
        NotificationStatus.QUEUED,  # Via retry scanner
    },
    NotificationStatus.SENT: set(),  # Terminal
    NotificationStatus.CANCELLED: set(),  # Terminal
    NotificationStatus.EXPIRED: set(),  # Terminal
}


def aggregate_status(results) -> NotificationStatus:
    """Overall outcome of a fan-out: SENT when any channel succeeded."""
    return NotificationStatus.SENT if any(r.success for r in results) else NotificationStatus.FAILED


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@notifications.aggregate
class NotificationRecord:
    """A single accepted notification request and its dispatch lifecycle."""

    notification_type: String(choices=NotificationType, required=True)
    recipients: Text(required=True)  # JSON list of recipient dicts
    channels: Text(required=True)  # JSON list of NotificationChannel values
    priority: String(choices=NotificationPriority, default=NotificationPriority.MEDIUM.value)
    category: String(choices=NotificationCategory, default=NotificationCategory.TRANSACTIONAL.value)
    template_variables: Text()  # JSON object

    # Request context
    tenant_id: String(max_length=100)
    user_id: String(max_length=100)
    correlation_id: String(max_length=200)
    source: String(max_length=200)
    idempotency_key: String(max_length=255)

    # Scheduling
    scheduled_at: DateTime()
    expires_at: DateTime()
    lane: String(choices=DispatchLane, default=DispatchLane.IMMEDIATE.value)
    batch_id: Identifier()

    # Lifecycle
    status: String(choices=NotificationStatus, default=NotificationStatus.PENDING.value)
    failure_reason: String(max_length=500)
    retry_count: Integer(default=0)
    retry_channels: Text()  # JSON list; None means every requested channel

    # Per-channel breakdown of the last processing cycle
    succeeded_count: Integer(default=0)
    failed_count: Integer(default=0)
    skipped_count: Integer(default=0)

    # Timestamps
    created_at: DateTime()
    queued_at: DateTime()
    processed_at: DateTime()
    completed_at: DateTime()
    updated_at: DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        notification_type,
        recipients,
        channels,
        priority=NotificationPriority.MEDIUM.value,
        category=NotificationCategory.TRANSACTIONAL.value,
        template_variables=None,
        tenant_id=None,
        user_id=None,
        correlation_id=None,
        source=None,
        idempotency_key=None,
        scheduled_at=None,
        expires_at=None,
        lane=DispatchLane.IMMEDIATE.value,
        batch_id=None,
        id=None,
    ):
        """Create a new record in PENDING status.

        ``recipients`` is a list of dicts and ``channels`` a list of channel
        values; both are stored as JSON.
        """
        if not recipients:
            raise ValidationError({"recipients": ["At least one recipient is required"]})
        if not channels:
            raise ValidationError({"channels": ["At least one channel is required"]})
        unknown = [c for c in channels if c not in {ch.value for ch in NotificationChannel}]
        if unknown:
            raise ValidationError({"channels": [f"Unknown channel(s): {', '.join(unknown)}"]})

        now = datetime.now(UTC)
        kwargs = {"id": id} if id else {}

        record = cls(
            notification_type=notification_type,
            recipients=json.dumps(recipients),
            channels=json.dumps(list(channels)),
            priority=priority,
            category=category,
            template_variables=json.dumps(template_variables or {}),
            tenant_id=tenant_id,
            user_id=user_id,
            correlation_id=correlation_id,
            source=source,
            idempotency_key=idempotency_key,
            scheduled_at=scheduled_at,
            expires_at=expires_at,
            lane=lane,
            batch_id=batch_id,
            status=NotificationStatus.PENDING.value,
            retry_count=0,
            created_at=now,
            updated_at=now,
            **kwargs,
        )

        record.raise_(
            NotificationRequested(
                notification_id=str(record.id),
                notification_type=notification_type,
                channels=record.channels,
                priority=priority,
                recipient_count=len(recipients),
                tenant_id=tenant_id,
                scheduled_at=scheduled_at,
                created_at=now,
            )
        )

        return record

    # -------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------
    def recipient_dicts(self) -> list[dict]:
        return json.loads(self.recipients) if self.recipients else []

    def channel_list(self) -> list[str]:
        return json.loads(self.channels) if self.channels else []

    def variables(self) -> dict:
        return json.loads(self.template_variables) if self.template_variables else {}

    def channels_to_attempt(self) -> list[str]:
        """Channels for the current cycle: the retry subset when one is set."""
        if self.retry_channels:
            return json.loads(self.retry_channels)
        return self.channel_list()

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        """Validate state machine transition."""
        current = NotificationStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def schedule(self):
        """Park the record until ``scheduled_at`` is due."""
        self._assert_can_transition(NotificationStatus.SCHEDULED)
        if self.scheduled_at is None:
            raise ValidationError({"scheduled_at": ["A scheduled notification needs scheduled_at"]})

        self.status = NotificationStatus.SCHEDULED.value
        self.updated_at = datetime.now(UTC)

        self.raise_(
            NotificationScheduled(
                notification_id=str(self.id),
                scheduled_at=self.scheduled_at,
            )
        )

    def enqueue(self, lane=None, queued_at=None):
        """Hand the record to a dispatch lane."""
        self._assert_can_transition(NotificationStatus.QUEUED)

        now = queued_at or datetime.now(UTC)
        if lane:
            self.lane = lane
        self.status = NotificationStatus.QUEUED.value
        self.queued_at = now
        self.updated_at = now

        self.raise_(
            NotificationQueued(
                notification_id=str(self.id),
                lane=self.lane,
                queued_at=now,
            )
        )

    def start_processing(self, started_at=None):
        self._assert_can_transition(NotificationStatus.PROCESSING)

        now = started_at or datetime.now(UTC)
        self.status = NotificationStatus.PROCESSING.value
        self.processed_at = now
        self.updated_at = now

        self.raise_(
            NotificationProcessingStarted(
                notification_id=str(self.id),
                started_at=now,
            )
        )

    def complete(self, results, skipped=0, completed_at=None, error=None):
        """Record the outcome of a processing cycle.

        Partial success counts as SENT; the per-channel breakdown is kept in
        the counters so callers can still see what failed.
        """
        target = aggregate_status(results)
        self._assert_can_transition(target)

        now = completed_at or datetime.now(UTC)
        succeeded = sum(1 for r in results if r.success)
        failed = len(results) - succeeded

        self.status = target.value
        self.succeeded_count = succeeded
        self.failed_count = failed
        self.skipped_count = skipped
        self.completed_at = now
        self.updated_at = now

        if target == NotificationStatus.SENT:
            self.failure_reason = None
            self.raise_(
                NotificationSent(
                    notification_id=str(self.id),
                    notification_type=self.notification_type,
                    succeeded_count=succeeded,
                    failed_count=failed,
                    skipped_count=skipped,
                    completed_at=now,
                )
            )
        else:
            errors = [r.error for r in results if r.error]
            if error:
                reason = error[:500]
            elif errors:
                reason = "; ".join(errors)[:500]
            elif skipped:
                reason = "All channels skipped"
            else:
                reason = "No deliverable channels"
            self.failure_reason = reason
            self.raise_(
                NotificationFailed(
                    notification_id=str(self.id),
                    notification_type=self.notification_type,
                    reason=reason,
                    failed_count=failed,
                    skipped_count=skipped,
                    retry_count=self.retry_count,
                    completed_at=now,
                )
            )

    def cancel(self, reason):
        """Cancel a record that has not started processing."""
        self._assert_can_transition(NotificationStatus.CANCELLED)

        now = datetime.now(UTC)
        self.status = NotificationStatus.CANCELLED.value
        self.failure_reason = reason
        self.completed_at = now
        self.updated_at = now

        self.raise_(
            NotificationCancelled(
                notification_id=str(self.id),
                reason=reason,
                cancelled_at=now,
            )
        )

    def expire(self, expired_at=None):
        self._assert_can_transition(NotificationStatus.EXPIRED)

        now = expired_at or datetime.now(UTC)
        self.status = NotificationStatus.EXPIRED.value
        self.failure_reason = "Notification expired before dispatch"
        self.completed_at = now
        self.updated_at = now

        self.raise_(
            NotificationExpired(
                notification_id=str(self.id),
                expired_at=now,
            )
        )

    def retry(self, channels, retried_at=None):
        """Re-queue a failed record for the given still-retryable channels."""
        if NotificationStatus(self.status) != NotificationStatus.FAILED:
            raise ValidationError({"status": ["Only failed notifications can be retried"]})
        if not channels:
            raise ValidationError({"channels": ["Nothing left to retry"]})

        now = retried_at or datetime.now(UTC)
        self.retry_count = self.retry_count + 1
        self.retry_channels = json.dumps(list(channels))
        self.failure_reason = None
        self.status = NotificationStatus.QUEUED.value
        self.queued_at = now
        self.updated_at = now

        self.raise_(
            NotificationRetried(
                notification_id=str(self.id),
                channels=self.retry_channels,
                retry_count=self.retry_count,
                retried_at=now,
            )
        )

    def is_expired(self, now=None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(UTC)
        return as_utc(self.expires_at) <= as_utc(now)

    def is_due(self, now=None) -> bool:
        if self.scheduled_at is None:
            return True
        now = now or datetime.now(UTC)
        return as_utc(self.scheduled_at) <= as_utc(now)


def as_utc(value: datetime) -> datetime:
    """Normalize naive datetimes (as returned by some providers) to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
