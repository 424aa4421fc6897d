"""Domain events for the NotificationRecord and DeliveryAttempt aggregates."""

from notifications.domain import notifications
from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text


@notifications.event(part_of="NotificationRecord")
class NotificationRequested:
    """A notification request was accepted and persisted."""

    __version__ = "v1"

    notification_id: Identifier(required=True)
    notification_type: String(required=True)
    channels: Text(required=True)  # JSON list
    priority: String(required=True)
    recipient_count: Integer(required=True)
    tenant_id: String()
    scheduled_at: DateTime()
    created_at: DateTime(required=True)


@notifications.event(part_of="NotificationRecord")
class NotificationScheduled:
    """The notification is parked until its scheduled time."""

    __version__ = "v1"

    notification_id: Identifier(required=True)
    scheduled_at: DateTime(required=True)


@notifications.event(part_of="NotificationRecord")
class NotificationQueued:
    """The notification was handed to a dispatch lane."""

    __version__ = "v1"

    notification_id: Identifier(required=True)
    lane: String(required=True)
    queued_at: DateTime(required=True)


@notifications.event(part_of="NotificationRecord")
class NotificationProcessingStarted:
    __version__ = "v1"

    notification_id: Identifier(required=True)
    started_at: DateTime(required=True)


@notifications.event(part_of="NotificationRecord")
class NotificationSent:
    """At least one recipient/channel pair was delivered."""

    __version__ = "v1"

    notification_id: Identifier(required=True)
    notification_type: String(required=True)
    succeeded_count: Integer(required=True)
    failed_count: Integer(required=True)
    skipped_count: Integer(required=True)
    completed_at: DateTime(required=True)


@notifications.event(part_of="NotificationRecord")
class NotificationFailed:
    """No recipient/channel pair was delivered in this cycle."""

    __version__ = "v1"

    notification_id: Identifier(required=True)
    notification_type: String(required=True)
    reason: String(required=True)
    failed_count: Integer(required=True)
    skipped_count: Integer(required=True)
    retry_count: Integer(required=True)
    completed_at: DateTime(required=True)


@notifications.event(part_of="NotificationRecord")
class NotificationCancelled:
    __version__ = "v1"

    notification_id: Identifier(required=True)
    reason: String(required=True)
    cancelled_at: DateTime(required=True)


@notifications.event(part_of="NotificationRecord")
class NotificationExpired:
    __version__ = "v1"

    notification_id: Identifier(required=True)
    expired_at: DateTime(required=True)


@notifications.event(part_of="NotificationRecord")
class NotificationRetried:
    """A failed notification was re-queued for its retryable channels."""

    __version__ = "v1"

    notification_id: Identifier(required=True)
    channels: Text(required=True)  # JSON list
    retry_count: Integer(required=True)
    retried_at: DateTime(required=True)


@notifications.event(part_of="DeliveryAttempt")
class DeliveryRecorded:
    """A channel sender produced a terminal result for one recipient/channel pair."""

    __version__ = "v1"

    attempt_id: Identifier(required=True)
    notification_id: Identifier(required=True)
    notification_type: String(required=True)
    channel: String(required=True)
    tenant_id: String()
    success: Boolean(required=True)
    error: String()
    attempts: Integer(required=True)
    recorded_at: DateTime(required=True)
