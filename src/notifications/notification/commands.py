"""Notification commands + handler — cancel a record and drive the scanners.

The scanner commands let a cron job or an operator trigger one pass of the
orchestrator's periodic work through the domain's command pipeline.
"""

from datetime import UTC, datetime

from notifications.domain import notifications
from notifications.notification.notification import NotificationRecord
from notifications.services import get_orchestrator, get_webhook_engine
from protean.fields import DateTime, Identifier, String
from protean.utils.mixins import handle


@notifications.command(part_of="NotificationRecord")
class CancelNotification:
    """Request to cancel a pending, queued or scheduled notification."""

    notification_id: Identifier(required=True)
    reason: String(required=True, max_length=500)


@notifications.command(part_of="NotificationRecord")
class ProcessScheduledNotifications:
    """Release due scheduled notifications and recover stuck queued ones."""

    as_of: DateTime()  # Optional: process as of this time (defaults to now)


@notifications.command(part_of="NotificationRecord")
class RetryFailedNotifications:
    as_of: DateTime()


@notifications.command(part_of="NotificationRecord")
class RetryWebhookDeliveries:
    as_of: DateTime()


@notifications.command(part_of="NotificationRecord")
class CleanupNotifications:
    """Delete terminal records past the retention window."""

    as_of: DateTime()


@notifications.command_handler(part_of=NotificationRecord)
class NotificationOperationsHandler:
    @handle(CancelNotification)
    def cancel_notification(self, command: CancelNotification):
        get_orchestrator().cancel(command.notification_id, command.reason)

    @handle(ProcessScheduledNotifications)
    def process_scheduled(self, command: ProcessScheduledNotifications) -> dict:
        return get_orchestrator().process_scheduled(command.as_of or datetime.now(UTC))

    @handle(RetryFailedNotifications)
    def retry_failed(self, command: RetryFailedNotifications) -> int:
        return get_orchestrator().retry_failed(command.as_of or datetime.now(UTC))

    @handle(RetryWebhookDeliveries)
    def retry_webhooks(self, command: RetryWebhookDeliveries) -> int:
        return get_webhook_engine().retry_due(command.as_of or datetime.now(UTC))

    @handle(CleanupNotifications)
    def cleanup(self, command: CleanupNotifications) -> int:
        return get_orchestrator().cleanup(command.as_of or datetime.now(UTC))
