"""Order refunded template."""

from notifications.notification.notification import (
    NotificationChannel,
    NotificationType,
)
from notifications.templates.base import DefaultTemplate


class OrderRefundedTemplate(DefaultTemplate):
    notification_type = NotificationType.ORDER_REFUNDED.value
    default_channels = [NotificationChannel.EMAIL.value]

    subject = "Refund Processed - {{orderNumber}}"
    title = "Refund Processed"
    content = (
        "A refund of {{currency}} {{amount}} for order {{orderNumber}} has been processed.\n\n"
        "Please allow 5-10 business days for the refund to appear on your statement."
    )
