"""Order cancelled template."""

from notifications.notification.notification import (
    NotificationChannel,
    NotificationType,
)
from notifications.templates.base import DefaultTemplate


class OrderCancelledTemplate(DefaultTemplate):
    notification_type = NotificationType.ORDER_CANCELLED.value
    default_channels = [NotificationChannel.EMAIL.value, NotificationChannel.IN_APP.value]

    subject = "Order {{orderNumber}} Cancelled"
    title = "Order Cancelled"
    content = (
        "Your order {{orderNumber}} has been cancelled."
        "{{#if reason}}\n\nReason: {{reason}}{{/if}}\n\n"
        "If a payment was taken, a refund will be issued to the original payment method."
    )
