"""Payment success template — receipt for a captured payment."""

from notifications.notification.notification import (
    NotificationChannel,
    NotificationType,
)
from notifications.templates.base import DefaultTemplate


class PaymentSuccessTemplate(DefaultTemplate):
    notification_type = NotificationType.PAYMENT_SUCCESS.value
    default_channels = [NotificationChannel.EMAIL.value, NotificationChannel.PUSH.value]

    subject = "Payment Received - {{orderNumber}}"
    title = "Payment Successful"
    content = (
        "We've successfully received your payment for order {{orderNumber}}.\n\n"
        "Payment Details:\n"
        "- Amount: {{currency}} {{amount}}\n"
        "{{#if paymentMethod}}- Payment Method: {{paymentMethod}}\n{{/if}}"
        "- Transaction ID: {{transactionId}}\n\n"
        "Your order is now being processed."
    )
    channel_overrides = {
        NotificationChannel.PUSH.value: {"content": "Payment of {{currency}} {{amount}} received for {{orderNumber}}."},
    }
