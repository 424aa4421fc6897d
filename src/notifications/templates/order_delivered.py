"""Order delivered template — confirms the parcel reached the buyer."""

from notifications.notification.notification import (
    NotificationChannel,
    NotificationType,
)
from notifications.templates.base import DefaultTemplate


class OrderDeliveredTemplate(DefaultTemplate):
    notification_type = NotificationType.ORDER_DELIVERED.value
    default_channels = [NotificationChannel.EMAIL.value, NotificationChannel.PUSH.value]

    subject = "Delivered - {{orderNumber}}"
    title = "Order Delivered"
    content = (
        "Your order {{orderNumber}} has been delivered"
        "{{#if deliveredAt}} on {{deliveredAt}}{{/if}}.\n\n"
        "We hope you enjoy your purchase!"
    )
