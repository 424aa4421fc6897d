"""Order shipped template — sent when the seller hands the parcel to a carrier."""

from notifications.notification.notification import (
    NotificationChannel,
    NotificationType,
)
from notifications.templates.base import DefaultTemplate


class OrderShippedTemplate(DefaultTemplate):
    notification_type = NotificationType.ORDER_SHIPPED.value
    default_channels = [
        NotificationChannel.EMAIL.value,
        NotificationChannel.PUSH.value,
        NotificationChannel.IN_APP.value,
    ]

    subject = "Your Order is on the Way - {{orderNumber}}"
    title = "Order Shipped!"
    content = (
        "Great news! Your order {{orderNumber}} has shipped.\n\n"
        "Carrier: {{carrier}}\n"
        "Tracking Number: {{trackingNumber}}\n"
        "{{#if estimatedDelivery}}Estimated Delivery: {{estimatedDelivery}}\n{{/if}}"
        "{{#if trackingUrl}}\nTrack your package at: {{trackingUrl}}{{/if}}"
    )
    channel_overrides = {
        NotificationChannel.SMS.value: {"content": "Order {{orderNumber}} shipped via {{carrier}}. Tracking: {{trackingNumber}}"},
        NotificationChannel.PUSH.value: {"content": "Order {{orderNumber}} is on the way."},
    }
