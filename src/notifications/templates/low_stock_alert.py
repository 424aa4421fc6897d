"""Low stock alert template — sent to the seller who owns the listing."""

from notifications.notification.notification import (
    NotificationCategory,
    NotificationChannel,
    NotificationType,
)
from notifications.templates.base import DefaultTemplate


class LowStockAlertTemplate(DefaultTemplate):
    notification_type = NotificationType.LOW_STOCK_ALERT.value
    category = NotificationCategory.OPERATIONAL.value
    default_channels = [NotificationChannel.EMAIL.value, NotificationChannel.IN_APP.value]

    subject = "Low Stock Alert - {{productName}}"
    title = "Low Stock Alert"
    content = (
        "Your product \"{{productName}}\" (SKU: {{sku}}) is running low on stock.\n\n"
        "Current Stock: {{currentStock}}\n"
        "Threshold: {{threshold}}\n\n"
        "Please restock this item to avoid going out of stock."
    )
