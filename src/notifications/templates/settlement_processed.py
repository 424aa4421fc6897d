"""Settlement processed template — payout notice for sellers."""

from notifications.notification.notification import (
    NotificationChannel,
    NotificationType,
)
from notifications.templates.base import DefaultTemplate


class SettlementProcessedTemplate(DefaultTemplate):
    notification_type = NotificationType.SETTLEMENT_PROCESSED.value
    default_channels = [NotificationChannel.EMAIL.value, NotificationChannel.IN_APP.value]

    subject = "Settlement Processed - {{settlementId}}"
    title = "Settlement Processed"
    content = (
        "Your settlement {{#if period}}for the period {{period}} {{/if}}has been processed.\n\n"
        "- Settlement ID: {{settlementId}}\n"
        "- Net Amount: {{currency}} {{amount}}\n"
        "{{#if processedDate}}- Processing Date: {{processedDate}}\n{{/if}}\n"
        "The funds should appear in your account within 1-3 business days."
    )
