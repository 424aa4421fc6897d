"""Welcome template — sent when a buyer or seller account is created."""

from notifications.notification.notification import (
    NotificationCategory,
    NotificationChannel,
    NotificationType,
)
from notifications.templates.base import DefaultTemplate


class WelcomeTemplate(DefaultTemplate):
    notification_type = NotificationType.WELCOME.value
    category = NotificationCategory.SYSTEM.value
    default_channels = [NotificationChannel.EMAIL.value]

    subject = "Welcome to the Marketplace, {{#if userName}}{{userName}}{{else}}there{{/if}}!"
    title = "Welcome!"
    content = (
        "Hi {{#if userName}}{{userName}}{{else}}there{{/if}},\n\n"
        "Thank you for joining! We're excited to have you.\n"
        "{{#if verificationUrl}}\nPlease verify your email address: {{verificationUrl}}\n{{/if}}"
    )
