"""Password reset template."""

from notifications.notification.notification import (
    NotificationCategory,
    NotificationChannel,
    NotificationType,
)
from notifications.templates.base import DefaultTemplate


class PasswordResetTemplate(DefaultTemplate):
    notification_type = NotificationType.PASSWORD_RESET.value
    category = NotificationCategory.SECURITY.value
    default_channels = [NotificationChannel.EMAIL.value]

    subject = "Reset Your Password"
    title = "Password Reset Request"
    content = (
        "Hi {{userName}},\n\n"
        "We received a request to reset your password. Use the link below:\n"
        "{{resetUrl}}\n\n"
        "This link will expire in 1 hour. If you didn't request this, please ignore this email."
    )
