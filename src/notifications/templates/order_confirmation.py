"""Order confirmation template — sent to the buyer when an order is placed."""

from notifications.notification.notification import (
    NotificationChannel,
    NotificationType,
)
from notifications.templates.base import DefaultTemplate


class OrderConfirmationTemplate(DefaultTemplate):
    notification_type = NotificationType.ORDER_CONFIRMATION.value
    default_channels = [NotificationChannel.EMAIL.value, NotificationChannel.IN_APP.value]

    subject = "Order Confirmation - {{orderNumber}}"
    title = "Order Confirmed!"
    content = (
        "Hi {{#if customerName}}{{customerName}}{{else}}there{{/if}},\n\n"
        "Thank you for your order! Your order {{orderNumber}} has been confirmed.\n"
        "{{#if items}}\nOrder Details:\n{{#each items}}- {{name}} x {{quantity}} = {{price}}\n{{/each}}{{/if}}"
        "{{#if totalAmount}}\nTotal: {{currency}} {{totalAmount}}\n{{/if}}\n"
        "We'll send you updates as your order progresses."
    )
    html_content = (
        "<h1>Order Confirmed!</h1>"
        "<p>Your order <strong>{{orderNumber}}</strong> has been confirmed.</p>"
        "{{#if items}}<ul>{{#each items}}<li>{{name}} x {{quantity}} = {{price}}</li>{{/each}}</ul>{{/if}}"
        "{{#if totalAmount}}<p>Total: {{currency}} {{totalAmount}}</p>{{/if}}"
    )
    channel_overrides = {
        NotificationChannel.SMS.value: {
            "content": "Your order {{orderNumber}} for {{currency}} {{totalAmount}} has been confirmed.",
        },
        NotificationChannel.PUSH.value: {
            "content": "Your order {{orderNumber}} has been confirmed.",
        },
        NotificationChannel.IN_APP.value: {
            "content": "Your order {{orderNumber}} has been confirmed.",
        },
    }
