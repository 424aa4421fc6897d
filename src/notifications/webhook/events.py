"""Domain events for webhook subscriptions and deliveries."""

from notifications.domain import notifications
from protean.fields import DateTime, Identifier, Integer, String, Text


@notifications.event(part_of="WebhookSubscription")
class WebhookSubscriptionCreated:
    __version__ = "v1"

    subscription_id: Identifier(required=True)
    user_id: String(required=True)
    url: String(required=True)
    events: Text(required=True)  # JSON list
    created_at: DateTime(required=True)


@notifications.event(part_of="WebhookSubscription")
class WebhookSubscriptionUpdated:
    __version__ = "v1"

    subscription_id: Identifier(required=True)
    updated_at: DateTime(required=True)


@notifications.event(part_of="WebhookDeliveryAttempt")
class WebhookDelivered:
    __version__ = "v1"

    attempt_id: Identifier(required=True)
    subscription_id: Identifier(required=True)
    event_type: String(required=True)
    response_status: Integer()
    attempts: Integer(required=True)
    delivered_at: DateTime(required=True)


@notifications.event(part_of="WebhookDeliveryAttempt")
class WebhookRetryScheduled:
    __version__ = "v1"

    attempt_id: Identifier(required=True)
    subscription_id: Identifier(required=True)
    attempts: Integer(required=True)
    next_retry_at: DateTime(required=True)
    error: String()


@notifications.event(part_of="WebhookDeliveryAttempt")
class WebhookDeliveryFailed:
    """Retries exhausted; the attempt is dead-lettered."""

    __version__ = "v1"

    attempt_id: Identifier(required=True)
    subscription_id: Identifier(required=True)
    event_type: String(required=True)
    attempts: Integer(required=True)
    error: String()
    failed_at: DateTime(required=True)
