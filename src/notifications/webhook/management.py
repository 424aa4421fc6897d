"""Webhook subscription commands, handlers and queries."""

import json

from notifications.domain import notifications
from notifications.webhook.subscription import WebhookSubscription
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle


@notifications.command(part_of="WebhookSubscription")
class CreateWebhookSubscription:
    user_id: String(required=True, max_length=100)
    tenant_id: String(max_length=100)
    url: String(required=True, max_length=1000)
    events: Text(required=True)  # JSON list of event types
    secret: String(max_length=128)
    timeout_seconds: Integer(default=30)
    max_retries: Integer(default=3)
    retry_backoff: String(max_length=20, default="EXPONENTIAL")
    retry_multiplier: Float(default=2.0)
    max_retry_delay_seconds: Integer(default=300)


@notifications.command(part_of="WebhookSubscription")
class UpdateWebhookSubscription:
    subscription_id: Identifier(required=True)
    user_id: String(required=True, max_length=100)
    url: String(max_length=1000)
    events: Text()
    is_active: Boolean()
    timeout_seconds: Integer()
    max_retries: Integer()
    retry_backoff: String(max_length=20)
    retry_multiplier: Float()
    max_retry_delay_seconds: Integer()


@notifications.command(part_of="WebhookSubscription")
class DeleteWebhookSubscription:
    subscription_id: Identifier(required=True)
    user_id: String(required=True, max_length=100)


def list_subscriptions(user_id) -> list:
    repo = current_domain.repository_for(WebhookSubscription)
    return repo._dao.query.filter(user_id=user_id).order_by("created_at").all().items


def _owned(subscription_id, user_id):
    subscription = current_domain.repository_for(WebhookSubscription).get(subscription_id)
    if subscription.user_id != user_id:
        raise ObjectNotFoundError(f"Webhook subscription {subscription_id} not found")
    return subscription


@notifications.command_handler(part_of=WebhookSubscription)
class WebhookSubscriptionHandler:
    @handle(CreateWebhookSubscription)
    def create(self, command: CreateWebhookSubscription) -> str:
        subscription = WebhookSubscription.create(
            user_id=command.user_id,
            tenant_id=command.tenant_id,
            url=command.url,
            events=json.loads(command.events),
            secret=command.secret,
            timeout_seconds=command.timeout_seconds,
            max_retries=command.max_retries,
            retry_backoff=command.retry_backoff,
            retry_multiplier=command.retry_multiplier,
            max_retry_delay_seconds=command.max_retry_delay_seconds,
        )
        current_domain.repository_for(WebhookSubscription).add(subscription)
        return str(subscription.id)

    @handle(UpdateWebhookSubscription)
    def update(self, command: UpdateWebhookSubscription):
        subscription = _owned(command.subscription_id, command.user_id)
        subscription.update(
            url=command.url,
            events=json.loads(command.events) if command.events else None,
            is_active=command.is_active,
            timeout_seconds=command.timeout_seconds,
            max_retries=command.max_retries,
            retry_backoff=command.retry_backoff,
            retry_multiplier=command.retry_multiplier,
            max_retry_delay_seconds=command.max_retry_delay_seconds,
        )
        current_domain.repository_for(WebhookSubscription).add(subscription)

    @handle(DeleteWebhookSubscription)
    def delete(self, command: DeleteWebhookSubscription):
        subscription = _owned(command.subscription_id, command.user_id)
        current_domain.repository_for(WebhookSubscription)._dao.delete(subscription)
