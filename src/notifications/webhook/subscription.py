"""WebhookSubscription aggregate: an endpoint that receives marketplace events."""

import json
from datetime import UTC, datetime
from urllib.parse import urlparse

from notifications.domain import notifications
from notifications.webhook.backoff import RetryBackoff
from notifications.webhook.events import (
    WebhookSubscriptionCreated,
    WebhookSubscriptionUpdated,
)
from notifications.webhook.signing import generate_secret
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String, Text


def _validate_url(url):
    parsed = urlparse(url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError({"url": [f"Invalid webhook URL: {url}"]})


def _validate_events(events):
    if not events:
        raise ValidationError({"events": ["Subscribe to at least one event type"]})


@notifications.aggregate
class WebhookSubscription:
    user_id: String(required=True, max_length=100)
    tenant_id: String(max_length=100)
    url: String(required=True, max_length=1000)
    events: Text(required=True)  # JSON list of event types
    secret: String(required=True, max_length=128)
    is_active: Boolean(default=True)

    timeout_seconds: Integer(default=30)
    max_retries: Integer(default=3)
    retry_backoff: String(choices=RetryBackoff, default=RetryBackoff.EXPONENTIAL.value)
    retry_multiplier: Float(default=2.0)
    max_retry_delay_seconds: Integer(default=300)

    # Health
    consecutive_failures: Integer(default=0)
    last_success_at: DateTime()
    last_failure_at: DateTime()

    created_at: DateTime()
    updated_at: DateTime()

    @classmethod
    def create(
        cls,
        user_id,
        url,
        events,
        secret=None,
        tenant_id=None,
        timeout_seconds=30,
        max_retries=3,
        retry_backoff=RetryBackoff.EXPONENTIAL.value,
        retry_multiplier=2.0,
        max_retry_delay_seconds=300,
    ):
        _validate_url(url)
        _validate_events(events)
        now = datetime.now(UTC)

        subscription = cls(
            user_id=user_id,
            tenant_id=tenant_id,
            url=url,
            events=json.dumps(list(events)),
            secret=secret or generate_secret(),
            is_active=True,
            timeout_seconds=timeout_seconds,
            max_retries=max_retries,
            retry_backoff=retry_backoff,
            retry_multiplier=retry_multiplier,
            max_retry_delay_seconds=max_retry_delay_seconds,
            consecutive_failures=0,
            created_at=now,
            updated_at=now,
        )
        subscription.raise_(
            WebhookSubscriptionCreated(
                subscription_id=str(subscription.id),
                user_id=user_id,
                url=url,
                events=subscription.events,
                created_at=now,
            )
        )
        return subscription

    def event_list(self) -> list[str]:
        return json.loads(self.events) if self.events else []

    def listens_to(self, event_type) -> bool:
        return self.is_active and event_type in self.event_list()

    def update(self, url=None, events=None, is_active=None, timeout_seconds=None, max_retries=None,
               retry_backoff=None, retry_multiplier=None, max_retry_delay_seconds=None):
        if url is not None:
            _validate_url(url)
            self.url = url
        if events is not None:
            _validate_events(events)
            self.events = json.dumps(list(events))
        if is_active is not None:
            self.is_active = is_active
        if timeout_seconds is not None:
            self.timeout_seconds = timeout_seconds
        if max_retries is not None:
            self.max_retries = max_retries
        if retry_backoff is not None:
            self.retry_backoff = retry_backoff
        if retry_multiplier is not None:
            self.retry_multiplier = retry_multiplier
        if max_retry_delay_seconds is not None:
            self.max_retry_delay_seconds = max_retry_delay_seconds

        self.updated_at = datetime.now(UTC)
        self.raise_(WebhookSubscriptionUpdated(subscription_id=str(self.id), updated_at=self.updated_at))

    def record_success(self, at):
        self.consecutive_failures = 0
        self.last_success_at = at
        self.updated_at = at

    def record_failure(self, at):
        self.consecutive_failures = (self.consecutive_failures or 0) + 1
        self.last_failure_at = at
        self.updated_at = at
