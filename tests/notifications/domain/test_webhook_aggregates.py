"""Tests for webhook subscriptions, delivery attempts, backoff and signing."""

from datetime import UTC, datetime, timedelta

import pytest
from notifications.webhook.attempt import WebhookAttemptStatus, WebhookDeliveryAttempt
from notifications.webhook.backoff import RetryBackoff, retry_delay
from notifications.webhook.events import (
    WebhookDelivered,
    WebhookDeliveryFailed,
    WebhookRetryScheduled,
    WebhookSubscriptionCreated,
)
from notifications.webhook.signing import build_headers, serialize, sign, verify_signature
from notifications.webhook.subscription import WebhookSubscription
from protean.exceptions import ValidationError

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


def _subscription(**overrides):
    defaults = {"user_id": "seller-1", "url": "https://seller.example.com/hooks", "events": ["order.created"]}
    defaults.update(overrides)
    return WebhookSubscription.create(**defaults)


def _attempt():
    payload = {"id": "evt-1", "type": "order.created", "timestamp": NOW.isoformat(), "data": {"orderId": "o-1"}}
    return WebhookDeliveryAttempt.create("sub-1", "evt-1", "order.created", payload)


class TestWebhookSubscription:
    def test_create_generates_secret(self):
        sub = _subscription()
        assert len(sub.secret) == 64
        assert sub.is_active is True
        assert any(isinstance(e, WebhookSubscriptionCreated) for e in sub._events)

    def test_create_keeps_given_secret(self):
        assert _subscription(secret="s3cret").secret == "s3cret"

    @pytest.mark.parametrize("url", ["ftp://example.com/hook", "not a url", "https://"])
    def test_rejects_invalid_url(self, url):
        with pytest.raises(ValidationError) as exc:
            _subscription(url=url)
        assert "url" in exc.value.messages

    def test_requires_events(self):
        with pytest.raises(ValidationError):
            _subscription(events=[])

    def test_listens_only_to_subscribed_events_while_active(self):
        sub = _subscription(events=["order.created", "payment.success"])
        assert sub.listens_to("payment.success") is True
        assert sub.listens_to("inventory.low-stock") is False
        sub.update(is_active=False)
        assert sub.listens_to("payment.success") is False

    def test_update_validates_url(self):
        sub = _subscription()
        with pytest.raises(ValidationError):
            sub.update(url="mailto:x@example.com")

    def test_health_counters(self):
        sub = _subscription()
        sub.record_failure(NOW)
        sub.record_failure(NOW)
        assert sub.consecutive_failures == 2
        sub.record_success(NOW)
        assert sub.consecutive_failures == 0
        assert sub.last_success_at == NOW


class TestDeliveryAttempt:
    def test_starts_pending(self):
        attempt = _attempt()
        assert attempt.status == WebhookAttemptStatus.PENDING.value
        assert attempt.attempts == 0
        assert attempt.is_terminal is False
        assert attempt.payload_dict()["data"] == {"orderId": "o-1"}

    def test_succeed(self):
        attempt = _attempt()
        attempt.succeed(200, "ok", NOW)
        assert attempt.status == WebhookAttemptStatus.SUCCESS.value
        assert attempt.attempts == 1
        assert attempt.is_terminal is True
        assert any(isinstance(e, WebhookDelivered) for e in attempt._events)

    def test_fail_schedules_retry_while_budget_remains(self):
        sub = _subscription(max_retries=3)
        attempt = _attempt()
        attempt.fail(sub, 503, "unavailable", None, NOW)
        assert attempt.status == WebhookAttemptStatus.PENDING.value
        assert attempt.attempts == 1
        assert attempt.next_retry_at == NOW + timedelta(seconds=1)
        assert attempt.error == "HTTP 503"
        assert any(isinstance(e, WebhookRetryScheduled) for e in attempt._events)

    def test_exponential_gap_grows(self):
        sub = _subscription(max_retries=5)
        attempt = _attempt()
        attempt.fail(sub, 500, None, None, NOW)
        attempt.fail(sub, 500, None, None, NOW)
        assert attempt.next_retry_at == NOW + timedelta(seconds=2)

    def test_fail_dead_letters_on_last_try(self):
        sub = _subscription(max_retries=2)
        attempt = _attempt()
        attempt.fail(sub, None, None, "connection refused", NOW)
        attempt.fail(sub, None, None, "connection refused", NOW)
        assert attempt.status == WebhookAttemptStatus.FAILED.value
        assert attempt.next_retry_at is None
        assert attempt.error == "connection refused"
        assert any(isinstance(e, WebhookDeliveryFailed) for e in attempt._events)

    def test_abandon(self):
        attempt = _attempt()
        attempt.abandon("Subscription is inactive", NOW)
        assert attempt.status == WebhookAttemptStatus.FAILED.value
        assert attempt.attempts == 0


class TestRetryDelay:
    def test_exponential(self):
        delays = [retry_delay(n, RetryBackoff.EXPONENTIAL.value, 2.0, 300) for n in (1, 2, 3, 4)]
        assert delays == [1.0, 2.0, 4.0, 8.0]

    def test_linear(self):
        delays = [retry_delay(n, RetryBackoff.LINEAR.value, 2.0, 300, base_delay=5) for n in (1, 2, 3)]
        assert delays == [5, 10, 15]

    def test_capped_at_max_delay(self):
        assert retry_delay(20, RetryBackoff.EXPONENTIAL.value, 2.0, 300) == 300


class TestSigning:
    def test_serialize_is_deterministic(self):
        assert serialize({"b": 1, "a": [1, 2]}) == b'{"a":[1,2],"b":1}'

    def test_sign_and_verify(self):
        body = serialize({"id": "evt-1"})
        signature = sign(body, "secret")
        assert signature.startswith("sha256=")
        assert verify_signature(body, signature, "secret") is True
        assert verify_signature(body.decode(), signature, "secret") is True

    def test_tampered_body_fails(self):
        signature = sign(b'{"amount":100}', "secret")
        assert verify_signature(b'{"amount":900}', signature, "secret") is False

    def test_wrong_secret_or_missing_signature_fails(self):
        body = b"{}"
        assert verify_signature(body, sign(body, "a"), "b") is False
        assert verify_signature(body, "", "a") is False

    def test_headers(self):
        body = serialize({"id": "evt-1"})
        headers = build_headers(body, "secret", NOW.isoformat(), "order.created")
        assert headers["X-Webhook-Event"] == "order.created"
        assert headers["X-Webhook-Timestamp"] == NOW.isoformat()
        assert verify_signature(body, headers["X-Webhook-Signature"], "secret")
