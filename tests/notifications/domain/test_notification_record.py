"""Tests for NotificationRecord creation, accessors and time checks."""

from datetime import UTC, datetime, timedelta

import pytest
from notifications.channel.port import DeliveryResult
from notifications.notification.events import NotificationRequested
from notifications.notification.notification import (
    NotificationPriority,
    NotificationRecord,
    NotificationStatus,
    aggregate_status,
    as_utc,
)
from protean.exceptions import ValidationError


def _make(**overrides):
    defaults = {
        "notification_type": "PAYMENT_SUCCESS",
        "recipients": [{"user_id": "buyer-7"}],
        "channels": ["EMAIL", "PUSH"],
        "template_variables": {"amount": 499, "currency": "INR"},
        "tenant_id": "tenant-a",
    }
    defaults.update(overrides)
    return NotificationRecord.create(**defaults)


class TestNotificationRecordCreation:
    def test_create_starts_pending(self):
        record = _make()
        assert record.status == NotificationStatus.PENDING.value
        assert record.priority == NotificationPriority.MEDIUM.value
        assert record.retry_count == 0
        assert record.created_at is not None

    def test_create_stores_json_fields(self):
        record = _make()
        assert record.recipient_dicts() == [{"user_id": "buyer-7"}]
        assert record.channel_list() == ["EMAIL", "PUSH"]
        assert record.variables() == {"amount": 499, "currency": "INR"}

    def test_create_accepts_explicit_id(self):
        record = _make(id="fixed-id-1")
        assert str(record.id) == "fixed-id-1"

    def test_create_raises_requested_event(self):
        record = _make()
        events = [e for e in record._events if isinstance(e, NotificationRequested)]
        assert len(events) == 1
        assert events[0].recipient_count == 1
        assert events[0].tenant_id == "tenant-a"

    def test_requires_recipients(self):
        with pytest.raises(ValidationError) as exc:
            _make(recipients=[])
        assert "recipients" in exc.value.messages

    def test_requires_channels(self):
        with pytest.raises(ValidationError) as exc:
            _make(channels=[])
        assert "channels" in exc.value.messages

    def test_rejects_unknown_channel(self):
        with pytest.raises(ValidationError) as exc:
            _make(channels=["EMAIL", "PIGEON"])
        assert "PIGEON" in str(exc.value)

    def test_rejects_unknown_type(self):
        with pytest.raises(ValidationError):
            _make(notification_type="NOT_A_TYPE")


class TestTimeChecks:
    def test_no_expiry_never_expires(self):
        assert _make().is_expired() is False

    def test_expired_when_past_expires_at(self):
        now = datetime.now(UTC)
        record = _make(expires_at=now - timedelta(minutes=1))
        assert record.is_expired(now) is True

    def test_due_without_schedule(self):
        assert _make().is_due() is True

    def test_not_due_before_scheduled_at(self):
        now = datetime.now(UTC)
        record = _make(scheduled_at=now + timedelta(minutes=5))
        assert record.is_due(now) is False
        assert record.is_due(now + timedelta(minutes=5)) is True

    def test_as_utc_treats_naive_as_utc(self):
        naive = datetime(2024, 1, 1, 12, 0)
        assert as_utc(naive) == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


class TestAggregateStatus:
    def test_any_success_is_sent(self):
        results = [DeliveryResult.failed("SMS", "x"), DeliveryResult.sent("EMAIL")]
        assert aggregate_status(results) == NotificationStatus.SENT

    def test_no_results_is_failed(self):
        assert aggregate_status([]) == NotificationStatus.FAILED
