"""Tests for provider adapters, the provider registry and DeliveryResult."""

import pytest
from notifications.channel import get_channel, reset_channels
from notifications.channel.fake_email import FakeEmailAdapter
from notifications.channel.fake_push import FakePushAdapter
from notifications.channel.fake_sms import FakeSMSAdapter
from notifications.channel.port import ChannelHealth, DeliveryResult
from notifications.channel.smtp_email import SmtpEmailAdapter
from notifications.channel.unconfigured import UnconfiguredProvider
from notifications.errors import ConfigurationError
from notifications.settings import get_settings


class TestFakeEmailAdapter:
    def setup_method(self):
        self.adapter = FakeEmailAdapter()

    def test_send_records_message(self):
        result = self.adapter.send(to="buyer@example.com", subject="Hi", body="Hello")
        assert result["status"] == "sent"
        assert result["message_id"].startswith("email-")
        assert self.adapter.sent_emails[0]["to"] == "buyer@example.com"

    def test_configured_failure(self):
        self.adapter.configure(should_succeed=False, failure_reason="mailbox full", permanent=True)
        result = self.adapter.send(to="buyer@example.com", subject="Hi", body="Hello")
        assert result["status"] == "failed"
        assert result["error"] == "mailbox full"
        assert result["permanent"] is True
        assert self.adapter.sent_emails == []
        assert self.adapter.call_count == 1

    def test_reset(self):
        self.adapter.configure(should_succeed=False)
        self.adapter.send(to="a@example.com", subject="s", body="b")
        self.adapter.reset()
        assert self.adapter.should_succeed is True
        assert self.adapter.call_count == 0


class TestFakeSmsAndPush:
    def test_sms_records_message(self):
        adapter = FakeSMSAdapter()
        adapter.send(to="+919800000001", body="OTP 1234")
        assert adapter.sent_messages[0]["body"] == "OTP 1234"

    def test_push_records_payload(self):
        adapter = FakePushAdapter()
        adapter.send(device_token="tok-1", title="Shipped", body="On its way", data={"orderId": "o-1"})
        assert adapter.sent_pushes[0]["data"] == {"orderId": "o-1"}

    def test_default_health(self):
        assert FakeSMSAdapter().health() == {"status": "healthy", "detail": None}


class TestSmtpConfiguration:
    def test_host_required(self):
        with pytest.raises(ConfigurationError):
            SmtpEmailAdapter(host=None)

    def test_password_required_with_username(self):
        with pytest.raises(ConfigurationError):
            SmtpEmailAdapter(host="smtp.example.com", username="mailer")


class TestProviderRegistry:
    def setup_method(self):
        reset_channels()

    def teardown_method(self):
        reset_channels()
        get_settings.cache_clear()

    def test_singleton_per_channel(self):
        assert get_channel("EMAIL") is get_channel("EMAIL")
        assert isinstance(get_channel("SMS"), FakeSMSAdapter)

    def test_unknown_channel_type(self):
        with pytest.raises(ValueError):
            get_channel("IN_APP")

    def test_misconfigured_provider_is_replaced(self, monkeypatch):
        monkeypatch.setenv("EMAIL_PROVIDER", "smtp")
        monkeypatch.delenv("SMTP_HOST", raising=False)
        get_settings.cache_clear()

        provider = get_channel("EMAIL")
        assert isinstance(provider, UnconfiguredProvider)
        assert provider.health()["status"] == "not_configured"
        with pytest.raises(ConfigurationError):
            provider.send(to="a@example.com", subject="s", body="b")

    def test_unknown_provider_name(self, monkeypatch):
        monkeypatch.setenv("SMS_PROVIDER", "carrier-pigeon")
        get_settings.cache_clear()
        assert isinstance(get_channel("SMS"), UnconfiguredProvider)


class TestResultTypes:
    def test_sent_result(self):
        result = DeliveryResult.sent("EMAIL", "m-1", "buyer-1")
        assert result.success is True
        assert result.delivered_at is not None
        assert result.retryable is False

    def test_failed_result(self):
        result = DeliveryResult.failed("SMS", "timeout", retryable=True)
        assert result.success is False
        assert result.delivered_at is None
        assert result.retryable is True

    def test_health_dict(self):
        health = ChannelHealth(channel="PUSH", status="unhealthy", detail="APNs down")
        assert health.healthy is False
        assert health.to_dict()["detail"] == "APNs down"
