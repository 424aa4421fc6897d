import json
import time

import pytest
from notifications.channel.port import ChannelSender, DeliveryResult
from notifications.channel.router import ChannelRouter
from notifications.channel.senders import WebhookSender, default_senders
from notifications.errors import ConfigurationError, PermanentRecipientError, TransientProviderError
from notifications.notification.notification import NotificationRecord
from notifications.notification.request import Recipient
from notifications.templates.renderer import RenderedContent


class StubSender(ChannelSender):
    def __init__(self, channel, behaviour=None):
        self.channel = channel
        self.behaviour = behaviour
        self.calls = 0

    def send(self, recipient, content, notification):
        self.calls += 1
        if self.behaviour is None:
            return DeliveryResult.sent(self.channel, f"{self.channel.lower()}-1", recipient.key)
        return self.behaviour()


def _senders(**overrides):
    senders = {c: StubSender(c) for c in ("EMAIL", "SMS", "PUSH", "IN_APP", "WEBHOOK")}
    senders.update(overrides)
    return senders


def _raise(exc):
    def behaviour():
        raise exc

    return behaviour


@pytest.fixture
def content():
    return RenderedContent(content="Your order shipped", subject="Shipped", title="Shipped")


@pytest.fixture
def recipient():
    return Recipient(user_id="u1", email="u1@example.com", phone="+15550000", webhook_url="https://hooks.example.com/in")


@pytest.fixture
def router_factory():
    routers = []

    def build(senders, timeout=10.0):
        router = ChannelRouter(senders, timeout=timeout)
        routers.append(router)
        return router

    yield build
    for router in routers:
        router.shutdown()


class TestRegistry:
    def test_every_channel_needs_a_sender(self):
        senders = _senders()
        del senders["PUSH"]
        with pytest.raises(ConfigurationError, match="PUSH"):
            ChannelRouter(senders)

    def test_default_senders_cover_all_channels(self):
        assert set(default_senders()) == {"EMAIL", "SMS", "PUSH", "IN_APP", "WEBHOOK"}


class TestDelivery:
    def test_success_passes_through(self, router_factory, recipient, content):
        router = router_factory(_senders())
        result = router.deliver("EMAIL", recipient, content, None)

        assert result.success is True
        assert result.message_id == "email-1"
        assert result.recipient_key == "u1"

    def test_missing_address_is_permanent(self, router_factory, content):
        push = StubSender("PUSH")
        router = router_factory(_senders(PUSH=push))

        result = router.deliver("PUSH", Recipient(email="a@example.com"), content, None)

        assert result.success is False
        assert result.retryable is False
        assert result.error == "Recipient has no PUSH address"
        assert push.calls == 0

    def test_transient_error_is_retryable(self, router_factory, recipient, content):
        router = router_factory(_senders(SMS=StubSender("SMS", _raise(TransientProviderError("gateway 503")))))
        result = router.deliver("SMS", recipient, content, None)

        assert result.success is False
        assert result.retryable is True
        assert result.error == "gateway 503"

    def test_permanent_error_is_not_retryable(self, router_factory, recipient, content):
        router = router_factory(_senders(SMS=StubSender("SMS", _raise(PermanentRecipientError("invalid number")))))
        result = router.deliver("SMS", recipient, content, None)

        assert result.retryable is False
        assert result.error == "invalid number"

    def test_configuration_error_is_not_retryable(self, router_factory, recipient, content):
        router = router_factory(_senders(EMAIL=StubSender("EMAIL", _raise(ConfigurationError("SMTP host missing")))))
        result = router.deliver("EMAIL", recipient, content, None)

        assert result.success is False
        assert result.retryable is False

    def test_unexpected_error_never_escapes(self, router_factory, recipient, content):
        router = router_factory(_senders(EMAIL=StubSender("EMAIL", _raise(KeyError("boom")))))
        result = router.deliver("EMAIL", recipient, content, None)

        assert result.success is False
        assert result.retryable is True
        assert result.error.startswith("KeyError")

    def test_slow_provider_times_out(self, router_factory, recipient, content):
        def slow():
            time.sleep(0.5)
            return DeliveryResult.sent("EMAIL", "late")

        router = router_factory(_senders(EMAIL=StubSender("EMAIL", slow)), timeout=0.05)
        result = router.deliver("EMAIL", recipient, content, None)

        assert result.success is False
        assert result.retryable is True
        assert result.error == "Timed out after 0.05s"


class TestHealth:
    def test_reports_each_channel(self, router_factory):
        report = router_factory(_senders()).health()
        assert set(report) == {"EMAIL", "SMS", "PUSH", "IN_APP", "WEBHOOK"}
        assert all(h.healthy for h in report.values())

    def test_failing_health_check_is_unhealthy(self, router_factory):
        class Flaky(StubSender):
            def health(self):
                raise RuntimeError("provider API down")

        report = router_factory(_senders(SMS=Flaky("SMS"))).health()
        assert report["SMS"].status == "unhealthy"
        assert report["SMS"].detail == "provider API down"


class TestWebhookChannel:
    @pytest.fixture
    def record(self):
        return NotificationRecord.create(
            notification_type="ORDER_SHIPPED",
            recipients=[{"webhook_url": "https://hooks.example.com/in"}],
            channels=["WEBHOOK"],
            template_variables={"orderNumber": "ORD-5"},
        )

    def test_posts_rendered_payload(self, transport, record, content):
        result = WebhookSender().send(Recipient(webhook_url="https://hooks.example.com/in"), content, record)

        assert result.success is True
        request = transport.requests[0]
        assert request["url"] == "https://hooks.example.com/in"
        payload = json.loads(request["body"])
        assert payload["type"] == "ORDER_SHIPPED"
        assert payload["data"]["content"] == "Your order shipped"
        assert payload["data"]["variables"] == {"orderNumber": "ORD-5"}

    def test_client_error_is_permanent(self, transport, record, content):
        transport.respond_with(410)
        with pytest.raises(PermanentRecipientError):
            WebhookSender().send(Recipient(webhook_url="https://hooks.example.com/in"), content, record)

    @pytest.mark.parametrize("status", [429, 503, None])
    def test_throttling_server_error_and_network_failure_are_transient(self, transport, record, content, status):
        transport.respond_with(status)
        with pytest.raises(TransientProviderError):
            WebhookSender().send(Recipient(webhook_url="https://hooks.example.com/in"), content, record)
