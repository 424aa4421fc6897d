"""Application tests for the cross-domain event handlers."""

import json
from datetime import UTC, datetime

from notifications.inbox.inbox import get_user_notifications
from notifications.notification.marketplace_events import (
    InventoryEventsHandler,
    OrderEventsHandler,
    PaymentEventsHandler,
    SettlementEventsHandler,
)
from notifications.notification.notification import NotificationRecord, NotificationStatus
from notifications.preference.identity_events import PreferenceIdentityEventsHandler
from notifications.preference.management import find_preference
from notifications.preference.subscription import ChannelSubscription, find_subscription
from notifications.webhook.attempt import WebhookDeliveryAttempt
from notifications.webhook.subscription import WebhookSubscription
from protean import current_domain
from shared.events.identity import UserRegistered
from shared.events.marketplace import LowStockDetected, OrderCreated, PaymentSucceeded, SettlementProcessed


def _subscribe_email(user_id, address):
    current_domain.repository_for(ChannelSubscription).add(ChannelSubscription.create(user_id, "EMAIL", address))


def _webhook(*events, tenant_id=None):
    subscription = WebhookSubscription.create(
        user_id="seller-1", url="https://seller.example.com/hooks", events=list(events), tenant_id=tenant_id
    )
    current_domain.repository_for(WebhookSubscription).add(subscription)
    return subscription


def _records():
    return current_domain.repository_for(NotificationRecord)._dao.query.all().items


def _webhook_attempts():
    return current_domain.repository_for(WebhookDeliveryAttempt)._dao.query.all().items


def _order_created(**overrides):
    data = {
        "order_id": "order-001",
        "order_number": "ORD-001",
        "user_id": "buyer-1",
        "customer_name": "Asha",
        "items": json.dumps([{"name": "Kettle", "quantity": 1, "price": 1499}]),
        "total_amount": 1499.0,
        "currency": "INR",
        "tenant_id": "seller-1",
        "created_at": datetime.now(UTC),
    }
    data.update(overrides)
    return OrderCreated(**data)


class TestOrderCreatedHandler:
    def test_confirms_order_to_buyer(self, email):
        _subscribe_email("buyer-1", "asha@example.com")

        OrderEventsHandler().on_order_created(_order_created())

        record = _records()[0]
        assert record.notification_type == "ORDER_CONFIRMATION"
        assert record.idempotency_key == "OrderCreated:order-001"
        assert record.status == NotificationStatus.SENT.value
        assert email.sent_emails[0]["to"] == "asha@example.com"
        assert "Kettle x 1" in email.sent_emails[0]["body"]
        assert get_user_notifications("buyer-1")[0].notification_type == "ORDER_CONFIRMATION"

    def test_fans_out_to_webhook_subscribers(self, transport):
        _webhook("order.created")

        OrderEventsHandler().on_order_created(_order_created())

        body = json.loads(transport.requests[0]["body"])
        assert body["id"] == "order-001"
        assert body["type"] == "order.created"
        assert body["data"]["orderNumber"] == "ORD-001"

    def test_redelivered_event_is_handled_once(self, email, transport):
        _subscribe_email("buyer-1", "asha@example.com")
        _webhook("order.created")

        OrderEventsHandler().on_order_created(_order_created())
        OrderEventsHandler().on_order_created(_order_created())

        assert len(_records()) == 1
        assert len(email.sent_emails) == 1
        assert len(_webhook_attempts()) == 1
        assert len(transport.requests) == 1


class TestOtherMarketplaceEvents:
    def test_payment_succeeded(self, email, transport):
        _subscribe_email("buyer-2", "ravi@example.com")
        _webhook("payment.success")

        PaymentEventsHandler().on_payment_succeeded(
            PaymentSucceeded(
                payment_id="pay-1",
                order_number="ORD-002",
                user_id="buyer-2",
                amount=250.0,
                payment_method="UPI",
                paid_at=datetime.now(UTC),
            )
        )

        assert _records()[0].notification_type == "PAYMENT_SUCCESS"
        assert email.sent_emails[0]["to"] == "ravi@example.com"
        assert json.loads(transport.requests[0]["body"])["type"] == "payment.success"

    def test_low_stock_alerts_the_seller(self):
        InventoryEventsHandler().on_low_stock(
            LowStockDetected(
                alert_id="alert-1",
                variant_id="var-1",
                seller_id="seller-7",
                product_name="Steel Kettle",
                sku="KET-01",
                current_stock=2,
                threshold=5,
                detected_at=datetime.now(UTC),
            )
        )

        inbox = get_user_notifications("seller-7")
        assert inbox[0].notification_type == "LOW_STOCK_ALERT"
        assert "Steel Kettle" in inbox[0].content

    def test_settlement_processed(self):
        SettlementEventsHandler().on_settlement_processed(
            SettlementProcessed(
                settlement_id="stl-1",
                seller_id="seller-8",
                net_amount=10250.5,
                period="2026-09",
                processed_at=datetime.now(UTC),
            )
        )

        record = _records()[0]
        assert record.notification_type == "SETTLEMENT_PROCESSED"
        assert record.variables()["processedDate"] == datetime.now(UTC).date().isoformat()


class TestUserRegisteredHandler:
    def _event(self, **overrides):
        data = {
            "user_id": "user-100",
            "email": "new@example.com",
            "phone": "+919800000100",
            "name": "Meera",
            "registered_at": datetime.now(UTC),
        }
        data.update(overrides)
        return UserRegistered(**data)

    def test_creates_default_preference(self):
        PreferenceIdentityEventsHandler().on_user_registered(self._event())

        preference = find_preference("user-100", "ALL")
        assert preference is not None
        assert set(preference.channel_list()) == {"IN_APP", "EMAIL"}

    def test_records_contact_subscriptions(self):
        PreferenceIdentityEventsHandler().on_user_registered(self._event())

        assert find_subscription("user-100", "EMAIL").address == "new@example.com"
        assert find_subscription("user-100", "SMS").address == "+919800000100"

    def test_sends_welcome_email(self, email):
        PreferenceIdentityEventsHandler().on_user_registered(self._event())

        assert email.sent_emails[0]["subject"] == "Welcome to the Marketplace, Meera!"

    def test_redelivery_is_idempotent(self, email):
        handler = PreferenceIdentityEventsHandler()
        handler.on_user_registered(self._event())
        handler.on_user_registered(self._event())

        assert len(email.sent_emails) == 1
        subscriptions = current_domain.repository_for(ChannelSubscription)._dao.query.filter(user_id="user-100").all()
        assert subscriptions.total == 2
