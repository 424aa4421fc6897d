"""Inbound cross-domain event handlers — Notifications reacts to marketplace events.

Each event notifies the affected buyer or seller and is fanned out to the
webhook subscribers of the matching event type. The idempotency key is
``{event_name}:{event_id}`` so a redelivered event never notifies twice.
"""

import json

import structlog
from notifications.domain import notifications
from notifications.notification.notification import (
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    NotificationRecord,
    NotificationType,
)
from notifications.notification.request import NotificationRequest, Recipient, RequestContext
from notifications.services import get_orchestrator, get_webhook_engine
from protean.utils.mixins import handle
from shared.events.marketplace import (
    LowStockDetected,
    OrderCreated,
    PaymentSucceeded,
    SettlementProcessed,
)

logger = structlog.get_logger(__name__)

notifications.register_external_event(OrderCreated, "Marketplace.OrderCreated.v1")
notifications.register_external_event(PaymentSucceeded, "Marketplace.PaymentSucceeded.v1")
notifications.register_external_event(LowStockDetected, "Marketplace.LowStockDetected.v1")
notifications.register_external_event(SettlementProcessed, "Marketplace.SettlementProcessed.v1")


def notify_and_publish(event_name, event_id, request_kwargs, webhook_event, webhook_data, tenant_id):
    """Send the user notification, then fan the event out to webhooks."""
    request = NotificationRequest(idempotency_key=f"{event_name}:{event_id}", **request_kwargs)
    notification_id = get_orchestrator().send_notification(request)
    get_webhook_engine().deliver(webhook_event, webhook_data, tenant_id=tenant_id, event_id=str(event_id))

    logger.info(
        "Marketplace event handled",
        event_name=event_name,
        event_id=str(event_id),
        notification_id=notification_id,
    )
    return notification_id


def _context(event, source):
    return RequestContext(tenant_id=event.tenant_id, correlation_id=event.correlation_id, source=source)


@notifications.event_handler(part_of=NotificationRecord, stream_category="marketplace::order")
class OrderEventsHandler:
    @handle(OrderCreated)
    def on_order_created(self, event: OrderCreated) -> None:
        """Confirm the order to the buyer."""
        items = json.loads(event.items) if event.items else []
        notify_and_publish(
            "OrderCreated",
            event.order_id,
            {
                "type": NotificationType.ORDER_CONFIRMATION.value,
                "recipients": [Recipient(user_id=str(event.user_id))],
                "channels": [NotificationChannel.EMAIL.value, NotificationChannel.IN_APP.value],
                "priority": NotificationPriority.HIGH.value,
                "category": NotificationCategory.TRANSACTIONAL.value,
                "template_variables": {
                    "orderNumber": event.order_number,
                    "customerName": event.customer_name,
                    "totalAmount": event.total_amount,
                    "currency": event.currency,
                    "items": items,
                },
                "context": _context(event, "order-service"),
            },
            "order.created",
            {
                "orderId": str(event.order_id),
                "orderNumber": event.order_number,
                "userId": str(event.user_id),
                "totalAmount": event.total_amount,
                "currency": event.currency,
                "items": items,
            },
            event.tenant_id,
        )


@notifications.event_handler(part_of=NotificationRecord, stream_category="marketplace::payment")
class PaymentEventsHandler:
    @handle(PaymentSucceeded)
    def on_payment_succeeded(self, event: PaymentSucceeded) -> None:
        notify_and_publish(
            "PaymentSucceeded",
            event.payment_id,
            {
                "type": NotificationType.PAYMENT_SUCCESS.value,
                "recipients": [Recipient(user_id=str(event.user_id))],
                "channels": [NotificationChannel.EMAIL.value, NotificationChannel.PUSH.value],
                "priority": NotificationPriority.HIGH.value,
                "category": NotificationCategory.TRANSACTIONAL.value,
                "template_variables": {
                    "amount": event.amount,
                    "currency": event.currency,
                    "orderNumber": event.order_number,
                    "paymentMethod": event.payment_method,
                    "transactionId": event.transaction_id,
                },
                "context": _context(event, "payment-service"),
            },
            "payment.success",
            {
                "paymentId": str(event.payment_id),
                "orderNumber": event.order_number,
                "userId": str(event.user_id),
                "amount": event.amount,
                "currency": event.currency,
                "paymentMethod": event.payment_method,
            },
            event.tenant_id,
        )


@notifications.event_handler(part_of=NotificationRecord, stream_category="marketplace::inventory")
class InventoryEventsHandler:
    @handle(LowStockDetected)
    def on_low_stock(self, event: LowStockDetected) -> None:
        """Warn the seller that a variant is running out."""
        notify_and_publish(
            "LowStockDetected",
            event.alert_id,
            {
                "type": NotificationType.LOW_STOCK_ALERT.value,
                "recipients": [Recipient(user_id=str(event.seller_id))],
                "channels": [NotificationChannel.EMAIL.value, NotificationChannel.IN_APP.value],
                "priority": NotificationPriority.MEDIUM.value,
                "category": NotificationCategory.OPERATIONAL.value,
                "template_variables": {
                    "productName": event.product_name,
                    "currentStock": event.current_stock,
                    "threshold": event.threshold,
                    "sku": event.sku,
                },
                "context": _context(event, "inventory-service"),
            },
            "inventory.low-stock",
            {
                "variantId": str(event.variant_id),
                "sellerId": str(event.seller_id),
                "productName": event.product_name,
                "sku": event.sku,
                "currentStock": event.current_stock,
                "threshold": event.threshold,
            },
            event.tenant_id,
        )


@notifications.event_handler(part_of=NotificationRecord, stream_category="marketplace::settlement")
class SettlementEventsHandler:
    @handle(SettlementProcessed)
    def on_settlement_processed(self, event: SettlementProcessed) -> None:
        notify_and_publish(
            "SettlementProcessed",
            event.settlement_id,
            {
                "type": NotificationType.SETTLEMENT_PROCESSED.value,
                "recipients": [Recipient(user_id=str(event.seller_id))],
                "channels": [NotificationChannel.EMAIL.value, NotificationChannel.IN_APP.value],
                "priority": NotificationPriority.HIGH.value,
                "category": NotificationCategory.TRANSACTIONAL.value,
                "template_variables": {
                    "settlementId": str(event.settlement_id),
                    "amount": event.net_amount,
                    "currency": event.currency,
                    "period": event.period,
                    "accountNumber": event.account_number,
                    "processedDate": event.processed_at.date().isoformat() if event.processed_at else None,
                },
                "context": _context(event, "settlement-service"),
            },
            "settlement.processed",
            {
                "settlementId": str(event.settlement_id),
                "sellerId": str(event.seller_id),
                "netAmount": event.net_amount,
                "currency": event.currency,
                "period": event.period,
            },
            event.tenant_id,
        )
