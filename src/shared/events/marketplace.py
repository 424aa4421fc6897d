"""Cross-domain event contracts for marketplace domain events.

These classes define the event shape published by the ordering, payment,
inventory and settlement services. The Notifications domain consumes them
to notify buyers and sellers and to fan the events out to webhook
subscribers. They are registered as external events via
domain.register_external_event() with matching __type__ strings.
"""

from protean.core.event import BaseEvent
from protean.fields import DateTime, Float, Identifier, Integer, String, Text


class OrderCreated(BaseEvent):
    """A buyer placed an order.

    Consumed by the Notifications domain to send the order confirmation.
    """

    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    user_id = Identifier(required=True)
    customer_name = String()
    items = Text()  # JSON list of {name, quantity, price}
    total_amount = Float(required=True)
    currency = String(default="INR")
    tenant_id = String()
    correlation_id = String()
    created_at = DateTime(required=True)


class PaymentSucceeded(BaseEvent):
    """A payment for an order was captured."""

    __version__ = "v1"

    payment_id = Identifier(required=True)
    order_number = String(required=True)
    user_id = Identifier(required=True)
    amount = Float(required=True)
    currency = String(default="INR")
    payment_method = String()
    transaction_id = String()
    tenant_id = String()
    correlation_id = String()
    paid_at = DateTime(required=True)


class LowStockDetected(BaseEvent):
    """A seller's product variant fell to or below its reorder threshold."""

    __version__ = "v1"

    alert_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    product_name = String(required=True)
    sku = String()
    current_stock = Integer(required=True)
    threshold = Integer(required=True)
    tenant_id = String()
    correlation_id = String()
    detected_at = DateTime(required=True)


class SettlementProcessed(BaseEvent):
    """A seller payout was settled to their bank account."""

    __version__ = "v1"

    settlement_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    net_amount = Float(required=True)
    currency = String(default="INR")
    period = String()
    account_number = String()  # masked
    tenant_id = String()
    correlation_id = String()
    processed_at = DateTime(required=True)
