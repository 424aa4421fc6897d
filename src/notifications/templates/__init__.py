"""Template registry — maps NotificationType to built-in default templates.

Stored ``NotificationTemplate`` aggregates take precedence; these classes are
the final fallback and also supply each type's recommended channel set.
"""

from notifications.templates.low_stock_alert import LowStockAlertTemplate
from notifications.templates.order_cancelled import OrderCancelledTemplate
from notifications.templates.order_confirmation import OrderConfirmationTemplate
from notifications.templates.order_delivered import OrderDeliveredTemplate
from notifications.templates.order_refunded import OrderRefundedTemplate
from notifications.templates.order_shipped import OrderShippedTemplate
from notifications.templates.password_reset import PasswordResetTemplate
from notifications.templates.payment_success import PaymentSuccessTemplate
from notifications.templates.settlement_processed import SettlementProcessedTemplate
from notifications.templates.welcome import WelcomeTemplate

TEMPLATE_REGISTRY: dict[str, type] = {
    template.notification_type: template
    for template in (
        OrderConfirmationTemplate,
        OrderShippedTemplate,
        OrderDeliveredTemplate,
        OrderCancelledTemplate,
        OrderRefundedTemplate,
        PaymentSuccessTemplate,
        LowStockAlertTemplate,
        SettlementProcessedTemplate,
        WelcomeTemplate,
        PasswordResetTemplate,
    )
}


def get_default_template(notification_type: str):
    """Look up a built-in template class by notification type, or None."""
    return TEMPLATE_REGISTRY.get(notification_type)
