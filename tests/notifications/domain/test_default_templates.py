"""Tests for the built-in default templates."""

from notifications.notification.notification import NotificationChannel, NotificationType
from notifications.templates import TEMPLATE_REGISTRY, get_default_template
from notifications.templates.order_confirmation import OrderConfirmationTemplate
from notifications.templates.welcome import WelcomeTemplate


class TestTemplateRegistry:
    def test_registry_keys_by_notification_type(self):
        assert get_default_template(NotificationType.ORDER_CONFIRMATION.value) is OrderConfirmationTemplate
        assert get_default_template(NotificationType.WELCOME.value) is WelcomeTemplate

    def test_unknown_type_has_no_default(self):
        assert get_default_template(NotificationType.MARKETING_CAMPAIGN.value) is None

    def test_every_default_has_content_and_channels(self):
        for template in TEMPLATE_REGISTRY.values():
            assert template.content
            assert template.default_channels


class TestForChannel:
    def test_email_keeps_html(self):
        content = OrderConfirmationTemplate.for_channel(NotificationChannel.EMAIL.value)
        assert content.html_content is not None
        assert content.source == "default:OrderConfirmationTemplate"

    def test_sms_uses_short_override_without_html(self):
        content = OrderConfirmationTemplate.for_channel(NotificationChannel.SMS.value)
        assert content.html_content is None
        assert content.content.startswith("Your order {{orderNumber}}")


class TestRendering:
    def test_order_confirmation_email(self):
        rendered = OrderConfirmationTemplate.render(
            {
                "orderNumber": "ORD-1001",
                "customerName": "Asha",
                "totalAmount": 1499,
                "currency": "INR",
                "items": [{"name": "Kettle", "quantity": 1, "price": 1499}],
            }
        )
        assert rendered.subject == "Order Confirmation - ORD-1001"
        assert "Hi Asha" in rendered.content
        assert "- Kettle x 1 = 1499" in rendered.content
        assert "Total: INR 1499" in rendered.content
        assert "<li>Kettle x 1 = 1499</li>" in rendered.html_content

    def test_welcome_without_name(self):
        rendered = WelcomeTemplate.render({})
        assert rendered.subject == "Welcome to the Marketplace, there!"
        assert "verify" not in rendered.content
