"""Cross-domain event contracts for account (identity) events.

Consumed by the Notifications domain to set up default preferences and
contact subscriptions for new users and to send a welcome message. They
are registered as external events via domain.register_external_event()
with matching __type__ strings so Protean's stream deserialization works
correctly.
"""

from protean.core.event import BaseEvent
from protean.fields import DateTime, Identifier, String


class UserRegistered(BaseEvent):
    """A buyer or seller account was created on the marketplace."""

    __version__ = "v1"

    user_id = Identifier(required=True)
    email = String(required=True)
    phone = String()
    name = String()
    role = String(default="BUYER")  # BUYER | SELLER
    tenant_id = String()
    verification_url = String()
    registered_at = DateTime(required=True)
