"""Notifications bounded context — Marketplace notification delivery engine.

Fans a single logical notification out across Email, SMS, Push, In-App and
Webhook channels while enforcing per-channel rate limits, idempotency keys,
per-user preferences and quiet hours. Consumes marketplace events (orders,
payments, inventory, settlements) and fans them out to registered webhook
subscriptions with signed, retryable delivery.
"""

import structlog
from protean.domain import Domain

notifications = Domain(name="notifications")

logger = structlog.get_logger(__name__)
