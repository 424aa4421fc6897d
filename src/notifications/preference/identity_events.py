"""Inbound cross-domain event handler — Preferences reacts to account events.

Listens for UserRegistered to create the user's default "ALL" preference,
record the contact addresses they signed up with, and send a welcome message.
"""

import structlog
from notifications.domain import notifications
from notifications.notification.notification import NotificationChannel, NotificationType
from notifications.notification.request import NotificationRequest, Recipient, RequestContext
from notifications.preference.management import find_preference
from notifications.preference.preference import ALL_TYPES, NotificationPreference
from notifications.preference.resolver import SYSTEM_DEFAULT_CHANNELS
from notifications.preference.subscription import ChannelSubscription, find_subscription
from notifications.services import get_orchestrator
from protean.utils.globals import current_domain
from protean.utils.mixins import handle
from shared.events.identity import UserRegistered

logger = structlog.get_logger(__name__)

notifications.register_external_event(UserRegistered, "Identity.UserRegistered.v1")


@notifications.event_handler(part_of=NotificationPreference, stream_category="identity::user")
class PreferenceIdentityEventsHandler:
    """Sets up notification defaults when a user registers."""

    @handle(UserRegistered)
    def on_user_registered(self, event: UserRegistered) -> None:
        user_id = str(event.user_id)

        if find_preference(user_id, ALL_TYPES) is None:
            preference = NotificationPreference.create(user_id=user_id, channels=list(SYSTEM_DEFAULT_CHANNELS))
            current_domain.repository_for(NotificationPreference).add(preference)
        else:
            logger.info("Preferences already exist for user", user_id=user_id)

        contacts = {NotificationChannel.EMAIL.value: event.email, NotificationChannel.SMS.value: event.phone}
        for channel, address in contacts.items():
            if address and find_subscription(user_id, channel) is None:
                subscription = ChannelSubscription.create(user_id, channel, address)
                current_domain.repository_for(ChannelSubscription).add(subscription)

        get_orchestrator().send_notification(
            NotificationRequest(
                type=NotificationType.WELCOME.value,
                recipients=[Recipient(user_id=user_id, email=event.email)],
                channels=[NotificationChannel.EMAIL.value],
                template_variables={"userName": event.name, "verificationUrl": event.verification_url},
                context=RequestContext(tenant_id=event.tenant_id, user_id=user_id, source="identity-service"),
                idempotency_key=f"UserRegistered:{user_id}",
            )
        )

        logger.info("Notification defaults created for new user", user_id=user_id)
