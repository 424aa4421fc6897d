"""ChannelSubscription aggregate + commands — per-user contact addresses.

A subscription holds the address a user registered for a channel (email
address, phone number, device token, webhook URL). The orchestrator uses
it to complete recipients that only carry a ``user_id``.
"""

from datetime import UTC, datetime

from notifications.domain import notifications
from notifications.notification.notification import NotificationChannel
from notifications.notification.request import CHANNEL_ADDRESS_FIELD
from notifications.preference.events import ChannelSubscribed, ChannelUnsubscribed
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, DateTime, String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle


@notifications.aggregate
class ChannelSubscription:
    user_id: String(required=True, max_length=100)
    channel: String(choices=NotificationChannel, required=True)
    address: String(required=True, max_length=500)
    is_active: Boolean(default=True)
    created_at: DateTime()
    updated_at: DateTime()

    @classmethod
    def create(cls, user_id, channel, address):
        if channel == NotificationChannel.IN_APP.value:
            raise ValidationError({"channel": ["In-app delivery needs no address"]})
        now = datetime.now(UTC)
        subscription = cls(
            user_id=user_id,
            channel=channel,
            address=address,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        subscription.raise_(
            ChannelSubscribed(
                subscription_id=str(subscription.id),
                user_id=user_id,
                channel=channel,
                subscribed_at=now,
            )
        )
        return subscription

    def resubscribe(self, address):
        now = datetime.now(UTC)
        self.address = address
        self.is_active = True
        self.updated_at = now
        self.raise_(
            ChannelSubscribed(
                subscription_id=str(self.id),
                user_id=self.user_id,
                channel=self.channel,
                subscribed_at=now,
            )
        )

    def unsubscribe(self):
        if not self.is_active:
            raise ValidationError({"is_active": [f"Not subscribed to {self.channel}"]})
        now = datetime.now(UTC)
        self.is_active = False
        self.updated_at = now
        self.raise_(
            ChannelUnsubscribed(
                subscription_id=str(self.id),
                user_id=self.user_id,
                channel=self.channel,
                unsubscribed_at=now,
            )
        )


def find_subscription(user_id, channel):
    repo = current_domain.repository_for(ChannelSubscription)
    matches = repo._dao.query.filter(user_id=user_id, channel=channel).all().items
    return matches[0] if matches else None


def contact_addresses(user_id) -> dict:
    """Active addresses for ``user_id`` keyed by recipient field name."""
    repo = current_domain.repository_for(ChannelSubscription)
    subscriptions = repo._dao.query.filter(user_id=user_id, is_active=True).all().items
    return {CHANNEL_ADDRESS_FIELD[s.channel]: s.address for s in subscriptions}


@notifications.command(part_of="ChannelSubscription")
class SubscribeToChannel:
    """Register or replace the address a user receives a channel on."""

    user_id: String(required=True, max_length=100)
    channel: String(required=True, max_length=20)
    address: String(required=True, max_length=500)


@notifications.command(part_of="ChannelSubscription")
class UnsubscribeFromChannel:
    user_id: String(required=True, max_length=100)
    channel: String(required=True, max_length=20)


@notifications.command_handler(part_of=ChannelSubscription)
class ManageChannelSubscriptionsHandler:
    @handle(SubscribeToChannel)
    def subscribe(self, command: SubscribeToChannel):
        repo = current_domain.repository_for(ChannelSubscription)
        subscription = find_subscription(command.user_id, command.channel)
        if subscription is None:
            subscription = ChannelSubscription.create(command.user_id, command.channel, command.address)
        else:
            subscription.resubscribe(command.address)
        repo.add(subscription)
        return str(subscription.id)

    @handle(UnsubscribeFromChannel)
    def unsubscribe(self, command: UnsubscribeFromChannel):
        subscription = find_subscription(command.user_id, command.channel)
        if subscription is None:
            raise ObjectNotFoundError(f"No {command.channel} subscription for user {command.user_id}")
        subscription.unsubscribe()
        current_domain.repository_for(ChannelSubscription).add(subscription)
