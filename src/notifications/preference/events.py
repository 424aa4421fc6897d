"""Domain events for the NotificationPreference and ChannelSubscription aggregates."""

from notifications.domain import notifications
from protean.fields import Boolean, DateTime, Identifier, String, Text


@notifications.event(part_of="NotificationPreference")
class PreferenceCreated:
    """A user stored a preference for a notification type (or "ALL")."""

    __version__ = "v1"

    preference_id: Identifier(required=True)
    user_id: String(required=True)
    notification_type: String(required=True)
    channels: Text(required=True)  # JSON list
    is_enabled: Boolean(required=True)
    created_at: DateTime(required=True)


@notifications.event(part_of="NotificationPreference")
class PreferenceUpdated:
    __version__ = "v1"

    preference_id: Identifier(required=True)
    user_id: String(required=True)
    notification_type: String(required=True)
    channels: Text(required=True)
    is_enabled: Boolean(required=True)
    frequency: String(required=True)
    min_priority: String()
    updated_at: DateTime(required=True)


@notifications.event(part_of="NotificationPreference")
class QuietHoursSet:
    """A user set their do-not-disturb window."""

    __version__ = "v1"

    preference_id: Identifier(required=True)
    user_id: String(required=True)
    start: String(required=True)
    end: String(required=True)
    timezone: String(required=True)
    updated_at: DateTime(required=True)


@notifications.event(part_of="NotificationPreference")
class QuietHoursCleared:
    __version__ = "v1"

    preference_id: Identifier(required=True)
    user_id: String(required=True)
    cleared_at: DateTime(required=True)


@notifications.event(part_of="ChannelSubscription")
class ChannelSubscribed:
    """A user registered (or changed) the address for a channel."""

    __version__ = "v1"

    subscription_id: Identifier(required=True)
    user_id: String(required=True)
    channel: String(required=True)
    subscribed_at: DateTime(required=True)


@notifications.event(part_of="ChannelSubscription")
class ChannelUnsubscribed:
    __version__ = "v1"

    subscription_id: Identifier(required=True)
    user_id: String(required=True)
    channel: String(required=True)
    unsubscribed_at: DateTime(required=True)
