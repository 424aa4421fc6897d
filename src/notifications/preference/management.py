"""Preference management commands + handlers — upsert, quiet hours, delete."""

import json

from notifications.domain import notifications
from notifications.preference.preference import ALL_TYPES, NotificationPreference
from notifications.preference.resolver import system_default_channels
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, String, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle


@notifications.command(part_of="NotificationPreference")
class SetPreference:
    """Create or update a user's preference for a notification type ("ALL" for every type)."""

    user_id: String(required=True, max_length=100)
    notification_type: String(max_length=100, default=ALL_TYPES)
    channels: Text()  # JSON list of channel values
    is_enabled: Boolean()
    frequency: String(max_length=20)
    min_priority: String(max_length=20)
    locale: String(max_length=10)


@notifications.command(part_of="NotificationPreference")
class SetQuietHours:
    """Set a user's do-not-disturb window."""

    user_id: String(required=True, max_length=100)
    notification_type: String(max_length=100, default=ALL_TYPES)
    start: String(required=True, max_length=5)
    end: String(required=True, max_length=5)
    timezone: String(max_length=64, default="UTC")


@notifications.command(part_of="NotificationPreference")
class ClearQuietHours:
    """Remove a user's do-not-disturb window."""

    user_id: String(required=True, max_length=100)
    notification_type: String(max_length=100, default=ALL_TYPES)


@notifications.command(part_of="NotificationPreference")
class DeletePreference:
    user_id: String(required=True, max_length=100)
    notification_type: String(required=True, max_length=100)


def find_preference(user_id, notification_type):
    repo = current_domain.repository_for(NotificationPreference)
    prefs = repo._dao.query.filter(user_id=user_id, notification_type=notification_type).all().items
    return prefs[0] if prefs else None


def _require_preference(user_id, notification_type):
    preference = find_preference(user_id, notification_type)
    if preference is None:
        raise ObjectNotFoundError(f"No {notification_type} preference for user {user_id}")
    return preference


@notifications.command_handler(part_of=NotificationPreference)
class ManagePreferencesHandler:
    @handle(SetPreference)
    def set_preference(self, command: SetPreference):
        repo = current_domain.repository_for(NotificationPreference)
        channels = json.loads(command.channels) if command.channels else None
        preference = find_preference(command.user_id, command.notification_type)

        if preference is None:
            preference = NotificationPreference.create(
                user_id=command.user_id,
                notification_type=command.notification_type,
                channels=channels if channels is not None else system_default_channels(command.notification_type),
                is_enabled=True if command.is_enabled is None else command.is_enabled,
                frequency=command.frequency or "IMMEDIATE",
                min_priority=command.min_priority,
                locale=command.locale or "en",
            )
        else:
            preference.update(
                channels=channels,
                is_enabled=command.is_enabled,
                frequency=command.frequency,
                min_priority=command.min_priority,
                locale=command.locale,
            )

        repo.add(preference)
        return str(preference.id)

    @handle(SetQuietHours)
    def set_quiet_hours(self, command: SetQuietHours):
        repo = current_domain.repository_for(NotificationPreference)
        preference = _require_preference(command.user_id, command.notification_type)
        preference.set_quiet_hours(command.start, command.end, command.timezone or "UTC")
        repo.add(preference)

    @handle(ClearQuietHours)
    def clear_quiet_hours(self, command: ClearQuietHours):
        repo = current_domain.repository_for(NotificationPreference)
        preference = _require_preference(command.user_id, command.notification_type)
        preference.clear_quiet_hours()
        repo.add(preference)

    @handle(DeletePreference)
    def delete_preference(self, command: DeletePreference):
        repo = current_domain.repository_for(NotificationPreference)
        preference = _require_preference(command.user_id, command.notification_type)
        repo._dao.delete(preference)
