"""Domain events for the in-app inbox."""

from notifications.domain import notifications
from protean.fields import DateTime, Identifier, String


@notifications.event(part_of="InAppNotification")
class InAppNotificationCreated:
    __version__ = "v1"

    in_app_id: Identifier(required=True)
    user_id: String(required=True)
    notification_id: Identifier()
    notification_type: String(required=True)
    created_at: DateTime(required=True)


@notifications.event(part_of="InAppNotification")
class InAppNotificationRead:
    __version__ = "v1"

    in_app_id: Identifier(required=True)
    user_id: String(required=True)
    read_at: DateTime(required=True)

