"""InAppNotification aggregate + inbox commands and queries.

The IN_APP channel sender writes one row per delivered in-app message.
Users read, mark and delete their own rows; ownership is checked on every
mutation so one user can never touch another user's inbox.
"""

import json
from datetime import UTC, datetime

from notifications.domain import notifications
from notifications.inbox.events import (
    InAppNotificationCreated,
    InAppNotificationRead,
)
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, DateTime, Identifier, String, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle


@notifications.aggregate
class InAppNotification:
    user_id: String(required=True, max_length=100)
    notification_id: Identifier()
    notification_type: String(required=True, max_length=100)
    title: String(max_length=500)
    content: Text(required=True)
    data: Text()  # JSON template variables
    is_read: Boolean(default=False)
    read_at: DateTime()
    created_at: DateTime()

    @classmethod
    def create(cls, user_id, notification_type, content, title=None, notification_id=None, data=None):
        now = datetime.now(UTC)
        item = cls(
            user_id=user_id,
            notification_id=notification_id,
            notification_type=notification_type,
            title=title,
            content=content,
            data=json.dumps(data or {}, default=str),
            is_read=False,
            created_at=now,
        )
        item.raise_(
            InAppNotificationCreated(
                in_app_id=str(item.id),
                user_id=user_id,
                notification_id=notification_id,
                notification_type=notification_type,
                created_at=now,
            )
        )
        return item

    def mark_read(self):
        if self.is_read:
            return
        self.is_read = True
        self.read_at = datetime.now(UTC)
        self.raise_(
            InAppNotificationRead(
                in_app_id=str(self.id),
                user_id=self.user_id,
                read_at=self.read_at,
            )
        )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
def get_user_notifications(user_id, unread_only=False, limit=50, offset=0):
    """Newest-first page of a user's inbox."""
    repo = current_domain.repository_for(InAppNotification)
    filters = {"user_id": user_id}
    if unread_only:
        filters["is_read"] = False
    items = repo._dao.query.filter(**filters).order_by("-created_at").all().items
    return items[offset : offset + limit]


def get_unread_count(user_id) -> int:
    repo = current_domain.repository_for(InAppNotification)
    return repo._dao.query.filter(user_id=user_id, is_read=False).all().total


def _owned(in_app_id, user_id):
    item = current_domain.repository_for(InAppNotification).get(in_app_id)
    if item.user_id != user_id:
        raise ObjectNotFoundError(f"In-app notification {in_app_id} not found")
    return item


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@notifications.command(part_of="InAppNotification")
class MarkAsRead:
    in_app_id: Identifier(required=True)
    user_id: String(required=True, max_length=100)


@notifications.command(part_of="InAppNotification")
class MarkAllAsRead:
    user_id: String(required=True, max_length=100)


@notifications.command(part_of="InAppNotification")
class DeleteInAppNotification:
    in_app_id: Identifier(required=True)
    user_id: String(required=True, max_length=100)


@notifications.command_handler(part_of=InAppNotification)
class InboxCommandHandler:
    @handle(MarkAsRead)
    def mark_as_read(self, command: MarkAsRead):
        item = _owned(command.in_app_id, command.user_id)
        item.mark_read()
        current_domain.repository_for(InAppNotification).add(item)

    @handle(MarkAllAsRead)
    def mark_all_as_read(self, command: MarkAllAsRead) -> int:
        repo = current_domain.repository_for(InAppNotification)
        unread = repo._dao.query.filter(user_id=command.user_id, is_read=False).all().items
        if not unread:
            return 0

        for item in unread:
            item.mark_read()
            repo.add(item)
        return len(unread)

    @handle(DeleteInAppNotification)
    def delete(self, command: DeleteInAppNotification):
        item = _owned(command.in_app_id, command.user_id)
        current_domain.repository_for(InAppNotification)._dao.delete(item)

