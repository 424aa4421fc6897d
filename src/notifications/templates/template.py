"""NotificationTemplate aggregate: stored, versioned, per-tenant templates.

A template is addressed by (type, channel, locale, tenant). Tenant-less
templates are global. Revising content bumps ``version``; archiving takes
a template out of lookup without deleting it.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from notifications.domain import notifications
from notifications.notification.notification import NotificationChannel, NotificationType
from notifications.templates.renderer import extract_variables
from protean.exceptions import ValidationError
from protean.fields import DateTime, Integer, String, Text


class TemplateStatus(Enum):
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


@notifications.event(part_of="NotificationTemplate")
class TemplateCreated:
    __version__ = "v1"

    template_id: String(required=True)
    notification_type: String(required=True)
    channel: String(required=True)
    locale: String(required=True)
    tenant_id: String()
    created_at: DateTime(required=True)


@notifications.event(part_of="NotificationTemplate")
class TemplateRevised:
    __version__ = "v1"

    template_id: String(required=True)
    version: Integer(required=True)
    revised_at: DateTime(required=True)


@notifications.event(part_of="NotificationTemplate")
class TemplateArchived:
    __version__ = "v1"

    template_id: String(required=True)
    archived_at: DateTime(required=True)


@notifications.aggregate
class NotificationTemplate:
    name: String(required=True, max_length=200)
    notification_type: String(choices=NotificationType, required=True)
    channel: String(choices=NotificationChannel, required=True)
    locale: String(max_length=10, default="en")
    tenant_id: String(max_length=100)  # None → global template

    subject: String(max_length=500)
    title: String(max_length=200)
    content: Text(required=True)
    html_content: Text()
    variables: Text()  # JSON list of variable names

    version: Integer(default=1)
    status: String(choices=TemplateStatus, default=TemplateStatus.ACTIVE.value)

    created_at: DateTime()
    updated_at: DateTime()

    @classmethod
    def create(
        cls,
        name,
        notification_type,
        channel,
        content,
        locale="en",
        tenant_id=None,
        subject=None,
        title=None,
        html_content=None,
    ):
        now = datetime.now(UTC)
        template = cls(
            name=name,
            notification_type=notification_type,
            channel=channel,
            locale=locale,
            tenant_id=tenant_id,
            subject=subject,
            title=title,
            content=content,
            html_content=html_content,
            variables=json.dumps(_variables_of(subject, title, content, html_content)),
            version=1,
            status=TemplateStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
        )
        template.raise_(
            TemplateCreated(
                template_id=str(template.id),
                notification_type=notification_type,
                channel=channel,
                locale=locale,
                tenant_id=tenant_id,
                created_at=now,
            )
        )
        return template

    def revise(self, subject=None, title=None, content=None, html_content=None):
        """Replace any of the content parts and bump the version."""
        if TemplateStatus(self.status) == TemplateStatus.ARCHIVED:
            raise ValidationError({"status": ["Archived templates cannot be revised"]})
        if subject is None and title is None and content is None and html_content is None:
            raise ValidationError({"content": ["Nothing to revise"]})

        now = datetime.now(UTC)
        if subject is not None:
            self.subject = subject
        if title is not None:
            self.title = title
        if content is not None:
            self.content = content
        if html_content is not None:
            self.html_content = html_content
        self.variables = json.dumps(_variables_of(self.subject, self.title, self.content, self.html_content))
        self.version = self.version + 1
        self.updated_at = now

        self.raise_(TemplateRevised(template_id=str(self.id), version=self.version, revised_at=now))

    def archive(self):
        if TemplateStatus(self.status) == TemplateStatus.ARCHIVED:
            raise ValidationError({"status": ["Template is already archived"]})
        now = datetime.now(UTC)
        self.status = TemplateStatus.ARCHIVED.value
        self.updated_at = now
        self.raise_(TemplateArchived(template_id=str(self.id), archived_at=now))

    def variable_list(self) -> list[str]:
        return json.loads(self.variables) if self.variables else []


def _variables_of(*parts):
    names = []
    for part in parts:
        for name in extract_variables(part):
            if name not in names:
                names.append(name)
    return names
