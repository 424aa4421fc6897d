"""Template management commands + handler — publish and archive stored templates.

Publishing content for a (type, channel, locale, tenant) slot that already
holds an active template revises it in place and bumps its version.
"""

from notifications.domain import notifications
from notifications.templates.template import NotificationTemplate, TemplateStatus
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle


@notifications.command(part_of="NotificationTemplate")
class PublishTemplate:
    name: String(required=True, max_length=200)
    notification_type: String(required=True, max_length=100)
    channel: String(required=True, max_length=20)
    locale: String(max_length=10, default="en")
    tenant_id: String(max_length=100)
    subject: String(max_length=500)
    title: String(max_length=200)
    content: Text(required=True)
    html_content: Text()


@notifications.command(part_of="NotificationTemplate")
class ArchiveTemplate:
    template_id: Identifier(required=True)


def find_active_template(notification_type, channel, locale, tenant_id):
    repo = current_domain.repository_for(NotificationTemplate)
    candidates = repo._dao.query.filter(
        notification_type=notification_type,
        channel=channel,
        locale=locale,
        status=TemplateStatus.ACTIVE.value,
    ).all().items
    matches = [t for t in candidates if t.tenant_id == tenant_id]
    return max(matches, key=lambda t: t.version) if matches else None


@notifications.command_handler(part_of=NotificationTemplate)
class TemplateManagementHandler:
    @handle(PublishTemplate)
    def publish(self, command: PublishTemplate) -> dict:
        repo = current_domain.repository_for(NotificationTemplate)
        locale = command.locale or "en"
        template = find_active_template(command.notification_type, command.channel, locale, command.tenant_id)

        if template is None:
            template = NotificationTemplate.create(
                name=command.name,
                notification_type=command.notification_type,
                channel=command.channel,
                content=command.content,
                locale=locale,
                tenant_id=command.tenant_id,
                subject=command.subject,
                title=command.title,
                html_content=command.html_content,
            )
        else:
            template.revise(
                subject=command.subject,
                title=command.title,
                content=command.content,
                html_content=command.html_content,
            )

        repo.add(template)
        return {"template_id": str(template.id), "version": template.version}

    @handle(ArchiveTemplate)
    def archive(self, command: ArchiveTemplate):
        repo = current_domain.repository_for(NotificationTemplate)
        template = repo.get(command.template_id)
        template.archive()
        repo.add(template)
