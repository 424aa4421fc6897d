"""Template lookup with tenant and locale fallback.

Order: tenant+locale → global+locale → tenant+base locale → global+base
locale → built-in default for the type.
"""

import structlog
from notifications.templates import get_default_template
from notifications.templates.base import TemplateContent
from notifications.templates.template import NotificationTemplate, TemplateStatus
from protean.utils.globals import current_domain

logger = structlog.get_logger(__name__)

BASE_LOCALE = "en"


def _candidates(tenant_id, locale):
    order = [(tenant_id, locale), (None, locale), (tenant_id, BASE_LOCALE), (None, BASE_LOCALE)]
    return list(dict.fromkeys(order))


def get_template(notification_type: str, channel: str, locale: str = BASE_LOCALE, tenant_id: str | None = None):
    """Resolve the content to render for a type on a channel, or None."""
    repo = current_domain.repository_for(NotificationTemplate)
    stored = repo._dao.query.filter(
        notification_type=notification_type,
        channel=channel,
        status=TemplateStatus.ACTIVE.value,
    ).all().items

    for candidate_tenant, candidate_locale in _candidates(tenant_id, locale or BASE_LOCALE):
        matches = [t for t in stored if t.tenant_id == candidate_tenant and t.locale == candidate_locale]
        if matches:
            template = max(matches, key=lambda t: t.version)
            return TemplateContent(
                subject=template.subject,
                title=template.title,
                content=template.content,
                html_content=template.html_content,
                source=f"stored:{template.id}",
                version=template.version,
            )

    default = get_default_template(notification_type)
    if default is not None:
        return default.for_channel(channel)

    logger.warning(
        "No template found",
        notification_type=notification_type,
        channel=channel,
        locale=locale,
        tenant_id=tenant_id,
    )
    return None
