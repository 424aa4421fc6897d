"""Built-in default templates: the last stop of the template lookup.

Each default is a class describing the content for one notification type.
Channel-specific variants (short SMS copy, push titles) go in
``channel_overrides``. ``default_channels`` doubles as the system default
channel set for users with no stored preference.
"""

from dataclasses import dataclass

from notifications.notification.notification import (
    NotificationCategory,
    NotificationChannel,
)
from notifications.templates.renderer import RenderedContent, render


@dataclass(frozen=True)
class TemplateContent:
    """Content of a resolved template, whatever its origin."""

    content: str
    subject: str | None = None
    title: str | None = None
    html_content: str | None = None
    source: str = "default"
    version: int = 1


class DefaultTemplate:
    notification_type: str
    category = NotificationCategory.TRANSACTIONAL.value
    default_channels = [NotificationChannel.IN_APP.value, NotificationChannel.EMAIL.value]

    subject: str | None = None
    title: str | None = None
    content: str = ""
    html_content: str | None = None
    channel_overrides: dict = {}

    @classmethod
    def for_channel(cls, channel: str) -> TemplateContent:
        parts = {
            "subject": cls.subject,
            "title": cls.title,
            "content": cls.content,
            "html_content": cls.html_content if channel == NotificationChannel.EMAIL.value else None,
        }
        parts.update(cls.channel_overrides.get(channel, {}))
        return TemplateContent(source=f"default:{cls.__name__}", **parts)

    @classmethod
    def render(cls, context: dict, channel: str = NotificationChannel.EMAIL.value) -> RenderedContent:
        return render(cls.for_channel(channel), context)
