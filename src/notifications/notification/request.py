"""Immutable inputs to the orchestrator: recipients and notification requests."""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from types import MappingProxyType

from notifications.notification.notification import (
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
    as_utc,
)
from protean.exceptions import ValidationError

# Which recipient field a channel needs
CHANNEL_ADDRESS_FIELD = {
    NotificationChannel.EMAIL.value: "email",
    NotificationChannel.SMS.value: "phone",
    NotificationChannel.PUSH.value: "device_token",
    NotificationChannel.IN_APP.value: "user_id",
    NotificationChannel.WEBHOOK.value: "webhook_url",
}


@dataclass(frozen=True)
class Recipient:
    """Who to reach. Any subset of addresses; at least one must be present."""

    user_id: str | None = None
    email: str | None = None
    phone: str | None = None
    device_token: str | None = None
    webhook_url: str | None = None

    def __post_init__(self):
        if not any(getattr(self, f.name) for f in fields(self)):
            raise ValidationError({"recipients": ["Recipient needs a user_id, email, phone, device_token or webhook_url"]})

    @property
    def key(self) -> str:
        """Stable identity used for rate limiting, dedup and attempt rows."""
        return self.user_id or self.email or self.phone or self.device_token or self.webhook_url

    def address_for(self, channel: str) -> str | None:
        return getattr(self, CHANNEL_ADDRESS_FIELD[channel])

    def with_contacts(self, **contacts) -> "Recipient":
        """Fill in missing addresses without overriding the ones given explicitly."""
        missing = {k: v for k, v in contacts.items() if v and not getattr(self, k)}
        return replace(self, **missing) if missing else self

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name)}

    @classmethod
    def from_dict(cls, data: dict) -> "Recipient":
        return cls(**{f.name: data.get(f.name) for f in fields(cls)})


@dataclass(frozen=True)
class RequestContext:
    tenant_id: str | None = None
    user_id: str | None = None
    correlation_id: str | None = None
    source: str | None = None


@dataclass(frozen=True)
class NotificationRequest:
    """A request to notify one or more recipients over one or more channels."""

    type: str
    recipients: tuple[Recipient, ...]
    channels: tuple[str, ...]
    priority: str = NotificationPriority.MEDIUM.value
    category: str = NotificationCategory.TRANSACTIONAL.value
    template_variables: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))
    context: RequestContext = field(default_factory=RequestContext)
    scheduled_at: datetime | None = None
    expires_at: datetime | None = None
    idempotency_key: str | None = None
    strict_idempotency: bool = False

    def __post_init__(self):
        # Accept lists and plain dicts from callers; store immutable copies.
        object.__setattr__(self, "recipients", tuple(self.recipients))
        object.__setattr__(self, "channels", tuple(self.channels))
        object.__setattr__(self, "template_variables", MappingProxyType(dict(self.template_variables)))

        errors = {}
        if self.type not in {t.value for t in NotificationType}:
            errors["type"] = [f"Unknown notification type: {self.type}"]
        if not self.recipients:
            errors["recipients"] = ["At least one recipient is required"]
        if not self.channels:
            errors["channels"] = ["At least one channel is required"]
        unknown = [c for c in self.channels if c not in CHANNEL_ADDRESS_FIELD]
        if unknown:
            errors["channels"] = [f"Unknown channel(s): {', '.join(unknown)}"]
        if self.priority not in {p.value for p in NotificationPriority}:
            errors["priority"] = [f"Unknown priority: {self.priority}"]
        if self.scheduled_at and self.expires_at and as_utc(self.expires_at) <= as_utc(self.scheduled_at):
            errors["expires_at"] = ["expires_at must be after scheduled_at"]
        if errors:
            raise ValidationError(errors)
