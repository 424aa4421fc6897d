"""Provider registry — pluggable email, SMS and push providers.

Provides singleton access to provider adapters. Uses fake adapters by
default; ``EMAIL_PROVIDER=smtp`` switches email to the SMTP adapter. A
provider that fails to configure is replaced by an ``UnconfiguredProvider``
so the rest of the engine keeps working and health reports the problem.
"""

import structlog
from notifications.errors import ConfigurationError
from notifications.notification.notification import NotificationChannel
from notifications.settings import get_settings

logger = structlog.get_logger(__name__)

_channel_instances: dict[str, object] = {}


def _build_email(settings):
    if settings.email_provider == "smtp":
        from notifications.channel.smtp_email import SmtpEmailAdapter

        return SmtpEmailAdapter(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            sender=settings.smtp_from,
            use_tls=settings.smtp_use_tls,
            timeout=settings.provider_timeout_seconds,
        )
    if settings.email_provider == "fake":
        from notifications.channel.fake_email import FakeEmailAdapter

        return FakeEmailAdapter()
    raise ConfigurationError(f"Unknown email provider: {settings.email_provider}")


def _build_sms(settings):
    if settings.sms_provider == "fake":
        from notifications.channel.fake_sms import FakeSMSAdapter

        return FakeSMSAdapter()
    raise ConfigurationError(f"Unknown SMS provider: {settings.sms_provider}")


def _build_push(settings):
    if settings.push_provider == "fake":
        from notifications.channel.fake_push import FakePushAdapter

        return FakePushAdapter()
    raise ConfigurationError(f"Unknown push provider: {settings.push_provider}")


_BUILDERS = {
    NotificationChannel.EMAIL.value: _build_email,
    NotificationChannel.SMS.value: _build_sms,
    NotificationChannel.PUSH.value: _build_push,
}


def get_channel(channel_type: str):
    """Return the configured provider adapter (singleton per channel type).

    Args:
        channel_type: One of "EMAIL", "SMS", "PUSH"
    """
    if channel_type not in _channel_instances:
        builder = _BUILDERS.get(channel_type)
        if builder is None:
            raise ValueError(f"Unknown channel type: {channel_type}")
        try:
            _channel_instances[channel_type] = builder(get_settings())
        except ConfigurationError as exc:
            from notifications.channel.unconfigured import UnconfiguredProvider

            logger.error("Channel provider not configured", channel=channel_type, error=str(exc))
            _channel_instances[channel_type] = UnconfiguredProvider(channel_type, str(exc))

    return _channel_instances[channel_type]


def reset_channels():
    """Reset all channel singletons (useful for testing)."""
    _channel_instances.clear()
