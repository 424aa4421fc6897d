"""Placeholder provider for a channel whose real provider failed to configure."""

from notifications.errors import ConfigurationError


class UnconfiguredProvider:
    """Fails every send immediately with the original configuration error."""

    def __init__(self, channel: str, reason: str):
        self.channel = channel
        self.reason = reason

    def send(self, *args, **kwargs) -> dict:
        raise ConfigurationError(f"{self.channel} provider is not configured: {self.reason}")

    def health(self) -> dict:
        return {"status": "not_configured", "detail": self.reason}
