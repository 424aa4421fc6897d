"""Error taxonomy for notification delivery.

Domain rule violations (bad state transitions, malformed preferences) use
Protean's ``ValidationError``. The classes here describe delivery-time
failures and how each one is treated by the orchestrator and the router.
"""


class NotificationError(Exception):
    """Base class for delivery errors."""

    retryable = False


class TransientProviderError(NotificationError):
    """Network failure, timeout or 5xx from a provider. Retried per policy."""

    retryable = True


class PermanentRecipientError(NotificationError):
    """Invalid address or token. Terminal for that channel only."""


class RateLimitExceeded(NotificationError):
    """A channel budget was exhausted. The channel is skipped for this cycle."""

    def __init__(self, key, channel, window):
        self.key = key
        self.channel = channel
        self.window = window
        super().__init__(f"Rate limit exceeded for {key} on {channel} ({window})")


class ConfigurationError(NotificationError):
    """A channel provider is missing credentials or is otherwise unusable."""


class StoreUnavailable(NotificationError):
    """The shared key-value store could not be reached."""
