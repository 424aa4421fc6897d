"""Shared behaviour for fake providers: configurable failures and latency."""

import time


class FakeProviderMixin:
    default_failure_reason = "Delivery failed"

    def _init_fake(self):
        self.should_succeed = True
        self.failure_reason = self.default_failure_reason
        self.permanent = False
        self.delay_seconds = 0.0
        self.call_count = 0

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str | None = None,
        permanent: bool = False,
        delay_seconds: float = 0.0,
    ):
        """Configure the fake adapter behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason or self.default_failure_reason
        self.permanent = permanent
        self.delay_seconds = delay_seconds

    def _before_send(self):
        self.call_count += 1
        if self.delay_seconds:
            time.sleep(self.delay_seconds)
        if not self.should_succeed:
            return {
                "message_id": None,
                "status": "failed",
                "error": self.failure_reason,
                "permanent": self.permanent,
            }
        return None

    def _reset_fake(self):
        self._init_fake()
