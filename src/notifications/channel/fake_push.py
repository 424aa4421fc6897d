"""Fake push notification adapter — records sent pushes for testing."""

from uuid import uuid4

from notifications.channel.fake_provider import FakeProviderMixin
from notifications.channel.push_port import PushPort


class FakePushAdapter(FakeProviderMixin, PushPort):
    """Push adapter that records notifications in memory for test assertions."""

    default_failure_reason = "Push delivery failed"

    def __init__(self):
        self.sent_pushes: list[dict] = []
        self._init_fake()

    def send(
        self,
        device_token: str,
        title: str,
        body: str,
        data: dict | None = None,
    ) -> dict:
        failure = self._before_send()
        if failure:
            return failure

        message_id = f"push-{uuid4().hex[:12]}"
        self.sent_pushes.append(
            {
                "message_id": message_id,
                "device_token": device_token,
                "title": title,
                "body": body,
                "data": data or {},
            }
        )
        return {"message_id": message_id, "status": "sent"}

    def reset(self):
        self.sent_pushes.clear()
        self._reset_fake()
