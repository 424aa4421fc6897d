"""Fake SMS adapter — records sent messages for testing."""

from uuid import uuid4

from notifications.channel.fake_provider import FakeProviderMixin
from notifications.channel.sms_port import SMSPort


class FakeSMSAdapter(FakeProviderMixin, SMSPort):
    default_failure_reason = "SMS delivery failed"

    def __init__(self):
        self.sent_messages: list[dict] = []
        self._init_fake()

    def send(self, to: str, body: str) -> dict:
        failure = self._before_send()
        if failure:
            return failure

        message_id = f"sms-{uuid4().hex[:12]}"
        self.sent_messages.append({"message_id": message_id, "to": to, "body": body})
        return {"message_id": message_id, "status": "sent"}

    def reset(self):
        self.sent_messages.clear()
        self._reset_fake()
