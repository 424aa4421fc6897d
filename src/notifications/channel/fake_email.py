"""Fake email adapter — records sent emails for testing."""

from uuid import uuid4

from notifications.channel.email_port import EmailPort
from notifications.channel.fake_provider import FakeProviderMixin


class FakeEmailAdapter(FakeProviderMixin, EmailPort):
    """Email adapter that records messages in memory for test assertions."""

    default_failure_reason = "Email delivery failed"

    def __init__(self):
        self.sent_emails: list[dict] = []
        self._init_fake()

    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> dict:
        failure = self._before_send()
        if failure:
            return failure

        message_id = f"email-{uuid4().hex[:12]}"
        self.sent_emails.append(
            {
                "message_id": message_id,
                "to": to,
                "subject": subject,
                "body": body,
                "html_body": html_body,
            }
        )
        return {"message_id": message_id, "status": "sent"}

    def reset(self):
        """Clear sent emails (useful between tests)."""
        self.sent_emails.clear()
        self._reset_fake()
