"""SMTP email adapter: sends through any STARTTLS/SSL SMTP relay."""

import smtplib
import ssl
from email.message import EmailMessage
from uuid import uuid4

import structlog
from notifications.channel.email_port import EmailPort
from notifications.errors import ConfigurationError

logger = structlog.get_logger(__name__)


class SmtpEmailAdapter(EmailPort):
    def __init__(self, host, port=587, username=None, password=None, sender=None, use_tls=True, timeout=10):
        if not host:
            raise ConfigurationError("SMTP_HOST is required for the smtp email provider")
        if username and not password:
            raise ConfigurationError("SMTP_PASSWORD is required when SMTP_USERNAME is set")
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.use_tls = use_tls
        self.timeout = timeout

    def _connect(self):
        if self.port == 465:
            return smtplib.SMTP_SSL(self.host, self.port, context=ssl.create_default_context(), timeout=self.timeout)
        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        server.ehlo()
        if self.use_tls:
            server.starttls(context=ssl.create_default_context())
            server.ehlo()
        return server

    def send(self, to: str, subject: str, body: str, html_body: str | None = None) -> dict:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message_id = f"<{uuid4().hex}@{self.host}>"
        message["Message-ID"] = message_id
        message.set_content(body)
        if html_body:
            message.add_alternative(html_body, subtype="html")

        try:
            with self._connect() as server:
                if self.username:
                    server.login(self.username, self.password)
                server.send_message(message)
        except smtplib.SMTPRecipientsRefused as exc:
            return {"message_id": None, "status": "failed", "error": str(exc), "permanent": True}
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("SMTP send failed", host=self.host, error=str(exc))
            return {"message_id": None, "status": "failed", "error": str(exc)}

        return {"message_id": message_id, "status": "sent"}
