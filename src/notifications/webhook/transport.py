"""Outbound HTTP transport for webhook deliveries."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx
import structlog
from notifications.settings import get_settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TransportResponse:
    status_code: int | None
    body: str | None = None
    error: str | None = None
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 300


class WebhookTransport(ABC):
    @abstractmethod
    def post(self, url: str, body: bytes, headers: dict, timeout: float) -> TransportResponse:
        """POST ``body`` and return the response; transport errors are returned, not raised."""
        ...


class HttpxTransport(WebhookTransport):
    def __init__(self):
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialize HTTP client."""
        if self._client is None:
            self._client = httpx.Client(follow_redirects=False)
        return self._client

    def post(self, url, body, headers, timeout):
        started = time.monotonic()
        try:
            response = self.client.post(url, content=body, headers=headers, timeout=timeout)
        except httpx.TimeoutException as exc:
            return TransportResponse(status_code=None, error=f"timeout: {exc}", elapsed_ms=_elapsed(started))
        except httpx.HTTPError as exc:
            logger.warning("Webhook transport error", url=url, error=str(exc))
            return TransportResponse(status_code=None, error=str(exc), elapsed_ms=_elapsed(started))

        return TransportResponse(
            status_code=response.status_code,
            body=response.text[:2000],
            elapsed_ms=_elapsed(started),
        )

    def close(self):
        if self._client is not None:
            self._client.close()
            self._client = None


class FakeTransport(WebhookTransport):
    """Records requests; responds with a configurable status sequence."""

    def __init__(self):
        self.requests: list[dict] = []
        self.responses: list[int | None] = []
        self.default_status = 200

    def respond_with(self, *statuses):
        """Queue statuses for the next calls; ``None`` simulates a connection error."""
        self.responses.extend(statuses)

    def post(self, url, body, headers, timeout):
        self.requests.append({"url": url, "body": body, "headers": dict(headers), "timeout": timeout})
        status = self.responses.pop(0) if self.responses else self.default_status
        if status is None:
            return TransportResponse(status_code=None, error="connection refused")
        return TransportResponse(status_code=status, body="ok" if 200 <= status < 300 else "error")

    def reset(self):
        self.requests.clear()
        self.responses.clear()
        self.default_status = 200


def _elapsed(started):
    return int((time.monotonic() - started) * 1000)


_transport: WebhookTransport | None = None


def get_transport() -> WebhookTransport:
    global _transport
    if _transport is None:
        _transport = FakeTransport() if get_settings().webhook_transport == "fake" else HttpxTransport()
    return _transport


def set_transport(transport: WebhookTransport | None):
    global _transport
    _transport = transport
