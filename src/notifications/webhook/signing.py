"""Webhook payload serialization and HMAC-SHA256 signing."""

import hashlib
import hmac
import json
import secrets

SIGNATURE_PREFIX = "sha256="
USER_AGENT = "Marketplace-Webhooks/1.0"


def generate_secret() -> str:
    return secrets.token_hex(32)


def serialize(payload: dict) -> bytes:
    """Deterministic JSON encoding: sorted keys, no insignificant whitespace."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")


def sign(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(body: bytes | str, signature: str, secret: str) -> bool:
    """Constant-time check of an ``X-Webhook-Signature`` header value."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    if not signature or not secret:
        return False
    return hmac.compare_digest(sign(body, secret), signature)


def build_headers(body: bytes, secret: str, timestamp: str, event_type: str) -> dict:
    return {
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
        "X-Webhook-Event": event_type,
        "X-Webhook-Timestamp": timestamp,
        "X-Webhook-Signature": sign(body, secret),
    }
