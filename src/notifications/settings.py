"""Runtime settings for the notification engine, read from the environment."""

import os
from dataclasses import dataclass
from functools import lru_cache


def _int(name: str, default: int) -> int:
    return int(os.getenv(name, default))


def _float(name: str, default: float) -> float:
    return float(os.getenv(name, default))


@dataclass(frozen=True)
class Settings:
    # Shared key-value store
    kv_backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"

    # Dedup
    idempotency_ttl_seconds: int = 3600
    content_dedup_window_seconds: int = 300

    # Dispatch scheduler
    scheduler_mode: str = "threaded"
    immediate_concurrency: int = 10
    bulk_concurrency: int = 2
    bulk_batch_size: int = 1000
    bulk_stagger_seconds: float = 1.0
    stale_queued_seconds: int = 300
    record_retention_days: int = 30

    # Delivery
    provider_timeout_seconds: float = 10.0
    max_channel_attempts: int = 3
    retry_window_hours: int = 24
    default_locale: str = "en"

    # Webhooks
    webhook_base_delay_seconds: float = 1.0
    webhook_retry_batch_size: int = 100
    webhook_transport: str = "httpx"

    # Providers
    email_provider: str = "fake"
    sms_provider: str = "fake"
    push_provider: str = "fake"
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_from: str = "notifications@marketplace.local"
    smtp_use_tls: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            kv_backend=os.getenv("KV_BACKEND", "memory").lower(),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            idempotency_ttl_seconds=_int("IDEMPOTENCY_TTL_SECONDS", 3600),
            content_dedup_window_seconds=_int("CONTENT_DEDUP_WINDOW_SECONDS", 300),
            scheduler_mode=os.getenv("SCHEDULER_MODE", "threaded").lower(),
            immediate_concurrency=_int("IMMEDIATE_CONCURRENCY", 10),
            bulk_concurrency=_int("BULK_CONCURRENCY", 2),
            bulk_batch_size=_int("BULK_BATCH_SIZE", 1000),
            bulk_stagger_seconds=_float("BULK_STAGGER_SECONDS", 1.0),
            stale_queued_seconds=_int("STALE_QUEUED_SECONDS", 300),
            record_retention_days=_int("RECORD_RETENTION_DAYS", 30),
            provider_timeout_seconds=_float("PROVIDER_TIMEOUT_SECONDS", 10.0),
            max_channel_attempts=_int("MAX_CHANNEL_ATTEMPTS", 3),
            retry_window_hours=_int("RETRY_WINDOW_HOURS", 24),
            default_locale=os.getenv("DEFAULT_LOCALE", "en"),
            webhook_base_delay_seconds=_float("WEBHOOK_BASE_DELAY_SECONDS", 1.0),
            webhook_retry_batch_size=_int("WEBHOOK_RETRY_BATCH_SIZE", 100),
            webhook_transport=os.getenv("WEBHOOK_TRANSPORT", "httpx").lower(),
            email_provider=os.getenv("EMAIL_PROVIDER", "fake").lower(),
            sms_provider=os.getenv("SMS_PROVIDER", "fake").lower(),
            push_provider=os.getenv("PUSH_PROVIDER", "fake").lower(),
            smtp_host=os.getenv("SMTP_HOST"),
            smtp_port=_int("SMTP_PORT", 587),
            smtp_username=os.getenv("SMTP_USERNAME"),
            smtp_password=os.getenv("SMTP_PASSWORD"),
            smtp_from=os.getenv("SMTP_FROM", "notifications@marketplace.local"),
            smtp_use_tls=os.getenv("SMTP_USE_TLS", "true").lower() in ("1", "true", "yes", "tls", "starttls"),
        )


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings (cached; call ``get_settings.cache_clear()`` to reload)."""
    return Settings.from_env()
