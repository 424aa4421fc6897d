"""Process-wide wiring of the delivery engine.

Builds the scheduler, router, orchestrator and webhook engine from
``Settings`` on first use. Tests call ``reset_services()`` between cases and
may install their own scheduler through ``configure_services``.
"""

import structlog
from notifications.channel.router import ChannelRouter
from notifications.channel.senders import default_senders
from notifications.domain import notifications
from notifications.idempotency.guard import IdempotencyGuard
from notifications.notification.orchestrator import NotificationOrchestrator
from notifications.preference.resolver import PreferenceResolver
from notifications.ratelimit.limiter import RateLimiter
from notifications.ratelimit.rules import RuleStore
from notifications.scheduler import DispatchScheduler
from notifications.settings import get_settings
from notifications.store import get_store
from notifications.webhook.engine import WebhookEngine

logger = structlog.get_logger(__name__)

_services: dict = {}


def configure_services(scheduler=None, rules=None, router=None, clock=None):
    """Build (or rebuild) the engine, optionally with injected parts."""
    reset_services()
    settings = get_settings()
    store = get_store()

    scheduler = scheduler or DispatchScheduler(
        immediate_concurrency=settings.immediate_concurrency,
        bulk_concurrency=settings.bulk_concurrency,
        mode=settings.scheduler_mode,
        domain=notifications,
    )
    rules = rules or RuleStore()
    limiter = RateLimiter(store, rules, clock=clock) if clock else RateLimiter(store, rules)
    router = router or ChannelRouter(
        default_senders(),
        timeout=settings.provider_timeout_seconds,
        domain=notifications,
    )

    _services.update(
        scheduler=scheduler,
        rules=rules,
        limiter=limiter,
        router=router,
        orchestrator=NotificationOrchestrator(
            guard=IdempotencyGuard(store, settings.idempotency_ttl_seconds),
            limiter=limiter,
            preferences=PreferenceResolver(),
            router=router,
            scheduler=scheduler,
            store=store,
            settings=settings,
        ),
        webhooks=WebhookEngine(scheduler=scheduler, store=store, settings=settings),
    )
    logger.info("Notification engine configured", scheduler_mode=scheduler.mode)
    return _services


def _get(name):
    if not _services:
        configure_services()
    return _services[name]


def get_orchestrator() -> NotificationOrchestrator:
    return _get("orchestrator")


def get_webhook_engine() -> WebhookEngine:
    return _get("webhooks")


def get_scheduler() -> DispatchScheduler:
    return _get("scheduler")


def get_router() -> ChannelRouter:
    return _get("router")


def get_rate_limiter() -> RateLimiter:
    return _get("limiter")


def shutdown_services(wait=True):
    if _services:
        _services["scheduler"].shutdown(wait=wait)
        _services["router"].shutdown()


def reset_services():
    """Stop and forget the current engine (useful for testing)."""
    shutdown_services(wait=True)
    _services.clear()
