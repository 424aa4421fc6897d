"""Protean Engine runner for the notifications domain.

Starts the Engine (outbox processing and stream subscriptions that feed the
marketplace and identity event handlers) next to the periodic scanners:

- scheduled: releases due scheduled notifications, expires stale ones (60s)
- retry: re-queues failed notifications with retryable channels (300s)
- webhooks: re-attempts webhook deliveries whose backoff has elapsed (60s)
- cleanup: deletes terminal records past the retention window (3600s)

Usage:
    python src/server.py
    python src/server.py --no-scanners   # Engine only
"""

import argparse
import asyncio
from datetime import UTC, datetime

import structlog
from notifications.domain import notifications
from notifications.notification.commands import (
    CleanupNotifications,
    ProcessScheduledNotifications,
    RetryFailedNotifications,
    RetryWebhookDeliveries,
)
from notifications.services import shutdown_services
from notifications.utils.logging import configure_logging
from protean.server.engine import Engine

logger = structlog.get_logger(__name__)


SCANNERS = {
    "scheduled": (ProcessScheduledNotifications, 60),
    "retry": (RetryFailedNotifications, 300),
    "webhooks": (RetryWebhookDeliveries, 60),
    "cleanup": (CleanupNotifications, 3600),
}


def run_pass(name, command_cls):
    """Run one scanner pass through the command pipeline and return its result."""
    with notifications.domain_context():
        result = notifications.process(command_cls(as_of=datetime.now(UTC)), asynchronous=False)
    logger.debug("Scanner pass finished", scanner=name, result=result)
    return result


async def run_scanner(name, command_cls, interval):
    """Run the ``command_cls`` pass every ``interval`` seconds; a failing pass never stops the loop."""
    while True:
        try:
            await asyncio.to_thread(run_pass, name, command_cls)
        except Exception:
            logger.exception("Scanner pass failed", scanner=name)
        await asyncio.sleep(interval)


async def run(with_scanners=True):
    engine = Engine(notifications)
    tasks = [engine.run()]
    if with_scanners:
        tasks.extend(run_scanner(name, command_cls, interval) for name, (command_cls, interval) in SCANNERS.items())
    try:
        await asyncio.gather(*tasks)
    finally:
        shutdown_services(wait=False)


def main():
    parser = argparse.ArgumentParser(description="Marketplace notifications engine runner")
    parser.add_argument("--no-scanners", action="store_true", help="Run the Engine without periodic scanners")
    args = parser.parse_args()

    configure_logging()
    notifications.init()
    asyncio.run(run(with_scanners=not args.no_scanners))


if __name__ == "__main__":
    main()
