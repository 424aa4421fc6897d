"""Logging configuration for the notifications service.

Standard library handlers carry the output; structlog shapes every event
into key-value records. The API and the engine runner call
``configure_logging()`` once at startup.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

SERVICE_NAME = "notifications"

# Provider SDKs and the Redis client are chatty below WARNING
QUIET_LOGGERS = ("httpx", "httpcore", "redis")


def current_env() -> str:
    return (os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()


def get_log_level(env: str) -> str:
    default = "DEBUG" if env == "development" else "WARNING" if env == "test" else "INFO"
    return os.getenv("LOG_LEVEL", default).upper()


def build_handlers(level: str, log_dir: str | None) -> list[logging.Handler]:
    """Console output always; a rotating ``notifications.log`` when LOG_DIR is set."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=path / f"{SERVICE_NAME}.log",
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.setLevel(level)
    return handlers


def add_service(logger: Any, method_name: str, event_dict: dict) -> dict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def build_processors(env: str) -> list:
    """Return the structlog processor chain for an environment."""
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        add_service,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]

    if env in ("production", "staging"):
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stdout.isatty(),
                exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=2),
            )
        )
    return processors


def configure_logging() -> None:
    """Configure all logging for the application."""
    env = current_env()
    level = get_log_level(env)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = build_handlers(level, os.getenv("LOG_DIR"))
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=build_processors(env),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def add_context(**kwargs: Any) -> None:
    """Bind values (notification_id, correlation_id, ...) to every subsequent log event."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
