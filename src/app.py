"""Marketplace notifications FastAPI application.

Processes commands synchronously via HTTP inside the notifications domain
context. Delivery itself runs on the dispatch scheduler's worker threads,
which the lifespan starts and drains.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

from contextlib import asynccontextmanager

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# PROTEAN_ENV controls which config overlay is applied:
#   - "test"       → event_processing = "sync"  (projectors fire in UoW)
#   - "production" → event_processing = "async" (projectors fire via Engine)
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from notifications.domain import notifications
from notifications.services import configure_services, shutdown_services
from notifications.utils.logging import add_context, clear_context, configure_logging

configure_logging()
notifications.init()


@asynccontextmanager
async def lifespan(app: FastAPI):
    with notifications.domain_context():
        configure_services()
    yield
    shutdown_services(wait=True)


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Marketplace Notifications API",
    description="Multi-channel notification delivery with webhooks, preferences and rate limits",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the notifications domain context and bind request log context."""
    clear_context()
    add_context(
        method=request.method,
        path=request.url.path,
        correlation_id=request.headers.get("X-Correlation-ID"),
    )
    with notifications.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from notifications.api.routes import register_error_handlers  # noqa: E402
from notifications.api.routes import router as notifications_router  # noqa: E402

app.include_router(notifications_router)
register_error_handlers(app)
