"""
SmartQueue ETA API - Main FastAPI application.

Estimates queue wait times and counts down tracked tickets until
they are ready for pickup.

Run with: uvicorn smartqueue.main:app --app-dir backend
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from smartqueue.config import Settings, get_settings
from smartqueue.database import async_session_maker, init_db
from smartqueue.services.eta_service import build_eta_components
from smartqueue.services.notifier import build_notifier
from smartqueue.services.sql_store import SqlStatsStore, SqlTicketStore
from smartqueue.services.store import (
    InMemoryStatsStore,
    InMemoryTicketStore,
    NullStatsStore,
    NullTicketStore,
)
from smartqueue.utils.log_config import configure_logging

settings = get_settings()


def build_stores(settings: Settings):
    """Ticket and stats stores for the configured backend."""
    if settings.store_backend == "memory":
        return InMemoryTicketStore(), InMemoryStatsStore()
    if settings.store_backend == "none":
        return NullTicketStore(), NullStatsStore()
    return SqlTicketStore(async_session_maker), SqlStatsStore(async_session_maker)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs on startup and shutdown.
    """
    configure_logging(settings.log_level)

    # Startup
    print(f"Starting {settings.app_name} in {settings.app_env} mode...", flush=True)
    if settings.store_backend == "database":
        await init_db()
        print("Database initialized.", flush=True)
    else:
        print(f"Store backend: {settings.store_backend}", flush=True)

    ticket_store, stats_store = build_stores(settings)
    notifier = build_notifier(settings)
    eta = build_eta_components(settings, ticket_store, stats_store, notifier)
    app.state.eta = eta

    # Start the countdown ticker if enabled
    if settings.eta_scheduler_enabled:
        eta.scheduler.start()
    else:
        print("ETA scheduler: Disabled by config", flush=True)

    yield

    # Shutdown
    print("Shutting down...", flush=True)
    await eta.scheduler.stop()
    if hasattr(notifier, "aclose"):
        await notifier.aclose()


app = FastAPI(
    title=settings.app_name,
    description="Queue wait-time estimation and ticket countdowns",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


@app.get("/")
async def root():
    """Root endpoint - basic health check."""
    return {
        "app": settings.app_name,
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {"status": "healthy"}


# Routers
from smartqueue.routers import eta  # noqa: E402

app.include_router(eta.router, prefix="/api/eta", tags=["ETA"])
