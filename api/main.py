"""
FastAPI application initialization
"""

from fastapi import FastAPI
from api.routes import health, sync
from api.dependencies import sink_provider
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.database import database
from core.logging import setup_logging
from ingestion.cursor_store import CursorStore
from ingestion.run_log import SyncRunLog
from ingestion.runner import SyncRunner
from ingestion.scheduler import SyncScheduler
import logging

setup_logging(settings.LOG_LEVEL)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Pulse Sync API",
    description="Incremental multi-source sync engine: triggers, cursors and health",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(sync.router)

scheduler = SyncScheduler(
    SyncRunner(
        settings,
        sink_provider,
        CursorStore(database.session_maker),
        run_log=SyncRunLog(database.session_maker)
    ),
    settings
)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting Pulse Sync API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")
    logger.info(f"Sink backend: {settings.SINK_BACKEND}")

    if settings.SCHEDULER_ENABLED:
        scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Pulse Sync API")
    scheduler.stop()
    await sink_provider.close()
    await database.dispose()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Pulse Sync API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "sync": "/sync",
            "sync_latest": "/sync/latest",
            "cursors": "/cursors"
        }
    }
