"""
Health check endpoint with database, cursor and last-run status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from api.dependencies import get_cursor_store, get_db, get_run_log, get_settings
from core.config import Settings
from core.exceptions import CursorError
from ingestion.cursor_store import CursorStore
from ingestion.run_log import SyncRunLog
from schemas.api import CursorInfo, HealthCheckResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    cursor_store: CursorStore = Depends(get_cursor_store),
    run_log: SyncRunLog = Depends(get_run_log),
    app_settings: Settings = Depends(get_settings)
):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Stored cursors
    - Last run per source
    """

    # Check database connectivity
    db_connected = False

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database connection failed: {str(e)}")

    cursors = []
    last_runs = []

    if db_connected:
        try:
            stored = await cursor_store.all()
            cursors = [CursorInfo(source=source, since=since) for source, since in sorted(stored.items())]
        except CursorError as e:
            logger.error(f"Failed to fetch cursors: {e.message}")

        try:
            last_runs = await run_log.latest()
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch last runs: {str(e)}")

    return HealthCheckResponse(
        database_connected=db_connected,
        sink_backend=app_settings.SINK_BACKEND,
        cursors=cursors,
        last_runs=last_runs
    )
