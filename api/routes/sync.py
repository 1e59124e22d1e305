"""
Sync trigger endpoints and cursor listing
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from datetime import timedelta
import logging

from api.dependencies import get_cursor_store, get_range_resolver, get_runner, get_settings
from core.config import Settings
from core.exceptions import CursorError
from ingestion.cursor_store import CursorStore
from ingestion.range_resolver import RangeResolver, parse_range
from ingestion.registry import parse_sources
from ingestion.runner import SyncRunner
from schemas.api import (
    CursorInfo,
    CursorsResponse,
    LatestSyncRequest,
    LatestSyncResponse,
    SyncRequest,
    SyncResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Sync"])


@router.post("/sync", response_model=SyncResponse)
async def sync_range(
    request: Request,
    body: SyncRequest,
    runner: SyncRunner = Depends(get_runner),
    app_settings: Settings = Depends(get_settings)
):
    """
    Sync an explicit range. Cursors are not touched, so this is safe for
    backfills and re-runs.
    """
    request_id = getattr(request.state, "request_id", "-")
    try:
        window = parse_range(
            body.since,
            body.until,
            fallback_span=timedelta(days=app_settings.DEFAULT_FALLBACK_DAYS)
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"[{request_id}] POST /sync {window.since_iso} -> {window.until_iso} sources={body.sources}")
    results = await runner.run(window, body.sources, persist_cursor=False)

    return SyncResponse(
        range=window.to_dict(app_settings.DISPLAY_TIMEZONE),
        results={source: result.to_dict() for source, result in results.items()}
    )


@router.post("/sync/latest", response_model=LatestSyncResponse)
async def sync_latest(
    request: Request,
    body: LatestSyncRequest,
    runner: SyncRunner = Depends(get_runner),
    resolver: RangeResolver = Depends(get_range_resolver),
    app_settings: Settings = Depends(get_settings)
):
    """Continue every requested source from its cursor and advance it on success"""
    request_id = getattr(request.state, "request_id", "-")
    fallback_days = body.fallback_days or app_settings.DEFAULT_FALLBACK_DAYS

    try:
        windows = await resolver.resolve(parse_sources(body.sources), timedelta(days=fallback_days))
    except CursorError as e:
        logger.error(f"[{request_id}] {e}")
        raise HTTPException(status_code=503, detail=e.message)

    logger.info(f"[{request_id}] POST /sync/latest sources={[s.value for s in windows]}")
    results = await runner.run_windows(windows, persist_cursor=True)

    return LatestSyncResponse(
        ranges={source.value: window.to_dict(app_settings.DISPLAY_TIMEZONE) for source, window in windows.items()},
        results={source: result.to_dict() for source, result in results.items()}
    )


@router.get("/cursors", response_model=CursorsResponse)
async def list_cursors(cursor_store: CursorStore = Depends(get_cursor_store)):
    try:
        cursors = await cursor_store.all()
    except CursorError as e:
        raise HTTPException(status_code=503, detail=e.message)
    return CursorsResponse(
        cursors=[CursorInfo(source=source, since=since) for source, since in sorted(cursors.items())]
    )
