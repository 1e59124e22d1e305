"""
FastAPI dependencies wiring the sync engine to the process-wide database
"""

from typing import AsyncGenerator
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, settings
from core.database import database
from ingestion.cursor_store import CursorStore
from ingestion.loaders.provider import SinkProvider
from ingestion.range_resolver import RangeResolver
from ingestion.run_log import SyncRunLog
from ingestion.runner import SyncRunner

# One sink per process, built on first use
sink_provider = SinkProvider.from_settings(settings, database)


def get_settings() -> Settings:
    return settings


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with database.session_maker() as session:
        yield session


def get_sink_provider() -> SinkProvider:
    return sink_provider


def get_cursor_store() -> CursorStore:
    return CursorStore(database.session_maker)


def get_run_log() -> SyncRunLog:
    return SyncRunLog(database.session_maker)


def get_range_resolver(cursor_store: CursorStore = Depends(get_cursor_store)) -> RangeResolver:
    return RangeResolver(cursor_store)


def get_runner(
    app_settings: Settings = Depends(get_settings),
    provider: SinkProvider = Depends(get_sink_provider),
    cursor_store: CursorStore = Depends(get_cursor_store),
    run_log: SyncRunLog = Depends(get_run_log)
) -> SyncRunner:
    return SyncRunner(app_settings, provider, cursor_store, run_log=run_log)
