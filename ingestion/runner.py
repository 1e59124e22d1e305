# ============================================================================
# File: ingestion/runner.py
# Description: Multi-source sync orchestrator with per-source failure isolation
# ============================================================================
"""
Sync Runner - runs a set of sources against resolved windows.

This module provides:
- Per-source isolation: any error becomes a FAILED result, never propagates
- Disabled sources (missing credentials) reported as SKIPPED
- Cursor advancement only for sources that succeeded
- Sequential or concurrent execution across sources
- A run-log row for every outcome
"""

from typing import Dict, Iterable, Mapping, Optional, Union
from datetime import datetime, timezone
import asyncio
import uuid
import httpx
import logging

from core.config import Settings
from core.exceptions import ConfigMissing, CursorError, SyncException
from ingestion.archive import RawArchive
from ingestion.cursor_store import CursorStore
from ingestion.loaders.provider import SinkProvider
from ingestion.registry import build_pipeline, parse_sources
from ingestion.run_log import SyncRunLog
from models.base import SourceId, SyncStatus
from schemas.results import SourceResult
from schemas.window import SyncWindow

logger = logging.getLogger(__name__)

SourceName = Union[SourceId, str]


class SyncRunner:
    """
    Orchestrator

    Responsibilities:
    - Build one pipeline per requested source
    - Drive PENDING -> RUNNING -> SUCCEEDED | FAILED | SKIPPED
    - Advance the cursor to the window's upper bound on success, when asked
    - Record every outcome in the run log
    """

    def __init__(
        self,
        settings: Settings,
        sink_provider: SinkProvider,
        cursor_store: CursorStore,
        run_log: Optional[SyncRunLog] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.settings = settings
        self.sink_provider = sink_provider
        self.cursor_store = cursor_store
        self.run_log = run_log
        self.http_client = http_client
        self.archive = RawArchive(settings.ARCHIVE_DIR) if settings.ARCHIVE_DIR else None

    async def run(
        self,
        window: SyncWindow,
        sources: Optional[Iterable[SourceName]] = None,
        persist_cursor: bool = False
    ) -> Dict[str, SourceResult]:
        """
        Run every requested source against one window.

        Args:
            window: Window applied to all sources
            sources: Source ids; None means all. Unknown ids are ignored.
            persist_cursor: Advance cursors of successful sources to window.until_utc
        """
        selected = parse_sources(None if sources is None else [
            s.value if isinstance(s, SourceId) else s for s in sources
        ])
        return await self.run_windows({source: window for source in selected}, persist_cursor)

    async def run_windows(
        self,
        windows: Mapping[SourceName, SyncWindow],
        persist_cursor: bool = False
    ) -> Dict[str, SourceResult]:
        """Run each source against its own window (cursor mode)"""
        by_source: Dict[SourceId, SyncWindow] = {}
        for name, window in windows.items():
            for source in parse_sources([name.value if isinstance(name, SourceId) else name]):
                by_source[source] = window

        run_id = str(uuid.uuid4())
        results = {
            source: SourceResult(source=source.value, status=SyncStatus.PENDING)
            for source in by_source
        }
        logger.info(f"Sync run {run_id}: {', '.join(s.value for s in by_source) or 'no sources'}")

        client = self.http_client or httpx.AsyncClient(timeout=self.settings.HTTP_TIMEOUT)
        try:
            jobs = [
                self._run_source(run_id, source, window, results[source], client, persist_cursor)
                for source, window in by_source.items()
            ]
            if self.settings.SYNC_CONCURRENT_SOURCES:
                await asyncio.gather(*jobs)
            else:
                for job in jobs:
                    await job
        finally:
            if self.http_client is None:
                await client.aclose()

        summary = ", ".join(f"{s.value}={r.status.value}" for s, r in results.items())
        logger.info(f"Sync run {run_id} finished: {summary}")
        return {source.value: result for source, result in results.items()}

    async def _run_source(
        self,
        run_id: str,
        source: SourceId,
        window: SyncWindow,
        result: SourceResult,
        client: httpx.AsyncClient,
        persist_cursor: bool
    ):
        started_at = datetime.now(timezone.utc)
        result.status = SyncStatus.RUNNING
        pipeline = build_pipeline(source, self.settings, client, archive=self.archive)

        logger.info(f"[{source.value}] syncing {window.since_iso} -> {window.until_iso}")

        try:
            pipeline.check_config()
            sink = await self.sink_provider.get()
            result.rows = await pipeline.run(window, sink, batch_size=self.settings.ETL_BATCH_SIZE)
            result.status = SyncStatus.SUCCEEDED

        except ConfigMissing as e:
            result.status = SyncStatus.SKIPPED
            result.msg = e.message
            logger.info(f"[{source.value}] disabled: {e.message}")

        except SyncException as e:
            result.status = SyncStatus.FAILED
            result.msg = e.message
            logger.error(
                f"[{source.value}] failed: {e.message}",
                extra={"error_context": e.to_dict()}
            )

        except Exception as e:
            result.status = SyncStatus.FAILED
            result.msg = str(e) or type(e).__name__
            logger.exception(f"[{source.value}] unexpected error")

        result.log = list(pipeline.log_lines)

        if result.ok and persist_cursor:
            try:
                await self.cursor_store.set(source, window.until_utc)
            except CursorError as e:
                result.status = SyncStatus.FAILED
                result.msg = e.message
                logger.error(f"[{source.value}] {e}")
            except Exception as e:
                result.status = SyncStatus.FAILED
                result.msg = f"Failed to write cursor: {str(e) or type(e).__name__}"
                logger.exception(f"[{source.value}] unexpected error while advancing cursor")

        if self.run_log is not None:
            try:
                await self.run_log.record(run_id, window, result, started_at)
            except Exception:
                # The outcome stands even when it cannot be recorded
                logger.exception(f"[{source.value}] failed to record run")
