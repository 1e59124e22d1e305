"""
Run log: one sync_runs row per source per invocation
"""

from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
import logging

from models.sync_run import SyncRun
from schemas.results import SourceResult
from schemas.window import SyncWindow

logger = logging.getLogger(__name__)


class SyncRunLog:
    """
    Audit trail of source outcomes.

    Recording is best-effort: a database error is logged and the caller's
    result stands.
    """

    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    async def record(
        self,
        run_id: str,
        window: Optional[SyncWindow],
        result: SourceResult,
        started_at: datetime,
        completed_at: Optional[datetime] = None
    ) -> bool:
        completed_at = completed_at or datetime.now(timezone.utc)
        run = SyncRun(
            run_id=run_id,
            source=result.source,
            status=result.status.value,
            window_since=window.since_utc if window else None,
            window_until=window.until_utc if window else None,
            rows_written=result.rows,
            error_message=result.msg,
            started_at=started_at,
            completed_at=completed_at,
            duration_seconds=(completed_at - started_at).total_seconds()
        )
        try:
            async with self.session_maker() as session:
                session.add(run)
                await session.commit()
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Failed to record run for {result.source}: {e}")
            return False

    async def latest(self) -> List[Dict[str, Any]]:
        """Most recent run per source"""
        newest = (
            select(SyncRun.source, func.max(SyncRun.id).label("id"))
            .group_by(SyncRun.source)
            .subquery()
        )
        async with self.session_maker() as session:
            result = await session.execute(
                select(SyncRun).join(newest, SyncRun.id == newest.c.id).order_by(SyncRun.source)
            )
            runs = result.scalars().all()

        return [
            {
                "source": run.source,
                "status": run.status,
                "rows_written": run.rows_written,
                "error_message": run.error_message,
                "started_at": run.started_at.isoformat() if run.started_at else None,
                "duration_seconds": run.duration_seconds,
            }
            for run in runs
        ]
