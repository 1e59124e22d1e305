"""
Durable per-source cursors (etl_cursors table)
"""

from typing import Dict, Optional, Union
from datetime import datetime, timezone
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
import logging

from core.exceptions import CursorError
from models.base import SourceId
from models.cursor import SyncCursor

logger = logging.getLogger(__name__)

SourceKey = Union[SourceId, str]


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; stored values are always UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _key(source: SourceKey) -> str:
    return source.value if isinstance(source, SourceId) else str(source)


class CursorStore:
    """
    Key -> timestamp mapping with one row per source.

    Every `set` is its own transaction and touches a single key, so sources
    running concurrently never contend.
    """

    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    async def get(self, source: SourceKey) -> Optional[datetime]:
        key = _key(source)
        try:
            async with self.session_maker() as session:
                result = await session.execute(
                    select(SyncCursor.since).where(SyncCursor.source == key)
                )
                since = result.scalar_one_or_none()
        except (SQLAlchemyError, OSError) as e:
            raise CursorError(
                f"Failed to read cursor for {key}",
                context={"source": key, "operation": "get"},
                original_exception=e
            )
        return _aware(since) if since is not None else None

    async def set(self, source: SourceKey, since: datetime):
        key = _key(source)
        since = _aware(since)
        now = datetime.now(timezone.utc)

        try:
            async with self.session_maker() as session:
                dialect = session.get_bind().dialect.name
                insert = pg_insert if dialect == "postgresql" else sqlite_insert
                stmt = insert(SyncCursor).values(source=key, since=since, updated_at=now)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[SyncCursor.source],
                    set_={"since": stmt.excluded.since, "updated_at": stmt.excluded.updated_at}
                )
                await session.execute(stmt)
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            raise CursorError(
                f"Failed to write cursor for {key}",
                context={"source": key, "operation": "set"},
                original_exception=e
            )

        logger.info(f"Cursor for {key} advanced to {since.isoformat()}")

    async def all(self) -> Dict[str, datetime]:
        try:
            async with self.session_maker() as session:
                result = await session.execute(select(SyncCursor.source, SyncCursor.since))
                rows = result.all()
        except (SQLAlchemyError, OSError) as e:
            raise CursorError(
                "Failed to list cursors",
                context={"operation": "all"},
                original_exception=e
            )
        return {source: _aware(since) for source, since in rows}
