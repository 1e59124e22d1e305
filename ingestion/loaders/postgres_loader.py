"""
Relational sink: one INSERT ... ON CONFLICT DO UPDATE per batch
"""

from typing import List
from sqlalchemy import MetaData, Table
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
import logging

from core.exceptions import SinkWriteError
from ingestion.loaders.base import Row, Sink, content_hash
from models import Base
from schemas.records import SinkBatch

logger = logging.getLogger(__name__)

CONTENT_HASH = "content_hash"


class RelationalSink(Sink):
    """
    Load rows into PostgreSQL (or SQLite) with idempotent upserts.

    Ensures:
    - One round trip per batch
    - Existing keys are updated in place only when their content changed,
      so replaying an unchanged batch writes 0 rows
    - Atomic per batch: a failed statement is rolled back
    """

    backend = "postgres"

    def __init__(self, session_maker: async_sessionmaker, metadata: MetaData = Base.metadata):
        self.session_maker = session_maker
        self.metadata = metadata

    def _table(self, batch: SinkBatch) -> Table:
        table = self.metadata.tables.get(batch.collection)
        if table is None:
            raise SinkWriteError(
                f"Unknown collection {batch.collection}",
                context={"collection": batch.collection, "backend": self.backend}
            )
        unknown = [col for col in batch.all_columns if col not in table.c]
        if unknown:
            raise SinkWriteError(
                f"Columns {unknown} do not exist on {batch.collection}",
                context={"collection": batch.collection, "backend": self.backend}
            )
        return table

    async def _write(self, batch: SinkBatch, rows: List[Row]) -> int:
        table = self._table(batch)
        has_hash = CONTENT_HASH in table.c

        values = []
        for row in rows:
            value = dict(row)
            if has_hash:
                value[CONTENT_HASH] = content_hash(row, batch.key_columns, batch.all_columns)
            values.append(value)

        async with self.session_maker() as session:
            dialect = session.get_bind().dialect.name
            insert = pg_insert if dialect == "postgresql" else sqlite_insert

            stmt = insert(table).values(values)
            update_columns = [col for col in values[0] if col not in batch.key_columns]
            stmt = stmt.on_conflict_do_update(
                index_elements=[table.c[col] for col in batch.key_columns],
                set_={col: stmt.excluded[col] for col in update_columns},
                where=table.c[CONTENT_HASH].is_distinct_from(stmt.excluded[CONTENT_HASH]) if has_hash else None
            )

            try:
                result = await session.execute(stmt)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise SinkWriteError(
                    f"Failed to upsert into {batch.collection}",
                    context={
                        "collection": batch.collection,
                        "backend": self.backend,
                        "rows": len(values),
                        "operation": "UPSERT"
                    },
                    original_exception=e
                )

        written = max(int(result.rowcount or 0), 0)
        logger.info(f"Upserted {len(values)} rows into {batch.collection} ({written} new or changed)")
        return written
