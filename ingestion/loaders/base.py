"""
Sink contract shared by every backend
"""

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, Iterable, List, Mapping, Sequence, Tuple
from datetime import datetime, timezone
import hashlib
import json
import logging

from schemas.records import INGESTED_AT, CanonicalRecord, SinkBatch
from schemas.results import SinkResult

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


def key_of(row: Mapping[str, Any], key_columns: Sequence[str]) -> Tuple:
    return tuple(row.get(col) for col in key_columns)


def dedupe_by_key(rows: Iterable[Row], key_columns: Sequence[str]) -> List[Row]:
    """Keep one row per key; a later row replaces an earlier one in place"""
    by_key: Dict[Tuple, Row] = {}
    for row in rows:
        by_key[key_of(row, key_columns)] = row
    return list(by_key.values())


def content_hash(row: Mapping[str, Any], key_columns: Sequence[str], all_columns: Sequence[str]) -> str:
    """SHA-256 over the non-key business columns, ignoring ingestion time"""
    payload = {
        col: row.get(col)
        for col in all_columns
        if col not in key_columns and col != INGESTED_AT
    }
    encoded = json.dumps(payload, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


class Sink(ABC):
    """
    Idempotent writer.

    After `upsert` returns there is at most one stored row per unique
    projection onto `key_columns`, however many times (or in however many
    batches) the same rows are replayed.
    """

    backend: ClassVar[str] = "abstract"

    async def upsert(
        self,
        collection: str,
        key_columns: Sequence[str],
        all_columns: Sequence[str],
        rows: Sequence[Any]
    ) -> SinkResult:
        """
        Write a batch of records or row mappings.

        Returns:
            SinkResult with the number of rows newly written or changed
        """
        batch = SinkBatch(
            collection=collection,
            key_columns=list(key_columns),
            all_columns=list(all_columns),
            rows=list(rows)
        )
        if not batch.rows:
            return SinkResult(collection=collection)

        prepared = dedupe_by_key(
            (self._to_row(row, batch.all_columns) for row in batch.rows),
            batch.key_columns
        )
        written = await self._write(batch, prepared)

        logger.debug(
            f"{self.backend} sink: {collection} received {len(batch.rows)} rows "
            f"({len(prepared)} unique), wrote {written}"
        )
        return SinkResult(collection=collection, rows_received=len(batch.rows), rows_written=written)

    @staticmethod
    def _to_row(row: Any, all_columns: Sequence[str]) -> Row:
        if isinstance(row, CanonicalRecord):
            source = row.to_row()
        elif isinstance(row, Mapping):
            source = dict(row)
        else:
            raise TypeError(f"Unsupported row type: {type(row).__name__}")

        projected = {col: source.get(col) for col in all_columns}
        if INGESTED_AT in projected and projected[INGESTED_AT] is None:
            projected[INGESTED_AT] = datetime.now(timezone.utc)
        return projected

    @abstractmethod
    async def _write(self, batch: SinkBatch, rows: List[Row]) -> int:
        """Persist key-unique rows; return how many were new or changed"""

    async def close(self):
        pass
