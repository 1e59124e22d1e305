"""
Flat tabular sink: one CSV tab per collection
"""

import pandas as pd
from typing import Any, List, Optional, Set, Tuple
from datetime import date, datetime
from pathlib import Path
import asyncio
import json
import logging

from core.exceptions import SinkWriteError
from ingestion.loaders.base import Row, Sink
from schemas.records import SinkBatch

logger = logging.getLogger(__name__)

TAB_MAPPING = {
    "stripe_orders": "Stripe",
    "meta_insights": "Meta",
    "tiktok_insights": "TikTok",
    "mailerlite_subscribers": "MailerLite",
    "mailerlite_group_memberships": "MailerLite_Groups",
    "steam_sales": "Steam_Sales",
}


def to_cell(value: Any) -> str:
    """Render a value the way it is stored (and compared) in a tab"""
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


class SheetSink(Sink):
    """
    Append-only store with key-level dedup.

    Each write reads the key projections already in the tab and appends
    only rows whose key is unseen, so existing rows are never modified.
    Two writers appending to the same tab at once can both miss each
    other's keys; callers that need strict uniqueness run one writer per
    tab.
    """

    backend = "sheet"

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def tab_path(self, collection: str) -> Path:
        return self.directory / f"{TAB_MAPPING.get(collection, collection)}.csv"

    async def _write(self, batch: SinkBatch, rows: List[Row]) -> int:
        try:
            return await asyncio.to_thread(self._append, batch, rows)
        except (OSError, ValueError) as e:
            raise SinkWriteError(
                f"Failed to append to tab {TAB_MAPPING.get(batch.collection, batch.collection)}",
                context={"collection": batch.collection, "backend": self.backend, "rows": len(rows)},
                original_exception=e
            )

    def _read_existing(self, path: Path) -> Optional[pd.DataFrame]:
        if not path.exists() or path.stat().st_size == 0:
            return None
        return pd.read_csv(path, dtype=str, keep_default_na=False)

    def _append(self, batch: SinkBatch, rows: List[Row]) -> int:
        path = self.tab_path(batch.collection)
        path.parent.mkdir(parents=True, exist_ok=True)

        existing = self._read_existing(path)
        header = list(existing.columns) if existing is not None else list(batch.all_columns)

        missing_keys = [col for col in batch.key_columns if col not in header]
        if missing_keys:
            raise ValueError(f"tab {path.name} has no column for keys {missing_keys}")

        dropped = [col for col in batch.all_columns if col not in header]
        if dropped:
            logger.warning(f"Tab {path.name} has no column for {dropped}; values not written")

        seen: Set[Tuple[str, ...]] = set()
        if existing is not None and len(existing):
            seen = set(zip(*(existing[col] for col in batch.key_columns)))

        new_rows = []
        for row in rows:
            cells = {col: to_cell(row.get(col)) for col in header}
            key = tuple(cells[col] for col in batch.key_columns)
            if key in seen:
                continue
            seen.add(key)
            new_rows.append(cells)

        if new_rows:
            frame = pd.DataFrame(new_rows, columns=header)
            frame.to_csv(path, mode="a", header=existing is None, index=False)
            logger.info(f"Appended {len(new_rows)} rows to tab {path.name}")

        return len(new_rows)
