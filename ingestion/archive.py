"""
Raw page archive for forensic replay.

Each fetched page is written as one JSON document under
<root>/<source>/<since>_to_<until>/page-NNNN.json. Archiving is best-effort:
a failure is logged and never fails the sync.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from pathlib import Path
import asyncio
import json
import logging

from schemas.window import SyncWindow

logger = logging.getLogger(__name__)


def safe_key_part(value: str) -> str:
    return value.replace(":", "-").replace(".", "-")


class RawArchive:
    """Writes raw provider pages to a local directory"""

    def __init__(self, root: str):
        self.root = Path(root)

    def path_for(self, source: str, window: SyncWindow, page_no: int) -> Path:
        folder = f"{safe_key_part(window.since_iso)}_to_{safe_key_part(window.until_iso)}"
        return self.root / source / folder / f"page-{page_no:04d}.json"

    async def archive(
        self,
        source: str,
        window: SyncWindow,
        page_no: int,
        records: List[Dict[str, Any]]
    ) -> Optional[Path]:
        if not records:
            return None

        path = self.path_for(source, window, page_no)
        payload = {
            "source": source,
            "range": window.to_dict(),
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "rows": records,
        }
        try:
            await asyncio.to_thread(self._write, path, payload)
            return path
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to archive {source} page {page_no}: {e}")
            return None

    @staticmethod
    def _write(path: Path, payload: Dict[str, Any]):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, default=str), encoding="utf-8")
