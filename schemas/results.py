"""
Result values returned by sinks and by the orchestrator
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from models.base import SyncStatus


class SinkResult(BaseModel):
    """Outcome of one upsert call"""
    collection: str
    rows_received: int = 0
    rows_written: int = 0


class SourceResult(BaseModel):
    """
    Outcome of one source within an invocation.

    Zero rows with status SUCCEEDED means "no new data", which is
    distinct from FAILED.
    """

    source: str
    status: SyncStatus = SyncStatus.PENDING
    rows: int = 0
    msg: Optional[str] = None
    log: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == SyncStatus.SUCCEEDED

    @property
    def disabled(self) -> bool:
        return self.status == SyncStatus.SKIPPED

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            body: Dict[str, Any] = {"ok": True, "rows": self.rows}
        elif self.disabled:
            body = {"ok": False, "disabled": True, "msg": self.msg}
        else:
            body = {"ok": False, "msg": self.msg}
        if self.log:
            body["log"] = list(self.log)
        return body
