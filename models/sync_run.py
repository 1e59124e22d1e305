from sqlalchemy import Column, String, Integer, Float, Text, Index
from datetime import datetime, timezone
import uuid
from models.base import Base, AutoIncrementId, UTCDateTime


class SyncRun(Base):
    """
    One row per source per invocation.

    Purpose:
    - Audit trail of every source run (including disabled and failed ones)
    - Surfacing the last outcome per source on /health
    """
    __tablename__ = "sync_runs"

    id = Column(AutoIncrementId, primary_key=True, autoincrement=True)
    run_id = Column(String(36), default=lambda: str(uuid.uuid4()), nullable=False, index=True)

    source = Column(String(50), nullable=False, index=True)
    status = Column(String(20), nullable=False, index=True)

    window_since = Column(UTCDateTime, nullable=True)
    window_until = Column(UTCDateTime, nullable=True)

    rows_written = Column(Integer, default=0)
    error_message = Column(Text, nullable=True)

    started_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    completed_at = Column(UTCDateTime, nullable=True)
    duration_seconds = Column(Float, nullable=True)

    __table_args__ = (
        Index("idx_sync_run_source_started", "source", "started_at"),
    )
