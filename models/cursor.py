from sqlalchemy import Column, String
from datetime import datetime, timezone
from models.base import Base, UTCDateTime


def _utcnow():
    return datetime.now(timezone.utc)


class SyncCursor(Base):
    """
    Last successfully synchronized instant per source.

    Design:
    - One row per source
    - `since` is the upper bound of the last window that completed
    - Written only after a source reports success; never rolled back
    """
    __tablename__ = "etl_cursors"

    source = Column(String(50), primary_key=True)
    since = Column(UTCDateTime, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False, default=_utcnow, onupdate=_utcnow)
