from sqlalchemy import BigInteger, DateTime, Integer, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


# ============================================================================
# PORTABLE TYPES
# ============================================================================

# JSONB on PostgreSQL, JSON text elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

# SQLite only autoincrements INTEGER primary keys
AutoIncrementId = BigInteger().with_variant(Integer(), "sqlite")

UTCDateTime = DateTime(timezone=True)


# ============================================================================
# ENUMS
# ============================================================================

class SourceId(str, enum.Enum):
    """External providers the engine knows how to synchronize"""
    STRIPE = "stripe"
    META = "meta"
    TIKTOK = "tiktok"
    MAILERLITE = "mailerlite"
    STEAM = "steam"


class SyncStatus(str, enum.Enum):
    """Per-source state within one invocation"""
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"
