"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone


# ============================================================================
# Sync Schemas
# ============================================================================

class SyncRequest(BaseModel):
    """Explicit-range sync; missing bounds fall back to the last 30 days"""
    since: Optional[datetime] = Field(None, description="Inclusive lower bound (ISO-8601)")
    until: Optional[datetime] = Field(None, description="Inclusive upper bound (ISO-8601), defaults to now")
    sources: Optional[List[str]] = Field(None, description="Source ids; all sources when omitted")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "since": "2024-01-01T00:00:00Z",
                "until": "2024-01-31T23:59:59.999Z",
                "sources": ["stripe", "meta"]
            }
        }
    )


class LatestSyncRequest(BaseModel):
    """Cursor-mode sync: each source continues from its last successful upper bound"""
    sources: Optional[List[str]] = Field(None, description="Source ids; all sources when omitted")
    fallback_days: Optional[int] = Field(None, ge=1, description="Span for sources without a cursor")


class SyncResponse(BaseModel):
    range: Dict[str, Any]
    results: Dict[str, Dict[str, Any]]

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "range": {"sinceUtc": "2024-01-01T00:00:00.000Z", "untilUtc": "2024-01-31T23:59:59.999Z"},
                "results": {
                    "stripe": {"ok": True, "rows": 42},
                    "meta": {"ok": False, "msg": "Meta 500"},
                    "steam": {"ok": False, "disabled": True, "msg": "Missing STEAM_PARTNER_KEY"}
                }
            }
        }
    )


class LatestSyncResponse(BaseModel):
    ranges: Dict[str, Dict[str, Any]]
    results: Dict[str, Dict[str, Any]]


# ============================================================================
# Cursor / Health Schemas
# ============================================================================

class CursorInfo(BaseModel):
    source: str
    since: datetime


class CursorsResponse(BaseModel):
    cursors: List[CursorInfo] = Field(default_factory=list)


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field("healthy", description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    database_connected: bool
    sink_backend: str
    cursors: List[CursorInfo] = Field(default_factory=list)
    last_runs: List[Dict[str, Any]] = Field(default_factory=list)

    @model_validator(mode="after")
    def determine_status(self):
        """Unhealthy without a database, degraded when a source's last run failed"""
        if not self.database_connected:
            self.status = "unhealthy"
        elif any(run.get("status") == "failed" for run in self.last_runs):
            self.status = "degraded"
        else:
            self.status = "healthy"
        return self
