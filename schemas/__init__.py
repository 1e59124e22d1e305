"""
Pydantic schemas for validation and serialization.

Schemas:
    window: SyncWindow, the inclusive UTC range applied to one attempt
    records: Canonical record per collection and the SinkBatch envelope
    results: SinkResult and per-source SourceResult
    api: HTTP request/response models

Usage:
    from schemas.window import SyncWindow
    from schemas.records import StripeOrderRecord
    from schemas.results import SourceResult

Example:
    window = SyncWindow(since_utc="2024-01-01T00:00:00Z", until_utc="2024-01-02T00:00:00Z")
    assert window.since_iso == "2024-01-01T00:00:00.000Z"

    # since after until is rejected at construction
"""

from schemas.window import SyncWindow
from schemas.records import CanonicalRecord, SinkBatch
from schemas.results import SinkResult, SourceResult

__all__ = [
    "SyncWindow",
    "CanonicalRecord",
    "SinkBatch",
    "SinkResult",
    "SourceResult",
]
