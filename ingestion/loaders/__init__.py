"""
Sink backends with idempotent writes.

Modules:
    base: Sink contract, in-batch dedup and content hashing
    postgres_loader: RelationalSink (INSERT ... ON CONFLICT DO UPDATE)
    sheet_loader: SheetSink (CSV tab per collection, append unseen keys)
    provider: SinkProvider, the lazily-built process-wide sink handle
"""

from ingestion.loaders.base import Sink
from ingestion.loaders.postgres_loader import RelationalSink
from ingestion.loaders.sheet_loader import SheetSink
from ingestion.loaders.provider import SinkProvider, build_sink

__all__ = ["Sink", "RelationalSink", "SheetSink", "SinkProvider", "build_sink"]
