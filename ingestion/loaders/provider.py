"""
Lazily-built sink handle shared by every run in the process
"""

from typing import Awaitable, Callable, Optional
import asyncio
import logging

from core.config import Settings
from core.database import Database
from ingestion.loaders.base import Sink
from ingestion.loaders.postgres_loader import RelationalSink
from ingestion.loaders.sheet_loader import SheetSink

logger = logging.getLogger(__name__)

SINK_BACKENDS = ("postgres", "sheet")


async def build_sink(settings: Settings, database: Database) -> Sink:
    """Construct the backend named by SINK_BACKEND"""
    backend = settings.SINK_BACKEND.lower()
    if backend == "postgres":
        sink: Sink = RelationalSink(database.session_maker)
    elif backend == "sheet":
        sink = SheetSink(settings.SHEET_DIR)
        await asyncio.to_thread(sink.directory.mkdir, parents=True, exist_ok=True)
    else:
        raise ValueError(f"Unknown SINK_BACKEND {settings.SINK_BACKEND!r}, expected one of {SINK_BACKENDS}")

    logger.info(f"Sink ready: {sink.backend}")
    return sink


class SinkProvider:
    """
    Single-assignment future around the sink factory.

    The first caller starts construction; everyone who arrives before it
    completes awaits the same future. A failed construction is forgotten so
    the next caller can try again.
    """

    def __init__(self, factory: Callable[[], Awaitable[Sink]]):
        self._factory = factory
        self._future: Optional[asyncio.Future] = None

    async def get(self) -> Sink:
        if self._future is None:
            self._future = asyncio.ensure_future(self._factory())
        future = self._future
        try:
            return await future
        except Exception:
            if self._future is future:
                self._future = None
            raise

    async def close(self):
        if self._future is not None and self._future.done() and not self._future.cancelled() and not self._future.exception():
            await self._future.result().close()
        self._future = None

    @classmethod
    def from_settings(cls, settings: Settings, database: Database) -> "SinkProvider":
        return cls(lambda: build_sink(settings, database))
