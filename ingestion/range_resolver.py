"""
Window resolution: explicit ranges, scheduled windows and cursor mode
"""

from typing import Dict, Iterable, Optional, Union
from datetime import datetime, timedelta, timezone
import logging

from ingestion.cursor_store import CursorStore
from models.base import SourceId
from schemas.window import SyncWindow, to_utc

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_SPAN = timedelta(days=30)
HOURLY_SPAN = timedelta(hours=48)

Instant = Union[str, datetime, None]


def _now(now: Optional[datetime]) -> datetime:
    return to_utc(now) if now is not None else datetime.now(timezone.utc)


def parse_range(
    since: Instant = None,
    until: Instant = None,
    fallback_span: timedelta = DEFAULT_FALLBACK_SPAN,
    now: Optional[datetime] = None
) -> SyncWindow:
    """
    Explicit values are used verbatim (converted to UTC).

    `until` defaults to now and `since` to `until - fallback_span`.
    Raises ValueError when since is after until.
    """
    until_utc = to_utc(until) if until else _now(now)
    since_utc = to_utc(since) if since else until_utc - fallback_span
    return SyncWindow(since_utc=since_utc, until_utc=until_utc)


def hourly_window(now: Optional[datetime] = None, span: timedelta = HOURLY_SPAN) -> SyncWindow:
    until_utc = _now(now)
    return SyncWindow(since_utc=until_utc - span, until_utc=until_utc)


def daily_window(now: Optional[datetime] = None) -> SyncWindow:
    """Yesterday, 00:00:00.000 to 23:59:59.999 UTC"""
    today = _now(now).replace(hour=0, minute=0, second=0, microsecond=0)
    return SyncWindow(
        since_utc=today - timedelta(days=1),
        until_utc=today - timedelta(milliseconds=1)
    )


class RangeResolver:
    """
    Cursor mode: one window per source.

    `until` is the same instant for every source; `since` is the source's
    cursor, or `until - fallback_span` when it has none.
    """

    def __init__(self, cursor_store: CursorStore):
        self.cursor_store = cursor_store

    async def resolve(
        self,
        sources: Iterable[SourceId],
        fallback_span: timedelta = DEFAULT_FALLBACK_SPAN,
        now: Optional[datetime] = None
    ) -> Dict[SourceId, SyncWindow]:
        until_utc = _now(now)
        windows: Dict[SourceId, SyncWindow] = {}

        for source in sources:
            cursor = await self.cursor_store.get(source)
            if cursor is None:
                since_utc = until_utc - fallback_span
            elif cursor > until_utc:
                logger.warning(f"Cursor for {source.value} is ahead of now ({cursor.isoformat()}); clamping")
                since_utc = until_utc
            else:
                since_utc = cursor
            windows[source] = SyncWindow(since_utc=since_utc, until_utc=until_utc)

        return windows
