"""
Run a sync from the command line.

    python scripts/run_sync.py --since 2024-01-01 --until 2024-01-31 --sources stripe meta
    python scripts/run_sync.py --latest                 # cursor mode, advances cursors
    python scripts/run_sync.py --daily --sources steam  # yesterday, advances cursors
"""

import argparse
import asyncio
import json
import sys
import os
import logging
from datetime import timedelta

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import database
from core.logging import setup_logging
from ingestion.cursor_store import CursorStore
from ingestion.loaders.provider import SinkProvider
from ingestion.range_resolver import RangeResolver, daily_window, hourly_window, parse_range
from ingestion.registry import parse_sources
from ingestion.run_log import SyncRunLog
from ingestion.runner import SyncRunner

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Synchronize external sources into the configured sink")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--latest", action="store_true", help="Continue each source from its cursor")
    mode.add_argument("--hourly", action="store_true", help="Last HOURLY_SPAN_HOURS, advances cursors")
    mode.add_argument("--daily", action="store_true", help="Yesterday (UTC), advances cursors")
    parser.add_argument("--since", help="Inclusive lower bound (ISO-8601)")
    parser.add_argument("--until", help="Inclusive upper bound (ISO-8601)")
    parser.add_argument("--sources", nargs="*", help="Source ids (default: all)")
    parser.add_argument("--fallback-days", type=int, default=settings.DEFAULT_FALLBACK_DAYS)
    return parser.parse_args(argv)


async def run_sync(args) -> int:
    cursor_store = CursorStore(database.session_maker)
    sink_provider = SinkProvider.from_settings(settings, database)
    runner = SyncRunner(settings, sink_provider, cursor_store, run_log=SyncRunLog(database.session_maker))
    fallback_span = timedelta(days=args.fallback_days)

    try:
        if args.latest:
            windows = await RangeResolver(cursor_store).resolve(parse_sources(args.sources), fallback_span)
            results = await runner.run_windows(windows, persist_cursor=True)
        elif args.hourly:
            window = hourly_window(span=timedelta(hours=settings.HOURLY_SPAN_HOURS))
            results = await runner.run(window, args.sources, persist_cursor=True)
        elif args.daily:
            results = await runner.run(daily_window(), args.sources, persist_cursor=True)
        else:
            window = parse_range(args.since, args.until, fallback_span=fallback_span)
            results = await runner.run(window, args.sources, persist_cursor=False)
    finally:
        await sink_provider.close()
        await database.dispose()

    print(json.dumps({source: result.to_dict() for source, result in results.items()}, indent=2))
    return 0 if all(r.ok or r.disabled for r in results.values()) else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(run_sync(parse_args())))
