"""
Integration tests: resolve -> fetch -> normalize -> sink -> cursor
"""

import pytest
import pandas as pd
from datetime import datetime, timedelta, timezone
from sqlalchemy import func, select
from ingestion.cursor_store import CursorStore
from ingestion.loaders.postgres_loader import RelationalSink
from ingestion.loaders.sheet_loader import SheetSink
from ingestion.range_resolver import RangeResolver
from ingestion.run_log import SyncRunLog
from ingestion.runner import SyncRunner
from models.base import SourceId
from models.orders import StripeOrder
from schemas.window import SyncWindow

WINDOW = SyncWindow(since_utc="2024-01-01T00:00:00Z", until_utc="2024-01-31T23:59:59.999Z")


@pytest.fixture
def three_page_client(mock_http, stripe_sessions, stripe_api):
    """237 distinct sessions served as pages of 100, 100 and 37"""
    return mock_http(stripe_api([stripe_sessions(i) for i in range(237)]))


async def stored_orders(session_maker):
    async with session_maker() as session:
        return (await session.execute(select(func.count()).select_from(StripeOrder))).scalar_one()


@pytest.mark.asyncio
async def test_three_pages_then_identical_rerun(test_settings, session_maker, sink_provider_for, three_page_client):
    runner = SyncRunner(
        test_settings,
        sink_provider_for(RelationalSink(session_maker)),
        CursorStore(session_maker),
        run_log=SyncRunLog(session_maker),
        http_client=three_page_client
    )

    first = await runner.run(WINDOW, ["stripe"])
    assert first["stripe"].to_dict() == {"ok": True, "rows": 237}
    assert len(three_page_client.requests) == 3
    assert await stored_orders(session_maker) == 237

    second = await runner.run(WINDOW, ["stripe"])
    assert second["stripe"].to_dict() == {"ok": True, "rows": 0}
    assert await stored_orders(session_maker) == 237


@pytest.mark.asyncio
async def test_three_pages_into_sheet(test_settings, session_maker, sink_provider_for, three_page_client, tmp_path):
    runner = SyncRunner(
        test_settings,
        sink_provider_for(SheetSink(str(tmp_path / "sheets"))),
        CursorStore(session_maker),
        http_client=three_page_client
    )

    first = await runner.run(WINDOW, ["stripe"])
    second = await runner.run(WINDOW, ["stripe"])

    assert first["stripe"].rows == 237
    assert second["stripe"].ok
    assert second["stripe"].rows == 0
    frame = pd.read_csv(tmp_path / "sheets" / "Stripe.csv", dtype=str, keep_default_na=False)
    assert len(frame) == 237
    assert frame["id"].is_unique


@pytest.mark.asyncio
async def test_cursor_mode_continues_from_last_success(test_settings, session_maker, sink_provider_for, three_page_client):
    store = CursorStore(session_maker)
    runner = SyncRunner(
        test_settings,
        sink_provider_for(RelationalSink(session_maker)),
        store,
        http_client=three_page_client
    )
    resolver = RangeResolver(store)
    first_now = datetime(2024, 2, 1, 12, 0, tzinfo=timezone.utc)

    windows = await resolver.resolve([SourceId.STRIPE], timedelta(days=30), now=first_now)
    assert windows[SourceId.STRIPE].since_utc == first_now - timedelta(days=30)

    results = await runner.run_windows(windows, persist_cursor=True)
    assert results["stripe"].ok
    assert await store.get(SourceId.STRIPE) == first_now

    later = first_now + timedelta(hours=1)
    windows = await resolver.resolve([SourceId.STRIPE], timedelta(days=30), now=later)
    assert windows[SourceId.STRIPE].since_utc == first_now
    assert windows[SourceId.STRIPE].until_utc == later
