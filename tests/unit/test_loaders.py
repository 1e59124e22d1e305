"""
Unit tests for sink backends
"""

import asyncio
import json
import pandas as pd
import pytest
from sqlalchemy import func, select
from core.config import Settings
from core.database import Database
from core.exceptions import SinkWriteError
from ingestion.loaders.base import content_hash, dedupe_by_key
from ingestion.loaders.postgres_loader import RelationalSink
from ingestion.loaders.provider import SinkProvider, build_sink
from ingestion.loaders.sheet_loader import SheetSink, to_cell
from ingestion.transformers.orders import normalize_stripe_session
from models.orders import StripeOrder
from schemas.records import GroupMembershipRecord, StripeOrderRecord

COLLECTION = StripeOrderRecord.COLLECTION
KEYS = StripeOrderRecord.KEY_COLUMNS
COLUMNS = StripeOrderRecord.columns()


def orders(stripe_sessions, ids, amount=1000):
    return [normalize_stripe_session(stripe_sessions(i, amount=amount)) for i in ids]


class TestSharedSinkBehaviour:

    def test_dedupe_keeps_last_occurrence(self):
        rows = [{"id": "a", "v": 1}, {"id": "b", "v": 2}, {"id": "a", "v": 3}]

        assert dedupe_by_key(rows, ["id"]) == [{"id": "a", "v": 3}, {"id": "b", "v": 2}]

    def test_content_hash_ignores_keys_and_ingestion_time(self):
        columns = ["id", "amount", "ingested_at"]
        a = content_hash({"id": "x", "amount": 1, "ingested_at": "t1"}, ["id"], columns)
        b = content_hash({"id": "y", "amount": 1, "ingested_at": "t2"}, ["id"], columns)
        c = content_hash({"id": "x", "amount": 2, "ingested_at": "t1"}, ["id"], columns)

        assert a == b
        assert a != c


class TestRelationalSink:

    async def count(self, session_maker):
        async with session_maker() as session:
            return (await session.execute(select(func.count()).select_from(StripeOrder))).scalar_one()

    @pytest.mark.asyncio
    async def test_replay_writes_nothing(self, session_maker, stripe_sessions):
        sink = RelationalSink(session_maker)
        batch = orders(stripe_sessions, range(5))

        first = await sink.upsert(COLLECTION, KEYS, COLUMNS, batch)
        second = await sink.upsert(COLLECTION, KEYS, COLUMNS, batch)

        assert first.rows_written == 5
        assert second.rows_written == 0
        assert await self.count(session_maker) == 5

    @pytest.mark.asyncio
    async def test_changed_content_updates_in_place(self, session_maker, stripe_sessions):
        sink = RelationalSink(session_maker)
        await sink.upsert(COLLECTION, KEYS, COLUMNS, orders(stripe_sessions, range(3)))

        result = await sink.upsert(COLLECTION, KEYS, COLUMNS, orders(stripe_sessions, [1], amount=5000))

        assert result.rows_written == 1
        async with session_maker() as session:
            stored = await session.get(StripeOrder, "cs_test_0001")
        assert stored.amount == 5001
        assert stored.ingested_at is not None
        assert await self.count(session_maker) == 3

    @pytest.mark.asyncio
    async def test_duplicate_keys_in_one_batch(self, session_maker, stripe_sessions):
        sink = RelationalSink(session_maker)
        batch = orders(stripe_sessions, [1], amount=1000) + orders(stripe_sessions, [1], amount=2000)

        result = await sink.upsert(COLLECTION, KEYS, COLUMNS, batch)

        assert result.rows_received == 2
        assert result.rows_written == 1
        async with session_maker() as session:
            stored = await session.get(StripeOrder, "cs_test_0001")
        assert stored.amount == 2001

    @pytest.mark.asyncio
    async def test_structured_values_round_trip(self, session_maker, stripe_sessions):
        sink = RelationalSink(session_maker)
        await sink.upsert(COLLECTION, KEYS, COLUMNS, orders(stripe_sessions, [3]))

        async with session_maker() as session:
            stored = await session.get(StripeOrder, "cs_test_0003")
        assert stored.checkout_metadata == {"fbp": "fb.1.123", "ttclid": "tt-1"}
        assert stored.raw["id"] == "cs_test_0003"

    @pytest.mark.asyncio
    async def test_empty_batch_is_noop(self, session_maker):
        result = await RelationalSink(session_maker).upsert(COLLECTION, KEYS, COLUMNS, [])

        assert result.rows_written == 0

    @pytest.mark.asyncio
    async def test_unknown_collection(self, session_maker):
        with pytest.raises(SinkWriteError):
            await RelationalSink(session_maker).upsert("nope", ["id"], ["id"], [{"id": "1"}])

    @pytest.mark.asyncio
    async def test_keys_must_be_columns(self, session_maker):
        with pytest.raises(ValueError):
            await RelationalSink(session_maker).upsert(COLLECTION, ["id"], ["amount"], [{"id": "1"}])


class TestSheetSink:

    def read(self, path):
        return pd.read_csv(path, dtype=str, keep_default_na=False)

    @pytest.mark.asyncio
    async def test_new_tab_gets_header(self, tmp_path, stripe_sessions):
        sink = SheetSink(str(tmp_path))

        result = await sink.upsert(COLLECTION, KEYS, COLUMNS, orders(stripe_sessions, range(3)))

        path = tmp_path / "Stripe.csv"
        frame = self.read(path)
        assert result.rows_written == 3
        assert list(frame.columns) == COLUMNS
        assert list(frame["id"]) == ["cs_test_0000", "cs_test_0001", "cs_test_0002"]
        assert json.loads(frame["checkout_metadata"][0]) == {"fbp": "fb.1.123", "ttclid": "tt-1"}
        assert frame["fbc"][0] == ""

    @pytest.mark.asyncio
    async def test_only_unseen_keys_appended(self, tmp_path, stripe_sessions):
        sink = SheetSink(str(tmp_path))
        await sink.upsert(COLLECTION, KEYS, COLUMNS, orders(stripe_sessions, range(3)))

        again = await sink.upsert(COLLECTION, KEYS, COLUMNS, orders(stripe_sessions, range(3)))
        more = await sink.upsert(COLLECTION, KEYS, COLUMNS, orders(stripe_sessions, range(2, 5)))

        assert again.rows_written == 0
        assert more.rows_written == 2
        assert len(self.read(tmp_path / "Stripe.csv")) == 5

    @pytest.mark.asyncio
    async def test_composite_keys(self, tmp_path):
        sink = SheetSink(str(tmp_path))
        columns = GroupMembershipRecord.columns()
        rows = [
            GroupMembershipRecord(subscriber_id="1", group_id="g1"),
            GroupMembershipRecord(subscriber_id="1", group_id="g2"),
            GroupMembershipRecord(subscriber_id="1", group_id="g1"),
        ]

        result = await sink.upsert(GroupMembershipRecord.COLLECTION, GroupMembershipRecord.KEY_COLUMNS, columns, rows)
        replay = await sink.upsert(GroupMembershipRecord.COLLECTION, GroupMembershipRecord.KEY_COLUMNS, columns, rows)

        assert result.rows_written == 2
        assert replay.rows_written == 0
        assert (tmp_path / "MailerLite_Groups.csv").exists()

    def test_cells(self):
        assert to_cell(None) == ""
        assert to_cell({"b": 1, "a": [1, 2]}) == '{"a": [1, 2], "b": 1}'
        assert to_cell(3.5) == "3.5"


class TestSinkProvider:

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_construction(self, tmp_path):
        calls = []

        async def factory():
            calls.append(1)
            await asyncio.sleep(0.01)
            return SheetSink(str(tmp_path))

        provider = SinkProvider(factory)
        sinks = await asyncio.gather(*(provider.get() for _ in range(5)))

        assert len(calls) == 1
        assert all(sink is sinks[0] for sink in sinks)
        assert await provider.get() is sinks[0]

    @pytest.mark.asyncio
    async def test_failed_construction_is_retried(self, tmp_path):
        attempts = []

        async def factory():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("sheet unavailable")
            return SheetSink(str(tmp_path))

        provider = SinkProvider(factory)

        with pytest.raises(RuntimeError):
            await provider.get()
        assert isinstance(await provider.get(), SheetSink)
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_build_sink_by_backend(self, tmp_path):
        database = Database(f"sqlite+aiosqlite:///{tmp_path / 'x.db'}")
        sheet_settings = Settings(_env_file=None, SINK_BACKEND="sheet", SHEET_DIR=str(tmp_path / "tabs"))
        pg_settings = Settings(_env_file=None, SINK_BACKEND="postgres")

        assert isinstance(await build_sink(sheet_settings, database), SheetSink)
        assert (tmp_path / "tabs").is_dir()
        assert isinstance(await build_sink(pg_settings, database), RelationalSink)

        with pytest.raises(ValueError):
            await build_sink(Settings(_env_file=None, SINK_BACKEND="excel"), database)

        await database.dispose()
