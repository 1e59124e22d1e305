"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
import httpx
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from typing import Callable, List
import models  # noqa: F401  (registers all tables)
from models.base import Base
from core.config import Settings
from ingestion.loaders.provider import SinkProvider


@pytest.fixture
def test_settings(tmp_path):
    """Settings with every provider configured and nothing read from .env"""
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'sync.db'}",
        ENVIRONMENT="test",
        SINK_BACKEND="postgres",
        SHEET_DIR=str(tmp_path / "sheets"),
        ARCHIVE_DIR=None,
        SYNC_CONCURRENT_SOURCES=False,
        SCHEDULER_ENABLED=False,
        STRIPE_SECRET_KEY="sk_test_123",
        FB_SYSTEM_USER_TOKEN="fb_token",
        FB_AD_ACCOUNT_ID="act_1234",
        TIKTOK_ACCESS_TOKEN="tt_token",
        TIKTOK_ADVERTISER_ID="adv_1",
        MAILERLITE_API_KEY="ml_key",
        MAILERLITE_PAGE_SIZE=3,
        GEOIP_BATCH_URL=None,
        STEAM_PARTNER_KEY="steam_key",
        STEAM_APP_ID=None,
    )


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """SQLite database file per test"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'sync.db'}",
        echo=False,
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_maker(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
def mock_http():
    """
    Build an AsyncClient whose requests are answered by `handler`.

    Every request is appended to the returned client's `.requests` list.
    """
    clients: List[httpx.AsyncClient] = []

    def build(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        seen: List[httpx.Request] = []

        def recording(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(recording))
        client.requests = seen
        clients.append(client)
        return client

    return build


@pytest.fixture
def sink_provider_for():
    """Wrap an already-built sink in a SinkProvider"""
    def build(sink) -> SinkProvider:
        async def factory():
            return sink
        return SinkProvider(factory)
    return build


def stripe_session(i: int, created: int = 1704103200, amount: int = 1000):
    return {
        "id": f"cs_test_{i:04d}",
        "object": "checkout.session",
        "created": created,
        "amount_total": amount + i,
        "currency": "EUR",
        "payment_status": "paid",
        "customer_details": {"email": f"Buyer{i}@Example.com", "address": {"country": "FR"}},
        "metadata": {"fbp": "fb.1.123", "ttclid": "tt-1"},
        "line_items": {"data": [{"price": {"id": "price_1", "product": "prod_1"}}]},
    }


def stripe_handler(sessions, page_size: int = 100):
    """Serve `sessions` through Stripe's has_more / starting_after protocol"""
    def handler(request: httpx.Request) -> httpx.Response:
        after = request.url.params.get("starting_after")
        start = 0
        if after:
            start = next(i for i, s in enumerate(sessions) if s["id"] == after) + 1
        page = sessions[start:start + page_size]
        return httpx.Response(200, json={
            "object": "list",
            "data": page,
            "has_more": start + page_size < len(sessions),
        })
    return handler


@pytest.fixture
def stripe_sessions():
    return stripe_session


@pytest.fixture
def stripe_api():
    return stripe_handler
