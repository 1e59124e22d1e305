"""
API endpoint tests
"""

import pytest
import pytest_asyncio
import httpx
from api.main import app
from api.dependencies import get_cursor_store, get_db, get_run_log, get_runner, get_settings
from ingestion.cursor_store import CursorStore
from ingestion.loaders.postgres_loader import RelationalSink
from ingestion.run_log import SyncRunLog
from ingestion.runner import SyncRunner


@pytest_asyncio.fixture
async def client(test_settings, session_maker, sink_provider_for, mock_http, stripe_sessions, stripe_api):
    """ASGI client with the engine wired to a SQLite database and mocked providers"""
    provider_client = mock_http(stripe_api([stripe_sessions(i) for i in range(3)]))

    async def override_get_db():
        async with session_maker() as session:
            yield session

    def override_get_runner():
        return SyncRunner(
            test_settings,
            sink_provider_for(RelationalSink(session_maker)),
            CursorStore(session_maker),
            run_log=SyncRunLog(session_maker),
            http_client=provider_client
        )

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_cursor_store] = lambda: CursorStore(session_maker)
    app.dependency_overrides[get_run_log] = lambda: SyncRunLog(session_maker)
    app.dependency_overrides[get_runner] = override_get_runner

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_health_endpoint_database_connected(client):
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database_connected"] is True
    assert data["sink_backend"] == "postgres"
    assert data["cursors"] == []
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_sync_explicit_range(client):
    response = await client.post("/sync", json={
        "since": "2024-01-01T00:00:00Z",
        "until": "2024-01-31T23:59:59.999Z",
        "sources": ["stripe"],
    })

    assert response.status_code == 200
    data = response.json()
    assert data["range"]["sinceUtc"] == "2024-01-01T00:00:00.000Z"
    assert data["range"]["untilUtc"] == "2024-01-31T23:59:59.999Z"
    assert data["range"]["display"]["sinceLocal"] == "2024-01-01T01:00:00+01:00"
    assert data["results"] == {"stripe": {"ok": True, "rows": 3}}

    cursors = await client.get("/cursors")
    assert cursors.json()["cursors"] == []


@pytest.mark.asyncio
async def test_sync_rejects_inverted_range(client):
    response = await client.post("/sync", json={
        "since": "2024-02-01T00:00:00Z",
        "until": "2024-01-01T00:00:00Z",
    })

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_sync_latest_advances_cursor(client):
    response = await client.post("/sync/latest", json={"sources": ["stripe"], "fallback_days": 7})

    assert response.status_code == 200
    data = response.json()
    assert set(data["ranges"]) == {"stripe"}
    assert data["results"]["stripe"]["ok"] is True

    cursors = (await client.get("/cursors")).json()["cursors"]
    assert [c["source"] for c in cursors] == ["stripe"]

    health = (await client.get("/health")).json()
    assert health["last_runs"][0]["source"] == "stripe"
    assert health["last_runs"][0]["status"] == "succeeded"
