"""Integration-test fixtures.

All integration tests share a single event loop so the module-level
SQLAlchemy async engine (created at import time) stays valid across the
whole session. The schema is built once by running the alembic revisions
against the temporary SQLite file configured in tests/conftest.py.
"""

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.main import app
from src.pt_common.database import engine
from src.pt_common.migrations import run_migrations
from src.pt_pricing.application.service import get_price_service
from tests.integration.fakes import FakePriceService

_fake_prices = FakePriceService()


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client over a freshly migrated database."""
    await run_migrations(engine)
    app.dependency_overrides[get_price_service] = lambda: _fake_prices
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture
def fake_prices() -> FakePriceService:
    _fake_prices.quotes.clear()
    _fake_prices.calls.clear()
    return _fake_prices


@pytest_asyncio.fixture(loop_scope="session")
async def holder_id(client: AsyncClient) -> int:
    """A brand-new account holder, so tests never see each other's rows."""
    name = f"holder-{uuid.uuid4().hex[:8]}"
    resp = await client.post("/api/accounts/holders", json={"name": name})
    assert resp.status_code == 201
    return int(resp.json()["data"]["id"])
