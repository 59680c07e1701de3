"""
Shared test fixtures for the Transit Points test suite.

Provides:
- an in-memory SQLite engine per test, with both point tables created
- one OrderedPointStore per parent kind bound to that engine
- async FastAPI test client whose stores draw from the same engine
"""

import os
from decimal import Decimal
from typing import Any

# Ensure test env vars before any app imports
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("LOG_FILE", "")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from transit_points import models  # noqa: F401  (registers tables)
from transit_points.database import Base, get_session_factory
from transit_points.store import OrderedPointStore, ParentKind, GeoPoint


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
async def engine():
    """Fresh in-memory database; StaticPool keeps every session on one connection."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
def traversal_store(session_factory):
    return OrderedPointStore(session_factory, ParentKind.TRAVERSAL)


@pytest.fixture
def stop_store(session_factory):
    return OrderedPointStore(session_factory, ParentKind.STOP)


# ---------------------------------------------------------------------------
# FastAPI test client
# ---------------------------------------------------------------------------

@pytest.fixture
async def client(session_factory):
    """Async HTTP client bound to the app, with stores on the test database."""
    from transit_points.main import app

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def make_point(**overrides: Any) -> GeoPoint:
    """Factory for GeoPoint values (Tuxtla Gutierrez city centre by default)."""
    base = {
        "parent_id": 5,
        "latitude": Decimal("16.7569444"),
        "longitude": Decimal("-93.1292778"),
        "sequence": 1,
    }
    base.update(overrides)
    return GeoPoint(**base)


async def seed_sequences(store: OrderedPointStore, parent_id: int, sequences) -> list:
    """Insert one point per sequence value, in the given order; returns ids."""
    ids = []
    for offset, sequence in enumerate(sequences):
        ids.append(await store.create(make_point(
            parent_id=parent_id,
            latitude=Decimal("16.75") + Decimal(offset) / 1000,
            sequence=sequence,
        )))
    return ids
