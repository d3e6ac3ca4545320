"""
Test Configuration — Fixtures for async DB, test client, cache and feed payloads.

Each test gets a fresh in-memory SQLite database. SQLite's driver is told to
leave transaction control to SQLAlchemy so SAVEPOINTs nest inside the push
transaction the same way they do on PostgreSQL.
"""

import copy

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from api.deps import get_cache, get_current_user, get_db
from api.main import app
from db.session import Base

TEST_DATABASE_URL = "sqlite+aiosqlite://"


class FakeCache:
    """In-process stand-in for RedisCache."""

    def __init__(self):
        self.store: dict[str, object] = {}
        self.hits = 0
        self.misses = 0

    async def get_json(self, key):
        if key in self.store:
            self.hits += 1
            return copy.deepcopy(self.store[key])
        self.misses += 1
        return None

    async def set_json(self, key, value, ttl=None):
        self.store[key] = copy.deepcopy(value)

    async def delete(self, key):
        self.store.pop(key, None)


@pytest.fixture
async def test_engine():
    """Fresh in-memory database with all tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_db(session_factory):
    """A session for tests that drive the catalog services directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_cache():
    return FakeCache()


@pytest.fixture
def mock_user():
    """Mock authenticated connector."""
    return {"sub": "api-token-0", "auth": "api_token"}


@pytest.fixture
async def client(session_factory, mock_user, fake_cache):
    """Create an async test client with dependency overrides.

    API tests must not hold their own session open across requests: the
    in-memory database has a single shared connection.
    """

    async def override_get_db():
        async with session_factory() as session:
            yield session

    def override_get_current_user():
        return mock_user

    def override_get_cache():
        return fake_cache

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user
    app.dependency_overrides[get_cache] = override_get_cache

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


def _product(external_id: str, name: str, **overrides) -> dict:
    product = {
        "id": external_id,
        "sku": f"SKU-{external_id}",
        "name": name,
        "price": 40.0,
        "currency": "INR",
        "is_active": True,
    }
    product.update(overrides)
    return product


def _payload(store_id: str = "STORE-1", products: list[dict] | None = None, **sections) -> dict:
    payload = {
        "store_details": {
            "store_id": store_id,
            "name": f"Fresh Mart {store_id}",
            "address": {
                "line1": "12 MG Road",
                "city": "Bengaluru",
                "state": "Karnataka",
                "postal_code": "560001",
            },
            "location": {"lat": 12.9716, "lng": 77.5946},
        },
        "products": products if products is not None else [_product("P1", "Amul Taaza Milk 1L")],
    }
    payload.update(sections)
    return payload


@pytest.fixture
def make_product():
    """Factory for one raw product dict as an ERP would send it."""
    return _product


@pytest.fixture
def make_payload():
    """Factory for a raw bulk-push body."""
    return _payload
