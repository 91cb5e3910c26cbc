"""
Pytest fixtures for a throwaway database, the ledger, HTTP client and principals.

Each test gets its own SQLite file and a fresh in-memory ledger, so no
PostgreSQL or Redis server is needed. Environment is set before the
application is imported because settings are read at import time.
"""

import os
import tempfile

os.environ.setdefault(
    "DATABASE_URL", f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'booking_engine_import.db')}"
)
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("LEDGER_BACKEND", "memory")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from booking_engine.core.clock import utc_now
from booking_engine.core.config import get_settings
from booking_engine.core.security import Principal, Role, create_access_token
from booking_engine.db.base import Base
from booking_engine.db.session import get_db
from booking_engine.main import app
from booking_engine.models.enums import Category, ResourceStatus
from booking_engine.models.resource import Resource
from booking_engine.services.interfaces.memory_ledger import InMemoryLedger
from booking_engine.services.strategy_factory import get_ledger, set_ledger

ORGANIZER_ID = 1
CLIENT_ID = 2
OTHER_CLIENT_ID = 3
ADMIN_ID = 99


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def ledger():
    ledger = InMemoryLedger()
    set_ledger(ledger)
    yield ledger
    set_ledger(None)


@pytest.fixture
def settings():
    return get_settings()


@pytest_asyncio.fixture
async def client(session_factory, ledger) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with a fresh session per request and the test ledger."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ledger] = lambda: ledger

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def organizer() -> Principal:
    return Principal(user_id=ORGANIZER_ID, role=Role.ORGANIZER)


@pytest.fixture
def customer() -> Principal:
    return Principal(user_id=CLIENT_ID, role=Role.CLIENT)


@pytest.fixture
def other_customer() -> Principal:
    return Principal(user_id=OTHER_CLIENT_ID, role=Role.CLIENT)


@pytest.fixture
def admin() -> Principal:
    return Principal(user_id=ADMIN_ID, role=Role.ADMIN)


def _headers(principal: Principal) -> dict:
    return {"Authorization": f"Bearer {create_access_token(principal.user_id, principal.role)}"}


@pytest.fixture
def organizer_headers(organizer) -> dict:
    return _headers(organizer)


@pytest.fixture
def customer_headers(customer) -> dict:
    return _headers(customer)


@pytest.fixture
def other_customer_headers(other_customer) -> dict:
    return _headers(other_customer)


@pytest.fixture
def admin_headers(admin) -> dict:
    return _headers(admin)


@pytest.fixture
def make_resource(session_factory):
    """Insert a resource directly, bypassing lifecycle validation."""

    async def _make(
        capacity: int = 100,
        unit_price: Decimal = Decimal("100.00"),
        status: ResourceStatus = ResourceStatus.PUBLISHED,
        starts_in: timedelta = timedelta(days=30),
        duration: timedelta = timedelta(hours=3),
        owner_id: int = ORGANIZER_ID,
        title: str = "Test Concert",
    ) -> Resource:
        start = utc_now() + starts_in
        resource = Resource(
            title=title,
            description="A test resource",
            category=Category.CONCERT,
            venue="Test Venue",
            city="Paris",
            start_time=start,
            end_time=start + duration,
            capacity=capacity,
            unit_price=unit_price,
            owner_id=owner_id,
            status=status,
        )
        async with session_factory() as session:
            session.add(resource)
            await session.commit()
        return resource

    return _make


@pytest_asyncio.fixture
async def test_resource(make_resource) -> Resource:
    """A published resource with 100 units at 100.00, starting in 30 days."""
    return await make_resource()


@pytest_asyncio.fixture
async def sold_out_resource(make_resource, session_factory, ledger, customer) -> Resource:
    from booking_engine.services.booking_service import create_booking

    resource = await make_resource(capacity=2, title="Sold Out Show")
    async with session_factory() as session:
        await create_booking(session, customer, resource.id, 2, ledger=ledger)
    return resource
