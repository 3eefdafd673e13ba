"""Shared fixtures: a per-test SQLite file database and an ASGI client."""

from datetime import datetime, timezone

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

import airank.entities  # noqa: F401
from airank.database import Base, get_db
from airank.dependencies import get_clock
from airank.main import app
from airank.services.registration import register_principal


class FakeClock:
    """Settable clock standing in for the server's wall clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    # File-backed so concurrent sessions get their own connections
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'airank.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def clock():
    return FakeClock(datetime(2026, 10, 19, 14, 20, tzinfo=timezone.utc))


@pytest_asyncio.fixture
async def client(session_factory, clock):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def principal(session_factory):
    """A freshly registered principal with zero counters: (Principal, raw secret)."""
    async with session_factory() as session:
        return await register_principal(session, "@Alice", display_name="Alice")


def naive(moment: datetime) -> datetime:
    """Drop tzinfo; SQLite returns naive datetimes for timezone-aware columns."""
    return moment.replace(tzinfo=None)
