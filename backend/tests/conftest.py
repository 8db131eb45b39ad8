"""Shared test fixtures: in-memory SQLite database and fake Redis."""

import os

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RUN_BACKGROUND_WORKERS", "false")

import pytest
from fakeredis import aioredis
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from edubilling.db.base import Base


@pytest.fixture
async def engine() -> AsyncEngine:
    """In-memory SQLite engine shared by every session in the test.

    Also installs itself as the global engine/session factory so code that
    calls get_session_factory() sees the same database.
    """
    import edubilling.db.base as db_mod
    import edubilling.db.models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    db_mod._engine = engine
    db_mod._session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    yield engine

    db_mod._engine = None
    db_mod._session_factory = None
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def redis_client():
    """Fake Redis client, also installed as the shared pool."""
    import edubilling.db.redis as redis_mod

    client = aioredis.FakeRedis(decode_responses=True)
    redis_mod._redis = client
    yield client
    redis_mod._redis = None
    await client.flushall()
    await client.aclose()
