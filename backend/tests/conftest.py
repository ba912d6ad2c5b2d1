"""
Ecol Backend: Test Configuration (conftest.py)
==============================================

Shared pytest fixtures.

Fixture Hierarchy (all function-scoped):
    ├── db_engine:          in-memory SQLite (aiosqlite) with the full schema
    ├── session_factory:    async_sessionmaker bound to db_engine
    ├── db_session:         one AsyncSession for service-level tests
    ├── seeded_items:       the six default items, committed
    ├── mock_db_session:    AsyncMock session for pure unit tests
    ├── sample_image_bytes: minimal PNG bytes
    └── test_client:        HTTPX AsyncClient against the app, DB dependency overridden
"""

import os
import tempfile

# Settings are read at import time: configure the environment first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="ecol_test_")
os.environ["PUBLIC_BASE_URL"] = "http://test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["AUTO_CREATE_SCHEMA"] = "false"

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import select  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from ecol.database import Base, enable_sqlite_foreign_keys, get_db_session  # noqa: E402
from ecol.models import Item  # noqa: E402
from ecol.services.item_service import item_service  # noqa: E402


@pytest_asyncio.fixture
async def db_engine():
    """A private in-memory database per test; StaticPool keeps the single connection alive."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seeded_items(session_factory):
    """Seeds the default catalog and returns {title: id}."""
    async with session_factory() as session:
        await item_service.seed_default_items(session)
        await session.commit()
        rows = (await session.execute(select(Item.title, Item.id))).all()
    return {title: item_id for title, item_id in rows}


@pytest.fixture
def mock_db_session():
    """
    A mock AsyncSession for unit tests that should not touch a database.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = point
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.add_all = MagicMock()
    return session


@pytest.fixture
def sample_image_bytes():
    """PNG signature plus an empty IHDR-sized tail; enough for type checks."""
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def point_payload(seeded_items):
    return {
        "name": "Ecoponto Savassi",
        "email": "contato@ecoponto.org",
        "whatsapp": "31999990000",
        "latitude": -19.8731291,
        "longitude": -44.0294353,
        "city": "Belo Horizonte",
        "state": "MG",
        "items": [seeded_items["Batteries"], seeded_items["Cooking oil"]],
    }


@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX client talking to the app in-process.

    get_db_session is replaced by a session from the test database with the
    same commit/rollback behavior.
    """
    from ecol.main import app

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
