"""Shared test fixtures.

Tests run against a throwaway SQLite file per test (aiosqlite), so each
session gets its own connection and concurrent transactions really race.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tradeya.challenges.catalog import create_challenge
from tradeya.challenges.lifecycle import ChallengeLifecycleManager
from tradeya.challenges.schemas import ChallengeCreate
from tradeya.config import get_settings
from tradeya.database import close_db, create_tables, get_session_factory, init_db
from tradeya.dependencies import get_notifier
from tradeya.gamification.seed import seed_badges


@pytest.fixture(autouse=True)
def settings_env(monkeypatch, tmp_path):
    """Point settings at a temp SQLite database with Redis disabled."""
    monkeypatch.setenv("TRADEYA_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'tradeya_test.db'}")
    monkeypatch.setenv("TRADEYA_REDIS_URL", "")
    monkeypatch.setenv("TRADEYA_LOG_FORMAT", "console")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def session_factory(settings_env) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Initialized engine with all tables created and badges seeded."""
    await init_db(settings_env.database_url)
    await create_tables()
    factory = get_session_factory()
    async with factory() as session:
        await seed_badges(session)
    yield factory
    await close_db()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for test assertions."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier() -> AsyncMock:
    """Records notify() calls instead of publishing to Redis."""
    mock = AsyncMock()
    mock.notify = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def manager(session_factory, notifier) -> ChallengeLifecycleManager:
    return ChallengeLifecycleManager(session_factory, notifier=notifier)


@pytest.fixture
def make_challenge(session_factory) -> Callable[..., Awaitable[str]]:
    """Insert a catalog challenge and return its id."""

    async def _make(**overrides) -> str:
        data = {
            "title": "Ship a landing page",
            "type": "solo",
            "category": "design",
            "requirements": [{"id": "r1", "type": "submission_count", "target": 1}],
            "rewards": {"xp": 100},
        }
        data.update(overrides)
        async with session_factory() as session:
            challenge = await create_challenge(session, ChallengeCreate(**data))
            await session.commit()
            return challenge.id

    return _make


@pytest_asyncio.fixture
async def client(session_factory, notifier) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client wired to the test database."""
    from tradeya.main import create_app

    app = create_app()
    app.dependency_overrides[get_notifier] = lambda: notifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
