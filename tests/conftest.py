import os

# Settings are read at import time; point them at SQLite before the app loads
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from pathlib import Path
from typing import Any, AsyncGenerator, Awaitable, Callable, Generator, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

import linguachat.models.db  # noqa: F401
from linguachat.database import Base
from linguachat.main import app
from linguachat.models.api.users import UserProfile
from linguachat.repositories.user_repository import UserRepository

USER_ID_HEADER = "X-User-Id"


@pytest.fixture(scope="function")
async def test_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite engine so separate sessions see each other's commits."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'linguachat.db'}",
        poolclass=pool.NullPool,
        connect_args={"timeout": 30},
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Clean up
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(scope="function")
async def test_db(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session for integration tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
async def mock_db() -> AsyncGenerator[AsyncMock, None]:
    """Create a mock database session for unit tests."""
    mock_session = AsyncMock()
    mock_session.commit = AsyncMock()
    mock_session.rollback = AsyncMock()
    mock_session.close = AsyncMock()
    mock_session.refresh = AsyncMock()
    mock_session.execute = AsyncMock()
    mock_session.add = MagicMock()  # add is sync, not async

    yield mock_session


@pytest.fixture
def make_user(
    test_db: AsyncSession,
) -> Callable[..., Awaitable[UserProfile]]:
    """Insert a user profile into the test database."""

    async def _make_user(
        user_id: str, username: Optional[str] = None, language: Optional[str] = "en"
    ) -> UserProfile:
        return await UserRepository(test_db).create(
            UserProfile(
                id=user_id,
                username=username or user_id.lower(),
                display_name=user_id.title(),
                language=language,
            )
        )

    return _make_user


@pytest.fixture
def client() -> Generator[TestClient, Any, None]:
    """Create a test client for the FastAPI app."""
    with TestClient(app) as test_client:
        yield test_client
