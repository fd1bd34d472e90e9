import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from linguachat.database import engine, init_db


@pytest.mark.asyncio
async def test_database_connection() -> None:
    """Test that we can connect to the database."""
    try:
        async with AsyncSession(engine) as session:
            result = await session.execute(text("SELECT 1"))
            assert result.scalar() == 1
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_database_tables_exist() -> None:
    """Test that init_db creates the chat tables on SQLite."""
    try:
        await init_db()
        async with AsyncSession(engine) as session:
            result = await session.execute(
                text("SELECT name FROM sqlite_master WHERE type = 'table'")
            )
            tables = set(result.scalars().all())
        assert {
            "users",
            "conversations",
            "conversation_participants",
            "messages",
            "friendships",
        } <= tables
    finally:
        await engine.dispose()
