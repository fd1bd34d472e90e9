"""Database configuration and connection management."""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from linguachat.config import get_settings


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


settings = get_settings()

# Create async engine
engine = create_async_engine(settings.database_url, echo=settings.sql_debug, future=True)

# Create session factory
AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db() -> None:
    """Create missing tables for local SQLite runs; Postgres is migrated by Alembic."""
    if engine.dialect.name == "sqlite":
        # Import models so their tables are registered on the metadata
        import linguachat.models.db  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections on shutdown."""
    await engine.dispose()
