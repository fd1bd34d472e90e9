import logging
from typing import Awaitable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from linguachat.errors import StorageWriteError

log = logging.getLogger(__name__)

T = TypeVar("T")


async def guarded_write(db: AsyncSession, description: str, operation: Awaitable[T]) -> T:
    """Await a repository write, turning database failures into StorageWriteError."""
    try:
        return await operation
    except SQLAlchemyError as exc:
        await db.rollback()
        log.error("Failed to %s: %s", description, exc)
        raise StorageWriteError(f"Failed to {description}") from exc
