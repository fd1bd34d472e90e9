from typing import Any, List, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from linguachat.models.api.users import UserProfile
from linguachat.models.db.user_model import UserModel
from linguachat.repositories.base_repository import BaseRepository


class UserRepository(BaseRepository[UserModel, UserProfile]):
    """Repository for user profile operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, UserModel)

    async def get_by_username(self, username: str) -> Optional[UserProfile]:
        """Get a profile by its exact (lowercase) username."""
        query = select(self.model_class).where(
            self.model_class.username == username.lower()
        )
        result = await self.db.execute(query)
        db_model = result.scalar_one_or_none()
        return self._to_pydantic(db_model) if db_model else None

    async def search_by_username_prefix(
        self, prefix: str, limit: int = 20
    ) -> List[UserProfile]:
        """Find profiles whose username starts with the given prefix."""
        prefix = prefix.lower()
        query = (
            select(self.model_class)
            .where(self.model_class.username.startswith(prefix, autoescape=True))
            .order_by(self.model_class.username)
            .execution_options(populate_existing=True)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return [self._to_pydantic(db_model) for db_model in result.scalars().all()]

    async def get_language(self, user_id: str) -> Optional[str]:
        """Read only the stored language code of a user, straight from the table."""
        query = select(self.model_class.language).where(self.model_class.id == user_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def update_fields(self, user_id: str, **fields: Any) -> Optional[UserProfile]:
        """Update the given columns; None values are skipped."""
        values = {key: value for key, value in fields.items() if value is not None}
        if values:
            await self.db.execute(
                update(self.model_class)
                .where(self.model_class.id == user_id)
                .values(**values)
            )
            await self.db.commit()
        return await self.get_by_id(user_id)

    def _to_pydantic(self, db_model: Any) -> UserProfile:
        """Convert SQLAlchemy UserModel to Pydantic UserProfile."""
        return UserProfile(
            id=db_model.id,
            username=db_model.username,
            display_name=db_model.display_name,
            avatar_url=db_model.avatar_url,
            email=db_model.email,
            language=db_model.language,
            created_at=db_model.created_at,
            updated_at=db_model.updated_at,
        )

    def _from_pydantic(self, pydantic_model: UserProfile) -> UserModel:
        """Convert Pydantic UserProfile to SQLAlchemy UserModel."""
        return UserModel(
            id=pydantic_model.id,
            username=pydantic_model.username,
            display_name=pydantic_model.display_name,
            avatar_url=pydantic_model.avatar_url,
            email=pydantic_model.email,
            language=pydantic_model.language.value if pydantic_model.language else None,
        )
