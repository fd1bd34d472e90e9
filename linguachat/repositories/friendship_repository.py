from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from linguachat.models.api.friendships import FriendshipResponse, FriendshipStatus
from linguachat.models.api.users import pair_key
from linguachat.models.db.friendship_model import FriendshipModel
from linguachat.repositories.base_repository import BaseRepository


class FriendshipRepository(BaseRepository[FriendshipModel, FriendshipResponse]):
    """Repository for friendship operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, FriendshipModel)

    async def get_by_pair(
        self, user_a_id: str, user_b_id: str
    ) -> Optional[FriendshipResponse]:
        query = select(self.model_class).where(
            self.model_class.pair_key == pair_key(user_a_id, user_b_id)
        )
        result = await self.db.execute(query)
        db_model = result.scalar_one_or_none()
        return self._to_pydantic(db_model) if db_model else None

    async def list_pending_for(self, to_user_id: str) -> List[FriendshipResponse]:
        """Pending requests addressed to a user, oldest first."""
        query = (
            select(self.model_class)
            .where(self.model_class.to_user_id == to_user_id)
            .where(self.model_class.status == FriendshipStatus.PENDING.value)
            .order_by(self.model_class.created_at)
        )
        result = await self.db.execute(query)
        return [self._to_pydantic(db_model) for db_model in result.scalars().all()]

    async def list_accepted_for(self, user_id: str) -> List[FriendshipResponse]:
        query = (
            select(self.model_class)
            .where(
                or_(
                    self.model_class.from_user_id == user_id,
                    self.model_class.to_user_id == user_id,
                )
            )
            .where(self.model_class.status == FriendshipStatus.ACCEPTED.value)
        )
        result = await self.db.execute(query)
        return [self._to_pydantic(db_model) for db_model in result.scalars().all()]

    async def mark_accepted(
        self, friendship_id: str, accepted_at: datetime
    ) -> Optional[FriendshipResponse]:
        """Move a pending friendship to accepted; accepted rows are left alone."""
        await self.db.execute(
            update(self.model_class)
            .where(self.model_class.id == friendship_id)
            .where(self.model_class.status == FriendshipStatus.PENDING.value)
            .values(status=FriendshipStatus.ACCEPTED.value, accepted_at=accepted_at)
        )
        await self.db.commit()
        return await self.get_by_id(friendship_id)

    def _to_pydantic(self, db_model: Any) -> FriendshipResponse:
        """Convert SQLAlchemy FriendshipModel to Pydantic FriendshipResponse."""
        return FriendshipResponse(
            id=db_model.id,
            from_user_id=db_model.from_user_id,
            to_user_id=db_model.to_user_id,
            status=db_model.status,
            created_at=db_model.created_at,
            accepted_at=db_model.accepted_at,
        )

    def _from_pydantic(self, pydantic_model: FriendshipResponse) -> FriendshipModel:
        """Convert Pydantic FriendshipResponse to SQLAlchemy FriendshipModel."""
        return FriendshipModel(
            id=pydantic_model.id,
            pair_key=pair_key(pydantic_model.from_user_id, pydantic_model.to_user_id),
            from_user_id=pydantic_model.from_user_id,
            to_user_id=pydantic_model.to_user_id,
            status=pydantic_model.status.value,
            created_at=pydantic_model.created_at,
            accepted_at=pydantic_model.accepted_at,
        )
