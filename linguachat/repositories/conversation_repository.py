from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from linguachat.models.api.conversations import (
    ConversationResponse,
    ParticipantDetails,
    ParticipantResponse,
)
from linguachat.models.db.conversation_model import ConversationModel
from linguachat.models.db.message_model import MessageModel
from linguachat.models.db.participant_model import ParticipantModel
from linguachat.repositories.base_repository import BaseRepository


class ConversationRepository(BaseRepository[ConversationModel, ConversationResponse]):
    """Repository for conversation operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, ConversationModel)

    async def get_by_id(self, id: str) -> Optional[ConversationResponse]:
        """Get a conversation by ID with participants loaded."""
        query = (
            select(self.model_class)
            .where(self.model_class.id == id)
            .options(selectinload(self.model_class.participants))
            .execution_options(populate_existing=True)
        )  # type: ignore
        result = await self.db.execute(query)
        db_model = result.scalar_one_or_none()
        return self._to_pydantic(db_model) if db_model else None

    async def exists(self, id: str) -> bool:
        query = select(self.model_class.id).where(self.model_class.id == id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none() is not None

    async def create_with_participants(
        self,
        conversation_id: str,
        participant_ids: List[str],
        details: Dict[str, ParticipantDetails],
        created_at: datetime,
    ) -> None:
        """Insert a conversation and one participant row per member.

        Raises IntegrityError when another writer created the same pair first.
        """
        user_a_id, user_b_id = sorted(participant_ids)
        conversation = ConversationModel(
            id=conversation_id,
            user_a_id=user_a_id,
            user_b_id=user_b_id,
            last_message="",
            last_message_at=created_at,
        )
        for user_id in (user_a_id, user_b_id):
            snapshot = details.get(user_id) or ParticipantDetails()
            conversation.participants.append(
                ParticipantModel(
                    user_id=user_id,
                    username=snapshot.username,
                    display_name=snapshot.display_name,
                    avatar_url=snapshot.avatar_url,
                    language=snapshot.language.value if snapshot.language else None,
                    unread_count=0,
                    archived=False,
                )
            )
        self.db.add(conversation)
        await self.db.commit()

    async def merge_participant_details(
        self, conversation_id: str, user_id: str, details: ParticipantDetails
    ) -> None:
        """Overwrite only the supplied snapshot fields of one participant."""
        values = details.model_dump(exclude_none=True)
        if "language" in values:
            values["language"] = details.language.value
        if not values:
            return
        await self.db.execute(
            update(ParticipantModel)
            .where(ParticipantModel.conversation_id == conversation_id)
            .where(ParticipantModel.user_id == user_id)
            .values(**values)
        )
        await self.db.commit()

    async def record_activity(
        self,
        conversation_id: str,
        preview: str,
        at: datetime,
        sender_id: Optional[str] = None,
        increment_unread_for: Optional[str] = None,
    ) -> bool:
        """Update the last-message summary and bump one unread counter.

        The counter is incremented by the database (``unread_count + 1``) so
        concurrent writers never overwrite each other's increments.
        """
        result = await self.db.execute(
            update(self.model_class)
            .where(self.model_class.id == conversation_id)
            .values(
                last_message=preview,
                last_message_at=at,
                last_message_sender_id=sender_id,
            )
        )
        if result.rowcount == 0:
            await self.db.rollback()
            return False

        if increment_unread_for:
            await self.db.execute(
                update(ParticipantModel)
                .where(ParticipantModel.conversation_id == conversation_id)
                .where(ParticipantModel.user_id == increment_unread_for)
                .values(unread_count=ParticipantModel.unread_count + 1)
            )
        await self.db.commit()
        return True

    async def set_unread(self, conversation_id: str, user_id: str, count: int) -> bool:
        result = await self.db.execute(
            update(ParticipantModel)
            .where(ParticipantModel.conversation_id == conversation_id)
            .where(ParticipantModel.user_id == user_id)
            .values(unread_count=count)
        )
        await self.db.commit()
        return result.rowcount > 0

    async def set_archived(
        self, conversation_id: str, user_id: str, archived: bool
    ) -> bool:
        result = await self.db.execute(
            update(ParticipantModel)
            .where(ParticipantModel.conversation_id == conversation_id)
            .where(ParticipantModel.user_id == user_id)
            .values(archived=archived)
        )
        await self.db.commit()
        return result.rowcount > 0

    async def list_for_user(
        self,
        user_id: str,
        archived: Optional[bool] = None,
        limit: Optional[int] = 50,
        offset: Optional[int] = 0,
    ) -> List[ConversationResponse]:
        """List a user's conversations, most recent activity first.

        ``archived`` filters on the requesting user's own flag; None keeps all.
        """
        query = (
            select(self.model_class)
            .join(
                ParticipantModel,
                and_(
                    ParticipantModel.conversation_id == self.model_class.id,
                    ParticipantModel.user_id == user_id,
                ),
            )
            .options(selectinload(self.model_class.participants))
            .execution_options(populate_existing=True)
        )

        if archived is not None:
            query = query.where(ParticipantModel.archived == archived)

        query = query.order_by(
            self.model_class.last_message_at.desc(), self.model_class.id
        )

        # Apply pagination
        if limit is not None:
            query = query.limit(limit)
        if offset is not None:
            query = query.offset(offset)

        result = await self.db.execute(query)
        db_models = result.scalars().all()
        return [self._to_pydantic(db_model) for db_model in db_models]

    async def delete_cascade(self, conversation_id: str) -> bool:
        """Delete a conversation with its messages and participant rows."""
        await self.db.execute(
            delete(MessageModel).where(MessageModel.conversation_id == conversation_id)
        )
        await self.db.execute(
            delete(ParticipantModel).where(
                ParticipantModel.conversation_id == conversation_id
            )
        )
        result = await self.db.execute(
            delete(self.model_class).where(self.model_class.id == conversation_id)
        )
        await self.db.commit()
        return result.rowcount > 0

    def _to_pydantic(self, db_model: Any) -> ConversationResponse:
        """Convert SQLAlchemy ConversationModel to Pydantic ConversationResponse."""
        participants = sorted(db_model.participants, key=lambda p: p.user_id)
        return ConversationResponse(
            id=db_model.id,
            participant_ids=[db_model.user_a_id, db_model.user_b_id],
            participants=[
                ParticipantResponse(
                    user_id=p.user_id,
                    username=p.username,
                    display_name=p.display_name,
                    avatar_url=p.avatar_url,
                    language=p.language,
                    unread_count=p.unread_count or 0,
                    archived=bool(p.archived),
                )
                for p in participants
            ],
            last_message=db_model.last_message or "",
            last_message_at=db_model.last_message_at,
            last_message_sender_id=db_model.last_message_sender_id,
            created_at=db_model.created_at,
            updated_at=db_model.updated_at,
        )
