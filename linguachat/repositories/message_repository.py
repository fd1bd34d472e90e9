from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from linguachat.models.api.messages import MessageResponse
from linguachat.models.db.message_model import MessageModel
from linguachat.repositories.base_repository import BaseRepository


class MessageRepository(BaseRepository[MessageModel, MessageResponse]):
    """Repository for message operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, MessageModel)

    async def get_by_conversation(
        self,
        conversation_id: str,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[MessageResponse]:
        """Get messages of a conversation in send order."""
        query = (
            select(self.model_class)
            .where(self.model_class.conversation_id == conversation_id)
            .order_by(self.model_class.sent_at, self.model_class.id)
            .execution_options(populate_existing=True)
        )  # type: ignore
        if limit is not None:
            query = query.limit(limit)
        if offset is not None:
            query = query.offset(offset)
        result = await self.db.execute(query)
        db_models = result.scalars().all()
        return [self._to_pydantic(db_model) for db_model in db_models]

    async def get_in_conversation(
        self, conversation_id: str, message_id: str
    ) -> Optional[MessageResponse]:
        query = select(self.model_class).where(
            self.model_class.id == message_id,
            self.model_class.conversation_id == conversation_id,
        ).execution_options(populate_existing=True)
        result = await self.db.execute(query)
        db_model = result.scalar_one_or_none()
        return self._to_pydantic(db_model) if db_model else None

    async def get_latest(self, conversation_id: str) -> Optional[MessageResponse]:
        """Get the most recently sent message of a conversation."""
        query = (
            select(self.model_class)
            .where(self.model_class.conversation_id == conversation_id)
            .order_by(self.model_class.sent_at.desc(), self.model_class.id.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        db_model = result.scalar_one_or_none()
        return self._to_pydantic(db_model) if db_model else None

    async def update_content(
        self,
        message_id: str,
        text: str,
        translated_text: Optional[str],
        edited_at: datetime,
    ) -> Optional[MessageResponse]:
        """Replace the text and translation of a message and flag it edited."""
        result = await self.db.execute(
            update(self.model_class)
            .where(self.model_class.id == message_id)
            .values(
                text=text,
                translated_text=translated_text,
                edited=True,
                edited_at=edited_at,
            )
        )
        await self.db.commit()
        if result.rowcount == 0:
            return None
        return await self.get_by_id(message_id)

    async def mark_read(self, conversation_id: str, sender_id: str) -> int:
        """Flag every unread message from ``sender_id`` as read."""
        result = await self.db.execute(
            update(self.model_class)
            .where(self.model_class.conversation_id == conversation_id)
            .where(self.model_class.sender_id == sender_id)
            .where(self.model_class.read.is_(False))
            .values(read=True)
        )
        await self.db.commit()
        return result.rowcount

    def _to_pydantic(self, db_model: Any) -> MessageResponse:
        """Convert SQLAlchemy MessageModel to Pydantic MessageResponse."""
        return MessageResponse(
            id=db_model.id,
            conversation_id=db_model.conversation_id,
            sender_id=db_model.sender_id,
            text=db_model.text or "",
            sender_language=db_model.sender_language,
            translated_text=db_model.translated_text,
            attachments=db_model.attachments or [],
            link_preview=db_model.link_preview,
            sent_at=db_model.sent_at,
            read=bool(db_model.read),
            edited=bool(db_model.edited),
            edited_at=db_model.edited_at,
            created_at=db_model.created_at,
            updated_at=db_model.updated_at,
        )

    def _from_pydantic(self, pydantic_model: MessageResponse) -> MessageModel:
        """Convert Pydantic MessageResponse to SQLAlchemy MessageModel."""
        return MessageModel(
            id=pydantic_model.id,
            conversation_id=pydantic_model.conversation_id,
            sender_id=pydantic_model.sender_id,
            text=pydantic_model.text,
            sender_language=pydantic_model.sender_language.value,
            translated_text=pydantic_model.translated_text,
            attachments=[
                attachment.model_dump(mode="json")
                for attachment in pydantic_model.attachments
            ],
            link_preview=(
                pydantic_model.link_preview.model_dump(mode="json")
                if pydantic_model.link_preview
                else None
            ),
            sent_at=pydantic_model.sent_at,
            read=pydantic_model.read,
            edited=pydantic_model.edited,
            edited_at=pydantic_model.edited_at,
        )
