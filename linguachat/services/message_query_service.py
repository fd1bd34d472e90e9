from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from linguachat.errors import InputValidationError, MessageNotFoundError
from linguachat.models.api.messages import DisplayContent, MessageResponse
from linguachat.repositories.message_repository import MessageRepository
from linguachat.services.conversation_registry import ConversationRegistry
from linguachat.services.display import select_display_content
from linguachat.services.language_resolver import LanguagePreferenceResolver


class MessageQueryService:
    """Service for reading the messages of a conversation."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.registry = ConversationRegistry(db)
        self.message_repo = MessageRepository(db)
        self.resolver = LanguagePreferenceResolver(db)

    async def list_messages(
        self,
        conversation_id: str,
        viewer_id: str,
        limit: Optional[int] = 100,
        offset: Optional[int] = 0,
    ) -> List[MessageResponse]:
        """
        Get messages for a specific conversation:

        1. Verify the conversation exists and the viewer takes part in it
        2. Retrieve messages in send order with pagination
        """
        # Validate parameters
        if limit is not None and (limit <= 0 or limit > 1000):
            raise InputValidationError("Limit must be between 1 and 1000")
        if offset is not None and offset < 0:
            raise InputValidationError("Offset must be non-negative")

        # Use default values if None
        limit = limit or 100
        offset = offset or 0

        # Step 1: Verify conversation and membership
        await self.registry.get_for_participant(conversation_id, viewer_id)

        # Step 2: Get messages from repository
        return await self.message_repo.get_by_conversation(
            conversation_id, limit=limit, offset=offset
        )

    async def get_message(
        self, conversation_id: str, message_id: str, viewer_id: str
    ) -> MessageResponse:
        await self.registry.get_for_participant(conversation_id, viewer_id)
        message = await self.message_repo.get_in_conversation(conversation_id, message_id)
        if message is None:
            raise MessageNotFoundError(message_id)
        return message

    async def get_display_content(
        self, conversation_id: str, message_id: str, viewer_id: str
    ) -> DisplayContent:
        """Primary and alternate text of one message as ``viewer_id`` sees it."""
        message = await self.get_message(conversation_id, message_id, viewer_id)
        viewer_language = await self.resolver.resolve_language(viewer_id)
        return select_display_content(message, viewer_id, viewer_language)
