import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from linguachat.errors import (
    ConversationNotFoundError,
    ConversationSyncError,
    InputValidationError,
    InvalidConversationStateError,
    MessageNotFoundError,
    NotAuthorizedError,
    SendTimeoutError,
    StorageWriteError,
    TranslationUnavailableError,
)
from linguachat.models.api.languages import Language
from linguachat.models.api.messages import Attachment, LinkPreview, MessageResponse
from linguachat.repositories.message_repository import MessageRepository
from linguachat.services.conversation_registry import ConversationRegistry, preview_text
from linguachat.services.language_resolver import LanguagePreferenceResolver
from linguachat.services.notifier import ChangeNotifier, messages_topic
from linguachat.services.storage import guarded_write
from linguachat.services.translation_gateway import TranslationGateway

log = logging.getLogger(__name__)


class MessagePipeline:
    """Sends, edits and deletes messages in a two-party conversation."""

    def __init__(
        self,
        db: AsyncSession,
        translation_gateway: TranslationGateway,
        notifier: Optional[ChangeNotifier] = None,
        send_timeout: float = 20.0,
        conversation_update_attempts: int = 3,
        retry_delay: float = 0.2,
    ):
        self.db = db
        self.translation_gateway = translation_gateway
        self.notifier = notifier
        self.send_timeout = send_timeout
        self.conversation_update_attempts = max(1, conversation_update_attempts)
        self.retry_delay = retry_delay
        self.message_repo = MessageRepository(db)
        self.registry = ConversationRegistry(db, notifier)
        self.resolver = LanguagePreferenceResolver(db)

    async def send(
        self,
        conversation_id: str,
        sender_id: str,
        text: str,
        attachments: Optional[List[Attachment]] = None,
        link_preview: Optional[LinkPreview] = None,
    ) -> MessageResponse:
        """Send a message, bounded by ``send_timeout`` seconds overall."""
        text = text or ""
        attachments = list(attachments or [])
        if not text.strip() and not attachments and link_preview is None:
            raise InputValidationError(
                "A message needs text, an attachment or a link preview"
            )

        saved_ids: List[str] = []
        try:
            return await asyncio.wait_for(
                self._send(
                    conversation_id, sender_id, text, attachments, link_preview, saved_ids
                ),
                timeout=self.send_timeout,
            )
        except asyncio.TimeoutError as exc:
            if saved_ids:
                log.error(
                    "Message %s saved but send to %s timed out after %ss; needs reconcile",
                    saved_ids[0],
                    conversation_id,
                    self.send_timeout,
                )
            else:
                log.error(
                    "Send to conversation %s timed out after %ss",
                    conversation_id,
                    self.send_timeout,
                )
            raise SendTimeoutError(
                f"Sending to conversation {conversation_id} timed out"
            ) from exc

    async def _send(
        self,
        conversation_id: str,
        sender_id: str,
        text: str,
        attachments: List[Attachment],
        link_preview: Optional[LinkPreview],
        saved_ids: List[str],
    ) -> MessageResponse:
        """
        Main business logic for sending a message:
        1. Load the conversation and find the receiver
        2. Read both languages from the live profiles
        3. Translate when the languages differ, absorbing failures
        4. Save the message
        5. Update the conversation summary and the receiver's unread counter
        """
        # Step 1: Conversation and receiver
        conversation = await self.registry.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        if sender_id not in conversation.participant_ids:
            raise NotAuthorizedError(
                f"User {sender_id} is not a participant of conversation {conversation_id}"
            )
        receiver_id = conversation.other_participant_id(sender_id)
        if receiver_id is None:
            raise InvalidConversationStateError(
                f"Conversation {conversation_id} has no other participant"
            )

        # Step 2: Live language preferences
        sender_language = await self.resolver.resolve_language(sender_id)
        receiver_language = await self.resolver.resolve_language(receiver_id)

        # Step 3: Translation
        translated_text = await self._translate_if_needed(
            text, sender_language, receiver_language
        )

        # Step 4: Save the message
        sent_at = datetime.now(timezone.utc)
        message = await guarded_write(
            self.db,
            f"save message in conversation {conversation_id}",
            self.message_repo.create(
                MessageResponse(
                    id=str(uuid4()),
                    conversation_id=conversation_id,
                    sender_id=sender_id,
                    text=text,
                    sender_language=sender_language,
                    translated_text=translated_text,
                    attachments=attachments,
                    link_preview=link_preview,
                    sent_at=sent_at,
                    read=False,
                )
            ),
        )
        saved_ids.append(message.id)

        # Step 5: Conversation summary, then tell readers about the message
        try:
            await self._update_conversation(
                conversation_id,
                message.id,
                preview_text(text, bool(attachments), link_preview is not None),
                sender_id=sender_id,
                receiver_id=receiver_id,
                at=sent_at,
            )
        finally:
            await self._notify_messages(conversation_id, "message_created", message.id)

        log.info(
            "Message %s sent in %s (%s->%s, translated=%s)",
            message.id,
            conversation_id,
            sender_language.value,
            receiver_language.value,
            translated_text is not None,
        )
        return message

    async def edit(
        self, conversation_id: str, message_id: str, editor_id: str, new_text: str
    ) -> MessageResponse:
        """Replace a message's text and recompute its translation.

        Only the sender may edit. The translation goes from the language the
        message was written in to the receiver's current language; if it
        cannot be produced the old translation is dropped.
        """
        if not new_text or not new_text.strip():
            raise InputValidationError("Edited text must not be empty")

        conversation = await self.registry.get_for_participant(conversation_id, editor_id)
        message = await self.message_repo.get_in_conversation(conversation_id, message_id)
        if message is None:
            raise MessageNotFoundError(message_id)
        if message.sender_id != editor_id:
            raise NotAuthorizedError("Only the sender can edit a message")

        receiver_id = conversation.other_participant_id(editor_id)
        translated_text = None
        if receiver_id is not None:
            receiver_language = await self.resolver.resolve_language(receiver_id)
            translated_text = await self._translate_if_needed(
                new_text, message.sender_language, receiver_language
            )

        updated = await guarded_write(
            self.db,
            f"edit message {message_id}",
            self.message_repo.update_content(
                message_id,
                new_text,
                translated_text,
                edited_at=datetime.now(timezone.utc),
            ),
        )
        if updated is None:
            raise MessageNotFoundError(message_id)

        await self._notify_messages(conversation_id, "message_edited", message_id)
        return updated

    async def delete(
        self, conversation_id: str, message_id: str, requester_id: str
    ) -> None:
        """Delete one message. The conversation preview is left as it is."""
        await self.registry.get_for_participant(conversation_id, requester_id)
        message = await self.message_repo.get_in_conversation(conversation_id, message_id)
        if message is None:
            raise MessageNotFoundError(message_id)
        if message.sender_id != requester_id:
            raise NotAuthorizedError("Only the sender can delete a message")

        deleted = await guarded_write(
            self.db, f"delete message {message_id}", self.message_repo.delete(message_id)
        )
        if not deleted:
            raise MessageNotFoundError(message_id)

        await self._notify_messages(conversation_id, "message_deleted", message_id)

    async def _translate_if_needed(
        self, text: str, source: Language, target: Language
    ) -> Optional[str]:
        if not text.strip() or source == target:
            return None
        try:
            return await self.translation_gateway.translate(text, source, target)
        except TranslationUnavailableError as e:
            log.warning(
                "Translation %s->%s unavailable, sending original only: %s",
                source.value,
                target.value,
                e.message,
            )
            return None

    async def _update_conversation(
        self,
        conversation_id: str,
        message_id: str,
        preview: str,
        sender_id: str,
        receiver_id: str,
        at: datetime,
    ) -> None:
        last_error: Optional[StorageWriteError] = None
        for attempt in range(1, self.conversation_update_attempts + 1):
            try:
                await self.registry.record_activity(
                    conversation_id,
                    preview,
                    sender_id=sender_id,
                    increment_unread_for=receiver_id,
                    at=at,
                )
                return
            except StorageWriteError as e:
                last_error = e
                log.warning(
                    "Conversation update for %s failed (attempt %d/%d): %s",
                    conversation_id,
                    attempt,
                    self.conversation_update_attempts,
                    e.message,
                )
                if attempt < self.conversation_update_attempts:
                    await asyncio.sleep(self.retry_delay)

        log.error(
            "Message %s saved but conversation %s not updated; needs reconcile",
            message_id,
            conversation_id,
        )
        raise ConversationSyncError(
            conversation_id,
            message_id,
            cause=last_error.message if last_error else None,
        )

    async def _notify_messages(
        self, conversation_id: str, event_type: str, message_id: str
    ) -> None:
        if not self.notifier:
            return
        await self.notifier.publish(
            messages_topic(conversation_id),
            {
                "type": event_type,
                "conversation_id": conversation_id,
                "message_id": message_id,
            },
        )
