import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from linguachat.errors import (
    ConversationNotFoundError,
    InputValidationError,
    InvalidConversationStateError,
    NotAuthorizedError,
    StorageWriteError,
)
from linguachat.models.api.conversations import ConversationResponse, ParticipantDetails
from linguachat.models.api.users import UserProfile, pair_key, user_id_problem
from linguachat.repositories.conversation_repository import ConversationRepository
from linguachat.repositories.message_repository import MessageRepository
from linguachat.services.notifier import ChangeNotifier, conversations_topic, messages_topic
from linguachat.services.storage import guarded_write

log = logging.getLogger(__name__)

ATTACHMENT_PLACEHOLDER = "Attachment"
LINK_PLACEHOLDER = "Link"


def conversation_id_for(user_a_id: str, user_b_id: str) -> str:
    """Derive the conversation id of a user pair; argument order does not matter."""
    for user_id in (user_a_id, user_b_id):
        problem = user_id_problem(user_id)
        if problem:
            raise InputValidationError(problem)
    if user_a_id == user_b_id:
        raise InputValidationError("A conversation needs two different users")
    return pair_key(user_a_id, user_b_id)


def participant_details(profile: Optional[UserProfile]) -> Optional[ParticipantDetails]:
    """Snapshot fields of a profile, as stored on the conversation."""
    if profile is None:
        return None
    return ParticipantDetails(
        username=profile.username,
        display_name=profile.display_name,
        avatar_url=profile.avatar_url,
        language=profile.language,
    )


def preview_text(text: str, has_attachments: bool, has_link_preview: bool) -> str:
    """Conversation list preview for a message."""
    if text and text.strip():
        return text
    if has_attachments:
        return ATTACHMENT_PLACEHOLDER
    if has_link_preview:
        return LINK_PLACEHOLDER
    return ""


class ConversationRegistry:
    """Owns conversation identity and the per-conversation summary state."""

    def __init__(self, db: AsyncSession, notifier: Optional[ChangeNotifier] = None):
        self.db = db
        self.notifier = notifier
        self.conversation_repo = ConversationRepository(db)
        self.message_repo = MessageRepository(db)

    async def get_or_create(
        self,
        user_a_id: str,
        user_b_id: str,
        details_a: Optional[ParticipantDetails] = None,
        details_b: Optional[ParticipantDetails] = None,
    ) -> str:
        """
        Return the conversation id of a pair, creating the conversation once:

        1. Derive the id from the sorted pair
        2. Insert conversation and participants if absent
        3. Otherwise merge the supplied snapshot fields, keeping unread
           counters and archive flags as they are
        """
        conversation_id = conversation_id_for(user_a_id, user_b_id)
        details = {user_a_id: details_a, user_b_id: details_b}

        exists = await self.conversation_repo.exists(conversation_id)

        if not exists:
            try:
                await self.conversation_repo.create_with_participants(
                    conversation_id,
                    [user_a_id, user_b_id],
                    {uid: d for uid, d in details.items() if d is not None},
                    created_at=datetime.now(timezone.utc),
                )
                log.info("Created conversation %s", conversation_id)
            except IntegrityError:
                # Another writer created the pair first; fall through to a merge
                await self.db.rollback()
                exists = True
            except SQLAlchemyError as exc:
                await self.db.rollback()
                raise StorageWriteError(
                    f"Failed to create conversation {conversation_id}"
                ) from exc

        if exists:
            await self._check_pair(conversation_id, user_a_id, user_b_id)
            for user_id, participant_details in details.items():
                if participant_details is None:
                    continue
                await guarded_write(
                    self.db,
                    f"merge participant details into {conversation_id}",
                    self.conversation_repo.merge_participant_details(
                        conversation_id, user_id, participant_details
                    ),
                )

        await self._notify_participants(conversation_id, [user_a_id, user_b_id])
        return conversation_id

    async def get(self, conversation_id: str) -> Optional[ConversationResponse]:
        """Return the conversation, or None when it does not exist."""
        return await self.conversation_repo.get_by_id(conversation_id)

    async def get_for_participant(
        self, conversation_id: str, user_id: str
    ) -> ConversationResponse:
        conversation = await self.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        if user_id not in conversation.participant_ids:
            raise NotAuthorizedError(
                f"User {user_id} is not a participant of conversation {conversation_id}"
            )
        return conversation

    async def list_for_user(
        self,
        user_id: str,
        archived: Optional[bool] = None,
        limit: Optional[int] = 50,
        offset: Optional[int] = 0,
    ) -> List[ConversationResponse]:
        # Validate parameters
        if limit is not None and (limit <= 0 or limit > 1000):
            raise InputValidationError("Limit must be between 1 and 1000")
        if offset is not None and offset < 0:
            raise InputValidationError("Offset must be non-negative")

        return await self.conversation_repo.list_for_user(
            user_id, archived=archived, limit=limit, offset=offset
        )

    async def record_activity(
        self,
        conversation_id: str,
        preview: str,
        sender_id: Optional[str] = None,
        increment_unread_for: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> None:
        """Set the last-message summary and atomically bump one unread counter."""
        updated = await guarded_write(
            self.db,
            f"record activity on conversation {conversation_id}",
            self.conversation_repo.record_activity(
                conversation_id,
                preview,
                at or datetime.now(timezone.utc),
                sender_id=sender_id,
                increment_unread_for=increment_unread_for,
            ),
        )
        if not updated:
            raise ConversationNotFoundError(conversation_id)
        await self._notify_conversation(conversation_id)

    async def set_archived(self, conversation_id: str, user_id: str, archived: bool) -> None:
        await self.get_for_participant(conversation_id, user_id)
        await guarded_write(
            self.db,
            f"set archived flag on {conversation_id}",
            self.conversation_repo.set_archived(conversation_id, user_id, archived),
        )
        await self._notify_participants(conversation_id, [user_id])

    async def set_unread(self, conversation_id: str, user_id: str, count: int) -> None:
        if count < 0:
            raise InputValidationError("Unread count must be non-negative")
        await self.get_for_participant(conversation_id, user_id)
        await guarded_write(
            self.db,
            f"set unread count on {conversation_id}",
            self.conversation_repo.set_unread(conversation_id, user_id, count),
        )
        await self._notify_participants(conversation_id, [user_id])

    async def mark_read(self, conversation_id: str, reader_id: str) -> int:
        """Reset the reader's unread counter and flag the other side's messages read."""
        conversation = await self.get_for_participant(conversation_id, reader_id)
        other_id = conversation.other_participant_id(reader_id)
        marked = 0
        if other_id:
            marked = await guarded_write(
                self.db,
                f"mark messages read in {conversation_id}",
                self.message_repo.mark_read(conversation_id, other_id),
            )
        await guarded_write(
            self.db,
            f"reset unread count on {conversation_id}",
            self.conversation_repo.set_unread(conversation_id, reader_id, 0),
        )
        if marked and self.notifier:
            await self.notifier.publish(
                messages_topic(conversation_id),
                {"type": "messages_changed", "conversation_id": conversation_id},
            )
        await self._notify_participants(conversation_id, [reader_id])
        return marked

    async def delete(self, conversation_id: str, requester_id: str) -> None:
        """Delete a conversation and every message in it."""
        conversation = await self.get_for_participant(conversation_id, requester_id)
        await guarded_write(
            self.db,
            f"delete conversation {conversation_id}",
            self.conversation_repo.delete_cascade(conversation_id),
        )
        log.info("Conversation %s deleted by %s", conversation_id, requester_id)
        if self.notifier:
            await self.notifier.publish(
                messages_topic(conversation_id),
                {"type": "conversation_deleted", "conversation_id": conversation_id},
            )
        await self._notify_participants(conversation_id, conversation.participant_ids)

    async def reconcile(self, conversation_id: str) -> ConversationResponse:
        """Rebuild the last-message summary from the newest stored message.

        Repairs a conversation left stale when a message was saved but the
        summary update failed. Unread counters are not recomputed.
        """
        conversation = await self.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)

        latest = await self.message_repo.get_latest(conversation_id)
        if latest is None:
            preview, at, sender_id = "", conversation.created_at, None
        else:
            preview = preview_text(
                latest.text, bool(latest.attachments), latest.link_preview is not None
            )
            at, sender_id = latest.sent_at, latest.sender_id

        await self.record_activity(
            conversation_id,
            preview,
            sender_id=sender_id,
            at=at or conversation.last_message_at,
        )
        log.info("Reconciled conversation %s", conversation_id)
        refreshed = await self.get(conversation_id)
        if refreshed is None:
            raise ConversationNotFoundError(conversation_id)
        return refreshed

    async def _check_pair(self, conversation_id: str, user_a_id: str, user_b_id: str) -> None:
        conversation = await self.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        if sorted(conversation.participant_ids) != sorted([user_a_id, user_b_id]):
            log.error(
                "Conversation %s belongs to %s, not to %s and %s",
                conversation_id,
                conversation.participant_ids,
                user_a_id,
                user_b_id,
            )
            raise InvalidConversationStateError(
                f"Conversation {conversation_id} belongs to a different pair of users"
            )

    async def _notify_conversation(self, conversation_id: str) -> None:
        if not self.notifier:
            return
        conversation = await self.get(conversation_id)
        if conversation is not None:
            await self._notify_participants(conversation_id, conversation.participant_ids)

    async def _notify_participants(self, conversation_id: str, user_ids: List[str]) -> None:
        if not self.notifier:
            return
        for user_id in user_ids:
            await self.notifier.publish(
                conversations_topic(user_id),
                {"type": "conversation_changed", "conversation_id": conversation_id},
            )
