from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from linguachat.models.api.conversations import ParticipantDetails
from linguachat.models.api.friendships import FriendshipResponse, FriendshipStatus
from linguachat.models.api.languages import Language
from linguachat.models.api.messages import Attachment, MessageResponse
from linguachat.repositories.conversation_repository import ConversationRepository
from linguachat.repositories.friendship_repository import FriendshipRepository, pair_key
from linguachat.repositories.message_repository import MessageRepository
from linguachat.repositories.user_repository import UserRepository

BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _message(
    conversation_id: str,
    sender_id: str,
    text: str,
    sent_at: datetime,
    translated_text: Optional[str] = None,
) -> MessageResponse:
    return MessageResponse(
        id=str(uuid4()),
        conversation_id=conversation_id,
        sender_id=sender_id,
        text=text,
        sender_language=Language.EN,
        translated_text=translated_text,
        sent_at=sent_at,
    )


async def _conversation(
    db: AsyncSession, a: str, b: str, created_at: datetime = BASE_TIME
) -> str:
    conversation_id = "_".join(sorted([a, b]))
    await ConversationRepository(db).create_with_participants(
        conversation_id, [a, b], {a: ParticipantDetails(username=a)}, created_at
    )
    return conversation_id


class TestUserRepository:
    """Integration tests for UserRepository against SQLite."""

    @pytest.mark.asyncio
    async def test_create_and_lookup(self, test_db: AsyncSession, make_user) -> None:
        await make_user("alice", language="es")
        repo = UserRepository(test_db)

        profile = await repo.get_by_id("alice")
        assert profile is not None
        assert profile.language == Language.ES
        assert (await repo.get_by_username("ALICE")).id == "alice"
        assert await repo.get_by_id("nobody") is None

    @pytest.mark.asyncio
    async def test_get_language_reads_column(self, test_db: AsyncSession, make_user) -> None:
        await make_user("alice", language=None)
        repo = UserRepository(test_db)
        assert await repo.get_language("alice") is None
        assert await repo.get_language("nobody") is None

        await repo.update_fields("alice", language="es")
        assert await repo.get_language("alice") == "es"

    @pytest.mark.asyncio
    async def test_update_fields_skips_none(self, test_db: AsyncSession, make_user) -> None:
        await make_user("alice")
        repo = UserRepository(test_db)

        updated = await repo.update_fields("alice", display_name="Ally", avatar_url=None)
        assert updated.display_name == "Ally"
        assert updated.language == Language.EN

    @pytest.mark.asyncio
    async def test_search_by_prefix(self, test_db: AsyncSession, make_user) -> None:
        await make_user("u1", username="maria")
        await make_user("u2", username="mario")
        await make_user("u3", username="pedro")
        await make_user("u4", username="ma_x")

        repo = UserRepository(test_db)
        names = [p.username for p in await repo.search_by_username_prefix("Mar")]
        assert names == ["maria", "mario"]
        # underscore is matched literally, not as a wildcard
        assert [p.username for p in await repo.search_by_username_prefix("ma_")] == ["ma_x"]

    @pytest.mark.asyncio
    async def test_duplicate_username_rejected(self, test_db: AsyncSession, make_user) -> None:
        await make_user("u1", username="taken")
        with pytest.raises(IntegrityError):
            await make_user("u2", username="taken")


class TestConversationRepository:
    """Integration tests for ConversationRepository against SQLite."""

    @pytest.mark.asyncio
    async def test_create_with_participants(self, test_db: AsyncSession) -> None:
        conversation_id = await _conversation(test_db, "bob", "alice")
        conversation = await ConversationRepository(test_db).get_by_id(conversation_id)

        assert conversation.id == "alice_bob"
        assert conversation.participant_ids == ["alice", "bob"]
        assert conversation.last_message == ""
        assert [p.unread_count for p in conversation.participants] == [0, 0]
        assert conversation.participant("alice").username == "alice"
        assert conversation.participant("bob").username is None

    @pytest.mark.asyncio
    async def test_duplicate_pair_raises(self, test_db: AsyncSession) -> None:
        await _conversation(test_db, "alice", "bob")
        with pytest.raises(IntegrityError):
            await _conversation(test_db, "bob", "alice")

    @pytest.mark.asyncio
    async def test_record_activity_increments_receiver(self, test_db: AsyncSession) -> None:
        conversation_id = await _conversation(test_db, "alice", "bob")
        repo = ConversationRepository(test_db)

        for i in range(3):
            assert await repo.record_activity(
                conversation_id,
                f"msg {i}",
                BASE_TIME + timedelta(minutes=i),
                sender_id="alice",
                increment_unread_for="bob",
            )

        conversation = await repo.get_by_id(conversation_id)
        assert conversation.last_message == "msg 2"
        assert conversation.last_message_sender_id == "alice"
        assert conversation.participant("bob").unread_count == 3
        assert conversation.participant("alice").unread_count == 0

    @pytest.mark.asyncio
    async def test_record_activity_missing_conversation(self, test_db: AsyncSession) -> None:
        repo = ConversationRepository(test_db)
        assert await repo.record_activity("x_y", "hi", BASE_TIME) is False

    @pytest.mark.asyncio
    async def test_merge_details_keeps_counters(self, test_db: AsyncSession) -> None:
        conversation_id = await _conversation(test_db, "alice", "bob")
        repo = ConversationRepository(test_db)
        await repo.set_unread(conversation_id, "bob", 4)
        await repo.set_archived(conversation_id, "bob", True)

        await repo.merge_participant_details(
            conversation_id, "bob", ParticipantDetails(display_name="Bobby", language=Language.ES)
        )

        bob = (await repo.get_by_id(conversation_id)).participant("bob")
        assert bob.display_name == "Bobby"
        assert bob.language == Language.ES
        assert bob.unread_count == 4
        assert bob.archived is True

    @pytest.mark.asyncio
    async def test_list_for_user_order_and_archive_filter(self, test_db: AsyncSession) -> None:
        older = await _conversation(test_db, "alice", "bob", BASE_TIME)
        newer = await _conversation(test_db, "alice", "carol", BASE_TIME + timedelta(hours=1))
        await _conversation(test_db, "bob", "carol")
        repo = ConversationRepository(test_db)

        assert [c.id for c in await repo.list_for_user("alice")] == [newer, older]

        await repo.set_archived(older, "alice", True)
        assert [c.id for c in await repo.list_for_user("alice", archived=True)] == [older]
        assert [c.id for c in await repo.list_for_user("alice", archived=False)] == [newer]
        # archiving is per participant
        bob_active = {c.id for c in await repo.list_for_user("bob", archived=False)}
        assert bob_active == {older, "bob_carol"}

    @pytest.mark.asyncio
    async def test_delete_cascade(self, test_db: AsyncSession) -> None:
        conversation_id = await _conversation(test_db, "alice", "bob")
        await MessageRepository(test_db).create(
            _message(conversation_id, "alice", "hi", BASE_TIME)
        )
        repo = ConversationRepository(test_db)

        assert await repo.delete_cascade(conversation_id) is True
        assert await repo.get_by_id(conversation_id) is None
        assert await MessageRepository(test_db).get_by_conversation(conversation_id) == []
        assert await repo.list_for_user("alice") == []


class TestMessageRepository:
    """Integration tests for MessageRepository against SQLite."""

    @pytest.mark.asyncio
    async def test_messages_in_send_order(self, test_db: AsyncSession) -> None:
        conversation_id = await _conversation(test_db, "alice", "bob")
        repo = MessageRepository(test_db)
        await repo.create(_message(conversation_id, "bob", "second", BASE_TIME + timedelta(seconds=5)))
        await repo.create(_message(conversation_id, "alice", "first", BASE_TIME))

        messages = await repo.get_by_conversation(conversation_id)
        assert [m.text for m in messages] == ["first", "second"]
        assert (await repo.get_latest(conversation_id)).text == "second"
        assert [m.text for m in await repo.get_by_conversation(conversation_id, limit=1, offset=1)] == ["second"]

    @pytest.mark.asyncio
    async def test_attachments_round_trip(self, test_db: AsyncSession) -> None:
        conversation_id = await _conversation(test_db, "alice", "bob")
        message = _message(conversation_id, "alice", "", BASE_TIME)
        message.attachments = [
            Attachment(type="image", url="https://cdn/x.png", name="x.png", size=1024)
        ]
        saved = await MessageRepository(test_db).create(message)

        assert saved.attachments[0].name == "x.png"
        assert saved.attachments[0].type.value == "image"

    @pytest.mark.asyncio
    async def test_update_content(self, test_db: AsyncSession) -> None:
        conversation_id = await _conversation(test_db, "alice", "bob")
        repo = MessageRepository(test_db)
        saved = await repo.create(
            _message(conversation_id, "alice", "hello", BASE_TIME, translated_text="hola")
        )
        assert (await repo.get_in_conversation(conversation_id, saved.id)).edited is False

        updated = await repo.update_content(saved.id, "hello there", None, BASE_TIME)
        assert updated.text == "hello there"
        assert updated.translated_text is None
        assert updated.edited is True
        assert updated.edited_at is not None
        assert await repo.update_content("missing", "x", None, BASE_TIME) is None

    @pytest.mark.asyncio
    async def test_mark_read_only_touches_sender(self, test_db: AsyncSession) -> None:
        conversation_id = await _conversation(test_db, "alice", "bob")
        repo = MessageRepository(test_db)
        await repo.create(_message(conversation_id, "alice", "a1", BASE_TIME))
        await repo.create(_message(conversation_id, "alice", "a2", BASE_TIME))
        await repo.create(_message(conversation_id, "bob", "b1", BASE_TIME))

        assert await repo.mark_read(conversation_id, "alice") == 2
        assert await repo.mark_read(conversation_id, "alice") == 0
        read = {m.text: m.read for m in await repo.get_by_conversation(conversation_id)}
        assert read == {"a1": True, "a2": True, "b1": False}


class TestFriendshipRepository:
    """Integration tests for FriendshipRepository against SQLite."""

    def test_pair_key_is_order_independent(self) -> None:
        assert pair_key("b", "a") == pair_key("a", "b") == "a_b"

    def test_pair_key_rejects_ids_with_separator(self) -> None:
        with pytest.raises(ValueError):
            pair_key("a_b", "c")

    @pytest.mark.asyncio
    async def test_pending_then_accepted(self, test_db: AsyncSession) -> None:
        repo = FriendshipRepository(test_db)
        created = await repo.create(
            FriendshipResponse(
                id=str(uuid4()),
                from_user_id="alice",
                to_user_id="bob",
                status=FriendshipStatus.PENDING,
                created_at=BASE_TIME,
            )
        )

        assert (await repo.get_by_pair("bob", "alice")).id == created.id
        assert [f.id for f in await repo.list_pending_for("bob")] == [created.id]
        assert await repo.list_pending_for("alice") == []

        accepted = await repo.mark_accepted(created.id, BASE_TIME)
        assert accepted.status == FriendshipStatus.ACCEPTED
        assert await repo.list_pending_for("bob") == []
        assert [f.id for f in await repo.list_accepted_for("alice")] == [created.id]
