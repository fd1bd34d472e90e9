from typing import List

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from linguachat.errors import (
    FriendshipExistsError,
    FriendshipNotFoundError,
    InputValidationError,
    NotAuthorizedError,
    UserNotFoundError,
)
from linguachat.models.api.friendships import FriendshipStatus
from linguachat.models.api.languages import Language
from linguachat.services.conversation_registry import ConversationRegistry
from linguachat.services.friendship_service import FriendshipService
from linguachat.services.notifier import ChangeNotifier, conversations_topic


class TestFriendshipService:
    """Integration tests for FriendshipService."""

    @pytest.fixture
    def notifier(self) -> ChangeNotifier:
        return ChangeNotifier()

    @pytest.fixture
    async def service(
        self, test_db: AsyncSession, make_user, notifier: ChangeNotifier
    ) -> FriendshipService:
        await make_user("alice", language="en")
        await make_user("bob", language="es")
        await make_user("carol", language="en")
        return FriendshipService(test_db, notifier)

    @pytest.mark.asyncio
    async def test_send_request(self, service: FriendshipService) -> None:
        request = await service.send_request("alice", "bob")
        assert request.status == FriendshipStatus.PENDING

        pending = await service.list_pending("bob")
        assert [p.id for p in pending] == [request.id]
        assert pending[0].from_user.username == "alice"
        assert await service.list_pending("alice") == []

    @pytest.mark.asyncio
    async def test_no_self_requests(self, service: FriendshipService) -> None:
        with pytest.raises(InputValidationError):
            await service.send_request("alice", "alice")

    @pytest.mark.asyncio
    async def test_unknown_target(self, service: FriendshipService) -> None:
        with pytest.raises(UserNotFoundError):
            await service.send_request("alice", "nobody")

    @pytest.mark.asyncio
    async def test_ids_containing_separator_rejected(
        self, service: FriendshipService, make_user
    ) -> None:
        await make_user("ab", language="en")
        await make_user("c", language="en")
        await service.send_request("ab", "c")

        with pytest.raises(InputValidationError):
            await service.send_request("a", "b_c")
        # a pair that shares letters with an existing one is still its own relation
        await make_user("a", language="en")
        await make_user("bc", language="en")
        request = await service.send_request("a", "bc")
        assert request.status == FriendshipStatus.PENDING

    @pytest.mark.asyncio
    async def test_one_relation_per_pair(self, service: FriendshipService) -> None:
        await service.send_request("alice", "bob")
        with pytest.raises(FriendshipExistsError):
            await service.send_request("bob", "alice")

    @pytest.mark.asyncio
    async def test_accept_creates_conversation(
        self, service: FriendshipService, test_db: AsyncSession, notifier: ChangeNotifier
    ) -> None:
        events: List[dict] = []
        notifier.subscribe(conversations_topic("alice"), events.append)
        request = await service.send_request("alice", "bob")

        result = await service.accept(request.id, "bob")

        assert result.friendship.status == FriendshipStatus.ACCEPTED
        assert result.friendship.accepted_at is not None
        assert result.conversation_id == "alice_bob"
        conversation = await ConversationRegistry(test_db).get("alice_bob")
        assert conversation.participant("bob").language == Language.ES
        assert conversation.participant("alice").display_name == "Alice"
        assert events[-1]["conversation_id"] == "alice_bob"

        assert [f.id for f in await service.list_friends("alice")] == ["bob"]
        assert [f.id for f in await service.list_friends("bob")] == ["alice"]

    @pytest.mark.asyncio
    async def test_accept_twice_is_harmless(self, service: FriendshipService) -> None:
        request = await service.send_request("alice", "bob")
        first = await service.accept(request.id, "bob")
        second = await service.accept(request.id, "bob")

        assert second.conversation_id == first.conversation_id
        assert second.friendship.status == FriendshipStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_only_addressee_can_answer(self, service: FriendshipService) -> None:
        request = await service.send_request("alice", "bob")
        with pytest.raises(NotAuthorizedError):
            await service.accept(request.id, "alice")
        with pytest.raises(NotAuthorizedError):
            await service.decline(request.id, "carol")

    @pytest.mark.asyncio
    async def test_decline_removes_request(self, service: FriendshipService) -> None:
        request = await service.send_request("alice", "bob")
        await service.decline(request.id, "bob")

        assert await service.list_pending("bob") == []
        with pytest.raises(FriendshipNotFoundError):
            await service.accept(request.id, "bob")
        # a new request can be sent afterwards
        await service.send_request("bob", "alice")

    @pytest.mark.asyncio
    async def test_cannot_decline_accepted(self, service: FriendshipService) -> None:
        request = await service.send_request("alice", "bob")
        await service.accept(request.id, "bob")
        with pytest.raises(InputValidationError):
            await service.decline(request.id, "bob")
