import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from linguachat.errors import (
    FriendshipExistsError,
    FriendshipNotFoundError,
    InputValidationError,
    NotAuthorizedError,
    UserNotFoundError,
)
from linguachat.models.api.friendships import (
    AcceptFriendshipResponse,
    FriendshipResponse,
    FriendshipStatus,
    PendingFriendRequest,
)
from linguachat.models.api.users import UserProfile, user_id_problem
from linguachat.repositories.friendship_repository import FriendshipRepository
from linguachat.repositories.user_repository import UserRepository
from linguachat.services.conversation_registry import (
    ConversationRegistry,
    participant_details,
)
from linguachat.services.notifier import ChangeNotifier
from linguachat.services.storage import guarded_write

log = logging.getLogger(__name__)


class FriendshipService:
    """Service for friend requests between users."""

    def __init__(self, db: AsyncSession, notifier: Optional[ChangeNotifier] = None):
        self.db = db
        self.friendship_repo = FriendshipRepository(db)
        self.user_repo = UserRepository(db)
        self.registry = ConversationRegistry(db, notifier)

    async def send_request(self, from_user_id: str, to_user_id: str) -> FriendshipResponse:
        for user_id in (from_user_id, to_user_id):
            problem = user_id_problem(user_id)
            if problem:
                raise InputValidationError(problem)
        if from_user_id == to_user_id:
            raise InputValidationError("You cannot send a friend request to yourself")
        if await self.user_repo.get_by_id(to_user_id) is None:
            raise UserNotFoundError(to_user_id)

        existing = await self.friendship_repo.get_by_pair(from_user_id, to_user_id)
        if existing is not None:
            raise FriendshipExistsError(
                f"A friend request between {from_user_id} and {to_user_id} already exists"
            )

        request = FriendshipResponse(
            id=str(uuid4()),
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            status=FriendshipStatus.PENDING,
            created_at=datetime.now(timezone.utc),
        )
        try:
            created = await self.friendship_repo.create(request)
        except IntegrityError as exc:
            await self.db.rollback()
            raise FriendshipExistsError(
                f"A friend request between {from_user_id} and {to_user_id} already exists"
            ) from exc
        log.info("Friend request %s from %s to %s", created.id, from_user_id, to_user_id)
        return created

    async def list_pending(self, user_id: str) -> List[PendingFriendRequest]:
        """Pending requests addressed to ``user_id`` with the sender's profile."""
        pending = []
        for friendship in await self.friendship_repo.list_pending_for(user_id):
            sender = await self.user_repo.get_by_id(friendship.from_user_id)
            if sender is None:
                log.warning(
                    "Skipping friend request %s from missing user %s",
                    friendship.id,
                    friendship.from_user_id,
                )
                continue
            pending.append(
                PendingFriendRequest(**friendship.model_dump(), from_user=sender)
            )
        return pending

    async def list_friends(self, user_id: str) -> List[UserProfile]:
        friends = []
        for friendship in await self.friendship_repo.list_accepted_for(user_id):
            other_id = (
                friendship.to_user_id
                if friendship.from_user_id == user_id
                else friendship.from_user_id
            )
            profile = await self.user_repo.get_by_id(other_id)
            if profile is not None:
                friends.append(profile)
        return friends

    async def accept(self, friendship_id: str, user_id: str) -> AcceptFriendshipResponse:
        """
        Accept a pending request addressed to ``user_id``:

        1. Move the request to accepted (accepting twice is a no-op)
        2. Open the conversation between the two users
        """
        friendship = await self._get_addressed_to(friendship_id, user_id)

        # Step 1: pending -> accepted, never back
        if friendship.status == FriendshipStatus.PENDING:
            accepted = await guarded_write(
                self.db,
                f"accept friendship {friendship_id}",
                self.friendship_repo.mark_accepted(
                    friendship_id, datetime.now(timezone.utc)
                ),
            )
            if accepted is None:
                raise FriendshipNotFoundError(friendship_id)
            friendship = accepted

        # Step 2: conversation with current profile snapshots
        sender = await self.user_repo.get_by_id(friendship.from_user_id)
        receiver = await self.user_repo.get_by_id(friendship.to_user_id)
        conversation_id = await self.registry.get_or_create(
            friendship.from_user_id,
            friendship.to_user_id,
            participant_details(sender),
            participant_details(receiver),
        )
        log.info("Friendship %s accepted; conversation %s", friendship_id, conversation_id)
        return AcceptFriendshipResponse(
            friendship=friendship, conversation_id=conversation_id
        )

    async def decline(self, friendship_id: str, user_id: str) -> None:
        friendship = await self._get_addressed_to(friendship_id, user_id)
        if friendship.status != FriendshipStatus.PENDING:
            raise InputValidationError("Only pending friend requests can be declined")
        deleted = await guarded_write(
            self.db,
            f"decline friendship {friendship_id}",
            self.friendship_repo.delete(friendship_id),
        )
        if not deleted:
            raise FriendshipNotFoundError(friendship_id)

    async def _get_addressed_to(self, friendship_id: str, user_id: str) -> FriendshipResponse:
        friendship = await self.friendship_repo.get_by_id(friendship_id)
        if friendship is None:
            raise FriendshipNotFoundError(friendship_id)
        if friendship.to_user_id != user_id:
            raise NotAuthorizedError("Only the addressee can answer a friend request")
        return friendship
