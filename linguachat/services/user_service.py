import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from linguachat.errors import (
    InputValidationError,
    NotAuthorizedError,
    UserNotFoundError,
    UsernameTakenError,
)
from linguachat.models.api.users import (
    CreateUserRequest,
    UpdateUserRequest,
    UserProfile,
    user_id_problem,
    username_problem,
)
from linguachat.repositories.user_repository import UserRepository
from linguachat.services.storage import guarded_write

log = logging.getLogger(__name__)

MAX_SEARCH_RESULTS = 20


class UserService:
    """Service for user profiles."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_repo = UserRepository(db)

    async def create_profile(self, user_id: str, request: CreateUserRequest) -> UserProfile:
        """
        Register the profile of an authenticated identity:

        1. Validate the user id and username format
        2. Reject a second profile for the same identity
        3. Reject usernames already in use
        4. Save the profile
        """
        # Step 1: Id and username format
        problem = user_id_problem(user_id) or username_problem(request.username)
        if problem:
            raise InputValidationError(problem)

        # Step 2: One profile per identity
        if await self.user_repo.get_by_id(user_id):
            raise InputValidationError(f"User {user_id} already has a profile")

        # Step 3: Uniqueness
        if await self.user_repo.get_by_username(request.username):
            raise UsernameTakenError(f"Username '{request.username}' is already taken")

        # Step 4: Save
        profile = UserProfile(
            id=user_id,
            username=request.username,
            display_name=request.display_name,
            avatar_url=request.avatar_url,
            email=request.email,
            language=request.language,
        )
        try:
            created = await self.user_repo.create(profile)
        except IntegrityError as exc:
            # Lost a race for the same username
            await self.db.rollback()
            raise UsernameTakenError(
                f"Username '{request.username}' is already taken"
            ) from exc
        log.info("Created profile %s (%s)", user_id, request.username)
        return created

    async def get_profile(self, user_id: str) -> UserProfile:
        profile = await self.user_repo.get_by_id(user_id)
        if profile is None:
            raise UserNotFoundError(user_id)
        return profile

    async def update_profile(
        self, user_id: str, editor_id: str, request: UpdateUserRequest
    ) -> UserProfile:
        """Update the caller's own profile.

        A language change applies to messages sent afterwards; stored
        translations are not recomputed.
        """
        if user_id != editor_id:
            raise NotAuthorizedError("Users can only update their own profile")
        await self.get_profile(user_id)

        updated = await guarded_write(
            self.db,
            f"update profile {user_id}",
            self.user_repo.update_fields(
                user_id,
                display_name=request.display_name,
                avatar_url=request.avatar_url,
                language=request.language.value if request.language else None,
            ),
        )
        if updated is None:
            raise UserNotFoundError(user_id)
        return updated

    async def search(self, query: str, limit: int = MAX_SEARCH_RESULTS) -> List[UserProfile]:
        """Profiles whose username starts with ``query``."""
        prefix = query.strip().lower()
        if not prefix:
            return []
        return await self.user_repo.search_by_username_prefix(
            prefix, limit=min(limit, MAX_SEARCH_RESULTS)
        )
