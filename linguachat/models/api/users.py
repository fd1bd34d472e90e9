import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .languages import Language

USERNAME_PATTERN = re.compile(r"^[a-z0-9_.]+$")
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20

# Joins the two user ids of a pair key, so it may not appear inside an id
USER_ID_SEPARATOR = "_"


def username_problem(username: str) -> Optional[str]:
    """Describe why a username is invalid, or None when it is acceptable."""
    if len(username) < USERNAME_MIN_LENGTH:
        return f"Username must be at least {USERNAME_MIN_LENGTH} characters"
    if len(username) > USERNAME_MAX_LENGTH:
        return f"Username must be at most {USERNAME_MAX_LENGTH} characters"
    if not USERNAME_PATTERN.match(username):
        return (
            "Username can only contain lowercase letters, numbers, "
            "underscores, and periods"
        )
    return None


def user_id_problem(user_id: Optional[str]) -> Optional[str]:
    """Describe why a user id cannot be used, or None when it is acceptable."""
    if not user_id or not user_id.strip():
        return "User id is required"
    if USER_ID_SEPARATOR in user_id:
        return f"User id must not contain '{USER_ID_SEPARATOR}'"
    return None


def pair_key(user_a_id: str, user_b_id: str) -> str:
    """Order-independent key of a user pair; distinct pairs never share a key."""
    for user_id in (user_a_id, user_b_id):
        problem = user_id_problem(user_id)
        if problem:
            raise ValueError(f"{problem}: {user_id!r}")
    return USER_ID_SEPARATOR.join(sorted([user_a_id, user_b_id]))


class UserProfile(BaseModel):
    """Response model for user profile data."""

    id: str
    username: str
    display_name: str
    avatar_url: Optional[str] = None
    email: Optional[str] = None
    language: Optional[Language] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CreateUserRequest(BaseModel):
    """Request model for registering a profile for an authenticated identity."""

    username: str = Field(..., description="Unique handle, lowercase")
    display_name: str = Field(..., min_length=1, max_length=255)
    avatar_url: Optional[str] = None
    email: Optional[str] = None
    language: Optional[Language] = None

    @field_validator("username")
    @classmethod
    def _normalize_username(cls, value: str) -> str:
        return value.strip().lower()


class UpdateUserRequest(BaseModel):
    """Request model for profile updates; omitted fields are left unchanged."""

    display_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    avatar_url: Optional[str] = None
    language: Optional[Language] = None


class LanguageSuggestionRequest(BaseModel):
    chat_history: str = Field(..., min_length=1)
    language_options: List[Language] = Field(
        default_factory=lambda: list(Language)
    )


class LanguageSuggestionResponse(BaseModel):
    suggested_language: Optional[Language]
