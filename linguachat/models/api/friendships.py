from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .users import UserProfile


class FriendshipStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"


class FriendRequest(BaseModel):
    to_user_id: str = Field(..., min_length=1)


class FriendshipResponse(BaseModel):
    """Response model for friendship data."""

    id: str
    from_user_id: str
    to_user_id: str
    status: FriendshipStatus
    created_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PendingFriendRequest(FriendshipResponse):
    from_user: UserProfile


class AcceptFriendshipResponse(BaseModel):
    friendship: FriendshipResponse
    conversation_id: str
