from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .languages import Language


class ParticipantDetails(BaseModel):
    """Profile fields copied onto a conversation for display."""

    username: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    language: Optional[Language] = None


class ParticipantResponse(BaseModel):
    """Response model for one participant of a conversation."""

    user_id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    language: Optional[Language] = None
    unread_count: int = 0
    archived: bool = False

    model_config = ConfigDict(from_attributes=True)


class ConversationResponse(BaseModel):
    """Response model for conversation data."""

    id: str
    participant_ids: List[str]
    participants: List[ParticipantResponse]
    last_message: str
    last_message_at: datetime
    last_message_sender_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def participant(self, user_id: str) -> Optional[ParticipantResponse]:
        for participant in self.participants:
            if participant.user_id == user_id:
                return participant
        return None

    def other_participant_id(self, user_id: str) -> Optional[str]:
        for participant_id in self.participant_ids:
            if participant_id != user_id:
                return participant_id
        return None


class CreateConversationRequest(BaseModel):
    """Request model for opening a conversation with another user."""

    other_user_id: str = Field(..., min_length=1)


class CreateConversationResponse(BaseModel):
    id: str


class ArchiveRequest(BaseModel):
    archived: bool


class UnreadRequest(BaseModel):
    count: int = Field(..., ge=0)
