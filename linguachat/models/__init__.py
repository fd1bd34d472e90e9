# Export all models
from .api import (
    ConversationResponse,
    FriendshipResponse,
    Language,
    MessageResponse,
    UserProfile,
)
from .db import (
    ConversationModel,
    FriendshipModel,
    MessageModel,
    ParticipantModel,
    UserModel,
)

__all__ = [
    # API models
    "ConversationResponse",
    "FriendshipResponse",
    "Language",
    "MessageResponse",
    "UserProfile",
    # DB models
    "ConversationModel",
    "FriendshipModel",
    "MessageModel",
    "ParticipantModel",
    "UserModel",
]
