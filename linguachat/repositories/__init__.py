# Repository classes for database operations
from .base_repository import BaseRepository
from .conversation_repository import ConversationRepository
from .friendship_repository import FriendshipRepository
from .message_repository import MessageRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "ConversationRepository",
    "FriendshipRepository",
    "MessageRepository",
    "UserRepository",
]
