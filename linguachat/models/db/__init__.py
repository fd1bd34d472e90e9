# SQLAlchemy database models
from .conversation_model import ConversationModel
from .friendship_model import FriendshipModel
from .message_model import MessageModel
from .participant_model import ParticipantModel
from .user_model import UserModel

__all__ = [
    "ConversationModel",
    "FriendshipModel",
    "MessageModel",
    "ParticipantModel",
    "UserModel",
]
