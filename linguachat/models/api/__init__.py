# API models for request/response contracts
from .conversations import (
    ArchiveRequest,
    ConversationResponse,
    CreateConversationRequest,
    CreateConversationResponse,
    ParticipantDetails,
    ParticipantResponse,
    UnreadRequest,
)
from .friendships import (
    AcceptFriendshipResponse,
    FriendRequest,
    FriendshipResponse,
    FriendshipStatus,
    PendingFriendRequest,
)
from .languages import DEFAULT_LANGUAGE, LANGUAGE_NAMES, Language, parse_language
from .messages import (
    Attachment,
    AttachmentType,
    DisplayContent,
    EditMessageRequest,
    LinkPreview,
    MessageResponse,
    SendMessageRequest,
)
from .tools import (
    CompanionChatRequest,
    CompanionChatResponse,
    LinkPreviewRequest,
    TranslateRequest,
    TranslateResponse,
)
from .users import (
    CreateUserRequest,
    LanguageSuggestionRequest,
    LanguageSuggestionResponse,
    UpdateUserRequest,
    UserProfile,
)

__all__ = [
    "AcceptFriendshipResponse",
    "ArchiveRequest",
    "Attachment",
    "AttachmentType",
    "CompanionChatRequest",
    "CompanionChatResponse",
    "ConversationResponse",
    "CreateConversationRequest",
    "CreateConversationResponse",
    "CreateUserRequest",
    "DEFAULT_LANGUAGE",
    "DisplayContent",
    "EditMessageRequest",
    "FriendRequest",
    "FriendshipResponse",
    "FriendshipStatus",
    "LANGUAGE_NAMES",
    "Language",
    "LanguageSuggestionRequest",
    "LanguageSuggestionResponse",
    "LinkPreview",
    "LinkPreviewRequest",
    "MessageResponse",
    "ParticipantDetails",
    "ParticipantResponse",
    "PendingFriendRequest",
    "SendMessageRequest",
    "TranslateRequest",
    "TranslateResponse",
    "UnreadRequest",
    "UpdateUserRequest",
    "UserProfile",
    "parse_language",
]
