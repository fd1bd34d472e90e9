# Business logic services
from .companion_service import CompanionService
from .conversation_registry import ConversationRegistry, conversation_id_for
from .display import select_display_content
from .friendship_service import FriendshipService
from .language_resolver import LanguagePreferenceResolver
from .language_suggestion_service import LanguageSuggestionService
from .message_pipeline import MessagePipeline
from .message_query_service import MessageQueryService
from .notifier import ChangeNotifier
from .subscriptions import SubscriptionService
from .translation_gateway import TranslationGateway
from .user_service import UserService

__all__ = [
    "ChangeNotifier",
    "CompanionService",
    "ConversationRegistry",
    "FriendshipService",
    "LanguagePreferenceResolver",
    "LanguageSuggestionService",
    "MessagePipeline",
    "MessageQueryService",
    "SubscriptionService",
    "TranslationGateway",
    "UserService",
    "conversation_id_for",
    "select_display_content",
]
