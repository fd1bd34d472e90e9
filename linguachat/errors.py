"""Domain errors raised by services and mapped to HTTP responses by routers."""

from http import HTTPStatus
from typing import Optional


class ChatError(Exception):
    """Base class for every expected failure in the chat domain."""

    error = "chat_error"
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ChatError):
    error = "not_found"
    status_code = HTTPStatus.NOT_FOUND


class ConversationNotFoundError(NotFoundError):
    def __init__(self, conversation_id: str) -> None:
        super().__init__(f"Conversation {conversation_id} not found")
        self.conversation_id = conversation_id


class MessageNotFoundError(NotFoundError):
    def __init__(self, message_id: str) -> None:
        super().__init__(f"Message {message_id} not found")
        self.message_id = message_id


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class FriendshipNotFoundError(NotFoundError):
    def __init__(self, friendship_id: str) -> None:
        super().__init__(f"Friendship {friendship_id} not found")
        self.friendship_id = friendship_id


class NotAuthorizedError(ChatError):
    """Raised when a user acts on a resource they do not own."""

    error = "not_authorized"
    status_code = HTTPStatus.FORBIDDEN


class InputValidationError(ChatError):
    """Raised before any write when input is malformed or incomplete."""

    error = "validation_error"
    status_code = HTTPStatus.BAD_REQUEST


class UsernameTakenError(InputValidationError):
    error = "username_taken"
    status_code = HTTPStatus.CONFLICT


class FriendshipExistsError(InputValidationError):
    error = "friendship_exists"
    status_code = HTTPStatus.CONFLICT


class InvalidConversationStateError(ChatError):
    error = "invalid_conversation_state"
    status_code = HTTPStatus.CONFLICT


class TranslationUnavailableError(ChatError):
    """Raised by the translation gateway; absorbed by the message pipeline."""

    error = "translation_unavailable"
    status_code = HTTPStatus.SERVICE_UNAVAILABLE


class StorageWriteError(ChatError):
    error = "storage_write_failure"
    status_code = HTTPStatus.SERVICE_UNAVAILABLE


class ConversationSyncError(StorageWriteError):
    """The message was saved but the conversation summary could not be updated."""

    error = "conversation_sync_failure"

    def __init__(self, conversation_id: str, message_id: str, cause: Optional[str] = None) -> None:
        detail = f"Message {message_id} was saved but conversation {conversation_id} is out of date"
        if cause:
            detail = f"{detail}: {cause}"
        super().__init__(detail)
        self.conversation_id = conversation_id
        self.message_id = message_id


class SendTimeoutError(ChatError):
    error = "send_timeout"
    status_code = HTTPStatus.GATEWAY_TIMEOUT
