import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from linguachat.models.api.conversations import ConversationResponse
from linguachat.models.api.messages import MessageResponse
from linguachat.repositories.conversation_repository import ConversationRepository
from linguachat.repositories.message_repository import MessageRepository
from linguachat.services.notifier import (
    ChangeNotifier,
    Event,
    conversations_topic,
    messages_topic,
)

log = logging.getLogger(__name__)

MessagesCallback = Callable[[List[MessageResponse]], Union[None, Awaitable[None]]]
ConversationsCallback = Callable[
    [List[ConversationResponse]], Union[None, Awaitable[None]]
]


async def _deliver(callback: Callable[[Any], Any], snapshot: Any) -> None:
    result = callback(snapshot)
    if inspect.isawaitable(result):
        await result


class SubscriptionService:
    """Live views over messages and conversation lists.

    Each subscriber gets the current snapshot right away and a fresh one
    after every change on its topic. Snapshots are read in a new session per
    delivery, so a subscriber always sees committed state. The same snapshot
    can arrive more than once; subscribers re-render rather than append.
    Refreshes of one subscription run one at a time, so a later snapshot is
    never overtaken by an earlier one.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: ChangeNotifier,
    ):
        self.session_factory = session_factory
        self.notifier = notifier

    async def subscribe_to_messages(
        self, conversation_id: str, on_update: MessagesCallback
    ) -> Callable[[], None]:
        lock = asyncio.Lock()

        async def refresh(event: Optional[Event] = None) -> None:
            async with lock:
                async with self.session_factory() as db:
                    messages = await MessageRepository(db).get_by_conversation(
                        conversation_id
                    )
                await _deliver(on_update, messages)

        return await self._subscribe(messages_topic(conversation_id), refresh)

    async def subscribe_to_conversations(
        self,
        user_id: str,
        on_update: ConversationsCallback,
        archived: Optional[bool] = None,
    ) -> Callable[[], None]:
        lock = asyncio.Lock()

        async def refresh(event: Optional[Event] = None) -> None:
            async with lock:
                async with self.session_factory() as db:
                    conversations = await ConversationRepository(db).list_for_user(
                        user_id, archived=archived, limit=None, offset=None
                    )
                await _deliver(on_update, conversations)

        return await self._subscribe(conversations_topic(user_id), refresh)

    async def _subscribe(
        self, topic: str, refresh: Callable[..., Awaitable[None]]
    ) -> Callable[[], None]:
        # Register before the first read so no change between the two is missed
        unsubscribe = self.notifier.subscribe(topic, refresh)
        try:
            await refresh()
        except Exception:
            unsubscribe()
            raise
        log.debug("Subscribed to %s", topic)
        return unsubscribe
