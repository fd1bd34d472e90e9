"""In-process publish/subscribe used to push change notifications to readers."""

import asyncio
import inspect
import itertools
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, Set, Union

log = logging.getLogger(__name__)

Event = Dict[str, Any]
Callback = Callable[[Event], Union[None, Awaitable[None]]]


def messages_topic(conversation_id: str) -> str:
    return f"conversation:{conversation_id}:messages"


def conversations_topic(user_id: str) -> str:
    return f"user:{user_id}:conversations"


class ChangeNotifier:
    """Topic-keyed observer registry.

    Every publish reaches every callback registered on the topic at that
    moment. Plain callbacks run inline; coroutine callbacks run as background
    tasks, so a slow reader never holds up the writer that published. A
    failing callback is logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, Dict[int, Callback]] = defaultdict(dict)
        self._ids = itertools.count()
        self._tasks: Set["asyncio.Task[None]"] = set()

    def subscribe(self, topic: str, callback: Callback) -> Callable[[], None]:
        """Register ``callback`` for ``topic`` and return its unsubscribe function."""
        token = next(self._ids)
        self._subscribers[topic][token] = callback

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(topic)
            if callbacks is None:
                return
            callbacks.pop(token, None)
            if not callbacks:
                self._subscribers.pop(topic, None)

        return unsubscribe

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, {}))

    async def publish(self, topic: str, event: Event) -> None:
        for callback in list(self._subscribers.get(topic, {}).values()):
            try:
                result = callback(event)
            except Exception:
                log.exception("Subscriber of %s failed to handle %s", topic, event.get("type"))
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(self._await_callback(topic, event, result))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait until every callback scheduled so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def _await_callback(
        self, topic: str, event: Event, result: Awaitable[None]
    ) -> None:
        try:
            await result
        except Exception:
            log.exception("Subscriber of %s failed to handle %s", topic, event.get("type"))
