"""Server-Sent Event helpers for live snapshot streams."""

import asyncio
import json
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, List, Optional

from fastapi import Request
from pydantic import BaseModel

KEEPALIVE_SECONDS = 15.0

Subscribe = Callable[[Callable[[Any], None]], Awaitable[Callable[[], None]]]


def sse_message(payload: Dict[str, Any], event: Optional[str] = None) -> str:
    body = json.dumps(payload, ensure_ascii=False)
    lines: List[str] = []
    if event:
        lines.append(f"event: {event}")
    for line in body.splitlines() or [""]:
        lines.append(f"data: {line}")
    return "\n".join(lines) + "\n\n"


def snapshot_payload(key: str, items: List[BaseModel]) -> Dict[str, Any]:
    return {"type": "snapshot", key: [item.model_dump(mode="json") for item in items]}


async def snapshot_stream(
    request: Request,
    subscribe: Subscribe,
    key: str,
    keepalive: float = KEEPALIVE_SECONDS,
) -> AsyncGenerator[str, None]:
    """Yield one SSE event per snapshot until the client goes away.

    Only the newest undelivered snapshot is kept; a client that falls behind
    skips the ones it missed.
    """
    queue: "asyncio.Queue[List[BaseModel]]" = asyncio.Queue(maxsize=1)

    def offer(snapshot: List[BaseModel]) -> None:
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(snapshot)

    unsubscribe = await subscribe(offer)
    try:
        while not await request.is_disconnected():
            try:
                snapshot = await asyncio.wait_for(queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield sse_message(snapshot_payload(key, snapshot), event="snapshot")
    finally:
        unsubscribe()
