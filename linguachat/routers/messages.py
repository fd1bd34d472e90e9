import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from linguachat.database import get_db
from linguachat.dependencies import (
    current_user_id,
    get_message_pipeline,
    get_notifier,
    get_session_factory,
)
from linguachat.errors import ChatError
from linguachat.models.api.messages import (
    DisplayContent,
    EditMessageRequest,
    MessageResponse,
    SendMessageRequest,
)
from linguachat.routers.streaming import snapshot_stream
from linguachat.services.conversation_registry import ConversationRegistry
from linguachat.services.message_pipeline import MessagePipeline
from linguachat.services.message_query_service import MessageQueryService
from linguachat.services.notifier import ChangeNotifier
from linguachat.services.subscriptions import SubscriptionService

log = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{conversation_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    conversation_id: str,
    limit: Optional[int] = Query(
        100, description="Maximum number of messages to return", ge=1, le=1000
    ),
    offset: Optional[int] = Query(0, description="Number of messages to skip", ge=0),
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[MessageResponse]:
    """
    Get the messages of a conversation in the order they were sent.

    Query parameters:
    - limit: Maximum number of messages to return (default: 100, max: 1000)
    - offset: Number of messages to skip (default: 0)
    """
    try:
        service = MessageQueryService(db)
        return await service.list_messages(
            conversation_id, user_id, limit=limit, offset=offset
        )
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to list messages of %s", conversation_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{conversation_id}/messages/stream")
async def stream_messages(
    conversation_id: str,
    request: Request,
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> StreamingResponse:
    """Live message list of a conversation as Server-Sent Events."""
    try:
        await ConversationRegistry(db).get_for_participant(conversation_id, user_id)
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    service = SubscriptionService(session_factory, notifier)

    async def subscribe(on_update):
        return await service.subscribe_to_messages(conversation_id, on_update)

    response = StreamingResponse(
        snapshot_stream(request, subscribe, "messages"),
        media_type="text/event-stream",
    )
    response.headers["Cache-Control"] = "no-cache"
    response.headers["X-Accel-Buffering"] = "no"
    return response


@router.post(
    "/{conversation_id}/messages", response_model=MessageResponse, status_code=201
)
async def send_message(
    conversation_id: str,
    request: SendMessageRequest,
    user_id: str = Depends(current_user_id),
    pipeline: MessagePipeline = Depends(get_message_pipeline),
) -> MessageResponse:
    """Send a message; it is translated for the receiver when their languages differ."""
    try:
        return await pipeline.send(
            conversation_id,
            user_id,
            request.text,
            attachments=request.attachments,
            link_preview=request.link_preview,
        )
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to send message in %s", conversation_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.patch(
    "/{conversation_id}/messages/{message_id}", response_model=MessageResponse
)
async def edit_message(
    conversation_id: str,
    message_id: str,
    request: EditMessageRequest,
    user_id: str = Depends(current_user_id),
    pipeline: MessagePipeline = Depends(get_message_pipeline),
) -> MessageResponse:
    try:
        return await pipeline.edit(conversation_id, message_id, user_id, request.text)
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to edit message %s", message_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.delete("/{conversation_id}/messages/{message_id}", status_code=204)
async def delete_message(
    conversation_id: str,
    message_id: str,
    user_id: str = Depends(current_user_id),
    pipeline: MessagePipeline = Depends(get_message_pipeline),
) -> None:
    try:
        await pipeline.delete(conversation_id, message_id, user_id)
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to delete message %s", message_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get(
    "/{conversation_id}/messages/{message_id}/display", response_model=DisplayContent
)
async def get_display_content(
    conversation_id: str,
    message_id: str,
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
) -> DisplayContent:
    """Which text the caller sees first for a message, and the alternate."""
    try:
        service = MessageQueryService(db)
        return await service.get_display_content(conversation_id, message_id, user_id)
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to build display content for %s", message_id)
        raise HTTPException(status_code=500, detail="Internal server error")
