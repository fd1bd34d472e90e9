import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from linguachat.database import get_db
from linguachat.dependencies import current_user_id, get_notifier, get_session_factory
from linguachat.errors import ChatError
from linguachat.models.api.conversations import (
    ArchiveRequest,
    ConversationResponse,
    CreateConversationRequest,
    CreateConversationResponse,
    UnreadRequest,
)
from linguachat.routers.streaming import snapshot_stream
from linguachat.services.conversation_registry import (
    ConversationRegistry,
    participant_details,
)
from linguachat.services.notifier import ChangeNotifier
from linguachat.services.subscriptions import SubscriptionService
from linguachat.services.user_service import UserService

log = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=CreateConversationResponse)
async def create_conversation(
    request: CreateConversationRequest,
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> CreateConversationResponse:
    """
    Open the conversation with another user, or return the existing one.

    Calling this again refreshes the profile snapshots but keeps unread
    counters and archive flags.
    """
    try:
        users = UserService(db)
        other = await users.get_profile(request.other_user_id)
        me = await users.user_repo.get_by_id(user_id)

        registry = ConversationRegistry(db, notifier)
        conversation_id = await registry.get_or_create(
            user_id, other.id, participant_details(me), participant_details(other)
        )
        return CreateConversationResponse(id=conversation_id)
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to open conversation for %s", user_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("", response_model=List[ConversationResponse])
async def list_conversations(
    archived: Optional[bool] = Query(
        None, description="Filter on the caller's archive flag; omit for all"
    ),
    limit: Optional[int] = Query(
        50, description="Maximum number of conversations to return", ge=1, le=1000
    ),
    offset: Optional[int] = Query(
        0, description="Number of conversations to skip", ge=0
    ),
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[ConversationResponse]:
    """
    List the caller's conversations, most recent activity first.

    Query parameters:
    - archived: true for archived only, false for active only
    - limit: Maximum number of conversations to return (default: 50, max: 1000)
    - offset: Number of conversations to skip (default: 0)
    """
    try:
        registry = ConversationRegistry(db)
        return await registry.list_for_user(
            user_id, archived=archived, limit=limit, offset=offset
        )
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to list conversations for %s", user_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/stream")
async def stream_conversations(
    request: Request,
    archived: Optional[bool] = Query(None),
    user_id: str = Depends(current_user_id),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> StreamingResponse:
    """Live conversation list of the caller as Server-Sent Events."""
    service = SubscriptionService(session_factory, notifier)

    async def subscribe(on_update):
        return await service.subscribe_to_conversations(
            user_id, on_update, archived=archived
        )

    response = StreamingResponse(
        snapshot_stream(request, subscribe, "conversations"),
        media_type="text/event-stream",
    )
    response.headers["Cache-Control"] = "no-cache"
    response.headers["X-Accel-Buffering"] = "no"
    return response


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: str,
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ConversationResponse:
    try:
        registry = ConversationRegistry(db)
        return await registry.get_for_participant(conversation_id, user_id)
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to load conversation %s", conversation_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.delete("/{conversation_id}", status_code=204)
async def delete_conversation(
    conversation_id: str,
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> None:
    """Delete the conversation and all of its messages for both users."""
    try:
        registry = ConversationRegistry(db, notifier)
        await registry.delete(conversation_id, user_id)
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to delete conversation %s", conversation_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.put("/{conversation_id}/archived", status_code=204)
async def set_archived(
    conversation_id: str,
    request: ArchiveRequest,
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> None:
    try:
        registry = ConversationRegistry(db, notifier)
        await registry.set_archived(conversation_id, user_id, request.archived)
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to archive conversation %s", conversation_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.put("/{conversation_id}/unread", status_code=204)
async def set_unread(
    conversation_id: str,
    request: UnreadRequest,
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> None:
    """Set the caller's unread counter, e.g. to mark a conversation unread."""
    try:
        registry = ConversationRegistry(db, notifier)
        await registry.set_unread(conversation_id, user_id, request.count)
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to set unread count on %s", conversation_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{conversation_id}/read")
async def mark_read(
    conversation_id: str,
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> dict:
    try:
        registry = ConversationRegistry(db, notifier)
        marked = await registry.mark_read(conversation_id, user_id)
        return {"marked_read": marked}
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to mark conversation %s read", conversation_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{conversation_id}/reconcile", response_model=ConversationResponse)
async def reconcile_conversation(
    conversation_id: str,
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> ConversationResponse:
    """Rebuild the last-message summary from the newest stored message."""
    try:
        registry = ConversationRegistry(db, notifier)
        await registry.get_for_participant(conversation_id, user_id)
        return await registry.reconcile(conversation_id)
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to reconcile conversation %s", conversation_id)
        raise HTTPException(status_code=500, detail="Internal server error")
