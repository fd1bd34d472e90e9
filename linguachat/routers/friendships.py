import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from linguachat.database import get_db
from linguachat.dependencies import current_user_id, get_notifier
from linguachat.errors import ChatError
from linguachat.models.api.friendships import (
    AcceptFriendshipResponse,
    FriendRequest,
    FriendshipResponse,
    PendingFriendRequest,
)
from linguachat.models.api.users import UserProfile
from linguachat.services.friendship_service import FriendshipService
from linguachat.services.notifier import ChangeNotifier

log = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=FriendshipResponse, status_code=201)
async def send_friend_request(
    request: FriendRequest,
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
) -> FriendshipResponse:
    try:
        service = FriendshipService(db)
        return await service.send_request(user_id, request.to_user_id)
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to send friend request from %s", user_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/pending", response_model=List[PendingFriendRequest])
async def list_pending_requests(
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[PendingFriendRequest]:
    """Friend requests waiting for the caller's answer."""
    try:
        service = FriendshipService(db)
        return await service.list_pending(user_id)
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to list pending requests for %s", user_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/friends", response_model=List[UserProfile])
async def list_friends(
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[UserProfile]:
    try:
        service = FriendshipService(db)
        return await service.list_friends(user_id)
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to list friends of %s", user_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{friendship_id}/accept", response_model=AcceptFriendshipResponse)
async def accept_friend_request(
    friendship_id: str,
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> AcceptFriendshipResponse:
    """Accept a request and open the conversation between the two users."""
    try:
        service = FriendshipService(db, notifier)
        return await service.accept(friendship_id, user_id)
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to accept friendship %s", friendship_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{friendship_id}/decline", status_code=204)
async def decline_friend_request(
    friendship_id: str,
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        service = FriendshipService(db)
        await service.decline(friendship_id, user_id)
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to decline friendship %s", friendship_id)
        raise HTTPException(status_code=500, detail="Internal server error")
