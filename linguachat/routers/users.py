import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from linguachat.clients.base_llm_client import BaseLLMClient
from linguachat.config import Settings, get_settings
from linguachat.database import get_db
from linguachat.dependencies import current_user_id, get_llm_client
from linguachat.errors import ChatError
from linguachat.models.api.users import (
    CreateUserRequest,
    LanguageSuggestionRequest,
    LanguageSuggestionResponse,
    UpdateUserRequest,
    UserProfile,
)
from linguachat.services.language_suggestion_service import LanguageSuggestionService
from linguachat.services.user_service import UserService

log = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=UserProfile, status_code=201)
async def create_user(
    request: CreateUserRequest,
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
) -> UserProfile:
    """Create the profile of the signed-in user."""
    try:
        service = UserService(db)
        return await service.create_profile(user_id, request)
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to create profile for %s", user_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/search", response_model=List[UserProfile])
async def search_users(
    q: str = Query(..., min_length=1, description="Username prefix"),
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[UserProfile]:
    """Find users by username prefix, excluding the caller."""
    try:
        service = UserService(db)
        results = await service.search(q)
        return [profile for profile in results if profile.id != user_id]
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("User search failed")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{user_id}", response_model=UserProfile)
async def get_user(
    user_id: str,
    _: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
) -> UserProfile:
    try:
        service = UserService(db)
        return await service.get_profile(user_id)
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to load profile %s", user_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.patch("/{user_id}", response_model=UserProfile)
async def update_user(
    user_id: str,
    request: UpdateUserRequest,
    editor_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
) -> UserProfile:
    """
    Update the caller's own profile.

    Body fields that are omitted stay unchanged. A new language applies to
    messages sent from now on.
    """
    try:
        service = UserService(db)
        return await service.update_profile(user_id, editor_id, request)
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        log.exception("Failed to update profile %s", user_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{user_id}/language-suggestion", response_model=LanguageSuggestionResponse)
async def suggest_language(
    user_id: str,
    request: LanguageSuggestionRequest,
    caller_id: str = Depends(current_user_id),
    llm_client: BaseLLMClient = Depends(get_llm_client),
    settings: Settings = Depends(get_settings),
) -> LanguageSuggestionResponse:
    """Suggest a preferred language from chat history; null when unsure."""
    if user_id != caller_id:
        raise HTTPException(status_code=403, detail="Users can only ask for their own suggestion")
    service = LanguageSuggestionService(
        llm_client, timeout=settings.translation_timeout_seconds
    )
    suggestion = await service.suggest(request.chat_history, request.language_options)
    return LanguageSuggestionResponse(suggested_language=suggestion)
