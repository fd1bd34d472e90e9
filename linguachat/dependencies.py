"""FastAPI dependencies shared by the routers."""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from linguachat.clients.base_llm_client import BaseLLMClient
from linguachat.clients.openrouter_client import OpenRouterClient
from linguachat.config import Settings, get_settings
from linguachat.database import AsyncSessionLocal, get_db
from linguachat.models.api.users import user_id_problem
from linguachat.services.message_pipeline import MessagePipeline
from linguachat.services.notifier import ChangeNotifier
from linguachat.services.translation_gateway import TranslationGateway


async def current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Id of the signed-in user, forwarded by the identity proxy."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="X-User-Id header is required")
    user_id = x_user_id.strip()
    problem = user_id_problem(user_id)
    if problem:
        raise HTTPException(status_code=400, detail=problem)
    return user_id


def get_notifier(request: Request) -> ChangeNotifier:
    return request.app.state.notifier


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Factory for sessions that outlive a single request, such as streams."""
    return AsyncSessionLocal


def get_llm_client(settings: Settings = Depends(get_settings)) -> BaseLLMClient:
    return OpenRouterClient(
        base_url=settings.llm_api_url,
        api_key=settings.llm_api_key,
        model=settings.llm_model,
    )


def get_translation_gateway(
    llm_client: BaseLLMClient = Depends(get_llm_client),
    settings: Settings = Depends(get_settings),
) -> TranslationGateway:
    return TranslationGateway(llm_client, timeout=settings.translation_timeout_seconds)


def get_message_pipeline(
    db: AsyncSession = Depends(get_db),
    gateway: TranslationGateway = Depends(get_translation_gateway),
    notifier: ChangeNotifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
) -> MessagePipeline:
    return MessagePipeline(
        db,
        gateway,
        notifier=notifier,
        send_timeout=settings.send_timeout_seconds,
        conversation_update_attempts=settings.conversation_update_attempts,
    )
