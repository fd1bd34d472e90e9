import logging

from fastapi import APIRouter, Depends, HTTPException

from linguachat.clients.base_llm_client import BaseLLMClient
from linguachat.clients.link_preview_client import LinkPreviewClient, extract_urls
from linguachat.config import Settings, get_settings
from linguachat.dependencies import current_user_id, get_llm_client, get_translation_gateway
from linguachat.errors import ChatError
from linguachat.models.api.messages import LinkPreview
from linguachat.models.api.tools import (
    CompanionChatRequest,
    CompanionChatResponse,
    LinkPreviewRequest,
    TranslateRequest,
    TranslateResponse,
)
from linguachat.services.companion_service import CompanionService
from linguachat.services.translation_gateway import TranslationGateway

log = logging.getLogger(__name__)

router = APIRouter()


@router.post("/translate", response_model=TranslateResponse)
async def translate(
    request: TranslateRequest,
    _: str = Depends(current_user_id),
    gateway: TranslationGateway = Depends(get_translation_gateway),
) -> TranslateResponse:
    """Translate a text; same-language requests return it unchanged."""
    if request.source_language == request.target_language:
        return TranslateResponse(translated_text=request.text, skipped=True)
    try:
        translated = await gateway.translate(
            request.text, request.source_language, request.target_language
        )
        return TranslateResponse(translated_text=translated)
    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/link-preview", response_model=LinkPreview)
async def link_preview(
    request: LinkPreviewRequest,
    _: str = Depends(current_user_id),
    settings: Settings = Depends(get_settings),
) -> LinkPreview:
    """Preview a URL, or the first link found in a draft message."""
    url = request.url
    if url is None:
        urls = extract_urls(request.text or "")
        if not urls:
            raise HTTPException(status_code=400, detail="No link found to preview")
        url = urls[0]

    client = LinkPreviewClient(timeout=settings.link_preview_timeout_seconds)
    preview = await client.fetch_preview(url)
    if preview is None:
        raise HTTPException(status_code=502, detail="Failed to generate preview")
    return preview


@router.post("/companion/chat", response_model=CompanionChatResponse)
async def companion_chat(
    request: CompanionChatRequest,
    _: str = Depends(current_user_id),
    llm_client: BaseLLMClient = Depends(get_llm_client),
    settings: Settings = Depends(get_settings),
) -> CompanionChatResponse:
    """Chat with the Lingua practice companion."""
    service = CompanionService(llm_client, timeout=settings.companion_timeout_seconds)
    return await service.chat(request.user_message, request.user_language)
