from typing import Optional

from pydantic import BaseModel, Field

from .languages import Language


class TranslateRequest(BaseModel):
    text: str = Field(..., min_length=1)
    source_language: Language
    target_language: Language


class TranslateResponse(BaseModel):
    translated_text: str
    skipped: bool = False


class LinkPreviewRequest(BaseModel):
    """Either a URL, or a draft message text whose first link is previewed."""

    url: Optional[str] = Field(default=None, min_length=1)
    text: Optional[str] = None


class CompanionChatRequest(BaseModel):
    user_message: str = Field(..., min_length=1)
    user_language: Language


class CompanionChatResponse(BaseModel):
    response: str
    degraded: bool = False
