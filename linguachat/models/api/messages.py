from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .languages import Language

MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024


class AttachmentType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    FILE = "file"


class Attachment(BaseModel):
    """Metadata of a file already uploaded to media storage."""

    type: AttachmentType
    url: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    size: int = Field(..., ge=0, le=MAX_ATTACHMENT_BYTES)


class LinkPreview(BaseModel):
    url: str
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    site_name: Optional[str] = None


class SendMessageRequest(BaseModel):
    """Request model for sending a message."""

    text: str = Field(default="", description="Message text, may be empty")
    attachments: Optional[List[Attachment]] = Field(
        default=None, description="Uploaded attachments"
    )
    link_preview: Optional[LinkPreview] = None


class EditMessageRequest(BaseModel):
    text: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    """Response model for message data."""

    id: str
    conversation_id: str
    sender_id: str
    text: str
    sender_language: Language
    translated_text: Optional[str] = None
    attachments: List[Attachment] = Field(default_factory=list)
    link_preview: Optional[LinkPreview] = None
    sent_at: datetime
    read: bool = False
    edited: bool = False
    edited_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DisplayContent(BaseModel):
    """Which variant of a message a given viewer sees first."""

    primary_text: str
    alternate_text: Optional[str] = None
    alternate_label: Optional[str] = None
    is_alternate_translation: bool = False
