"""Selection of the text a viewer sees for a persisted message."""

from typing import Optional

from linguachat.models.api.languages import Language
from linguachat.models.api.messages import DisplayContent, MessageResponse

TRANSLATED_LABEL = "Translated"
ORIGINAL_LABEL = "Original"


def select_display_content(
    message: MessageResponse, viewer_id: str, viewer_language: Optional[Language] = None
) -> DisplayContent:
    """Pick primary and alternate text for ``viewer_id``.

    The sender reads what they wrote, with the translation as the alternate.
    The receiver reads the translation when one was stored, with the original
    as the alternate. ``viewer_language`` is accepted for callers that track
    it, but the choice depends only on what was persisted at send time.
    """
    if viewer_id == message.sender_id:
        if message.translated_text:
            return DisplayContent(
                primary_text=message.text,
                alternate_text=message.translated_text,
                alternate_label=TRANSLATED_LABEL,
                is_alternate_translation=True,
            )
        return DisplayContent(primary_text=message.text)

    if message.translated_text:
        return DisplayContent(
            primary_text=message.translated_text,
            alternate_text=message.text,
            alternate_label=ORIGINAL_LABEL,
            is_alternate_translation=False,
        )
    return DisplayContent(primary_text=message.text)
