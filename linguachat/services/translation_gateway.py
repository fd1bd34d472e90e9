import asyncio
import logging
from typing import Dict, List

from linguachat.clients.base_llm_client import BaseLLMClient, LLMClientError
from linguachat.errors import InputValidationError, TranslationUnavailableError
from linguachat.models.api.languages import LANGUAGE_NAMES, Language

log = logging.getLogger(__name__)

TRANSLATION_TEMPERATURE = 0.2


def build_translation_messages(
    text: str, source_language: Language, target_language: Language
) -> List[Dict[str, str]]:
    source = LANGUAGE_NAMES[source_language]
    target = LANGUAGE_NAMES[target_language]
    return [
        {
            "role": "system",
            "content": (
                f"You are a translation expert. Translate the given text from "
                f"{source} to {target}. Reply with the translated text only, "
                f"without quotes, notes or explanations."
            ),
        },
        {"role": "user", "content": f"Text: {text}"},
    ]


class TranslationGateway:
    """Stateless wrapper around the hosted model for single translations.

    Performs no retries. Every failure, including running past ``timeout``,
    is reported as TranslationUnavailableError so callers can degrade.
    """

    def __init__(self, llm_client: BaseLLMClient, timeout: float = 8.0):
        self.llm_client = llm_client
        self.timeout = timeout

    async def translate(
        self, text: str, source_language: Language, target_language: Language
    ) -> str:
        source_language = Language(source_language)
        target_language = Language(target_language)
        if source_language == target_language:
            raise InputValidationError("Source and target languages must differ")
        if not text or not text.strip():
            raise InputValidationError("Text to translate must not be empty")

        messages = build_translation_messages(text, source_language, target_language)
        try:
            translated = await asyncio.wait_for(
                self.llm_client.complete(
                    messages,
                    temperature=TRANSLATION_TEMPERATURE,
                    timeout=self.timeout,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            raise TranslationUnavailableError(
                f"Translation timed out after {self.timeout}s"
            ) from exc
        except LLMClientError as exc:
            raise TranslationUnavailableError(str(exc)) from exc

        translated = translated.strip()
        if not translated:
            raise TranslationUnavailableError("Translation came back empty")

        log.debug(
            "Translated %d chars %s->%s",
            len(text),
            source_language.value,
            target_language.value,
        )
        return translated
