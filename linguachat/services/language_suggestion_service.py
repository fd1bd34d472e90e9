import asyncio
import logging
import re
from typing import Dict, List, Optional, Sequence

from linguachat.clients.base_llm_client import BaseLLMClient, LLMClientError
from linguachat.models.api.languages import LANGUAGE_NAMES, Language

log = logging.getLogger(__name__)

SUGGESTION_TEMPERATURE = 0.0
SUGGESTION_MAX_TOKENS = 10


def build_suggestion_messages(
    chat_history: str, language_options: Sequence[Language]
) -> List[Dict[str, str]]:
    options = ", ".join(
        f"{LANGUAGE_NAMES[language]} ({language.value})" for language in language_options
    )
    return [
        {
            "role": "user",
            "content": (
                "Given the following chat history and language options, suggest the "
                "most appropriate language for the user. Return the language only.\n\n"
                f"Chat History: {chat_history}\n\nLanguage Options: {options}"
            ),
        }
    ]


def parse_suggestion(reply: str, language_options: Sequence[Language]) -> Optional[Language]:
    """Find the first offered language named in the reply, by code or by name."""
    words = re.findall(r"[a-záéíóúñ]+", reply.lower())
    for word in words:
        for language in language_options:
            if word in (language.value, LANGUAGE_NAMES[language].lower()):
                return language
    return None


class LanguageSuggestionService:
    """Guesses a user's preferred language from their chat history."""

    def __init__(self, llm_client: BaseLLMClient, timeout: float = 8.0):
        self.llm_client = llm_client
        self.timeout = timeout

    async def suggest(
        self, chat_history: str, language_options: Optional[Sequence[Language]] = None
    ) -> Optional[Language]:
        """Return the suggested language, or None when no guess is available."""
        options = [Language(option) for option in (language_options or list(Language))]
        if not chat_history.strip():
            return None
        try:
            reply = await asyncio.wait_for(
                self.llm_client.complete(
                    build_suggestion_messages(chat_history, options),
                    temperature=SUGGESTION_TEMPERATURE,
                    max_tokens=SUGGESTION_MAX_TOKENS,
                    timeout=self.timeout,
                ),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, LLMClientError) as e:
            log.warning("Language suggestion unavailable: %s", str(e) or "timed out")
            return None

        suggestion = parse_suggestion(reply, options)
        if suggestion is None:
            log.info("Language suggestion reply %r matched no option", reply)
        return suggestion
