import asyncio
import logging
from typing import Dict, List

from linguachat.clients.base_llm_client import BaseLLMClient, LLMClientError
from linguachat.models.api.languages import LANGUAGE_NAMES, Language
from linguachat.models.api.tools import CompanionChatResponse

log = logging.getLogger(__name__)

COMPANION_NAME = "Lingua"
COMPANION_TEMPERATURE = 0.9
COMPANION_MAX_TOKENS = 150

FALLBACK_REPLIES = {
    Language.EN: "Sorry, I can't chat right now. Let's try again in a moment! 🙂",
    Language.ES: "Lo siento, no puedo charlar ahora. ¡Intentémoslo de nuevo en un momento! 🙂",
}


def practice_language(user_language: Language) -> Language:
    """The language the companion answers in: the one the user is learning."""
    return Language.ES if user_language == Language.EN else Language.EN


def companion_system_prompt(user_language: Language) -> str:
    respond_in = LANGUAGE_NAMES[practice_language(user_language)]
    return (
        f"You are {COMPANION_NAME}, a friendly language tutor. Respond in {respond_in}. "
        "Be warm and conversational. Keep responses SHORT (2-3 sentences). "
        "Gently correct mistakes. Ask follow-up questions. Use emojis occasionally 😊"
    )


class CompanionService:
    """Scripted practice partner backed by the hosted language model."""

    def __init__(self, llm_client: BaseLLMClient, timeout: float = 15.0):
        self.llm_client = llm_client
        self.timeout = timeout

    def build_messages(
        self, user_message: str, user_language: Language
    ) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": companion_system_prompt(user_language)},
            {"role": "user", "content": user_message},
        ]

    async def chat(self, user_message: str, user_language: Language) -> CompanionChatResponse:
        """Reply to the user; a canned reply flagged ``degraded`` on any failure."""
        user_language = Language(user_language)
        messages = self.build_messages(user_message, user_language)
        try:
            reply = await asyncio.wait_for(
                self.llm_client.complete(
                    messages,
                    temperature=COMPANION_TEMPERATURE,
                    max_tokens=COMPANION_MAX_TOKENS,
                    timeout=self.timeout,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            log.warning("Companion reply timed out after %ss", self.timeout)
            return self._fallback(user_language)
        except LLMClientError as e:
            log.warning("Companion reply failed: %s", e)
            return self._fallback(user_language)

        reply = reply.strip()
        if not reply:
            log.warning("Companion reply came back empty")
            return self._fallback(user_language)
        return CompanionChatResponse(response=reply)

    def _fallback(self, user_language: Language) -> CompanionChatResponse:
        return CompanionChatResponse(
            response=FALLBACK_REPLIES[practice_language(user_language)], degraded=True
        )
