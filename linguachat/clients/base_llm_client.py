from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class LLMClientError(RuntimeError):
    """Raised when the hosted language model cannot produce a reply."""


class BaseLLMClient(ABC):
    """Abstract base class for hosted language model backends."""

    @abstractmethod
    async def complete(
        self,
        messages: List[Dict[str, Any]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Send a chat transcript and return the assistant reply text.

        Args:
            messages: Chat messages as ``{"role": ..., "content": ...}`` dicts.
            temperature: Sampling temperature, provider default when None.
            max_tokens: Upper bound on reply length, provider default when None.
            timeout: Transport timeout in seconds.

        Returns:
            The stripped reply text, never empty.

        Raises:
            LLMClientError: on transport errors, error statuses or empty replies.
        """
