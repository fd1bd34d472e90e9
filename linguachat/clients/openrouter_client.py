from typing import Any, Dict, List, Optional

import httpx

from linguachat.clients.base_llm_client import BaseLLMClient, LLMClientError


def _resolve_base_url(base_url: str) -> str:
    trimmed = base_url.rstrip("/")
    if trimmed.endswith("/v1"):
        return trimmed
    return f"{trimmed}/v1"


def _coalesce_response_text(data: Dict[str, Any]) -> str:
    """Extract the first non-empty message content from a completion payload."""
    for choice in data.get("choices") or []:
        if not isinstance(choice, dict):
            continue
        message = choice.get("message") or {}
        content = message.get("content")
        if isinstance(content, str) and content.strip():
            return content.strip()
    return ""


class OpenRouterClient(BaseLLMClient):
    """OpenAI-compatible chat-completions client (OpenRouter by default) using httpx."""

    def __init__(self, base_url: str, api_key: str, model: str):
        self.base_url = _resolve_base_url(base_url)
        self.api_key = api_key
        self.model = model

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Call the chat-completions endpoint and return the reply text."""
        payload: Dict[str, Any] = {"model": self.model, "messages": messages}
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions", json=payload, headers=headers
                )
                response.raise_for_status()
                data: Dict[str, Any] = response.json()
        except httpx.HTTPStatusError as exc:
            raise LLMClientError(
                f"Language model returned HTTP {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise LLMClientError(f"Language model request failed: {exc}") from exc

        text = _coalesce_response_text(data)
        if not text:
            raise LLMClientError("Language model returned an empty response")
        return text
