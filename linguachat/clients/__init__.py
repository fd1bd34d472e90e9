# Outbound HTTP clients
from .base_llm_client import BaseLLMClient, LLMClientError
from .link_preview_client import LinkPreviewClient, extract_urls
from .openrouter_client import OpenRouterClient

__all__ = [
    "BaseLLMClient",
    "LLMClientError",
    "LinkPreviewClient",
    "OpenRouterClient",
    "extract_urls",
]
