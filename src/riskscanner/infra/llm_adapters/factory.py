from __future__ import annotations

import httpx

from ...core.domain.exceptions import UnsupportedProviderError
from .anthropic_adapter import AnthropicChatAdapter
from .gemini_adapter import GeminiChatAdapter
from .interface import ChatAdapter
from .ollama_adapter import OllamaChatAdapter
from .openai_adapter import AzureOpenAIChatAdapter, OpenAIChatAdapter
from .types import PROVIDER_ALIASES, SUPPORTED_PROVIDERS, ChatSettings


def normalize_provider(provider: str) -> str:
    """Return the canonical provider tag.

    Raises:
        UnsupportedProviderError: If the tag is unknown
    """
    tag = provider.strip().lower()
    tag = PROVIDER_ALIASES.get(tag, tag)
    if tag not in SUPPORTED_PROVIDERS:
        raise UnsupportedProviderError(provider)
    return tag


def get_adapter(
    provider: str,
    model: str,
    api_key: str | None,
    *,
    http_client: httpx.Client,
    settings: ChatSettings = ChatSettings(),
) -> ChatAdapter:
    """Factory that returns an adapter for the requested provider/model."""
    provider = normalize_provider(provider)
    if provider == "openai":
        return OpenAIChatAdapter(model, api_key or "", http_client=http_client, settings=settings)
    if provider == "azure-openai":
        return AzureOpenAIChatAdapter(model, api_key or "", http_client=http_client, settings=settings)
    if provider == "anthropic":
        return AnthropicChatAdapter(model, api_key or "", http_client=http_client, settings=settings)
    if provider == "gemini":
        return GeminiChatAdapter(model, api_key or "", http_client=http_client, settings=settings)
    return OllamaChatAdapter(model, http_client=http_client, settings=settings)
