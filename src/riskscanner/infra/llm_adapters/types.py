from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, get_args

# Public provider literal; the closed set of supported backends
Provider = Literal["openai", "anthropic", "gemini", "ollama", "azure-openai"]

SUPPORTED_PROVIDERS: tuple[str, ...] = get_args(Provider)

# Accepted alternative spellings
PROVIDER_ALIASES = {
    "claude": "anthropic",
    "azure": "azure-openai",
    "azure_openai": "azure-openai",
    "google": "gemini",
}

DEFAULT_MODELS: dict[str, str] = {
    "openai": "gpt-4o",
    "anthropic": "claude-3-5-haiku-latest",
    "gemini": "gemini-1.5-flash",
    "ollama": "llama3.2",
    "azure-openai": "gpt-4o",  # deployment name
}

# Local providers authenticate nothing
KEYLESS_PROVIDERS = frozenset({"ollama"})


@dataclass(frozen=True)
class ChatSettings:
    """Provider connection settings that are not secrets."""

    timeout: float = 60.0
    max_output_tokens: int = 600
    temperature: float = 0.2
    ollama_base_url: str = "http://localhost:11434"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    azure_endpoint: str | None = None
    azure_api_version: str = "2024-10-21"
    max_retries: int = 2
