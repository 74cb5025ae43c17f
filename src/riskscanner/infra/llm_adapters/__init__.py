from .types import Provider, SUPPORTED_PROVIDERS, DEFAULT_MODELS, KEYLESS_PROVIDERS, ChatSettings
from .interface import ChatAdapter
from .openai_adapter import OpenAIChatAdapter, AzureOpenAIChatAdapter
from .anthropic_adapter import AnthropicChatAdapter
from .gemini_adapter import GeminiChatAdapter
from .ollama_adapter import OllamaChatAdapter
from .factory import get_adapter, normalize_provider

__all__ = [
    "Provider",
    "SUPPORTED_PROVIDERS",
    "DEFAULT_MODELS",
    "KEYLESS_PROVIDERS",
    "ChatSettings",
    "ChatAdapter",
    "OpenAIChatAdapter",
    "AzureOpenAIChatAdapter",
    "AnthropicChatAdapter",
    "GeminiChatAdapter",
    "OllamaChatAdapter",
    "get_adapter",
    "normalize_provider",
]
