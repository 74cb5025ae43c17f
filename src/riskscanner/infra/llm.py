from __future__ import annotations

import httpx

from ..core.domain.exceptions import AIError
from ..core.ports import LoggerPort
from ..core.services import AIAdvisor, JsonExtractor
from .llm_adapters import (
    DEFAULT_MODELS,
    KEYLESS_PROVIDERS,
    ChatAdapter,
    ChatSettings,
    get_adapter,
    normalize_provider,
)


class LLM:
    """Chat provider that logs every exchange around a provider adapter."""

    def __init__(self, *, adapter: ChatAdapter, logger: LoggerPort) -> None:
        self._adapter = adapter
        self._logger = logger

    @property
    def provider(self) -> str:
        return self._adapter.provider

    @property
    def model(self) -> str:
        return self._adapter.model

    def send_prompt(self, prompt: str, *, system: str | None = None, max_output_tokens: int | None = None) -> str:
        self._logger.debug(
            "llm_input",
            type="llm_input",
            provider=self.provider,
            model=self.model,
            prompt_len=len(prompt),
            prompt=prompt,
        )
        try:
            text = self._adapter.send_prompt(prompt, system=system, max_output_tokens=max_output_tokens)
        except AIError as e:
            self._logger.warning(
                "llm_error",
                type="llm_error",
                provider=self.provider,
                model=self.model,
                error_kind=e.kind.value,
                error=str(e),
            )
            raise

        self._logger.debug(
            "llm_output",
            type="llm_output",
            provider=self.provider,
            model=self.model,
            raw_text_len=len(text),
            raw_text=text,
        )
        return text


class AdvisorFactory:
    """Builds an AIAdvisor for a provider tag, sharing one HTTP client."""

    def __init__(
        self,
        *,
        http_client: httpx.Client,
        settings: ChatSettings,
        logger: LoggerPort,
        json_extractor: JsonExtractor,
    ) -> None:
        self._http_client = http_client
        self._settings = settings
        self._logger = logger
        self._json_extractor = json_extractor

    def validate(self, provider: str) -> str:
        return normalize_provider(provider)

    def requires_api_key(self, provider: str) -> bool:
        return normalize_provider(provider) not in KEYLESS_PROVIDERS

    def create(self, *, provider: str, model: str, api_key: str | None) -> AIAdvisor:
        provider = normalize_provider(provider)
        adapter = get_adapter(
            provider,
            model or DEFAULT_MODELS[provider],
            api_key,
            http_client=self._http_client,
            settings=self._settings,
        )
        return AIAdvisor(
            client=LLM(adapter=adapter, logger=self._logger),
            json_extractor=self._json_extractor,
            max_output_tokens=self._settings.max_output_tokens,
        )
