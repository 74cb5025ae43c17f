from __future__ import annotations

import httpx
import openai
from openai import AzureOpenAI, OpenAI

from ...core.domain.exceptions import AIError, AIErrorKind
from .errors import malformed
from .types import ChatSettings


def _translate(e: openai.OpenAIError, provider: str) -> AIError:
    if isinstance(e, (openai.AuthenticationError, openai.PermissionDeniedError)):
        kind = AIErrorKind.UNAUTHORIZED
    elif isinstance(e, openai.RateLimitError):
        kind = AIErrorKind.RATE_LIMITED
    else:
        # connection errors, timeouts, 5xx and unexpected 4xx (e.g. unknown model)
        kind = AIErrorKind.UNREACHABLE
    return AIError(kind, f"{provider}: {e}", provider=provider)


class OpenAIChatAdapter:
    """OpenAI Chat Completions adapter (bearer token auth)."""

    provider = "openai"
    token_limit_param = "max_completion_tokens"

    def __init__(
        self,
        model: str,
        api_key: str,
        *,
        http_client: httpx.Client | None = None,
        settings: ChatSettings = ChatSettings(),
    ) -> None:
        self.model = model
        self._settings = settings
        self._client = self._build_client(api_key, http_client)

    def _build_client(self, api_key: str, http_client: httpx.Client | None):
        return OpenAI(
            api_key=api_key,
            http_client=http_client,
            timeout=self._settings.timeout,
            max_retries=self._settings.max_retries,
        )

    def send_prompt(self, prompt: str, *, system: str | None = None, max_output_tokens: int | None = None) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                **{self.token_limit_param: max_output_tokens or self._settings.max_output_tokens},
            )
        except openai.OpenAIError as e:
            raise _translate(e, self.provider) from e

        if not response.choices:
            raise malformed(self.provider, "response has no choices")
        content = response.choices[0].message.content
        if content is None:
            raise malformed(self.provider, "response has no text content")
        return content


class AzureOpenAIChatAdapter(OpenAIChatAdapter):
    """Azure OpenAI adapter (`api-key` header); `model` is the deployment name."""

    provider = "azure-openai"
    # `max_completion_tokens` is only accepted by newer Azure API versions
    token_limit_param = "max_tokens"

    def _build_client(self, api_key: str, http_client: httpx.Client | None):
        if not self._settings.azure_endpoint:
            raise ValueError("azure-openai requires an endpoint (RISKSCANNER_AI__AZURE_ENDPOINT)")
        return AzureOpenAI(
            api_key=api_key,
            azure_endpoint=self._settings.azure_endpoint,
            api_version=self._settings.azure_api_version,
            http_client=http_client,
            timeout=self._settings.timeout,
            max_retries=self._settings.max_retries,
        )
