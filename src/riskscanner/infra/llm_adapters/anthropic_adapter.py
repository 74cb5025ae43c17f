from __future__ import annotations

import anthropic
import httpx

from ...core.domain.exceptions import AIError, AIErrorKind
from .errors import malformed
from .types import ChatSettings


class AnthropicChatAdapter:
    """Anthropic Messages API adapter (`x-api-key` auth)."""

    provider = "anthropic"

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
        self._client = anthropic.Anthropic(
            api_key=api_key,
            http_client=http_client,
            timeout=settings.timeout,
            max_retries=settings.max_retries,
        )

    def send_prompt(self, prompt: str, *, system: str | None = None, max_output_tokens: int | None = None) -> str:
        kwargs = {}
        if system:
            kwargs["system"] = system
        try:
            message = self._client.messages.create(
                model=self.model,
                max_tokens=max_output_tokens or self._settings.max_output_tokens,
                temperature=self._settings.temperature,
                messages=[{"role": "user", "content": prompt}],
                **kwargs,
            )
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as e:
            raise AIError(AIErrorKind.UNAUTHORIZED, f"anthropic: {e}", provider=self.provider) from e
        except anthropic.RateLimitError as e:
            raise AIError(AIErrorKind.RATE_LIMITED, f"anthropic: {e}", provider=self.provider) from e
        except anthropic.AnthropicError as e:
            raise AIError(AIErrorKind.UNREACHABLE, f"anthropic: {e}", provider=self.provider) from e

        # message.content is a list of content blocks; only text blocks are joined
        texts = [block.text for block in message.content if getattr(block, "type", None) == "text"]
        if not texts:
            raise malformed(self.provider, "response has no text blocks")
        return "".join(texts)
