from __future__ import annotations

import httpx

from .errors import from_transport_error, malformed, raise_for_status
from .types import ChatSettings


class OllamaChatAdapter:
    """Local Ollama `/api/generate` adapter; no authentication."""

    provider = "ollama"

    def __init__(
        self,
        model: str,
        *,
        http_client: httpx.Client,
        settings: ChatSettings = ChatSettings(),
    ) -> None:
        self.model = model
        self._http = http_client
        self._settings = settings

    def send_prompt(self, prompt: str, *, system: str | None = None, max_output_tokens: int | None = None) -> str:
        body: dict = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": self._settings.temperature,
                "num_predict": max_output_tokens or self._settings.max_output_tokens,
            },
        }
        if system:
            body["system"] = system

        url = f"{self._settings.ollama_base_url.rstrip('/')}/api/generate"
        try:
            resp = self._http.post(url, json=body, timeout=self._settings.timeout)
        except httpx.HTTPError as e:
            raise from_transport_error(e, self.provider) from e
        raise_for_status(resp, self.provider)

        try:
            text = resp.json()["response"]
        except (ValueError, KeyError, TypeError) as e:
            raise malformed(self.provider, f"unexpected response shape ({e})") from e
        if not isinstance(text, str):
            raise malformed(self.provider, "response field is not text")
        return text
