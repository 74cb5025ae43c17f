from __future__ import annotations

import httpx

from .errors import from_transport_error, malformed, raise_for_status
from .types import ChatSettings


class GeminiChatAdapter:
    """Google Gemini `generateContent` adapter; the key travels in the query string."""

    provider = "gemini"

    def __init__(
        self,
        model: str,
        api_key: str,
        *,
        http_client: httpx.Client,
        settings: ChatSettings = ChatSettings(),
    ) -> None:
        self.model = model
        self._api_key = api_key
        self._http = http_client
        self._settings = settings

    def send_prompt(self, prompt: str, *, system: str | None = None, max_output_tokens: int | None = None) -> str:
        body: dict = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self._settings.temperature,
                "maxOutputTokens": max_output_tokens or self._settings.max_output_tokens,
            },
        }
        if system:
            body["systemInstruction"] = {"parts": [{"text": system}]}

        url = f"{self._settings.gemini_base_url.rstrip('/')}/models/{self.model}:generateContent"
        try:
            resp = self._http.post(url, params={"key": self._api_key}, json=body, timeout=self._settings.timeout)
        except httpx.HTTPError as e:
            raise from_transport_error(e, self.provider) from e
        raise_for_status(resp, self.provider)

        try:
            data = resp.json()
            parts = data["candidates"][0]["content"]["parts"]
            text = "".join(part.get("text", "") for part in parts)
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise malformed(self.provider, f"unexpected response shape ({e})") from e
        if not text:
            raise malformed(self.provider, "empty response")
        return text
