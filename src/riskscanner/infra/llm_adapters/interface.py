from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ChatAdapter(Protocol):
    """Minimal interface every provider adapter implements."""

    provider: str
    model: str

    def send_prompt(self, prompt: str, *, system: str | None = None, max_output_tokens: int | None = None) -> str:
        """Send one prompt and return the normalized reply text.

        Raises:
            AIError: UNAUTHORIZED, RATE_LIMITED, UNREACHABLE or MALFORMED_RESPONSE
        """
        raise NotImplementedError
