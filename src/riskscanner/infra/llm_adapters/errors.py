"""Translate transport and HTTP failures into AIError kinds."""

from __future__ import annotations

import httpx

from ...core.domain.exceptions import AIError, AIErrorKind


def kind_for_status(status_code: int, body: str = "") -> AIErrorKind:
    if status_code in (401, 403):
        return AIErrorKind.UNAUTHORIZED
    # Gemini reports a bad key as 400 INVALID_ARGUMENT
    if status_code == 400 and "API_KEY_INVALID" in body:
        return AIErrorKind.UNAUTHORIZED
    if status_code == 429:
        return AIErrorKind.RATE_LIMITED
    return AIErrorKind.UNREACHABLE


def raise_for_status(resp: httpx.Response, provider: str) -> None:
    if resp.is_success:
        return
    body = resp.text[:500]
    raise AIError(
        kind_for_status(resp.status_code, body),
        f"{provider} returned HTTP {resp.status_code}: {body}",
        provider=provider,
    )


def from_transport_error(e: httpx.HTTPError, provider: str) -> AIError:
    return AIError(AIErrorKind.UNREACHABLE, f"{provider} unreachable: {e}", provider=provider)


def malformed(provider: str, message: str) -> AIError:
    return AIError(AIErrorKind.MALFORMED_RESPONSE, f"{provider}: {message}", provider=provider)
