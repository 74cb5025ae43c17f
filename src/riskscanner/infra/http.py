"""Shared HTTP plumbing for every outbound call (enrichment sources, registries, AI providers)."""

from __future__ import annotations

from typing import Iterator

import httpx

from .. import __version__

DEFAULT_TIMEOUT_SECONDS = 30.0
USER_AGENT = f"riskscanner/{__version__}"


def build_http_client(
    *,
    transport: httpx.BaseTransport | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    user_agent: str = USER_AGENT,
) -> httpx.Client:
    """Create the process-wide client.

    Tests pass an `httpx.MockTransport` so no call ever reaches the network.
    Per-request timeouts override the default.
    """
    return httpx.Client(
        transport=transport,
        timeout=timeout,
        headers={"User-Agent": user_agent},
        follow_redirects=True,
    )


def http_client_resource(
    *,
    transport: httpx.BaseTransport | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> Iterator[httpx.Client]:
    """Container resource: one client per container lifetime, closed on shutdown."""
    client = build_http_client(transport=transport, timeout=timeout)
    try:
        yield client
    finally:
        client.close()
