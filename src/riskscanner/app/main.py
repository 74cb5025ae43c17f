from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import httpx
from dependency_injector import providers

from .config import AppConfig
from .container import Container
from ..core.domain.cancellation import CancellationToken
from ..core.domain.models import (
    ConnectionTestResult,
    CredentialStatus,
    DependencyResult,
    ProjectAnalysis,
    ScanResult,
)
from ..core.services import DETERMINISTIC_MODEL, DETERMINISTIC_PROVIDER
from ..infra.llm_adapters import DEFAULT_MODELS, normalize_provider


@contextmanager
def _create_container(
    config: AppConfig | None = None,
    transport: httpx.BaseTransport | None = None,
) -> Iterator[Container]:
    """Create an initialized container and shut its resources down afterwards.

    Args:
        config: Optional config. If None, loads from environment variables.
        transport: Optional HTTP transport (tests pass httpx.MockTransport)
    """
    container = Container()

    if config is None:
        # Load from environment variables (BaseSettings default behavior)
        config = AppConfig()

    container.config.from_pydantic(config)
    if transport is not None:
        container.http_transport.override(providers.Object(transport))
    container.init_resources()
    try:
        yield container
    finally:
        container.shutdown_resources()


def scan_project(
    path: Path | str,
    *,
    config: AppConfig | None = None,
    transport: httpx.BaseTransport | None = None,
) -> ScanResult:
    """Extract the dependency coordinates of a project without analyzing them.

    Raises:
        ScanError: If no build file is found, it is malformed, or a required POM is unavailable
    """
    with _create_container(config, transport) as container:
        return container.scan_uc().execute(project_path=path)


def analyze_project(
    path: Path | str,
    *,
    force_refresh: bool = False,
    ai_enabled: bool = True,
    provider: str | None = None,
    model: str | None = None,
    timeout: float | None = None,
    cancel: CancellationToken | None = None,
    config: AppConfig | None = None,
    transport: httpx.BaseTransport | None = None,
) -> ProjectAnalysis:
    """Scan a project and assess the risk of every dependency.

    Args:
        path: Project folder or build file
        force_refresh: Ignore cached assessments
        ai_enabled: If False, only the deterministic score is used
        provider: AI provider override (otherwise stored credential, then config)
        model: Model override
        timeout: Overall deadline in seconds; unfinished dependencies are reported as not analyzed
        cancel: External cancellation token
        config: Optional config for testing. If None, loads from env vars.
        transport: Optional HTTP transport for testing

    Raises:
        ScanError: If the project cannot be scanned
        UnsupportedProviderError: If the provider tag is unknown
        CredentialMissingError: If AI is enabled and no key is available
        CryptoError: If the stored key cannot be decrypted
    """
    with _create_container(config, transport) as container:
        uc = container.analyze_uc()
        return uc.execute(
            project_path=path,
            force_refresh=force_refresh,
            ai_enabled=ai_enabled,
            provider=provider,
            model=model,
            timeout=timeout,
            cancel=cancel,
        )


def _cache_selection(
    container: Container,
    provider: str | None,
    model: str | None,
    deterministic: bool,
) -> tuple[str, str]:
    if deterministic:
        return DETERMINISTIC_PROVIDER, DETERMINISTIC_MODEL

    stored = container.credentials().stored()
    if provider is None:
        provider = stored.provider if stored else container.config.ai["provider"]()
    provider = normalize_provider(provider)
    if not model:
        if stored is not None and stored.provider == provider and stored.model:
            model = stored.model
        else:
            model = container.config.ai.model() or DEFAULT_MODELS[provider]
    return provider, model


def resolve_cache_key(
    provider: str | None = None,
    model: str | None = None,
    *,
    deterministic: bool = False,
    config: AppConfig | None = None,
) -> tuple[str, str]:
    """The (provider, model) pair `get_cached_results` lists for these arguments.

    Raises:
        UnsupportedProviderError: If the provider tag is unknown
    """
    with _create_container(config) as container:
        return _cache_selection(container, provider, model, deterministic)


def get_cached_results(
    provider: str | None = None,
    model: str | None = None,
    *,
    deterministic: bool = False,
    config: AppConfig | None = None,
) -> list[DependencyResult]:
    """List unexpired cached assessments for a provider/model pair.

    Args:
        provider: Provider tag (otherwise stored credential, then config)
        model: Model name (otherwise the provider's default)
        deterministic: List assessments produced without AI instead
        config: Optional config for testing. If None, loads from env vars.
    """
    with _create_container(config) as container:
        provider, model = _cache_selection(container, provider, model, deterministic)
        return container.cached_results_uc().execute(provider=provider, model=model)


def save_credential(
    provider: str,
    secret: str,
    *,
    model: str = "",
    config: AppConfig | None = None,
) -> CredentialStatus:
    """Store the provider credential, replacing any previous one.

    Raises:
        UnsupportedProviderError: If the provider tag is unknown
    """
    with _create_container(config) as container:
        return container.save_credential_uc().execute(provider=provider, model=model, secret=secret)


def test_credential(
    provider: str | None = None,
    model: str | None = None,
    *,
    config: AppConfig | None = None,
    transport: httpx.BaseTransport | None = None,
) -> ConnectionTestResult:
    """Send a minimal request to the provider to verify the credential.

    Raises:
        AIError: If the provider rejects the key or cannot be reached
        CredentialMissingError: If there is nothing to test
    """
    with _create_container(config, transport) as container:
        return container.test_credential_uc().execute(provider=provider, model=model)


test_credential.__test__ = False  # not a pytest test


def credential_status(config: AppConfig | None = None) -> CredentialStatus:
    """Describe the stored credential without revealing it."""
    with _create_container(config) as container:
        return container.credential_status_uc().execute()


def evict_expired(config: AppConfig | None = None) -> int:
    """Remove expired cache entries; returns how many were removed."""
    with _create_container(config) as container:
        return container.evict_expired_uc().execute()


def clear_cache(config: AppConfig | None = None) -> None:
    """Remove every cached assessment."""
    with _create_container(config) as container:
        container.clear_cache_uc().execute()
