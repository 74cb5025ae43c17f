from __future__ import annotations

from datetime import timedelta

from dependency_injector import containers, providers

from ..core.usecases.analyze import AnalyzeProjectUseCase
from ..core.usecases.cached_results import GetCachedResultsUseCase
from ..core.usecases.clear_cache import ClearCacheUseCase, EvictExpiredUseCase
from ..core.usecases.credentials import (
    CredentialStatusUseCase,
    SaveCredentialUseCase,
    TestCredentialUseCase,
)
from ..core.usecases.scan import ScanProjectUseCase
from ..core.services import AnalysisOrchestrator, CredentialResolver, JsonExtractor, RiskScorer
from ..infra.analysis_cache import FileAnalysisCache
from ..infra.credential_store import FileCredentialStore
from ..infra.enrichment import EnrichmentAggregator
from ..infra.http import http_client_resource
from ..infra.llm import AdvisorFactory
from ..infra.llm_adapters import ChatSettings
from ..infra.logging import AnalysisLogger
from ..infra.scanning import BuildFileScanner, GradleScriptParser, MavenRepository, MavenResolver
from ..infra.vault import SecretVault


def _ttl(hours: float) -> timedelta | None:
    return timedelta(hours=hours) if hours else None


class Container(containers.DeclarativeContainer):
    """DI container; populate with `container.config.from_pydantic(AppConfig())`."""

    config = providers.Configuration()

    # Replaced with an httpx.MockTransport in tests
    http_transport = providers.Object(None)

    # Logger (Resource: manages lifecycle with init/shutdown)
    logger = providers.Resource(
        AnalysisLogger,
        run_id=config.runtime.run_id,
        logs_dir=config.directories.logs_dir,
        logger_name=config.logging.logger_name,
        console_output=config.logging.console_output,
        level=config.logging.level,
    )

    http_client = providers.Resource(
        http_client_resource,
        transport=http_transport,
    )

    # Scanning
    maven_repository = providers.Singleton(
        MavenRepository,
        client=http_client,
        remote_urls=config.scanner.repositories,
        local_repository=config.scanner.local_repository,
        cache_dir=config.directories.pom_cache_dir,
        timeout=config.scanner.fetch_timeout,
    )

    maven_resolver = providers.Singleton(
        MavenResolver,
        repository=maven_repository,
        transitive=config.scanner.transitive,
        max_depth=config.scanner.max_depth,
        fetch_workers=config.analysis.max_workers,
    )

    gradle_parser = providers.Singleton(GradleScriptParser)

    scanner = providers.Singleton(
        BuildFileScanner,
        maven=maven_resolver,
        gradle=gradle_parser,
    )

    # Enrichment
    enrichment = providers.Singleton(
        EnrichmentAggregator,
        client=http_client,
        osv_url=config.enrichment.osv_url,
        maven_central_url=config.enrichment.maven_central_url,
        github_api_url=config.enrichment.github_api_url,
        github_token=config.enrichment.github_token,
        osv_timeout=config.enrichment.osv_timeout,
        registry_timeout=config.enrichment.registry_timeout,
        github_timeout=config.enrichment.github_timeout,
    )

    # Persistence
    cache = providers.Singleton(
        FileAnalysisCache,
        cache_dir=config.directories.cache_dir,
        ttl=providers.Callable(_ttl, config.analysis.cache_ttl_hours),
    )

    vault = providers.Singleton(
        SecretVault,
        secret=config.vault.secret,
        iterations=config.vault.iterations,
    )

    credential_store = providers.Singleton(
        FileCredentialStore,
        data_dir=config.directories.data_dir,
    )

    credentials = providers.Singleton(
        CredentialResolver,
        store=credential_store,
        vault=vault,
        override_api_key=config.ai.api_key,
    )

    # AI
    json_extractor = providers.Singleton(JsonExtractor)

    chat_settings = providers.Singleton(
        ChatSettings,
        timeout=config.ai.timeout_seconds,
        max_output_tokens=config.ai.max_output_tokens,
        ollama_base_url=config.ai.ollama_base_url,
        azure_endpoint=config.ai.azure_endpoint,
        azure_api_version=config.ai.azure_api_version,
    )

    advisor_factory = providers.Singleton(
        AdvisorFactory,
        http_client=http_client,
        settings=chat_settings,
        logger=logger,
        json_extractor=json_extractor,
    )

    # Domain services
    scorer = providers.Singleton(RiskScorer)

    analysis_orchestrator = providers.Factory(
        AnalysisOrchestrator,
        scanner=scanner,
        enrichment=enrichment,
        cache=cache,
        scorer=scorer,
        logger=logger,
        max_workers=config.analysis.max_workers,
    )

    # Use cases
    scan_uc = providers.Factory(
        ScanProjectUseCase,
        scanner=scanner,
        logger=logger,
    )

    analyze_uc = providers.Factory(
        AnalyzeProjectUseCase,
        orchestrator=analysis_orchestrator,
        advisor_factory=advisor_factory,
        credentials=credentials,
        # `.provider` is a built-in provider attribute; item access reaches the setting
        default_provider=config.ai["provider"],
        default_model=config.ai.model,
        request_timeout=config.analysis.request_timeout_seconds,
    )

    cached_results_uc = providers.Factory(
        GetCachedResultsUseCase,
        cache=cache,
    )

    evict_expired_uc = providers.Factory(
        EvictExpiredUseCase,
        cache=cache,
        logger=logger,
    )

    clear_cache_uc = providers.Factory(
        ClearCacheUseCase,
        cache=cache,
        logger=logger,
    )

    save_credential_uc = providers.Factory(
        SaveCredentialUseCase,
        store=credential_store,
        vault=vault,
        advisor_factory=advisor_factory,
        logger=logger,
    )

    test_credential_uc = providers.Factory(
        TestCredentialUseCase,
        credentials=credentials,
        advisor_factory=advisor_factory,
        logger=logger,
    )

    credential_status_uc = providers.Factory(
        CredentialStatusUseCase,
        credentials=credentials,
    )
