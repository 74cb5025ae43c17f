from __future__ import annotations

from pathlib import Path

from ..domain.cancellation import CancellationToken
from ..domain.exceptions import CredentialMissingError
from ..domain.models import ProjectAnalysis
from ..ports import AdvisorFactoryPort, AIAdvisorPort
from ..services import AnalysisOrchestrator, CredentialResolver


class AnalyzeProjectUseCase:
    """Use case for analyzing all dependencies of a project.

    Resolves the AI advisor (provider, model, key) and delegates the workflow to
    AnalysisOrchestrator.
    """

    def __init__(
        self,
        *,
        orchestrator: AnalysisOrchestrator,
        advisor_factory: AdvisorFactoryPort,
        credentials: CredentialResolver,
        default_provider: str,
        default_model: str,
        request_timeout: float | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._advisor_factory = advisor_factory
        self._credentials = credentials
        self._default_provider = default_provider
        self._default_model = default_model
        self._request_timeout = request_timeout

    def execute(
        self,
        *,
        project_path: Path | str,
        force_refresh: bool = False,
        ai_enabled: bool = True,
        provider: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        cancel: CancellationToken | None = None,
    ) -> ProjectAnalysis:
        """Execute analysis workflow.

        Args:
            project_path: Project folder or build file
            force_refresh: Bypass cached assessments
            ai_enabled: Ask the AI provider for a narrative assessment
            provider: Provider tag; defaults to the stored credential, then configuration
            model: Model name; defaults like provider
            timeout: Overall deadline in seconds; overrides the configured one
            cancel: External cancellation signal (takes precedence over timeout)

        Raises:
            ScanError: If the project cannot be scanned
            UnsupportedProviderError: If the provider tag is unknown
            CredentialMissingError: If the provider needs a key and none is available
            CryptoError: If the stored key cannot be decrypted
        """
        advisor = self._resolve_advisor(provider, model) if ai_enabled else None

        if cancel is None:
            deadline = timeout if timeout is not None else self._request_timeout
            cancel = CancellationToken(timeout=deadline)

        return self._orchestrator.analyze(
            project_path=project_path,
            advisor=advisor,
            force_refresh=force_refresh,
            cancel=cancel,
        )

    def _resolve_advisor(self, provider: str | None, model: str | None) -> AIAdvisorPort:
        stored = self._credentials.stored()
        if provider is None:
            provider = stored.provider if stored else self._default_provider
        provider = self._advisor_factory.validate(provider)

        if model is None:
            if stored is not None and stored.provider == provider and stored.model:
                model = stored.model
            else:
                model = self._default_model

        api_key = self._credentials.api_key(provider)
        if not api_key and self._advisor_factory.requires_api_key(provider):
            raise CredentialMissingError(provider)

        return self._advisor_factory.create(provider=provider, model=model, api_key=api_key)
