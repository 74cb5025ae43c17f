from __future__ import annotations

from pathlib import Path
from typing import Protocol

from .domain.cancellation import CancellationToken
from .domain.models import (
    AdvisorAssessment,
    ConnectionTestResult,
    DependencyCoordinate,
    DependencyResult,
    EnrichmentRecord,
    ProviderCredential,
    RiskAssessment,
    ScanResult,
)


class CoordinateScannerPort(Protocol):
    """Port for extracting dependency coordinates from a build descriptor."""

    def scan(self, project_path: Path | str) -> ScanResult:
        """Scan a project folder or a build file.

        Raises:
            ScanError: NOT_FOUND when no descriptor exists, PARSE_FAILURE when it is malformed,
                UNRESOLVABLE when a required remote POM cannot be fetched
        """
        ...


class EnrichmentPort(Protocol):
    """Port for best-effort metadata lookup. Never raises for network failures."""

    def enrich(
        self,
        coordinate: DependencyCoordinate,
        cancel: CancellationToken | None = None,
    ) -> EnrichmentRecord:
        ...


class ChatProviderPort(Protocol):
    """Capability set implemented once per AI provider."""

    provider: str
    model: str

    def send_prompt(self, prompt: str, *, system: str | None = None, max_output_tokens: int | None = None) -> str:
        """Send one prompt and return the raw text reply.

        Raises:
            AIError: UNAUTHORIZED, RATE_LIMITED or UNREACHABLE
        """
        ...


class AIAdvisorPort(Protocol):
    """Port for the narrative assessment of a single dependency."""

    provider: str
    model: str

    def analyze(
        self,
        coordinate: DependencyCoordinate,
        enrichment: EnrichmentRecord | None,
    ) -> AdvisorAssessment:
        """Raises AIError on provider or parsing failures."""
        ...

    def test_connection(self) -> ConnectionTestResult:
        ...


class AnalysisCachePort(Protocol):
    """Keyed memoization of prior assessments.

    Key is (group_id, artifact_id, version, provider, model). Implementations raise
    CacheError on storage failures.
    """

    def get(self, coordinate: DependencyCoordinate, provider: str, model: str) -> RiskAssessment | None:
        ...

    def get_entry(self, coordinate: DependencyCoordinate, provider: str, model: str) -> DependencyResult | None:
        ...

    def put(
        self,
        coordinate: DependencyCoordinate,
        provider: str,
        model: str,
        enrichment: EnrichmentRecord | None,
        assessment: RiskAssessment,
    ) -> None:
        ...

    def list_entries(self, provider: str, model: str) -> list[DependencyResult]:
        ...

    def evict_expired(self) -> int:
        ...

    def clear(self) -> None:
        ...


class SecretVaultPort(Protocol):
    def is_configured(self) -> bool:
        ...

    def encrypt(self, plaintext: str) -> str:
        ...

    def decrypt(self, ciphertext: str) -> str:
        """Raises CryptoError when the configured secret cannot open the ciphertext."""
        ...


class CredentialStorePort(Protocol):
    def load(self) -> ProviderCredential | None:
        ...

    def save(self, credential: ProviderCredential) -> None:
        ...


class LoggerPort(Protocol):
    """Port for structured logging.

    Keyword arguments are attached to the record as structured fields.
    """

    def debug(self, message: str, **kwargs) -> None:
        ...

    def info(self, message: str, **kwargs) -> None:
        ...

    def warning(self, message: str, **kwargs) -> None:
        ...

    def error(self, message: str, exc_info: bool = False, **kwargs) -> None:
        ...

    def exception(self, message: str, **kwargs) -> None:
        ...


class AdvisorFactoryPort(Protocol):
    """Creates AI advisors from a provider tag; rejects unknown tags up front."""

    def validate(self, provider: str) -> str:
        """Return the normalized provider tag.

        Raises:
            UnsupportedProviderError: If the tag is not a known provider
        """
        ...

    def requires_api_key(self, provider: str) -> bool:
        ...

    def create(self, *, provider: str, model: str, api_key: str | None) -> AIAdvisorPort:
        ...
