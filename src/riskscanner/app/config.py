from __future__ import annotations

from pathlib import Path

from platformdirs import PlatformDirs
from pydantic import Field, computed_field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.domain.exceptions import UnsupportedProviderError
from ..infra.llm_adapters import normalize_provider


APP_NAME = "riskscanner"
MAVEN_CENTRAL = "https://repo.maven.apache.org/maven2"


def _section(name: str) -> SettingsConfigDict:
    """Env prefix for a section built on its own (default factories), matching the nested form."""
    return SettingsConfigDict(env_prefix=f"RISKSCANNER_{name.upper()}__")


def _default_home() -> Path:
    """Get default home directory using platformdirs."""
    return Path(PlatformDirs(appname=APP_NAME, appauthor=False).user_cache_dir)


def _default_local_repository() -> Path:
    return Path.home() / ".m2" / "repository"


class DirectoryConfig(BaseSettings):
    """Directory configuration with computed paths."""

    model_config = _section("directories")

    home: Path = Field(
        default_factory=_default_home,
        description="Base directory for all riskscanner data",
    )

    @computed_field
    @property
    def cache_dir(self) -> Path:
        """Analysis cache entries."""
        path = self.home / "cache"
        path.mkdir(parents=True, exist_ok=True)
        return path

    @computed_field
    @property
    def pom_cache_dir(self) -> Path:
        """Downloaded POM files (immutable once released)."""
        path = self.home / "poms"
        path.mkdir(parents=True, exist_ok=True)
        return path

    @computed_field
    @property
    def data_dir(self) -> Path:
        """Persistent data such as the provider credential."""
        path = self.home / "data"
        path.mkdir(parents=True, exist_ok=True)
        return path

    @computed_field
    @property
    def logs_dir(self) -> Path:
        """Per-run JSONL logs."""
        path = self.home / "logs"
        path.mkdir(parents=True, exist_ok=True)
        return path


class AIConfig(BaseSettings):
    """AI provider configuration."""

    model_config = _section("ai")

    provider: str = Field(
        default="openai",
        description="AI provider (openai, anthropic, gemini, ollama, azure-openai)",
    )

    model: str = Field(
        default="",
        description="Model name (empty = provider default; deployment name for azure-openai)",
    )

    api_key: str | None = Field(
        default=None,
        description="API key; overrides the stored credential when set",
    )

    ollama_base_url: str = Field(default="http://localhost:11434")
    azure_endpoint: str | None = Field(default=None)
    azure_api_version: str = Field(default="2024-10-21")

    timeout_seconds: float = Field(default=60.0, gt=0)
    max_output_tokens: int = Field(default=600, gt=0)

    @field_validator("provider")
    @classmethod
    def _known_provider(cls, value: str) -> str:
        try:
            return normalize_provider(value)
        except UnsupportedProviderError as e:
            raise ValueError(str(e)) from e

    @model_validator(mode="after")
    def _azure_needs_endpoint(self) -> "AIConfig":
        if self.provider == "azure-openai" and not self.azure_endpoint:
            raise ValueError("azure-openai requires azure_endpoint")
        return self


class EnrichmentConfig(BaseSettings):
    """External metadata sources."""

    model_config = _section("enrichment")

    osv_url: str = Field(default="https://api.osv.dev/v1/query")
    maven_central_url: str = Field(default="https://repo1.maven.org/maven2")
    github_api_url: str = Field(default="https://api.github.com")
    github_token: str | None = Field(default=None, description="Raises the GitHub API rate limit")

    osv_timeout: float = Field(default=10.0, gt=0)
    registry_timeout: float = Field(default=10.0, gt=0)
    github_timeout: float = Field(default=10.0, gt=0)


class ScannerConfig(BaseSettings):
    """Build descriptor scanning."""

    model_config = _section("scanner")

    transitive: bool = Field(default=True, description="Resolve transitive Maven dependencies")
    max_depth: int = Field(default=12, ge=1)
    extra_repositories: list[str] = Field(default_factory=list)
    central_url: str = Field(default=MAVEN_CENTRAL)
    local_repository: Path | None = Field(
        default_factory=_default_local_repository,
        description="Local Maven repository, read-only",
    )
    fetch_timeout: float = Field(default=15.0, gt=0)

    @computed_field
    @property
    def repositories(self) -> list[str]:
        return [*self.extra_repositories, self.central_url]


class AnalysisConfig(BaseSettings):
    """Analysis-specific settings."""

    model_config = _section("analysis")

    max_workers: int = Field(default=8, ge=1, description="Concurrent per-dependency workers")
    cache_ttl_hours: float = Field(default=168.0, ge=0, description="0 = entries never expire")
    request_timeout_seconds: float | None = Field(default=None, gt=0)


class VaultConfig(BaseSettings):
    model_config = _section("vault")

    secret: str | None = Field(
        default=None,
        description="Operator secret for credential encryption; unset stores credentials in the clear",
    )
    iterations: int = Field(default=390_000, ge=1, description="PBKDF2 iterations for key derivation")


class LoggingConfig(BaseSettings):
    model_config = _section("logging")

    level: str = Field(default="INFO")
    console_output: bool = Field(default=False)
    logger_name: str = Field(default=APP_NAME)


class RuntimeConfig(BaseSettings):
    model_config = _section("runtime")

    run_id: str | None = Field(default=None, description="Enables a JSONL log file for this run")


class AppConfig(BaseSettings):
    """Root application configuration.

    All configuration is loaded from environment variables with RISKSCANNER_ prefix.
    Use double underscore for nested config: RISKSCANNER_AI__API_KEY

    Example env vars:
        export RISKSCANNER_AI__PROVIDER=anthropic
        export RISKSCANNER_AI__API_KEY=sk-ant-xxxxxxxx
        export RISKSCANNER_VAULT__SECRET=change-me
        export RISKSCANNER_ENRICHMENT__GITHUB_TOKEN=ghp_xxxxxxxx
        export RISKSCANNER_ANALYSIS__MAX_WORKERS=4
        export RISKSCANNER_DIRECTORIES__HOME=/custom/path
    """

    model_config = SettingsConfigDict(
        env_prefix="RISKSCANNER_",
        env_nested_delimiter="__",
        frozen=True,
        extra="forbid",
    )

    directories: DirectoryConfig = Field(default_factory=DirectoryConfig)
    ai: AIConfig = Field(default_factory=AIConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    scanner: ScannerConfig = Field(default_factory=ScannerConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    vault: VaultConfig = Field(default_factory=VaultConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)

    def with_overrides(self, **sections: dict) -> "AppConfig":
        """Copy with selected fields of nested sections replaced, e.g. `logging={"console_output": True}`."""
        update = {
            name: getattr(self, name).model_copy(update=values)
            for name, values in sections.items()
        }
        return self.model_copy(update=update)
