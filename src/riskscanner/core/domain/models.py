from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class BuildTool(str, Enum):
    MAVEN = "maven"
    GRADLE = "gradle"


class RiskLevel(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        """Higher rank means more severe."""
        return _LEVEL_RANK[self]

    @classmethod
    def most_severe(cls, a: "RiskLevel", b: "RiskLevel") -> "RiskLevel":
        return a if a.rank >= b.rank else b


_LEVEL_RANK = {
    RiskLevel.LOW: 0,
    RiskLevel.MEDIUM: 1,
    RiskLevel.HIGH: 2,
    RiskLevel.CRITICAL: 3,
}


class ConfidenceLevel(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class AIStatus(str, Enum):
    OK = "ok"
    DISABLED = "disabled"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class Confidence:
    """Reliability label for how a coordinate list was obtained."""
    level: ConfidenceLevel
    score: int  # HIGH: 80-100, MEDIUM: 50-79, LOW: below 50
    best_effort: bool = False


@dataclass(frozen=True)
class DependencyCoordinate:
    """Identity of one dependency as produced by a scanner.

    Uniquely identified by (group_id, artifact_id, version, build_tool) within one scan.
    `path` holds the ids of the ancestors from the direct dependency down to the parent;
    it is empty for direct dependencies.
    """
    group_id: str
    artifact_id: str
    version: str
    build_tool: BuildTool
    direct: bool = True
    path: tuple[str, ...] = ()
    scope: str = "compile"

    @property
    def id(self) -> str:
        """Returns group:artifact:version format."""
        return f"{self.group_id}:{self.artifact_id}:{self.version}"

    @property
    def identity(self) -> tuple[str, str, str, str]:
        return (self.group_id, self.artifact_id, self.version, self.build_tool.value)

    @property
    def package_name(self) -> str:
        return f"{self.group_id}:{self.artifact_id}"


@dataclass(frozen=True)
class ScanResult:
    path: str
    build_tool: BuildTool
    confidence: Confidence
    coordinates: tuple[DependencyCoordinate, ...]


@dataclass(frozen=True)
class SeveritySummary:
    """Non-negative counts of findings per severity bucket."""
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0

    def __post_init__(self) -> None:
        for name in ("critical", "high", "medium", "low"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

    @property
    def total(self) -> int:
        return self.critical + self.high + self.medium + self.low


@dataclass(frozen=True)
class EnrichmentRecord:
    """Optional metadata gathered for one coordinate.

    Every field may be None; absence means the source had nothing to say or was unreachable.
    """
    ecosystem: str | None = None
    package_name: str | None = None
    resolved_version: str | None = None
    vulnerability_count: int | None = None
    vulnerability_ids: tuple[str, ...] = ()
    severity_summary: SeveritySummary | None = None
    scm_url: str | None = None
    github_repo: str | None = None
    github_stars: int | None = None
    github_open_issues: int | None = None
    github_last_pushed_at: datetime | None = None


@dataclass(frozen=True)
class RiskAssessment:
    level: RiskLevel
    score: int
    explanation: str
    recommendations: tuple[str, ...]
    provider: str
    model: str
    analyzed_at: datetime
    from_cache: bool = False
    deterministic_score: int = 0
    ai_status: AIStatus = AIStatus.DISABLED
    ai_error: str | None = None  # AIErrorKind value when ai_status is UNAVAILABLE
    exploitation_likelihood: str | None = None


@dataclass(frozen=True)
class AdvisorAssessment:
    """Structured narrative returned by an AI provider, before merging."""
    level: RiskLevel
    score: int
    explanation: str
    recommendations: tuple[str, ...]
    exploitation_likelihood: str | None = None


@dataclass(frozen=True)
class DependencyResult:
    coordinate: DependencyCoordinate
    enrichment: EnrichmentRecord | None
    assessment: RiskAssessment | None  # None when the coordinate was not analyzed

    @property
    def analyzed(self) -> bool:
        return self.assessment is not None


@dataclass(frozen=True)
class ProjectAnalysis:
    project_path: str
    analyzed_at: datetime
    build_tool: BuildTool
    confidence: Confidence
    results: tuple[DependencyResult, ...]
    cancelled: bool = False

    @property
    def not_analyzed(self) -> tuple[DependencyResult, ...]:
        return tuple(r for r in self.results if not r.analyzed)


@dataclass(frozen=True)
class ProviderCredential:
    provider: str
    model: str
    value: str  # ciphertext when encrypted, else plaintext
    encrypted: bool
    updated_at: datetime


@dataclass(frozen=True)
class CredentialStatus:
    provider: str | None
    model: str | None
    has_key: bool
    encrypted: bool
    vault_configured: bool


@dataclass(frozen=True)
class ConnectionTestResult:
    success: bool
    provider: str
    model: str
    reason: str | None = None
    error_kind: str | None = None
