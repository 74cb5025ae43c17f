from __future__ import annotations

from .json_extractor import JsonExtractor
from .risk_scorer import RiskScorer, aggregate_score, classify_vulnerability_count, score, summarize
from .ai_advisor import AIAdvisor
from .credential_resolver import CredentialResolver
from .analysis_orchestrator import (
    DETERMINISTIC_MODEL,
    DETERMINISTIC_PROVIDER,
    AnalysisOrchestrator,
    deduplicate,
)

__all__ = [
    "JsonExtractor",
    "RiskScorer",
    "aggregate_score",
    "classify_vulnerability_count",
    "score",
    "summarize",
    "AIAdvisor",
    "CredentialResolver",
    "AnalysisOrchestrator",
    "DETERMINISTIC_MODEL",
    "DETERMINISTIC_PROVIDER",
    "deduplicate",
]
