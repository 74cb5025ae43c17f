from __future__ import annotations

from typing import Iterable

from ..domain.models import EnrichmentRecord, RiskLevel, SeveritySummary

WEIGHT_CRITICAL = 40
WEIGHT_HIGH = 30
WEIGHT_MEDIUM = 15
WEIGHT_LOW = 5

MAX_SCORE = 100


def classify_vulnerability_count(count: int | None) -> RiskLevel:
    """Map a raw vulnerability count onto a risk level.

    Unknown counts classify as LOW; absence of signal is not evidence of risk.
    """
    if count is None or count <= 1:
        return RiskLevel.LOW
    if count >= 10:
        return RiskLevel.CRITICAL
    if count >= 5:
        return RiskLevel.HIGH
    return RiskLevel.MEDIUM


def _critical_floor(critical: int) -> int:
    if critical >= 3:
        return 90
    if critical == 2:
        return 60
    if critical == 1:
        return 40
    return 0


def score(summary: SeveritySummary) -> int:
    """Deterministic 0-100 score from per-severity counts.

    Accepts counts only, so the same function serves a single dependency and any
    filtered aggregate view.
    """
    base = (
        WEIGHT_CRITICAL * summary.critical
        + WEIGHT_HIGH * summary.high
        + WEIGHT_MEDIUM * summary.medium
        + WEIGHT_LOW * summary.low
    )
    return max(0, min(MAX_SCORE, max(base, _critical_floor(summary.critical))))


def summarize(levels: Iterable[RiskLevel]) -> SeveritySummary:
    counts = {level: 0 for level in RiskLevel}
    for level in levels:
        counts[level] += 1
    return SeveritySummary(
        critical=counts[RiskLevel.CRITICAL],
        high=counts[RiskLevel.HIGH],
        medium=counts[RiskLevel.MEDIUM],
        low=counts[RiskLevel.LOW],
    )


def aggregate_score(levels: Iterable[RiskLevel]) -> int:
    """Score for a "current view" of dependencies, e.g. after filtering in a UI."""
    return score(summarize(levels))


def severity_summary_for(enrichment: EnrichmentRecord | None) -> SeveritySummary:
    """Best available severity summary for one dependency.

    Falls back to treating every counted vulnerability as MEDIUM when the source
    reported a count without severities.
    """
    if enrichment is None:
        return SeveritySummary()
    if enrichment.severity_summary is not None:
        return enrichment.severity_summary
    if enrichment.vulnerability_count:
        return SeveritySummary(medium=enrichment.vulnerability_count)
    return SeveritySummary()


class RiskScorer:
    """Deterministic per-dependency level and score."""

    def assess(self, enrichment: EnrichmentRecord | None) -> tuple[RiskLevel, int]:
        count = enrichment.vulnerability_count if enrichment else None
        return classify_vulnerability_count(count), score(severity_summary_for(enrichment))

    def recommendations(self, level: RiskLevel, enrichment: EnrichmentRecord | None) -> tuple[str, ...]:
        """Template recommendations used when no AI narrative is available."""
        recs: list[str] = []
        count = enrichment.vulnerability_count if enrichment else None

        if count is None:
            recs.append("Vulnerability data was unavailable; re-run the analysis to confirm the risk level.")
        elif level is RiskLevel.CRITICAL:
            recs.append("Upgrade to a patched release immediately or replace this dependency.")
            recs.append("Review exposure of the affected code paths until the upgrade ships.")
        elif level is RiskLevel.HIGH:
            recs.append("Schedule an upgrade to a patched release in the next maintenance window.")
        elif level is RiskLevel.MEDIUM:
            recs.append("Review the listed advisories and upgrade if the affected features are used.")
        else:
            recs.append("No action required; keep monitoring for new advisories.")

        if enrichment is not None and enrichment.vulnerability_ids:
            recs.append(f"Check advisories: {', '.join(enrichment.vulnerability_ids[:3])}.")
        if enrichment is not None and enrichment.github_repo is None and count:
            recs.append("No source repository was found; verify the project is still maintained.")
        return tuple(recs)
