"""CLI output formatting utilities for human-readable display."""

from __future__ import annotations

from ..core.domain.models import (
    ConnectionTestResult,
    CredentialStatus,
    DependencyResult,
    ProjectAnalysis,
    ScanResult,
)
from ..core.services import aggregate_score


def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


def format_scan_result(result: ScanResult) -> str:
    """Format scanned coordinates as a table."""
    lines = []
    lines.append(f"Build file: {result.path}")
    confidence = f"{result.confidence.level.value} ({result.confidence.score})"
    if result.confidence.best_effort:
        confidence += ", best effort"
    lines.append(f"Build tool: {result.build_tool.value} | Confidence: {confidence}")
    lines.append(f"Found {len(result.coordinates)} dependencies:")
    lines.append("")
    lines.append("-" * 100)
    lines.append(f"{'Coordinate':<70} {'Scope':<12} {'Direct':<8}")
    lines.append("-" * 100)
    for c in result.coordinates:
        lines.append(f"{_truncate(c.id, 70):<70} {c.scope:<12} {'yes' if c.direct else 'no':<8}")
    lines.append("-" * 100)
    return "\n".join(lines)


def _result_row(r: DependencyResult) -> str:
    coordinate = _truncate(r.coordinate.id, 55)
    a = r.assessment
    if a is None:
        return f"{coordinate:<55} {'-':<9} {'-':>5} {'-':>6}  not analyzed"

    vulns = "?"
    if r.enrichment is not None and r.enrichment.vulnerability_count is not None:
        vulns = str(r.enrichment.vulnerability_count)
    notes = []
    if a.from_cache:
        notes.append("cached")
    if a.ai_error:
        notes.append(f"ai {a.ai_error}")
    return f"{coordinate:<55} {a.level.value:<9} {a.score:>5} {vulns:>6}  {', '.join(notes)}"


def format_project_analysis(analysis: ProjectAnalysis, *, details: bool = False) -> str:
    """Format a project analysis for human-readable CLI output.

    Args:
        analysis: Completed (or cancelled) analysis
        details: Include explanation and recommendations per dependency
    """
    lines = []
    lines.append("=" * 80)
    lines.append("RISK ANALYSIS")
    lines.append("=" * 80)

    lines.append(f"\nProject: {analysis.project_path}")
    lines.append(
        f"Build tool: {analysis.build_tool.value} | Confidence: {analysis.confidence.level.value}"
        f" ({analysis.confidence.score})"
    )
    if analysis.confidence.best_effort:
        lines.append("Note: dependencies were extracted on a best-effort basis")

    levels = [r.assessment.level for r in analysis.results if r.assessment is not None]
    lines.append(f"Dependencies: {len(analysis.results)} | Not analyzed: {len(analysis.not_analyzed)}")
    if levels:
        lines.append(f"Project score: {aggregate_score(levels)}")
    if analysis.cancelled:
        lines.append("Analysis was cancelled before every dependency finished")

    lines.append("\n" + "-" * 80)
    lines.append(f"{'Coordinate':<55} {'Level':<9} {'Score':>5} {'Vulns':>6}")
    lines.append("-" * 80)
    for r in analysis.results:
        lines.append(_result_row(r))

    if details:
        for r in analysis.results:
            a = r.assessment
            if a is None:
                continue
            lines.append("\n" + "-" * 80)
            lines.append(f"{r.coordinate.id}: {a.level.value} ({a.score})")
            if r.enrichment is not None and r.enrichment.vulnerability_ids:
                lines.append(f"Advisories: {', '.join(r.enrichment.vulnerability_ids)}")
            if a.explanation:
                lines.append(f"\nExplanation:\n{a.explanation}")
            if a.recommendations:
                lines.append("\nRecommendations:")
                for i, rec in enumerate(a.recommendations, 1):
                    lines.append(f"  {i}. {rec}")

    lines.append("\n" + "=" * 80)
    return "\n".join(lines)


def format_cached_results(results: list[DependencyResult], provider: str, model: str) -> str:
    if not results:
        return f"No cached assessments for {provider}/{model}."

    lines = []
    lines.append(f"Found {len(results)} cached assessments for {provider}/{model}:")
    lines.append("")
    lines.append("-" * 80)
    for r in results:
        lines.append(_result_row(r))
    lines.append("-" * 80)
    return "\n".join(lines)


def format_credential_status(status: CredentialStatus) -> str:
    lines = []
    if status.provider is None:
        lines.append("No stored credential.")
    else:
        lines.append(f"Provider: {status.provider}")
        lines.append(f"Model: {status.model or '(provider default)'}")
        lines.append(f"Encrypted: {'yes' if status.encrypted else 'no'}")
    lines.append(f"Key available: {'yes' if status.has_key else 'no'}")
    lines.append(f"Vault secret configured: {'yes' if status.vault_configured else 'no'}")
    return "\n".join(lines)


def format_connection_test(result: ConnectionTestResult) -> str:
    if result.success:
        return f"✓ {result.provider}/{result.model}: connection OK"
    return f"✗ {result.provider}/{result.model}: {result.error_kind or 'failed'} ({result.reason})"
