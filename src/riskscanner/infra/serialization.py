"""Dict codecs for the records persisted by the analysis cache."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from ..core.domain.models import (
    AIStatus,
    BuildTool,
    DependencyCoordinate,
    EnrichmentRecord,
    RiskAssessment,
    RiskLevel,
    SeveritySummary,
)


def _dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def coordinate_to_dict(c: DependencyCoordinate) -> dict[str, Any]:
    return {
        "group_id": c.group_id,
        "artifact_id": c.artifact_id,
        "version": c.version,
        "build_tool": c.build_tool.value,
        "direct": c.direct,
        "path": list(c.path),
        "scope": c.scope,
    }


def coordinate_from_dict(d: dict[str, Any]) -> DependencyCoordinate:
    return DependencyCoordinate(
        group_id=d["group_id"],
        artifact_id=d["artifact_id"],
        version=d["version"],
        build_tool=BuildTool(d["build_tool"]),
        direct=d.get("direct", True),
        path=tuple(d.get("path", ())),
        scope=d.get("scope", "compile"),
    )


def enrichment_to_dict(e: EnrichmentRecord | None) -> dict[str, Any] | None:
    if e is None:
        return None
    summary = e.severity_summary
    return {
        "ecosystem": e.ecosystem,
        "package_name": e.package_name,
        "resolved_version": e.resolved_version,
        "vulnerability_count": e.vulnerability_count,
        "vulnerability_ids": list(e.vulnerability_ids),
        "severity_summary": None if summary is None else {
            "critical": summary.critical,
            "high": summary.high,
            "medium": summary.medium,
            "low": summary.low,
        },
        "scm_url": e.scm_url,
        "github_repo": e.github_repo,
        "github_stars": e.github_stars,
        "github_open_issues": e.github_open_issues,
        "github_last_pushed_at": e.github_last_pushed_at.isoformat() if e.github_last_pushed_at else None,
    }


def enrichment_from_dict(d: dict[str, Any] | None) -> EnrichmentRecord | None:
    if d is None:
        return None
    summary = d.get("severity_summary")
    return EnrichmentRecord(
        ecosystem=d.get("ecosystem"),
        package_name=d.get("package_name"),
        resolved_version=d.get("resolved_version"),
        vulnerability_count=d.get("vulnerability_count"),
        vulnerability_ids=tuple(d.get("vulnerability_ids") or ()),
        severity_summary=SeveritySummary(**summary) if summary else None,
        scm_url=d.get("scm_url"),
        github_repo=d.get("github_repo"),
        github_stars=d.get("github_stars"),
        github_open_issues=d.get("github_open_issues"),
        github_last_pushed_at=_dt(d.get("github_last_pushed_at")),
    )


def assessment_to_dict(a: RiskAssessment) -> dict[str, Any]:
    return {
        "level": a.level.value,
        "score": a.score,
        "explanation": a.explanation,
        "recommendations": list(a.recommendations),
        "provider": a.provider,
        "model": a.model,
        "analyzed_at": a.analyzed_at.isoformat(),
        "deterministic_score": a.deterministic_score,
        "ai_status": a.ai_status.value,
        "ai_error": a.ai_error,
        "exploitation_likelihood": a.exploitation_likelihood,
    }


def assessment_from_dict(d: dict[str, Any], *, from_cache: bool = True) -> RiskAssessment:
    return RiskAssessment(
        level=RiskLevel(d["level"]),
        score=int(d["score"]),
        explanation=d.get("explanation", ""),
        recommendations=tuple(d.get("recommendations") or ()),
        provider=d["provider"],
        model=d["model"],
        analyzed_at=datetime.fromisoformat(d["analyzed_at"]),
        from_cache=from_cache,
        deterministic_score=int(d.get("deterministic_score", 0)),
        ai_status=AIStatus(d.get("ai_status", AIStatus.DISABLED.value)),
        ai_error=d.get("ai_error"),
        exploitation_likelihood=d.get("exploitation_likelihood"),
    )
