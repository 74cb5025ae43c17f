from __future__ import annotations

from .models import DependencyCoordinate, EnrichmentRecord

SYSTEM_PROMPT = (
    "You are a software supply-chain security expert. "
    "You must respond with STRICT JSON only (no markdown, no code fences)."
)

CONNECTION_TEST_PROMPT = "Return exactly the word pong."

MAX_PROMPT_VULNERABILITY_IDS = 8


def build_risk_prompt(
    *,
    coordinate: DependencyCoordinate,
    enrichment: EnrichmentRecord | None,
) -> str:
    """Build the per-dependency assessment prompt."""
    lines = [
        f"Dependency: {coordinate.id}",
        f"Build tool: {coordinate.build_tool.value}",
        f"Scope: {coordinate.scope}",
        f"Direct dependency: {'yes' if coordinate.direct else 'no (transitive)'}",
    ]

    count = enrichment.vulnerability_count if enrichment else None
    lines.append(f"Known vulnerabilities: {count if count is not None else 'unknown'}")

    if enrichment is not None:
        ids = enrichment.vulnerability_ids[:MAX_PROMPT_VULNERABILITY_IDS]
        if ids:
            suffix = " (truncated)" if count is not None and count > len(ids) else ""
            lines.append(f"Vulnerability IDs: {', '.join(ids)}{suffix}")
        if enrichment.github_repo:
            lines.append(f"GitHub repository: {enrichment.github_repo}")
        if enrichment.github_stars is not None:
            lines.append(f"GitHub stars: {enrichment.github_stars}")
        if enrichment.github_open_issues is not None:
            lines.append(f"GitHub open issues: {enrichment.github_open_issues}")
        if enrichment.github_last_pushed_at is not None:
            lines.append(f"Last push: {enrichment.github_last_pushed_at.isoformat()}")

    body = "\n".join(lines)
    body += (
        "\n\n# Task\n"
        "Estimate the security and maintenance risk of this dependency version using the data above.\n"
        "Weigh known vulnerabilities most heavily; consider exploitability and project activity.\n\n"
        "Respond in JSON only with fields: {\n"
        "  \"riskLevel\": \"CRITICAL\" | \"HIGH\" | \"MEDIUM\" | \"LOW\",\n"
        "  \"riskScore\": integer 0-100,\n"
        "  \"explanation\": string,\n"
        "  \"recommendations\": [string],\n"
        "  \"exploitationLikelihood\": \"HIGH\" | \"MEDIUM\" | \"LOW\" | \"UNKNOWN\"\n"
        "}\n"
    )
    return body
