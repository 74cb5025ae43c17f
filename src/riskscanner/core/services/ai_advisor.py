from __future__ import annotations

import math

from ..domain.exceptions import AIError, AIErrorKind
from ..domain.models import (
    AdvisorAssessment,
    ConnectionTestResult,
    DependencyCoordinate,
    EnrichmentRecord,
    RiskLevel,
)
from ..domain.prompt import CONNECTION_TEST_PROMPT, SYSTEM_PROMPT, build_risk_prompt
from ..ports import ChatProviderPort
from .json_extractor import JsonExtractor

REQUIRED_FIELDS = ("riskLevel", "riskScore", "explanation", "recommendations")


class AIAdvisor:
    """Turns a chat provider into a structured per-dependency assessment."""

    def __init__(
        self,
        *,
        client: ChatProviderPort,
        json_extractor: JsonExtractor,
        max_output_tokens: int | None = None,
    ) -> None:
        self._client = client
        self._json_extractor = json_extractor
        self._max_output_tokens = max_output_tokens

    @property
    def provider(self) -> str:
        return self._client.provider

    @property
    def model(self) -> str:
        return self._client.model

    def analyze(
        self,
        coordinate: DependencyCoordinate,
        enrichment: EnrichmentRecord | None,
    ) -> AdvisorAssessment:
        prompt = build_risk_prompt(coordinate=coordinate, enrichment=enrichment)
        raw_text = self._client.send_prompt(
            prompt,
            system=SYSTEM_PROMPT,
            max_output_tokens=self._max_output_tokens,
        )
        return self.parse(raw_text)

    def parse(self, raw_text: str) -> AdvisorAssessment:
        """Validate a provider reply.

        Raises:
            AIError: MALFORMED_RESPONSE when a required field is missing or has the wrong type
        """
        parsed = self._json_extractor.extract(raw_text)

        missing = [name for name in REQUIRED_FIELDS if name not in parsed]
        if missing:
            raise self._malformed(f"Missing fields: {', '.join(missing)}")

        try:
            level = RiskLevel(str(parsed["riskLevel"]).strip().upper())
        except ValueError:
            raise self._malformed(f"Unknown riskLevel: {parsed['riskLevel']!r}") from None

        raw_score = parsed["riskScore"]
        # bool is an int subclass; reject it explicitly
        if isinstance(raw_score, bool) or not isinstance(raw_score, (int, float)):
            raise self._malformed(f"riskScore is not a number: {raw_score!r}")
        if isinstance(raw_score, float) and not math.isfinite(raw_score):
            raise self._malformed(f"riskScore is not finite: {raw_score!r}")
        score = max(0, min(100, int(round(raw_score))))

        explanation = parsed["explanation"]
        if not isinstance(explanation, str):
            raise self._malformed("explanation is not a string")

        recommendations = parsed["recommendations"]
        if isinstance(recommendations, str):
            recommendations = [recommendations]
        if not isinstance(recommendations, list):
            raise self._malformed("recommendations is not a list")

        likelihood = parsed.get("exploitationLikelihood")
        return AdvisorAssessment(
            level=level,
            score=score,
            explanation=explanation.strip(),
            recommendations=tuple(str(r).strip() for r in recommendations if str(r).strip()),
            exploitation_likelihood=str(likelihood) if likelihood is not None else None,
        )

    def test_connection(self) -> ConnectionTestResult:
        """Send a minimal prompt; never raises."""
        try:
            reply = self._client.send_prompt(
                CONNECTION_TEST_PROMPT,
                system="Return exactly 'pong'.",
                max_output_tokens=16,
            )
        except AIError as e:
            return ConnectionTestResult(
                success=False,
                provider=self.provider,
                model=self.model,
                reason=str(e),
                error_kind=e.kind.value,
            )

        if not reply.strip():
            return ConnectionTestResult(
                success=False,
                provider=self.provider,
                model=self.model,
                reason="Empty response",
                error_kind=AIErrorKind.MALFORMED_RESPONSE.value,
            )
        return ConnectionTestResult(success=True, provider=self.provider, model=self.model)

    def _malformed(self, message: str) -> AIError:
        return AIError(AIErrorKind.MALFORMED_RESPONSE, message, provider=self.provider)
