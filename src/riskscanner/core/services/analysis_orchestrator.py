from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable

from ..domain.cancellation import CancellationToken
from ..domain.exceptions import AIError, CacheError
from ..domain.models import (
    AIStatus,
    AdvisorAssessment,
    DependencyCoordinate,
    DependencyResult,
    EnrichmentRecord,
    ProjectAnalysis,
    RiskAssessment,
    RiskLevel,
)
from ..ports import (
    AIAdvisorPort,
    AnalysisCachePort,
    CoordinateScannerPort,
    EnrichmentPort,
    LoggerPort,
)
from .risk_scorer import RiskScorer

DETERMINISTIC_PROVIDER = "none"
DETERMINISTIC_MODEL = "deterministic"

# Upper bound on how long the coordinator sleeps before re-checking the cancellation token
POLL_INTERVAL_SECONDS = 0.2

# How long a cancelled run waits for in-flight workers before returning
SHUTDOWN_GRACE_SECONDS = 5.0


def deduplicate(coordinates: Iterable[DependencyCoordinate]) -> list[DependencyCoordinate]:
    """Drop repeated (group, artifact, version, build tool) entries, keeping first occurrence order."""
    seen: set[tuple[str, str, str, str]] = set()
    unique: list[DependencyCoordinate] = []
    for coordinate in coordinates:
        if coordinate.identity in seen:
            continue
        seen.add(coordinate.identity)
        unique.append(coordinate)
    return unique


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalysisOrchestrator:
    """Orchestrates the complete per-project analysis workflow.

    Scans coordinates, then fans per-coordinate work (cache lookup, enrichment, scoring,
    AI advice, cache write) out to a bounded worker pool and reassembles the results in
    scan order.
    """

    def __init__(
        self,
        *,
        scanner: CoordinateScannerPort,
        enrichment: EnrichmentPort,
        cache: AnalysisCachePort,
        scorer: RiskScorer,
        logger: LoggerPort,
        max_workers: int = 8,
        shutdown_grace: float = SHUTDOWN_GRACE_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._shutdown_grace = shutdown_grace
        self._scanner = scanner
        self._enrichment = enrichment
        self._cache = cache
        self._scorer = scorer
        self._logger = logger
        self._max_workers = max_workers
        self._clock = clock

    def analyze(
        self,
        *,
        project_path: Path | str,
        advisor: AIAdvisorPort | None = None,
        force_refresh: bool = False,
        cancel: CancellationToken | None = None,
    ) -> ProjectAnalysis:
        """Analyze every dependency of a project.

        Args:
            project_path: Project folder or build file
            advisor: AI advisor, or None for deterministic-only analysis
            force_refresh: Skip cache lookups (results are still written back)
            cancel: Cooperative cancellation; unfinished coordinates are reported as not analyzed

        Raises:
            ScanError: If the project cannot be scanned
        """
        cancel = cancel or CancellationToken()

        # 1) Scan coordinates (fatal on failure)
        scan = self._scanner.scan(project_path)
        coordinates = deduplicate(scan.coordinates)
        self._logger.info(
            "scan_completed",
            type="scan_completed",
            path=scan.path,
            build_tool=scan.build_tool.value,
            confidence=scan.confidence.level.value,
            best_effort=scan.confidence.best_effort,
            coordinates=len(coordinates),
            duplicates=len(scan.coordinates) - len(coordinates),
        )

        if advisor is not None:
            provider, model = advisor.provider, advisor.model
        else:
            provider, model = DETERMINISTIC_PROVIDER, DETERMINISTIC_MODEL

        # 2) Fan out per-coordinate work
        completed = self._run_all(
            coordinates,
            advisor=advisor,
            provider=provider,
            model=model,
            force_refresh=force_refresh,
            cancel=cancel,
        )

        # 3) Reassemble in scan order; unfinished coordinates are kept as not analyzed
        results = tuple(
            completed.get(index) or DependencyResult(coordinate=coordinate, enrichment=None, assessment=None)
            for index, coordinate in enumerate(coordinates)
        )
        analysis = ProjectAnalysis(
            project_path=scan.path,
            analyzed_at=self._clock(),
            build_tool=scan.build_tool,
            confidence=scan.confidence,
            results=results,
            cancelled=cancel.cancelled,
        )

        if analysis.cancelled:
            self._logger.warning(
                "analysis_cancelled",
                type="analysis_cancelled",
                path=scan.path,
                not_analyzed=len(analysis.not_analyzed),
            )
        self._logger.info(
            "analysis_completed",
            type="analysis_completed",
            path=scan.path,
            provider=provider,
            model=model,
            total=len(results),
            analyzed=len(results) - len(analysis.not_analyzed),
            from_cache=sum(1 for r in results if r.assessment is not None and r.assessment.from_cache),
        )
        return analysis

    def _run_all(
        self,
        coordinates: list[DependencyCoordinate],
        *,
        advisor: AIAdvisorPort | None,
        provider: str,
        model: str,
        force_refresh: bool,
        cancel: CancellationToken,
    ) -> dict[int, DependencyResult]:
        completed: dict[int, DependencyResult] = {}
        if not coordinates:
            return completed

        executor = ThreadPoolExecutor(
            max_workers=min(self._max_workers, len(coordinates)),
            thread_name_prefix="riskscanner-worker",
        )
        futures: dict[Future, int] = {}
        try:
            for index, coordinate in enumerate(coordinates):
                future = executor.submit(
                    self._analyze_one,
                    coordinate,
                    advisor=advisor,
                    provider=provider,
                    model=model,
                    force_refresh=force_refresh,
                    cancel=cancel,
                )
                futures[future] = index

            pending = set(futures)
            while pending and not cancel.cancelled:
                remaining = cancel.remaining()
                timeout = POLL_INTERVAL_SECONDS if remaining is None else min(POLL_INTERVAL_SECONDS, remaining)
                done, pending = wait(pending, timeout=timeout, return_when=FIRST_COMPLETED)
                for future in done:
                    result = future.result()
                    if result is not None:
                        completed[futures[future]] = result

            if pending:
                # Drop queued work, then wait (bounded) for in-flight workers to reach a checkpoint
                executor.shutdown(wait=False, cancel_futures=True)
                wait(pending, timeout=self._shutdown_grace)
                for future in pending:
                    if future.done() and not future.cancelled() and future.exception() is None:
                        result = future.result()
                        if result is not None:
                            completed[futures[future]] = result
                still_running = sum(1 for future in pending if not future.done())
                if still_running:
                    self._logger.warning(
                        "workers_abandoned",
                        type="workers_abandoned",
                        count=still_running,
                    )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return completed

    def _analyze_one(
        self,
        coordinate: DependencyCoordinate,
        *,
        advisor: AIAdvisorPort | None,
        provider: str,
        model: str,
        force_refresh: bool,
        cancel: CancellationToken,
    ) -> DependencyResult | None:
        if cancel.cancelled:
            return None

        if not force_refresh:
            cached = self._cache_lookup(coordinate, provider, model)
            if cached is not None:
                return cached

        enrichment = self._enrichment.enrich(coordinate, cancel)
        self._logger.debug(
            "enrichment_completed",
            type="enrichment_completed",
            coordinate=coordinate.id,
            vulnerability_count=enrichment.vulnerability_count,
            github_repo=enrichment.github_repo,
        )
        if cancel.cancelled:
            return None

        det_level, det_score = self._scorer.assess(enrichment)

        cacheable = True
        if advisor is None:
            assessment = self._deterministic(
                det_level, det_score, enrichment, provider, model, AIStatus.DISABLED, None
            )
        else:
            try:
                advice = advisor.analyze(coordinate, enrichment)
            except AIError as e:
                self._logger.warning(
                    "ai_unavailable",
                    type="ai_unavailable",
                    coordinate=coordinate.id,
                    provider=provider,
                    model=model,
                    error_kind=e.kind.value,
                    error=str(e),
                )
                # Fallback results are not cached so the provider is retried next run
                cacheable = False
                assessment = self._deterministic(
                    det_level, det_score, enrichment, provider, model, AIStatus.UNAVAILABLE, e.kind.value
                )
            else:
                assessment = self._merge(advice, det_level, det_score, provider, model)

        if cancel.cancelled:
            return None

        if cacheable:
            try:
                self._cache.put(coordinate, provider, model, enrichment, assessment)
            except CacheError as e:
                self._logger.warning(
                    "cache_error",
                    type="cache_error",
                    operation="put",
                    coordinate=coordinate.id,
                    error=str(e),
                )

        self._logger.info(
            "dependency_analyzed",
            type="dependency_analyzed",
            coordinate=coordinate.id,
            risk_level=assessment.level.value,
            score=assessment.score,
            ai_status=assessment.ai_status.value,
        )
        return DependencyResult(coordinate=coordinate, enrichment=enrichment, assessment=assessment)

    def _cache_lookup(self, coordinate: DependencyCoordinate, provider: str, model: str) -> DependencyResult | None:
        try:
            entry = self._cache.get_entry(coordinate, provider, model)
        except CacheError as e:
            self._logger.warning(
                "cache_error",
                type="cache_error",
                operation="get",
                coordinate=coordinate.id,
                error=str(e),
            )
            return None

        if entry is None:
            return None
        self._logger.debug("cache_hit", type="cache_hit", coordinate=coordinate.id, provider=provider, model=model)
        # Report the coordinate as scanned now (direct flag, path and scope may differ between projects)
        return DependencyResult(coordinate=coordinate, enrichment=entry.enrichment, assessment=entry.assessment)

    def _deterministic(
        self,
        level: RiskLevel,
        det_score: int,
        enrichment: EnrichmentRecord,
        provider: str,
        model: str,
        ai_status: AIStatus,
        ai_error: str | None,
    ) -> RiskAssessment:
        # Empty explanation marks the assessment as AI-less
        return RiskAssessment(
            level=level,
            score=det_score,
            explanation="",
            recommendations=self._scorer.recommendations(level, enrichment),
            provider=provider,
            model=model,
            analyzed_at=self._clock(),
            from_cache=False,
            deterministic_score=det_score,
            ai_status=ai_status,
            ai_error=ai_error,
        )

    def _merge(
        self,
        advice: AdvisorAssessment,
        det_level: RiskLevel,
        det_score: int,
        provider: str,
        model: str,
    ) -> RiskAssessment:
        """Deterministic signal is a floor under the AI judgement."""
        return RiskAssessment(
            level=RiskLevel.most_severe(advice.level, det_level),
            score=max(advice.score, det_score),
            explanation=advice.explanation,
            recommendations=advice.recommendations,
            provider=provider,
            model=model,
            analyzed_at=self._clock(),
            from_cache=False,
            deterministic_score=det_score,
            ai_status=AIStatus.OK,
            exploitation_likelihood=advice.exploitation_likelihood,
        )
