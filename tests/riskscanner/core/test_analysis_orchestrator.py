"""Tests for AnalysisOrchestrator."""
import threading
import time

import pytest

from riskscanner.core.domain.cancellation import CancellationToken
from riskscanner.core.domain.exceptions import AIErrorKind
from riskscanner.core.domain.models import AIStatus, EnrichmentRecord, RiskLevel, SeveritySummary
from riskscanner.core.services import (
    DETERMINISTIC_MODEL,
    DETERMINISTIC_PROVIDER,
    AIAdvisor,
    AnalysisOrchestrator,
    JsonExtractor,
    RiskScorer,
    deduplicate,
)

from fakes import FIXED_NOW, FakeAdvisor, FakeCache, FakeEnrichment, FakeScanner, coord


def _orchestrator(scanner, logger, enrichment=None, cache=None, max_workers=4, shutdown_grace=5.0):
    return AnalysisOrchestrator(
        scanner=scanner,
        enrichment=enrichment or FakeEnrichment(),
        cache=cache or FakeCache(),
        scorer=RiskScorer(),
        logger=logger,
        max_workers=max_workers,
        shutdown_grace=shutdown_grace,
        clock=lambda: FIXED_NOW,
    )


VULNERABLE = EnrichmentRecord(
    ecosystem="Maven",
    vulnerability_count=12,
    vulnerability_ids=("CVE-1", "CVE-2"),
    severity_summary=SeveritySummary(critical=3, high=9),
)


class TestDeduplicate:
    def test_keeps_first_occurrence_order(self):
        a, b = coord("a"), coord("b")
        a_transitive = coord("a", direct=False, path=("x:y:1",))
        assert deduplicate([a, b, a_transitive, b]) == [a, b]

    def test_build_tool_is_part_of_identity(self):
        from riskscanner.core.domain.models import BuildTool
        maven, gradle = coord("a"), coord("a", build_tool=BuildTool.GRADLE)
        assert deduplicate([maven, gradle]) == [maven, gradle]


class TestAnalyzeDeterministic:
    def test_results_follow_scan_order(self, logger):
        coords = [coord(f"lib{i}") for i in range(12)]
        analysis = _orchestrator(FakeScanner(coords), logger).analyze(project_path="/p")

        assert [r.coordinate for r in analysis.results] == coords
        assert analysis.cancelled is False
        assert analysis.not_analyzed == ()
        assert analysis.analyzed_at == FIXED_NOW

    def test_duplicates_analyzed_once(self, logger):
        enrichment = FakeEnrichment()
        coords = [coord("a"), coord("a"), coord("b")]
        analysis = _orchestrator(FakeScanner(coords), logger, enrichment=enrichment).analyze(project_path="/p")

        assert len(analysis.results) == 2
        assert sorted(enrichment.calls) == ["org.example:a:1.0.0", "org.example:b:1.0.0"]

    def test_deterministic_assessment(self, logger):
        enrichment = FakeEnrichment({"bad": VULNERABLE})
        analysis = _orchestrator(FakeScanner([coord("bad")]), logger, enrichment=enrichment).analyze(project_path="/p")

        assessment = analysis.results[0].assessment
        assert assessment.level is RiskLevel.CRITICAL
        assert assessment.score == 100
        assert assessment.explanation == ""
        assert assessment.recommendations
        assert assessment.ai_status is AIStatus.DISABLED
        assert (assessment.provider, assessment.model) == (DETERMINISTIC_PROVIDER, DETERMINISTIC_MODEL)

    def test_empty_project(self, logger):
        analysis = _orchestrator(FakeScanner([]), logger).analyze(project_path="/p")
        assert analysis.results == ()
        assert "analysis_completed" in logger.messages("info")

    def test_rejects_zero_workers(self, logger):
        with pytest.raises(ValueError):
            _orchestrator(FakeScanner([]), logger, max_workers=0)


class TestAnalyzeWithAdvisor:
    def test_deterministic_floor_under_ai(self, logger):
        enrichment = FakeEnrichment({"bad": VULNERABLE})
        advisor = FakeAdvisor(level=RiskLevel.LOW, score=10)
        analysis = _orchestrator(FakeScanner([coord("bad")]), logger, enrichment=enrichment).analyze(
            project_path="/p", advisor=advisor
        )

        assessment = analysis.results[0].assessment
        assert assessment.level is RiskLevel.CRITICAL
        assert assessment.score == 100
        assert assessment.deterministic_score == 100
        assert assessment.explanation.startswith("AI view")
        assert assessment.ai_status is AIStatus.OK
        assert (assessment.provider, assessment.model) == ("openai", "gpt-4o")

    def test_ai_can_raise_level(self, logger):
        advisor = FakeAdvisor(level=RiskLevel.HIGH, score=70)
        analysis = _orchestrator(FakeScanner([coord("ok")]), logger).analyze(project_path="/p", advisor=advisor)
        assessment = analysis.results[0].assessment
        assert assessment.level is RiskLevel.HIGH
        assert assessment.score == 70
        assert assessment.deterministic_score == 0

    def test_ai_failure_falls_back_and_is_not_cached(self, logger):
        cache = FakeCache()
        advisor = FakeAdvisor(error=AIErrorKind.UNAUTHORIZED)
        analysis = _orchestrator(FakeScanner([coord("a"), coord("b")]), logger, cache=cache).analyze(
            project_path="/p", advisor=advisor
        )

        for r in analysis.results:
            assert r.assessment.ai_status is AIStatus.UNAVAILABLE
            assert r.assessment.ai_error == "unauthorized"
            assert r.assessment.explanation == ""
        assert cache.puts == 0
        assert logger.messages("warning").count("ai_unavailable") == 2

    def test_malformed_reply_falls_back_per_dependency(self, logger):
        class NanChat:
            provider = "openai"
            model = "gpt-4o"

            def send_prompt(self, prompt, *, system=None, max_output_tokens=None):
                return '{"riskLevel": "HIGH", "riskScore": NaN, "explanation": "x", "recommendations": []}'

        cache = FakeCache()
        enrichment = FakeEnrichment({"bad": VULNERABLE})
        advisor = AIAdvisor(client=NanChat(), json_extractor=JsonExtractor())
        analysis = _orchestrator(
            FakeScanner([coord("bad"), coord("ok")]), logger, enrichment=enrichment, cache=cache
        ).analyze(project_path="/p", advisor=advisor)

        assert analysis.not_analyzed == ()
        bad, ok = (r.assessment for r in analysis.results)
        assert bad.ai_status is AIStatus.UNAVAILABLE
        assert bad.ai_error == "malformed_response"
        assert (bad.level, bad.score) == (RiskLevel.CRITICAL, 100)
        assert ok.ai_status is AIStatus.UNAVAILABLE
        assert (ok.level, ok.score) == (RiskLevel.LOW, 0)
        assert cache.puts == 0


class TestCaching:
    def test_second_run_served_from_cache(self, logger):
        cache = FakeCache()
        enrichment = FakeEnrichment({"bad": VULNERABLE})
        advisor = FakeAdvisor()
        coords = [coord("bad"), coord("ok")]
        orchestrator = _orchestrator(FakeScanner(coords), logger, enrichment=enrichment, cache=cache)

        first = orchestrator.analyze(project_path="/p", advisor=advisor)
        second = orchestrator.analyze(project_path="/p", advisor=advisor)

        assert len(enrichment.calls) == 2
        assert len(advisor.calls) == 2
        assert all(r.assessment.from_cache for r in second.results)
        for a, b in zip(first.results, second.results):
            assert a.assessment.level == b.assessment.level
            assert a.assessment.score == b.assessment.score

    def test_force_refresh_bypasses_cache_but_writes_back(self, logger):
        cache = FakeCache()
        enrichment = FakeEnrichment()
        orchestrator = _orchestrator(FakeScanner([coord("a")]), logger, enrichment=enrichment, cache=cache)

        orchestrator.analyze(project_path="/p")
        refreshed = orchestrator.analyze(project_path="/p", force_refresh=True)

        assert len(enrichment.calls) == 2
        assert refreshed.results[0].assessment.from_cache is False
        assert cache.puts == 2

    def test_provider_and_model_are_part_of_the_key(self, logger):
        cache = FakeCache()
        enrichment = FakeEnrichment()
        orchestrator = _orchestrator(FakeScanner([coord("a")]), logger, enrichment=enrichment, cache=cache)

        orchestrator.analyze(project_path="/p", advisor=FakeAdvisor(model="gpt-4o"))
        orchestrator.analyze(project_path="/p", advisor=FakeAdvisor(model="gpt-4o-mini"))
        orchestrator.analyze(project_path="/p")

        assert len(enrichment.calls) == 3
        assert len(cache.entries) == 3

    def test_cache_hit_reports_current_coordinate(self, logger):
        cache = FakeCache()
        _orchestrator(FakeScanner([coord("a")]), logger, cache=cache).analyze(project_path="/p")

        transitive = coord("a", direct=False, path=("root:x:1",))
        analysis = _orchestrator(FakeScanner([transitive]), logger, cache=cache).analyze(project_path="/q")

        assert analysis.results[0].coordinate == transitive
        assert analysis.results[0].assessment.from_cache is True

    def test_cache_errors_are_misses(self, logger):
        cache = FakeCache(fail_get=True, fail_put=True)
        analysis = _orchestrator(FakeScanner([coord("a")]), logger, cache=cache).analyze(project_path="/p")

        assert analysis.results[0].analyzed
        assert logger.messages("warning").count("cache_error") == 2


class TestCancellation:
    def test_cancelled_before_start(self, logger):
        token = CancellationToken()
        token.cancel()
        coords = [coord("a"), coord("b")]
        analysis = _orchestrator(FakeScanner(coords), logger).analyze(project_path="/p", cancel=token)

        assert analysis.cancelled is True
        assert [r.coordinate for r in analysis.results] == coords
        assert len(analysis.not_analyzed) == 2
        assert "analysis_cancelled" in logger.messages("warning")

    def test_cancel_mid_run_keeps_finished_results(self, logger):
        token = CancellationToken()
        release = threading.Event()

        def on_enrich(coordinate, cancel):
            if coordinate.artifact_id == "slow":
                token.cancel()
                release.wait(timeout=5)

        cache = FakeCache()
        coords = [coord("fast"), coord("slow")]
        orchestrator = _orchestrator(
            FakeScanner(coords),
            logger,
            enrichment=FakeEnrichment(on_enrich=on_enrich),
            cache=cache,
            max_workers=1,
            shutdown_grace=0.1,
        )
        try:
            analysis = orchestrator.analyze(project_path="/p", cancel=token)
        finally:
            release.set()

        assert analysis.cancelled is True
        assert analysis.results[0].analyzed
        assert not analysis.results[1].analyzed
        assert [r.coordinate for r in analysis.results] == coords

    def test_deadline(self, logger):
        def on_enrich(coordinate, cancel):
            time.sleep(0.3)

        coords = [coord(f"lib{i}") for i in range(4)]
        orchestrator = _orchestrator(
            FakeScanner(coords), logger, enrichment=FakeEnrichment(on_enrich=on_enrich), max_workers=1
        )
        started = time.monotonic()
        analysis = orchestrator.analyze(project_path="/p", cancel=CancellationToken(timeout=0.1))

        assert analysis.cancelled is True
        assert len(analysis.results) == 4
        assert analysis.not_analyzed
        assert time.monotonic() - started < 1.0

    def test_cancelled_run_waits_for_in_flight_workers(self, logger):
        started, finished = [], []
        lock = threading.Lock()

        def on_enrich(coordinate, cancel):
            with lock:
                started.append(coordinate.id)
            while not cancel.cancelled:
                time.sleep(0.01)
            time.sleep(0.05)
            with lock:
                finished.append(coordinate.id)

        coords = [coord(f"lib{i}") for i in range(6)]
        orchestrator = _orchestrator(
            FakeScanner(coords), logger, enrichment=FakeEnrichment(on_enrich=on_enrich), max_workers=2
        )
        analysis = orchestrator.analyze(project_path="/p", cancel=CancellationToken(timeout=0.1))

        assert analysis.cancelled is True
        assert len(analysis.not_analyzed) == 6
        assert len(started) == 2
        assert sorted(finished) == sorted(started)
        assert "workers_abandoned" not in logger.messages("warning")

    def test_stuck_worker_is_abandoned_after_grace(self, logger):
        release = threading.Event()

        def on_enrich(coordinate, cancel):
            release.wait(timeout=5)

        orchestrator = _orchestrator(
            FakeScanner([coord("stuck")]),
            logger,
            enrichment=FakeEnrichment(on_enrich=on_enrich),
            shutdown_grace=0.1,
        )
        try:
            started = time.monotonic()
            analysis = orchestrator.analyze(project_path="/p", cancel=CancellationToken(timeout=0.1))
            elapsed = time.monotonic() - started
        finally:
            release.set()

        assert analysis.cancelled is True
        assert elapsed < 2.0
        assert "workers_abandoned" in logger.messages("warning")
