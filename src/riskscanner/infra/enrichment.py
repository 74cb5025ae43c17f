"""Best-effort metadata lookup for one dependency coordinate.

Three independent sources, each with its own timeout:
  1. OSV vulnerability query (count, ids, severity tally)
  2. Maven Central POM fetch (SCM url)
  3. GitHub repository statistics (only when the SCM url points at GitHub)

OSV runs on a background thread concurrently with the POM -> GitHub chain. No failure in
any source is ever raised to the caller.
"""

from __future__ import annotations

import logging
import re
import time
import xml.etree.ElementTree as ET
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from datetime import datetime

import httpx

from ..core.domain.cancellation import CancellationToken
from ..core.domain.models import DependencyCoordinate, EnrichmentRecord, SeveritySummary

logger = logging.getLogger(__name__)

ECOSYSTEM_MAVEN = "Maven"
MAX_VULNERABILITY_IDS = 8
POLL_INTERVAL_SECONDS = 0.1

OSV_QUERY_URL = "https://api.osv.dev/v1/query"
MAVEN_CENTRAL_URL = "https://repo1.maven.org/maven2"
GITHUB_API_URL = "https://api.github.com"

_SEVERITY_BUCKETS = {
    "CRITICAL": "critical",
    "HIGH": "high",
    "MODERATE": "medium",
    "MEDIUM": "medium",
    "LOW": "low",
}

_GITHUB_URL = re.compile(r"github\.com[:/]+(?P<owner>[^/\s]+)/(?P<name>[^/\s#?]+)", re.IGNORECASE)


def is_enrichable(coordinate: DependencyCoordinate) -> bool:
    """Literal group/artifact/version only; unresolved placeholders are skipped."""
    parts = (coordinate.group_id, coordinate.artifact_id, coordinate.version)
    return all(p and p.strip() and "$" not in p for p in parts)


def parse_github_repo(scm_url: str | None) -> str | None:
    """Normalize an SCM url to `owner/name`, or None if it is not hosted on GitHub.

    Accepts `scm:git:` prefixes, `git@github.com:` / `ssh://git@github.com/` / `git://`
    forms, and strips a trailing `.git`.
    """
    if not scm_url:
        return None
    url = scm_url.strip()
    if url.startswith("scm:"):
        # scm:git:https://... / scm:git:git@github.com:...
        url = url.split(":", 2)[-1]
    match = _GITHUB_URL.search(url)
    if not match:
        return None
    owner = match.group("owner")
    name = match.group("name")
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if not owner or not name:
        return None
    return f"{owner}/{name}"


def pom_url(base_url: str, coordinate: DependencyCoordinate) -> str:
    group_path = coordinate.group_id.replace(".", "/")
    a, v = coordinate.artifact_id, coordinate.version
    return f"{base_url.rstrip('/')}/{group_path}/{a}/{v}/{a}-{v}.pom"


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def extract_scm_url(pom_text: str) -> str | None:
    """`<scm><url>` wins over `<scm><connection>`. Namespaced and bare POMs both work."""
    root = ET.fromstring(pom_text)
    scm = next((child for child in root if _local_name(child.tag) == "scm"), None)
    if scm is None:
        return None
    values = {_local_name(child.tag): (child.text or "").strip() for child in scm}
    return values.get("url") or values.get("connection") or None


@dataclass(frozen=True)
class _OsvResult:
    count: int | None = None
    ids: tuple[str, ...] = ()
    summary: SeveritySummary | None = None


@dataclass(frozen=True)
class _GithubStats:
    stars: int | None = None
    open_issues: int | None = None
    pushed_at: datetime | None = None


class EnrichmentAggregator:
    def __init__(
        self,
        *,
        client: httpx.Client,
        osv_url: str = OSV_QUERY_URL,
        maven_central_url: str = MAVEN_CENTRAL_URL,
        github_api_url: str = GITHUB_API_URL,
        github_token: str | None = None,
        osv_timeout: float = 10.0,
        registry_timeout: float = 10.0,
        github_timeout: float = 10.0,
    ) -> None:
        self._client = client
        self._osv_url = osv_url
        self._maven_central_url = maven_central_url
        self._github_api_url = github_api_url.rstrip("/")
        self._github_token = github_token
        self._osv_timeout = osv_timeout
        self._registry_timeout = registry_timeout
        self._github_timeout = github_timeout

    def enrich(
        self,
        coordinate: DependencyCoordinate,
        cancel: CancellationToken | None = None,
    ) -> EnrichmentRecord:
        identity = EnrichmentRecord(
            ecosystem=ECOSYSTEM_MAVEN,
            package_name=coordinate.package_name,
            resolved_version=coordinate.version,
        )
        if not is_enrichable(coordinate) or (cancel is not None and cancel.cancelled):
            return identity

        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="riskscanner-osv")
        try:
            # httpx enforces the per-request timeout; the margin covers thread scheduling
            osv_deadline = time.monotonic() + self._osv_timeout + 1.0
            osv_future = pool.submit(self._query_osv, coordinate)

            scm_url = self._fetch_scm_url(coordinate)
            github_repo = parse_github_repo(scm_url)
            stats = _GithubStats()
            if github_repo and not (cancel is not None and cancel.cancelled):
                stats = self._fetch_github_stats(github_repo)

            osv = self._await_osv(osv_future, osv_deadline, coordinate, cancel)
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        return EnrichmentRecord(
            ecosystem=identity.ecosystem,
            package_name=identity.package_name,
            resolved_version=identity.resolved_version,
            vulnerability_count=osv.count,
            vulnerability_ids=osv.ids,
            severity_summary=osv.summary,
            scm_url=scm_url,
            github_repo=github_repo,
            github_stars=stats.stars,
            github_open_issues=stats.open_issues,
            github_last_pushed_at=stats.pushed_at,
        )

    def _await_osv(
        self,
        future: Future,
        deadline: float,
        coordinate: DependencyCoordinate,
        cancel: CancellationToken | None,
    ) -> _OsvResult:
        while True:
            if future.done():
                return future.result()
            if cancel is not None and cancel.cancelled:
                return _OsvResult()
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning("OSV lookup for %s did not finish in time", coordinate.id)
                return _OsvResult()
            try:
                return future.result(timeout=min(POLL_INTERVAL_SECONDS, remaining))
            except FutureTimeoutError:
                continue

    def _query_osv(self, coordinate: DependencyCoordinate) -> _OsvResult:
        payload = {
            "package": {"ecosystem": ECOSYSTEM_MAVEN, "name": coordinate.package_name},
            "version": coordinate.version,
        }
        try:
            resp = self._client.post(self._osv_url, json=payload, timeout=self._osv_timeout)
        except httpx.HTTPError as e:
            logger.info("OSV query failed for %s: %s", coordinate.id, e)
            return _OsvResult()

        if not resp.is_success:
            logger.info("OSV returned HTTP %s for %s", resp.status_code, coordinate.id)
            return _OsvResult()
        try:
            body = resp.json()
        except ValueError:
            logger.info("OSV returned malformed JSON for %s", coordinate.id)
            return _OsvResult()

        vulns = body.get("vulns") if isinstance(body, dict) else None
        if not isinstance(vulns, list):
            # `{}` is OSV's answer for "no known vulnerabilities"
            return _OsvResult(count=0, summary=SeveritySummary())

        ids: list[str] = []
        buckets = {"critical": 0, "high": 0, "medium": 0, "low": 0}
        for vuln in vulns:
            if not isinstance(vuln, dict):
                continue
            vuln_id = vuln.get("id")
            if isinstance(vuln_id, str) and len(ids) < MAX_VULNERABILITY_IDS:
                ids.append(vuln_id)
            db_specific = vuln.get("database_specific")
            severity = db_specific.get("severity") if isinstance(db_specific, dict) else None
            bucket = _SEVERITY_BUCKETS.get(str(severity).upper(), "medium") if severity else "medium"
            buckets[bucket] += 1

        return _OsvResult(count=len(vulns), ids=tuple(ids), summary=SeveritySummary(**buckets))

    def _fetch_scm_url(self, coordinate: DependencyCoordinate) -> str | None:
        url = pom_url(self._maven_central_url, coordinate)
        try:
            resp = self._client.get(url, timeout=self._registry_timeout)
        except httpx.HTTPError as e:
            logger.info("POM fetch failed for %s: %s", coordinate.id, e)
            return None
        if not resp.is_success:
            return None
        try:
            return extract_scm_url(resp.text)
        except ET.ParseError:
            logger.info("POM for %s is not valid XML", coordinate.id)
            return None

    def _fetch_github_stats(self, repo: str) -> _GithubStats:
        headers = {"Accept": "application/vnd.github+json"}
        if self._github_token:
            headers["Authorization"] = f"Bearer {self._github_token}"
        try:
            resp = self._client.get(
                f"{self._github_api_url}/repos/{repo}",
                headers=headers,
                timeout=self._github_timeout,
            )
        except httpx.HTTPError as e:
            logger.info("GitHub lookup failed for %s: %s", repo, e)
            return _GithubStats()
        if not resp.is_success:
            return _GithubStats()
        try:
            body = resp.json()
        except ValueError:
            return _GithubStats()
        if not isinstance(body, dict):
            return _GithubStats()

        pushed_at = None
        raw_pushed = body.get("pushed_at")
        if isinstance(raw_pushed, str):
            try:
                pushed_at = datetime.fromisoformat(raw_pushed.replace("Z", "+00:00"))
            except ValueError:
                pushed_at = None

        stars = body.get("stargazers_count")
        issues = body.get("open_issues_count")
        return _GithubStats(
            stars=stars if isinstance(stars, int) else None,
            open_issues=issues if isinstance(issues, int) else None,
            pushed_at=pushed_at,
        )
