"""Read-only access to Maven artifacts: local ~/.m2, an on-disk POM cache, then remote repositories."""

from __future__ import annotations

import logging
import os
import tempfile
import threading
import xml.etree.ElementTree as ET
from pathlib import Path

import httpx

logger = logging.getLogger(__name__)

MAVEN_CENTRAL = "https://repo.maven.apache.org/maven2"


def artifact_dir(group_id: str, artifact_id: str) -> str:
    return f"{group_id.replace('.', '/')}/{artifact_id}"


def pom_relpath(group_id: str, artifact_id: str, version: str) -> str:
    return f"{artifact_dir(group_id, artifact_id)}/{version}/{artifact_id}-{version}.pom"


class PomNotFoundError(Exception):
    def __init__(self, coordinate: str, tried: list[str]) -> None:
        self.coordinate = coordinate
        self.tried = tried
        super().__init__(f"POM for {coordinate} not found (tried {len(tried)} locations)")


class MavenRepository:
    """Fetches POMs and version metadata.

    The local repository is never written to. Remote POMs are immutable once released,
    so they are kept in `cache_dir`; metadata is only memoized in-process.
    """

    def __init__(
        self,
        *,
        client: httpx.Client,
        remote_urls: list[str] | tuple[str, ...] = (MAVEN_CENTRAL,),
        local_repository: Path | None = None,
        cache_dir: Path | None = None,
        timeout: float = 15.0,
    ) -> None:
        self._client = client
        self._remote_urls = self._normalize(remote_urls)
        self._local_repository = local_repository
        self._cache_dir = cache_dir
        self._timeout = timeout
        self._metadata: dict[tuple[str, str, tuple[str, ...]], list[str]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _normalize(urls) -> list[str]:
        seen: list[str] = []
        for url in urls:
            url = url.rstrip("/")
            if url and url not in seen:
                seen.append(url)
        return seen

    def with_repositories(self, extra_urls: list[str] | tuple[str, ...]) -> "MavenRepository":
        """Copy that also searches `extra_urls` (before the existing ones)."""
        clone = MavenRepository(
            client=self._client,
            remote_urls=self._normalize([*extra_urls, *self._remote_urls]),
            local_repository=self._local_repository,
            cache_dir=self._cache_dir,
            timeout=self._timeout,
        )
        return clone

    @property
    def remote_urls(self) -> list[str]:
        return list(self._remote_urls)

    def fetch_pom(self, group_id: str, artifact_id: str, version: str) -> str:
        """Return POM text.

        Raises:
            PomNotFoundError: If no location has the POM
        """
        rel = pom_relpath(group_id, artifact_id, version)
        tried: list[str] = []

        for base in (self._local_repository, self._cache_dir):
            if base is None:
                continue
            path = base / rel
            tried.append(str(path))
            if path.is_file():
                return path.read_text(encoding="utf-8")

        for url in self._remote_urls:
            full = f"{url}/{rel}"
            tried.append(full)
            try:
                resp = self._client.get(full, timeout=self._timeout)
            except httpx.HTTPError as e:
                logger.info("POM fetch failed: %s (%s)", full, e)
                continue
            if resp.is_success:
                self._store(rel, resp.text)
                return resp.text
            logger.debug("POM not at %s (HTTP %s)", full, resp.status_code)

        raise PomNotFoundError(f"{group_id}:{artifact_id}:{version}", tried)

    def available_versions(self, group_id: str, artifact_id: str) -> list[str]:
        """Union of versions listed in every repository's maven-metadata.xml."""
        key = (group_id, artifact_id, tuple(self._remote_urls))
        with self._lock:
            cached = self._metadata.get(key)
        if cached is not None:
            return cached

        versions: list[str] = []
        for url in self._remote_urls:
            full = f"{url}/{artifact_dir(group_id, artifact_id)}/maven-metadata.xml"
            try:
                resp = self._client.get(full, timeout=self._timeout)
            except httpx.HTTPError as e:
                logger.info("Metadata fetch failed: %s (%s)", full, e)
                continue
            if not resp.is_success:
                continue
            try:
                root = ET.fromstring(resp.text)
            except ET.ParseError:
                logger.info("Malformed maven-metadata.xml at %s", full)
                continue
            for node in root.iter():
                if isinstance(node.tag, str) and node.tag.rsplit("}", 1)[-1] == "version" and node.text:
                    value = node.text.strip()
                    if value and value not in versions:
                        versions.append(value)

        with self._lock:
            self._metadata[key] = versions
        return versions

    def _store(self, rel: str, text: str) -> None:
        if self._cache_dir is None:
            return
        target = self._cache_dir / rel
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=target.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
            os.replace(tmp, target)
        except OSError as e:
            logger.warning("Could not cache POM %s: %s", rel, e)
