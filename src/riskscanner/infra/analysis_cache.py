from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

from ..core.domain.exceptions import CacheError
from ..core.domain.models import DependencyCoordinate, DependencyResult, EnrichmentRecord, RiskAssessment
from .serialization import (
    assessment_from_dict,
    assessment_to_dict,
    coordinate_from_dict,
    coordinate_to_dict,
    enrichment_from_dict,
    enrichment_to_dict,
)

logger = logging.getLogger(__name__)

ENTRY_SUFFIX = ".json"
SCHEMA_VERSION = 1


def cache_key(coordinate: DependencyCoordinate, provider: str, model: str) -> tuple[str, str, str, str, str]:
    return (coordinate.group_id, coordinate.artifact_id, coordinate.version, provider, model)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FileAnalysisCache:
    """One JSON file per (group, artifact, version, provider, model) key.

    Writes go to a temp file and are moved into place atomically under a per-key lock, so
    concurrent writers to the same key are last-writer-wins and a partial record is never
    observable. Expired entries read as misses until `evict_expired` removes them.
    """

    def __init__(
        self,
        *,
        cache_dir: Path,
        ttl: timedelta | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._cache_dir = cache_dir
        self._ttl = ttl
        self._clock = clock
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _filename(self, key: tuple[str, ...]) -> str:
        digest = hashlib.sha256("\x00".join(key).encode("utf-8")).hexdigest()
        return digest + ENTRY_SUFFIX

    def _lock_for(self, name: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = self._locks[name] = threading.Lock()
            return lock

    def _read(self, path: Path) -> dict[str, Any] | None:
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheError(f"Cannot read cache entry {path.name}: {e}") from e
        except UnicodeDecodeError as e:
            raise CacheError(f"Corrupt cache entry {path.name}: {e}") from e
        try:
            record = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CacheError(f"Corrupt cache entry {path.name}: {e}") from e
        if not isinstance(record, dict) or record.get("schema") != SCHEMA_VERSION:
            raise CacheError(f"Unrecognized cache entry {path.name}")
        return record

    def _expired(self, record: dict[str, Any]) -> bool:
        """Raises CacheError when `expires_at` is not an ISO timestamp."""
        expires_at = record.get("expires_at")
        if not expires_at:
            return False
        try:
            return datetime.fromisoformat(expires_at) <= self._clock()
        except (TypeError, ValueError) as e:
            raise CacheError(f"Corrupt expiry in cache entry: {expires_at!r}") from e

    def _decode(self, record: dict[str, Any], name: str) -> DependencyResult:
        try:
            return DependencyResult(
                coordinate=coordinate_from_dict(record["coordinate"]),
                enrichment=enrichment_from_dict(record.get("enrichment")),
                assessment=assessment_from_dict(record["assessment"], from_cache=True),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise CacheError(f"Corrupt cache entry {name}: {e}") from e

    def get_entry(self, coordinate: DependencyCoordinate, provider: str, model: str) -> DependencyResult | None:
        name = self._filename(cache_key(coordinate, provider, model))
        record = self._read(self._cache_dir / name)
        if record is None or self._expired(record):
            return None
        return self._decode(record, name)

    def get(self, coordinate: DependencyCoordinate, provider: str, model: str) -> RiskAssessment | None:
        entry = self.get_entry(coordinate, provider, model)
        return entry.assessment if entry is not None else None

    def put(
        self,
        coordinate: DependencyCoordinate,
        provider: str,
        model: str,
        enrichment: EnrichmentRecord | None,
        assessment: RiskAssessment,
    ) -> None:
        key = cache_key(coordinate, provider, model)
        name = self._filename(key)
        now = self._clock()
        record = {
            "schema": SCHEMA_VERSION,
            "key": list(key),
            "coordinate": coordinate_to_dict(coordinate),
            "enrichment": enrichment_to_dict(enrichment),
            "assessment": assessment_to_dict(assessment),
            "stored_at": now.isoformat(),
            "expires_at": (now + self._ttl).isoformat() if self._ttl else None,
        }

        with self._lock_for(name):
            try:
                self._cache_dir.mkdir(parents=True, exist_ok=True)
                fd, tmp = tempfile.mkstemp(dir=self._cache_dir, prefix=".", suffix=".tmp")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as fh:
                        json.dump(record, fh, ensure_ascii=False)
                    os.replace(tmp, self._cache_dir / name)
                except BaseException:
                    Path(tmp).unlink(missing_ok=True)
                    raise
            except OSError as e:
                raise CacheError(f"Cannot write cache entry for {coordinate.id}: {e}") from e

    def _entries(self):
        if not self._cache_dir.exists():
            return
        for path in sorted(self._cache_dir.glob("*" + ENTRY_SUFFIX)):
            try:
                record = self._read(path)
            except CacheError as e:
                logger.warning("Skipping cache entry: %s", e)
                continue
            if record is not None:
                yield path, record

    def list_entries(self, provider: str, model: str) -> list[DependencyResult]:
        results = []
        for path, record in self._entries():
            key = record.get("key") or []
            if not isinstance(key, list) or len(key) != 5 or key[3] != provider or key[4] != model:
                continue
            try:
                if self._expired(record):
                    continue
                results.append(self._decode(record, path.name))
            except CacheError as e:
                logger.warning("Skipping cache entry %s: %s", path.name, e)
        return results

    def evict_expired(self) -> int:
        removed = 0
        for path, record in self._entries():
            try:
                if not self._expired(record):
                    continue
            except CacheError as e:
                logger.warning("Skipping cache entry %s: %s", path.name, e)
                continue
            with self._lock_for(path.name):
                # re-check: a concurrent put may have refreshed the entry
                try:
                    current = self._read(path)
                    if current is None or not self._expired(current):
                        continue
                except CacheError:
                    continue
                try:
                    path.unlink()
                except FileNotFoundError:
                    continue
                except OSError as e:
                    raise CacheError(f"Cannot remove cache entry {path.name}: {e}") from e
                removed += 1
        logger.info("Evicted %d expired cache entries", removed)
        return removed

    def clear(self) -> None:
        if not self._cache_dir.exists():
            return
        for path in self._cache_dir.glob("*" + ENTRY_SUFFIX):
            try:
                with self._lock_for(path.name):
                    path.unlink(missing_ok=True)
            except OSError as e:
                raise CacheError(f"Cannot remove cache entry {path.name}: {e}") from e
