from __future__ import annotations

from ..ports import AnalysisCachePort, LoggerPort


class EvictExpiredUseCase:
    def __init__(self, *, cache: AnalysisCachePort, logger: LoggerPort) -> None:
        self._cache = cache
        self._logger = logger

    def execute(self) -> int:
        """Remove expired cache entries; returns how many were removed."""
        removed = self._cache.evict_expired()
        self._logger.info("cache_evicted", type="cache_evicted", removed=removed)
        return removed


class ClearCacheUseCase:
    def __init__(self, *, cache: AnalysisCachePort, logger: LoggerPort) -> None:
        self._cache = cache
        self._logger = logger

    def execute(self) -> None:
        self._cache.clear()
        self._logger.info("cache_cleared", type="cache_cleared")
