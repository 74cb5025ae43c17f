from __future__ import annotations

from ..domain.models import DependencyResult
from ..ports import AnalysisCachePort


class GetCachedResultsUseCase:
    def __init__(self, *, cache: AnalysisCachePort) -> None:
        self._cache = cache

    def execute(self, *, provider: str, model: str) -> list[DependencyResult]:
        """Return every live cached assessment for a (provider, model) pair, sorted by coordinate."""
        entries = self._cache.list_entries(provider, model)
        return sorted(entries, key=lambda r: r.coordinate.identity)
