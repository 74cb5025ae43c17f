from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from ..domain.models import ScanResult
from ..ports import CoordinateScannerPort, LoggerPort
from ..services import deduplicate


class ScanProjectUseCase:
    """Use case for extracting the dependency coordinates of a project."""

    def __init__(self, *, scanner: CoordinateScannerPort, logger: LoggerPort) -> None:
        self._scanner = scanner
        self._logger = logger

    def execute(self, *, project_path: Path | str) -> ScanResult:
        """Scan a project folder or build file.

        Raises:
            ScanError: If no descriptor is found or it cannot be parsed/resolved
        """
        result = self._scanner.scan(project_path)
        unique = tuple(deduplicate(result.coordinates))
        self._logger.info(
            "scan_completed",
            type="scan_completed",
            path=result.path,
            build_tool=result.build_tool.value,
            confidence=result.confidence.level.value,
            coordinates=len(unique),
        )
        return replace(result, coordinates=unique)
