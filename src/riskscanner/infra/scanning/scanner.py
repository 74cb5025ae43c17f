from __future__ import annotations

import logging
from pathlib import Path

from ...core.domain.exceptions import ScanError, ScanErrorKind
from ...core.domain.models import ScanResult
from .gradle import GradleScriptParser
from .maven import MavenResolver

logger = logging.getLogger(__name__)

MAVEN_DESCRIPTORS = ("pom.xml",)
GRADLE_DESCRIPTORS = ("build.gradle", "build.gradle.kts")


def find_descriptor(project_path: Path) -> Path | None:
    """Locate the build descriptor for a folder or accept a descriptor path as-is.

    Maven wins when a folder has both.
    """
    if project_path.is_file():
        if project_path.name in MAVEN_DESCRIPTORS + GRADLE_DESCRIPTORS:
            return project_path
        return None
    if project_path.is_dir():
        for name in MAVEN_DESCRIPTORS + GRADLE_DESCRIPTORS:
            candidate = project_path / name
            if candidate.is_file():
                return candidate
    return None


class BuildFileScanner:
    """Coordinate scanner dispatching on the detected build system."""

    def __init__(self, *, maven: MavenResolver, gradle: GradleScriptParser) -> None:
        self._maven = maven
        self._gradle = gradle

    def scan(self, project_path: Path | str) -> ScanResult:
        path = Path(project_path).expanduser()
        descriptor = find_descriptor(path)
        if descriptor is None:
            raise ScanError(
                ScanErrorKind.NOT_FOUND,
                str(path),
                f"No supported build file found in {path} (expected pom.xml, build.gradle or build.gradle.kts)",
            )

        logger.debug("Scanning %s", descriptor)
        if descriptor.name in MAVEN_DESCRIPTORS:
            return self._maven.resolve(descriptor)
        return self._gradle.parse(descriptor)
