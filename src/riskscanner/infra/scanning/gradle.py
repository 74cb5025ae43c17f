"""Pattern-based extraction of literal dependency declarations from Gradle build scripts.

Build logic is never evaluated, so results are best-effort. Recognized notations
(Groovy and Kotlin DSL):

    implementation 'g:a:v'                     implementation("g:a:v")
    implementation "g:a:v:classifier@ext"      api(platform("g:a:v"))
    testImplementation group: 'g', name: 'a', version: 'v'
    runtimeOnly(group = "g", name = "a", version = "v")

Declarations inside `buildscript { }` (plugin classpath) are ignored, as are versions
that contain `$` interpolation or are missing.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from ...core.domain.exceptions import ScanError, ScanErrorKind
from ...core.domain.models import (
    BuildTool,
    Confidence,
    ConfidenceLevel,
    DependencyCoordinate,
    ScanResult,
)

logger = logging.getLogger(__name__)

GRADLE_CONFIDENCE = Confidence(level=ConfidenceLevel.MEDIUM, score=60, best_effort=True)

CONFIGURATION_SCOPES = {
    "implementation": "compile",
    "api": "compile",
    "compile": "compile",
    "compileOnly": "provided",
    "compileOnlyApi": "provided",
    "annotationProcessor": "provided",
    "kapt": "provided",
    "runtimeOnly": "runtime",
    "runtime": "runtime",
    "developmentOnly": "runtime",
    "testImplementation": "test",
    "testCompileOnly": "test",
    "testRuntimeOnly": "test",
    "testCompile": "test",
    "testRuntime": "test",
    "testAnnotationProcessor": "test",
    "androidTestImplementation": "test",
}

_CONFIG = "|".join(sorted(CONFIGURATION_SCOPES, key=len, reverse=True))

_STRING_NOTATION = re.compile(
    rf"""\b(?P<config>{_CONFIG})\s*\(?\s*
        (?:(?:platform|enforcedPlatform)\s*\(\s*)?
        (?P<q>['"])(?P<notation>[^'"\s]+)(?P=q)""",
    re.VERBOSE,
)

_MAP_NOTATION = re.compile(
    rf"""\b(?P<config>{_CONFIG})\s*\(?\s*
        group\s*[:=]\s*(?P<q1>['"])(?P<group>[^'"]+)(?P=q1)\s*,\s*
        name\s*[:=]\s*(?P<q2>['"])(?P<name>[^'"]+)(?P=q2)
        (?:\s*,\s*version\s*[:=]\s*(?P<q3>['"])(?P<version>[^'"]+)(?P=q3))?""",
    re.VERBOSE,
)

_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT = re.compile(r"(?<![:'\"])//[^\n]*")
_BUILDSCRIPT = re.compile(r"\bbuildscript\s*\{")


def strip_comments(text: str) -> str:
    text = _BLOCK_COMMENT.sub(" ", text)
    return _LINE_COMMENT.sub("", text)


def _check_braces(text: str, path: str) -> None:
    depth = 0
    quote: str | None = None
    for ch in text:
        if quote:
            if ch == quote:
                quote = None
            continue
        if ch in "'\"":
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth < 0:
                break
    if depth != 0:
        raise ScanError(ScanErrorKind.PARSE_FAILURE, path, f"Unbalanced braces in {path}")


def _remove_buildscript(text: str) -> str:
    match = _BUILDSCRIPT.search(text)
    while match:
        depth = 0
        end = len(text)
        for i in range(match.end() - 1, len(text)):
            if text[i] == "{":
                depth += 1
            elif text[i] == "}":
                depth -= 1
                if depth == 0:
                    end = i + 1
                    break
        text = text[: match.start()] + text[end:]
        match = _BUILDSCRIPT.search(text)
    return text


def parse_notation(notation: str) -> tuple[str, str, str] | None:
    """Split `group:name:version[:classifier][@ext]`; None without a usable version."""
    notation = notation.split("@", 1)[0]
    parts = notation.split(":")
    if len(parts) < 3:
        return None
    group, name, version = parts[0], parts[1], parts[2]
    if not group or not name or not version:
        return None
    return group, name, version


def extract_coordinates(text: str, path: str = "<memory>") -> list[DependencyCoordinate]:
    """Return literal dependency declarations in source order.

    Raises:
        ScanError: PARSE_FAILURE if the script's braces do not balance
    """
    text = strip_comments(text)
    _check_braces(text, path)
    text = _remove_buildscript(text)

    found: list[tuple[int, DependencyCoordinate]] = []

    def add(pos: int, config: str, group: str, name: str, version: str | None) -> None:
        if not version or "$" in version or "$" in group or "$" in name:
            logger.debug("Skipping non-literal declaration %s:%s:%s", group, name, version)
            return
        found.append((
            pos,
            DependencyCoordinate(
                group_id=group,
                artifact_id=name,
                version=version,
                build_tool=BuildTool.GRADLE,
                direct=True,
                scope=CONFIGURATION_SCOPES[config],
            ),
        ))

    for m in _STRING_NOTATION.finditer(text):
        parsed = parse_notation(m.group("notation"))
        if parsed is not None:
            add(m.start(), m.group("config"), *parsed)

    for m in _MAP_NOTATION.finditer(text):
        add(m.start(), m.group("config"), m.group("group"), m.group("name"), m.group("version"))

    found.sort(key=lambda item: item[0])
    return [coordinate for _, coordinate in found]


class GradleScriptParser:
    def parse(self, build_file: Path) -> ScanResult:
        try:
            text = build_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ScanError(ScanErrorKind.NOT_FOUND, str(build_file), f"Cannot read {build_file}: {e}") from e

        coordinates = extract_coordinates(text, str(build_file))
        logger.info("Extracted %d Gradle declarations from %s (best effort)", len(coordinates), build_file)
        return ScanResult(
            path=str(build_file),
            build_tool=BuildTool.GRADLE,
            confidence=GRADLE_CONFIDENCE,
            coordinates=tuple(coordinates),
        )
