from __future__ import annotations

from .scanner import BuildFileScanner, find_descriptor
from .maven import MavenResolver
from .gradle import GradleScriptParser, extract_coordinates
from .repository import MavenRepository

__all__ = [
    "BuildFileScanner",
    "find_descriptor",
    "MavenResolver",
    "GradleScriptParser",
    "extract_coordinates",
    "MavenRepository",
]
