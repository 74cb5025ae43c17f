"""Raw POM reading.

Elements are matched by local name so both namespaced (`xmlns="http://maven.apache.org/POM/4.0.0"`)
and bare POMs parse the same way.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

_PROPERTY = re.compile(r"\$\{([^}]+)\}")
MAX_INTERPOLATION_PASSES = 10


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(elem: ET.Element | None, name: str) -> ET.Element | None:
    if elem is None:
        return None
    for child in elem:
        if isinstance(child.tag, str) and _local(child.tag) == name:
            return child
    return None


def _children(elem: ET.Element | None, name: str) -> list[ET.Element]:
    if elem is None:
        return []
    return [child for child in elem if isinstance(child.tag, str) and _local(child.tag) == name]


def _text(elem: ET.Element | None, name: str) -> str | None:
    node = _child(elem, name)
    if node is None or node.text is None:
        return None
    value = node.text.strip()
    return value or None


@dataclass(frozen=True)
class ParentRef:
    group_id: str
    artifact_id: str
    version: str
    relative_path: str | None = "../pom.xml"


@dataclass(frozen=True)
class Exclusion:
    group_id: str
    artifact_id: str

    def matches(self, group_id: str, artifact_id: str) -> bool:
        return self.group_id in ("*", group_id) and self.artifact_id in ("*", artifact_id)


@dataclass(frozen=True)
class DependencyDecl:
    group_id: str
    artifact_id: str
    version: str | None = None
    type: str = "jar"
    classifier: str | None = None
    scope: str | None = None
    optional: bool = False
    exclusions: tuple[Exclusion, ...] = ()

    @property
    def key(self) -> tuple[str, str]:
        return (self.group_id, self.artifact_id)

    def interpolate(self, props: dict[str, str]) -> "DependencyDecl":
        return DependencyDecl(
            group_id=interpolate(self.group_id, props),
            artifact_id=interpolate(self.artifact_id, props),
            version=interpolate(self.version, props) if self.version else None,
            type=interpolate(self.type, props),
            classifier=interpolate(self.classifier, props) if self.classifier else None,
            scope=interpolate(self.scope, props) if self.scope else None,
            optional=self.optional,
            exclusions=self.exclusions,
        )


@dataclass(frozen=True)
class RawPom:
    group_id: str | None
    artifact_id: str | None
    version: str | None
    packaging: str
    parent: ParentRef | None
    properties: dict[str, str] = field(default_factory=dict)
    dependencies: tuple[DependencyDecl, ...] = ()
    managed: tuple[DependencyDecl, ...] = ()
    repositories: tuple[str, ...] = ()


def _parse_dependency(elem: ET.Element) -> DependencyDecl | None:
    group_id = _text(elem, "groupId")
    artifact_id = _text(elem, "artifactId")
    if not group_id or not artifact_id:
        return None
    exclusions = tuple(
        Exclusion(_text(ex, "groupId") or "*", _text(ex, "artifactId") or "*")
        for ex in _children(_child(elem, "exclusions"), "exclusion")
    )
    return DependencyDecl(
        group_id=group_id,
        artifact_id=artifact_id,
        version=_text(elem, "version"),
        type=_text(elem, "type") or "jar",
        classifier=_text(elem, "classifier"),
        scope=_text(elem, "scope"),
        optional=(_text(elem, "optional") or "false").lower() == "true",
        exclusions=exclusions,
    )


def _parse_dependencies(container: ET.Element | None) -> tuple[DependencyDecl, ...]:
    decls = (_parse_dependency(e) for e in _children(_child(container, "dependencies"), "dependency"))
    return tuple(d for d in decls if d is not None)


def parse_pom(text: str | bytes) -> RawPom:
    """Parse POM XML into a RawPom.

    Raises:
        ET.ParseError: If the document is not well-formed XML
        ValueError: If the root element is not <project>
    """
    root = ET.fromstring(text)
    if _local(root.tag) != "project":
        raise ValueError(f"Not a POM: root element is <{_local(root.tag)}>")

    parent = None
    parent_elem = _child(root, "parent")
    if parent_elem is not None:
        pg, pa, pv = _text(parent_elem, "groupId"), _text(parent_elem, "artifactId"), _text(parent_elem, "version")
        if not (pg and pa and pv):
            raise ValueError("Incomplete <parent> coordinates")
        rel = _child(parent_elem, "relativePath")
        if rel is None:
            relative_path: str | None = "../pom.xml"
        else:
            # an empty <relativePath/> disables the filesystem lookup
            relative_path = (rel.text or "").strip() or None
        parent = ParentRef(pg, pa, pv, relative_path)

    properties_elem = _child(root, "properties")
    properties = {
        _local(p.tag): (p.text or "").strip()
        for p in (properties_elem if properties_elem is not None else [])
        if isinstance(p.tag, str)
    }

    repositories = tuple(
        url for url in (_text(r, "url") for r in _children(_child(root, "repositories"), "repository")) if url
    )

    return RawPom(
        group_id=_text(root, "groupId"),
        artifact_id=_text(root, "artifactId"),
        version=_text(root, "version"),
        packaging=_text(root, "packaging") or "jar",
        parent=parent,
        properties=properties,
        dependencies=_parse_dependencies(root),
        managed=_parse_dependencies(_child(root, "dependencyManagement")),
        repositories=repositories,
    )


def interpolate(value: str, props: dict[str, str]) -> str:
    """Replace `${name}` references; unknown names are left in place."""
    for _ in range(MAX_INTERPOLATION_PASSES):
        replaced = _PROPERTY.sub(lambda m: props.get(m.group(1), m.group(0)), value)
        if replaced == value:
            break
        value = replaced
    return value


def has_placeholder(value: str | None) -> bool:
    return bool(value) and "${" in value
