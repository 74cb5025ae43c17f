"""Maven dependency resolution without executing Maven.

Builds the effective model of a project (parent inheritance, properties,
dependencyManagement with imported BOMs) and collects the transitive graph
breadth-first with nearest-wins mediation, scope propagation, optional and
exclusion handling, and version ranges resolved against repository metadata.
"""

from __future__ import annotations

import logging
import threading
import xml.etree.ElementTree as ET
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from ...core.domain.exceptions import ScanError, ScanErrorKind
from ...core.domain.models import (
    BuildTool,
    Confidence,
    ConfidenceLevel,
    DependencyCoordinate,
    ScanResult,
)
from .maven_version import is_range, select_version
from .pom import DependencyDecl, Exclusion, RawPom, has_placeholder, interpolate, parse_pom
from .repository import MavenRepository, PomNotFoundError

logger = logging.getLogger(__name__)

MAVEN_CONFIDENCE = Confidence(level=ConfidenceLevel.HIGH, score=90)

MAX_PARENT_DEPTH = 20

# Scope of a transitive dependency given (scope of the edge into its parent, its declared scope).
# Missing combinations are not inherited.
_SCOPE_PROPAGATION = {
    ("compile", "compile"): "compile",
    ("compile", "runtime"): "runtime",
    ("provided", "compile"): "provided",
    ("provided", "runtime"): "provided",
    ("runtime", "compile"): "runtime",
    ("runtime", "runtime"): "runtime",
    ("test", "compile"): "test",
    ("test", "runtime"): "test",
}

_NON_TRAVERSED_SCOPES = {"system"}


@dataclass(frozen=True)
class EffectiveModel:
    group_id: str
    artifact_id: str
    version: str
    properties: dict[str, str]
    dependencies: tuple[DependencyDecl, ...]
    managed: dict[tuple[str, str], DependencyDecl]
    repositories: tuple[str, ...]

    @property
    def id(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"


class _ModelError(Exception):
    """Internal: a POM could not be obtained or understood."""


@dataclass
class _Node:
    decl: DependencyDecl
    version: str
    scope: str
    depth: int
    path: tuple[str, ...]
    exclusions: tuple[Exclusion, ...]

    @property
    def id(self) -> str:
        return f"{self.decl.group_id}:{self.decl.artifact_id}:{self.version}"


class MavenResolver:
    def __init__(
        self,
        *,
        repository: MavenRepository,
        transitive: bool = True,
        max_depth: int = 12,
        fetch_workers: int = 8,
    ) -> None:
        self._repository = repository
        self._transitive = transitive
        self._max_depth = max_depth
        self._fetch_workers = fetch_workers
        self._models: dict[tuple[str, str, str], EffectiveModel] = {}
        self._models_lock = threading.Lock()

    def resolve(self, pom_file: Path) -> ScanResult:
        """Resolve the dependencies declared by `pom_file`.

        Raises:
            ScanError: PARSE_FAILURE if the project POM is malformed, UNRESOLVABLE if a
                required remote POM or version cannot be resolved
        """
        try:
            raw = parse_pom(pom_file.read_bytes())
        except OSError as e:
            raise ScanError(ScanErrorKind.NOT_FOUND, str(pom_file), f"Cannot read {pom_file}: {e}") from e
        except (ET.ParseError, ValueError) as e:
            raise ScanError(ScanErrorKind.PARSE_FAILURE, str(pom_file), f"Malformed POM {pom_file}: {e}") from e

        try:
            root = self._build_model(raw, self._repository, local_dir=pom_file.parent, chain=())
        except _ModelError as e:
            raise ScanError(ScanErrorKind.UNRESOLVABLE, str(pom_file), str(e)) from e

        repository = self._repository.with_repositories(root.repositories)
        direct = self._direct_nodes(root, str(pom_file))
        coordinates = self._collect(root, direct, repository, str(pom_file))

        logger.info(
            "Resolved %d Maven dependencies (%d direct) for %s",
            len(coordinates), len(direct), root.id,
        )
        return ScanResult(
            path=str(pom_file),
            build_tool=BuildTool.MAVEN,
            confidence=MAVEN_CONFIDENCE,
            coordinates=tuple(coordinates),
        )

    # ── effective model ───────────────────────────────────────────────────

    def _build_model(
        self,
        raw: RawPom,
        repository: MavenRepository,
        *,
        local_dir: Path | None,
        chain: tuple[str, ...],
    ) -> EffectiveModel:
        if len(chain) > MAX_PARENT_DEPTH:
            raise _ModelError(f"Parent chain too deep: {' -> '.join(chain)}")

        parent: EffectiveModel | None = None
        if raw.parent is not None:
            ref = raw.parent
            ref_id = f"{ref.group_id}:{ref.artifact_id}:{ref.version}"
            if ref_id in chain:
                raise _ModelError(f"Cyclic parent reference: {ref_id}")
            parent = self._load_parent(raw, repository, local_dir=local_dir, chain=(*chain, ref_id))

        group_id = raw.group_id or (parent.group_id if parent else None)
        version = raw.version or (parent.version if parent else None)
        if not group_id or not version or not raw.artifact_id:
            raise _ModelError("POM is missing groupId, artifactId or version")

        props: dict[str, str] = dict(parent.properties) if parent else {}
        props.update(raw.properties)
        builtins = {
            "project.groupId": group_id,
            "project.artifactId": raw.artifact_id,
            "project.version": version,
            "project.packaging": raw.packaging,
            "pom.groupId": group_id,
            "pom.artifactId": raw.artifact_id,
            "pom.version": version,
            "groupId": group_id,
            "artifactId": raw.artifact_id,
            "version": version,
        }
        if raw.parent is not None:
            builtins["project.parent.groupId"] = raw.parent.group_id
            builtins["project.parent.version"] = raw.parent.version
            builtins["parent.version"] = raw.parent.version
        props.update(builtins)
        props = {k: interpolate(v, props) for k, v in props.items()}
        group_id = interpolate(group_id, props)
        version = interpolate(version, props)

        managed: dict[tuple[str, str], DependencyDecl] = dict(parent.managed) if parent else {}
        own_managed: dict[tuple[str, str], DependencyDecl] = {}
        imports: list[DependencyDecl] = []
        for decl in (d.interpolate(props) for d in raw.managed):
            if decl.scope == "import" and decl.type == "pom":
                imports.append(decl)
            else:
                own_managed[decl.key] = decl
        managed.update(own_managed)
        # Imported BOMs never override entries declared explicitly
        for bom in imports:
            for key, decl in self._load_bom(bom, repository, chain).items():
                if key not in own_managed:
                    managed.setdefault(key, decl)

        dependencies: dict[tuple[str, str], DependencyDecl] = {}
        if parent is not None:
            for decl in parent.dependencies:
                dependencies[decl.key] = decl
        for decl in raw.dependencies:
            decl = decl.interpolate(props)
            dependencies[decl.key] = decl

        repositories = tuple(dict.fromkeys([
            *(interpolate(url, props) for url in raw.repositories),
            *(parent.repositories if parent else ()),
        ]))

        return EffectiveModel(
            group_id=group_id,
            artifact_id=raw.artifact_id,
            version=version,
            properties=props,
            dependencies=tuple(dependencies.values()),
            managed=managed,
            repositories=repositories,
        )

    def _load_parent(
        self,
        raw: RawPom,
        repository: MavenRepository,
        *,
        local_dir: Path | None,
        chain: tuple[str, ...],
    ) -> EffectiveModel:
        ref = raw.parent
        assert ref is not None

        if local_dir is not None and ref.relative_path:
            candidate = (local_dir / ref.relative_path).resolve()
            if candidate.is_dir():
                candidate = candidate / "pom.xml"
            if candidate.is_file():
                try:
                    local = parse_pom(candidate.read_bytes())
                except (OSError, ET.ParseError, ValueError):
                    local = None
                # relativePath only counts when it points at the declared parent
                if local is not None and local.artifact_id == ref.artifact_id and (
                    (local.group_id or (local.parent.group_id if local.parent else None)) == ref.group_id
                ):
                    return self._build_model(local, repository, local_dir=candidate.parent, chain=chain)

        return self._remote_model(ref.group_id, ref.artifact_id, ref.version, repository, chain)

    def _load_bom(
        self,
        bom: DependencyDecl,
        repository: MavenRepository,
        chain: tuple[str, ...],
    ) -> dict[tuple[str, str], DependencyDecl]:
        if not bom.version or has_placeholder(bom.version):
            raise _ModelError(f"Imported BOM {bom.group_id}:{bom.artifact_id} has no resolvable version")
        bom_id = f"{bom.group_id}:{bom.artifact_id}:{bom.version}"
        if bom_id in chain:
            raise _ModelError(f"Cyclic BOM import: {bom_id}")
        model = self._remote_model(bom.group_id, bom.artifact_id, bom.version, repository, (*chain, bom_id))
        return model.managed

    def _remote_model(
        self,
        group_id: str,
        artifact_id: str,
        version: str,
        repository: MavenRepository,
        chain: tuple[str, ...],
    ) -> EffectiveModel:
        key = (group_id, artifact_id, version)
        with self._models_lock:
            cached = self._models.get(key)
        if cached is not None:
            return cached

        try:
            text = repository.fetch_pom(group_id, artifact_id, version)
        except PomNotFoundError as e:
            raise _ModelError(str(e)) from e
        try:
            raw = parse_pom(text)
        except (ET.ParseError, ValueError) as e:
            raise _ModelError(f"Malformed POM for {group_id}:{artifact_id}:{version}: {e}") from e

        model = self._build_model(raw, repository, local_dir=None, chain=chain)
        with self._models_lock:
            self._models[key] = model
        return model

    # ── graph collection ──────────────────────────────────────────────────

    def _direct_nodes(self, root: EffectiveModel, pom_path: str) -> list[_Node]:
        nodes: list[_Node] = []
        for decl in root.dependencies:
            decl = self._apply_management(decl, root.managed, override_version=False)
            if not decl.version:
                raise ScanError(
                    ScanErrorKind.PARSE_FAILURE,
                    pom_path,
                    f"Dependency {decl.group_id}:{decl.artifact_id} has no version and none is managed",
                )
            if has_placeholder(decl.version) or has_placeholder(decl.group_id) or has_placeholder(decl.artifact_id):
                raise ScanError(
                    ScanErrorKind.PARSE_FAILURE,
                    pom_path,
                    f"Unresolved property in {decl.group_id}:{decl.artifact_id}:{decl.version}",
                )
            nodes.append(
                _Node(
                    decl=decl,
                    version=decl.version,
                    scope=decl.scope or "compile",
                    depth=1,
                    path=(),
                    exclusions=decl.exclusions,
                )
            )
        return nodes

    def _collect(
        self,
        root: EffectiveModel,
        direct: list[_Node],
        repository: MavenRepository,
        pom_path: str,
    ) -> list[DependencyCoordinate]:
        resolved: dict[tuple[str, str], _Node] = {}
        order: list[_Node] = []

        level = direct
        with ThreadPoolExecutor(max_workers=self._fetch_workers, thread_name_prefix="riskscanner-pom") as pool:
            while level:
                next_level: list[_Node] = []
                accepted: list[_Node] = []
                for node in level:
                    key = node.decl.key
                    if key in resolved:
                        continue  # nearest (then first declared) wins
                    node.version = self._resolve_version(node, repository, pom_path)
                    resolved[key] = node
                    order.append(node)
                    accepted.append(node)

                expandable = [
                    n for n in accepted
                    if self._transitive and n.depth < self._max_depth and n.scope not in _NON_TRAVERSED_SCOPES
                ]
                models = list(pool.map(lambda n: self._model_for(n, repository, pom_path), expandable))

                for node, model in zip(expandable, models):
                    for child in self._children(node, model, root):
                        if child.decl.key not in resolved:
                            next_level.append(child)
                level = next_level

        return [
            DependencyCoordinate(
                group_id=n.decl.group_id,
                artifact_id=n.decl.artifact_id,
                version=n.version,
                build_tool=BuildTool.MAVEN,
                direct=n.depth == 1,
                path=n.path,
                scope=n.scope,
            )
            for n in order
        ]

    def _model_for(self, node: _Node, repository: MavenRepository, pom_path: str) -> EffectiveModel:
        try:
            return self._remote_model(node.decl.group_id, node.decl.artifact_id, node.version, repository, ())
        except _ModelError as e:
            raise ScanError(ScanErrorKind.UNRESOLVABLE, pom_path, f"Cannot resolve {node.id}: {e}") from e

    def _children(self, node: _Node, model: EffectiveModel, root: EffectiveModel) -> list[_Node]:
        children: list[_Node] = []
        for decl in model.dependencies:
            if decl.optional:
                continue
            if any(ex.matches(decl.group_id, decl.artifact_id) for ex in node.exclusions):
                continue
            scope = _SCOPE_PROPAGATION.get((node.scope, decl.scope or "compile"))
            if scope is None:
                continue

            # the dependency's own management supplies missing versions, root management overrides
            decl = self._apply_management(decl, model.managed, override_version=False)
            decl = self._apply_management(decl, root.managed, override_version=True)
            if not decl.version or has_placeholder(decl.version):
                logger.warning("Skipping %s:%s from %s: no resolvable version", decl.group_id, decl.artifact_id, node.id)
                continue

            children.append(
                _Node(
                    decl=decl,
                    version=decl.version,
                    scope=scope,
                    depth=node.depth + 1,
                    path=(*node.path, node.id),
                    exclusions=(*node.exclusions, *decl.exclusions),
                )
            )
        return children

    @staticmethod
    def _apply_management(
        decl: DependencyDecl,
        managed: dict[tuple[str, str], DependencyDecl],
        *,
        override_version: bool,
    ) -> DependencyDecl:
        entry = managed.get(decl.key)
        if entry is None:
            return decl
        version = entry.version if (override_version or not decl.version) and entry.version else decl.version
        return DependencyDecl(
            group_id=decl.group_id,
            artifact_id=decl.artifact_id,
            version=version,
            type=decl.type,
            classifier=decl.classifier,
            scope=decl.scope or entry.scope,
            optional=decl.optional,
            exclusions=(*decl.exclusions, *entry.exclusions),
        )

    def _resolve_version(self, node: _Node, repository: MavenRepository, pom_path: str) -> str:
        if not is_range(node.version):
            return node.version
        available = repository.available_versions(node.decl.group_id, node.decl.artifact_id)
        try:
            chosen = select_version(node.version, available)
        except ValueError as e:
            raise ScanError(ScanErrorKind.PARSE_FAILURE, pom_path, str(e)) from e
        if chosen is None:
            raise ScanError(
                ScanErrorKind.UNRESOLVABLE,
                pom_path,
                f"No version of {node.decl.group_id}:{node.decl.artifact_id} matches {node.version}",
            )
        return chosen
