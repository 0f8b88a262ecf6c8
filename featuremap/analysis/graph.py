"""Dependency graph construction from per-file inspection facts."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set

from ..logging import get_logger
from ..models import DependencyGraph, FileRecord, ImportList
from .aliases import AliasRule, is_alias_specifier, matching_rules

SOURCE_EXTENSIONS = (".py", ".pyi", ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")
PACKAGE_ENTRY_NAMES = ("__init__.py", "index.ts", "index.tsx", "index.js", "index.jsx")
_SCRIPT_TO_TYPED = {".js": (".ts", ".tsx"), ".jsx": (".tsx", ".ts")}

logger = get_logger("graph")


@dataclass
class GraphBuildResult:
    """The built graph plus the internal specifiers that resolved to nothing."""

    graph: DependencyGraph
    unresolved: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def unresolved_count(self) -> int:
        return sum(len(items) for items in self.unresolved.values())


class GraphBuilder:
    """Resolves internal import specifiers and assembles forward/reverse adjacency."""

    def __init__(
        self,
        alias_rules: Sequence[AliasRule] = (),
        extensions: Sequence[str] = SOURCE_EXTENSIONS,
    ) -> None:
        self.alias_rules = list(alias_rules)
        self.extensions = tuple(extensions)
        self._known: Set[str] = set()

    def build(self, records: Iterable[FileRecord]) -> GraphBuildResult:
        graph = DependencyGraph()
        for record in records:
            path = _normalize(record.path)
            graph.files[path] = FileRecord(
                path=path,
                exports=list(record.exports),
                imports=self._classify_imports(record.imports),
                line_count=record.line_count,
            )
            graph.dependencies[path] = []
            graph.dependents[path] = []

        self._known = set(graph.files)
        result = GraphBuildResult(graph=graph)

        for path, record in graph.files.items():
            resolved_targets: Set[str] = set()
            for specifier in record.imports.internal:
                target = self.resolve(specifier, path)
                if target is None:
                    result.unresolved.setdefault(path, []).append(specifier)
                    continue
                if target == path or target in resolved_targets:
                    continue
                resolved_targets.add(target)
                graph.dependents[target].append(path)
            graph.dependencies[path] = sorted(resolved_targets)

        for path in graph.dependents:
            graph.dependents[path].sort()

        if result.unresolved:
            logger.debug(
                "Dropped %d unresolved internal imports across %d files",
                result.unresolved_count,
                len(result.unresolved),
            )
        return result

    def resolve(self, specifier: str, from_file: str) -> Optional[str]:
        """Resolve ``specifier`` imported by ``from_file`` to a known file path."""
        if not specifier:
            return None
        direct = self._resolve_direct(specifier, posixpath.dirname(from_file))
        if direct is not None:
            return direct
        if specifier.startswith("."):
            return None
        for rule, capture in matching_rules(self.alias_rules, specifier):
            for target in rule.expand(capture):
                resolved = self._resolve_existing(target)
                if resolved is not None:
                    return resolved
        return None

    def _classify_imports(self, imports: ImportList) -> ImportList:
        internal = _dedupe(imports.internal)
        external: List[str] = []
        for specifier in _dedupe(imports.external):
            if is_alias_specifier(self.alias_rules, specifier):
                if specifier not in internal:
                    internal.append(specifier)
                continue
            external.append(specifier)
        return ImportList(internal=internal, external=external)

    def _resolve_direct(self, specifier: str, from_dir: str) -> Optional[str]:
        if specifier in self._known:
            return specifier
        if specifier.startswith("."):
            return self._resolve_existing(posixpath.join(from_dir, specifier))
        return self._resolve_existing(specifier)

    def _resolve_existing(self, candidate: str) -> Optional[str]:
        base = _normalize(posixpath.normpath(candidate.replace("\\", "/")))
        if base == ".":
            base = ""
        if base.startswith("../") or base == "..":
            return None

        extension = posixpath.splitext(base)[1]
        if extension in self.extensions:
            options = [base]
            stem = base[: -len(extension)]
            options.extend(stem + alternative for alternative in _SCRIPT_TO_TYPED.get(extension, ()))
        else:
            options = [base] if base else []
            options.extend(base + ext for ext in self.extensions if base)
            options.extend(_child(base, name) for name in PACKAGE_ENTRY_NAMES)

        for option in options:
            if option in self._known:
                return option
        return None


def build_graph(records: Iterable[FileRecord], alias_rules: Sequence[AliasRule] = ()) -> DependencyGraph:
    """Convenience wrapper returning only the graph."""
    return GraphBuilder(alias_rules).build(records).graph


def get_graph_stats(graph: DependencyGraph) -> Dict[str, float]:
    total_files = len(graph.files)
    total_dependencies = sum(len(items) for items in graph.dependencies.values())
    total_exports = sum(len(record.exports) for record in graph.files.values())
    return {
        "totalFiles": total_files,
        "totalDependencies": total_dependencies,
        "totalExports": total_exports,
        "avgDependencies": total_dependencies / total_files if total_files else 0.0,
    }


def _normalize(path: str) -> str:
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.lstrip("/")


def _child(base: str, name: str) -> str:
    return f"{base}/{name}" if base else name


def _dedupe(values: Iterable[str]) -> List[str]:
    seen: Set[str] = set()
    result: List[str] = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


__all__ = ["GraphBuildResult", "GraphBuilder", "build_graph", "get_graph_stats"]
