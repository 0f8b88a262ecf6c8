"""Folder-based partitioning of files into clusters."""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set

from ..models import Cluster, DependencyGraph, format_cluster_name

DEFAULT_SOURCE_ROOTS = ("src", "lib")
CORE_SUFFIX = "core"
_PACKAGES_DIR = "packages"
_SLUG_INVALID = re.compile(r"[^a-z0-9_-]+")


@dataclass
class GroupingResult:
    clusters: List[Cluster]
    file_to_cluster: Dict[str, str]


def _slug(value: str) -> str:
    return _SLUG_INVALID.sub("-", value.lower()).strip("-") or "root"


def _compose(*parts: str) -> str:
    return "-".join(_slug(part) for part in parts if part)


def cluster_id_for(path: str, source_roots: Sequence[str] = DEFAULT_SOURCE_ROOTS) -> str:
    """Map a file path to its structural cluster id.

    ``packages/cli/src/commands/init.ts`` -> ``cli-commands``
    ``packages/cli/src/index.ts`` -> ``cli-core``
    ``packages/web/src/components/ui/button.tsx`` -> ``web-components-ui``
    ``src/api/routes/users.py`` -> ``api-routes``
    ``featuremap/analysis/graph.py`` -> ``featuremap-analysis``
    ``setup.py`` -> ``core``
    """
    parts = [part for part in path.replace("\\", "/").split("/") if part and part != "."]
    if not parts:
        return CORE_SUFFIX

    prefix = ""
    rest = parts
    if _PACKAGES_DIR in parts[:-1]:
        index = parts.index(_PACKAGES_DIR)
        if len(parts) >= index + 4:
            # packages/<pkg>/<root>/... with the package name as id prefix
            prefix = parts[index + 1]
            rest = parts[index + 3 :]
        else:
            rest = parts[index + 1 :]
    else:
        root_index = _find_source_root(parts, source_roots)
        if root_index is not None:
            prefix = "-".join(parts[:root_index])
            rest = parts[root_index + 1 :]

    if len(rest) <= 1:
        return _compose(prefix, CORE_SUFFIX)

    folder = rest[0]
    if len(rest) > 2 and "." not in rest[1]:
        return _compose(prefix, folder, rest[1])
    return _compose(prefix, folder)


def _find_source_root(parts: Sequence[str], source_roots: Sequence[str]) -> Optional[int]:
    roots = set(source_roots)
    for index, part in enumerate(parts[:-1]):
        if part in roots:
            return index
    return None


def group_by_folders(
    graph: DependencyGraph,
    source_roots: Sequence[str] = DEFAULT_SOURCE_ROOTS,
) -> GroupingResult:
    """Partition every graph file into clusters and derive cluster-level dependencies."""
    file_to_cluster: Dict[str, str] = {}
    members: Dict[str, List[str]] = defaultdict(list)
    for path in graph.files:
        cluster_id = cluster_id_for(path, source_roots)
        file_to_cluster[path] = cluster_id
        members[cluster_id].append(path)

    clusters: List[Cluster] = []
    for cluster_id, files in members.items():
        internal: Set[str] = set()
        external: Set[str] = set()
        for path in files:
            for dependency in graph.dependencies.get(path, []):
                target = file_to_cluster.get(dependency)
                if target is None:
                    continue
                if target == cluster_id:
                    internal.add(dependency)
                else:
                    external.add(target)
        clusters.append(
            Cluster(
                id=cluster_id,
                name=format_cluster_name(cluster_id),
                files=sorted(files),
                internal_dependencies=sorted(internal),
                external_dependencies=sorted(external),
            )
        )

    clusters.sort(key=lambda cluster: cluster.id)
    return GroupingResult(clusters=clusters, file_to_cluster=file_to_cluster)


def get_cluster_stats(clusters: Sequence[Cluster]) -> Dict[str, object]:
    total = len(clusters)
    total_files = sum(len(cluster.files) for cluster in clusters)
    largest: Optional[Dict[str, object]] = None
    for cluster in clusters:
        if largest is None or len(cluster.files) > largest["size"]:  # type: ignore[operator]
            largest = {"id": cluster.id, "size": len(cluster.files)}
    return {
        "totalClusters": total,
        "avgFilesPerCluster": total_files / total if total else 0.0,
        "largestCluster": largest,
    }


__all__ = [
    "DEFAULT_SOURCE_ROOTS",
    "GroupingResult",
    "cluster_id_for",
    "get_cluster_stats",
    "group_by_folders",
]
