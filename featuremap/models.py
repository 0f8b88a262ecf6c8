"""Core data models shared across featuremap components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

SOURCES = ("auto", "ai", "manual")
STATUSES = ("active", "ignored", "deprecated")
SCOPES = ("frontend", "backend", "fullstack", "shared")
LAYERS = ("frontend", "backend", "shared", "infrastructure")


@dataclass(frozen=True)
class ExportSymbol:
    """A symbol exported by a source file."""

    name: str
    kind: str
    is_default: bool = False

    def sort_key(self) -> tuple[str, str, bool]:
        return (self.name, self.kind, self.is_default)


@dataclass
class ImportList:
    """Import specifiers split into project-internal and external packages."""

    internal: List[str] = field(default_factory=list)
    external: List[str] = field(default_factory=list)


@dataclass
class FileRecord:
    """Facts extracted from one file by a source inspector."""

    path: str
    exports: List[ExportSymbol] = field(default_factory=list)
    imports: ImportList = field(default_factory=ImportList)
    line_count: int = 0


@dataclass
class DependencyGraph:
    """Files plus forward and reverse adjacency over resolved internal paths."""

    files: Dict[str, FileRecord] = field(default_factory=dict)
    dependencies: Dict[str, List[str]] = field(default_factory=dict)
    dependents: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class Cluster:
    """A structural grouping of files computed for the current run."""

    id: str
    name: str
    files: List[str]
    internal_dependencies: List[str] = field(default_factory=list)
    external_dependencies: List[str] = field(default_factory=list)


@dataclass
class PersistedCluster:
    """Durable identity of a cluster loaded from a previous run."""

    id: str
    files: List[str]
    composition_hash: Optional[str] = None
    layer: Optional[str] = None


@dataclass
class RecordMetadata:
    """Timestamps and provenance attached to persisted records."""

    created_at: str
    updated_at: str
    last_modified_by: Optional[str] = None
    version: Optional[int] = None


@dataclass
class ClusterRecord:
    """On-disk representation of a cluster."""

    version: int
    id: str
    layer: str
    files: List[str]
    exports: List[ExportSymbol]
    imports: ImportList
    composition_hash: str
    metadata: RecordMetadata


@dataclass
class FeatureLocks:
    """Per-field flags that protect curated feature content from merges."""

    name: Optional[bool] = None
    description: Optional[bool] = None
    clusters: Optional[bool] = None
    depends_on: Optional[bool] = None
    scope: Optional[bool] = None
    status: Optional[bool] = None

    def is_locked(self, field_name: str) -> bool:
        return getattr(self, field_name, None) is True

    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.name,
                self.description,
                self.clusters,
                self.depends_on,
                self.scope,
                self.status,
            )
        )


@dataclass
class FeatureRecord:
    """A curated grouping of clusters representing a product capability."""

    version: int
    id: str
    name: str
    source: str
    status: str
    scope: str
    clusters: List[str]
    composition_hash: str
    metadata: RecordMetadata
    description: Optional[str] = None
    purpose: Optional[str] = None
    depends_on: List[str] = field(default_factory=list)
    locks: Optional[FeatureLocks] = None
    reasoning: Optional[str] = None

    def is_locked(self, field_name: str) -> bool:
        return self.locks is not None and self.locks.is_locked(field_name)


@dataclass
class FeatureProposal:
    """A proposed feature definition; omitted fields fall back to persisted values."""

    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    purpose: Optional[str] = None
    scope: Optional[str] = None
    status: Optional[str] = None
    clusters: Optional[List[str]] = None
    depends_on: Optional[List[str]] = None
    reasoning: Optional[str] = None


@dataclass
class GroupLocks:
    """Manual edit protection for groups."""

    name: Optional[bool] = None
    description: Optional[bool] = None
    feature_ids: Optional[bool] = None


@dataclass
class GroupRecord:
    """User-defined aggregation of features."""

    version: int
    id: str
    name: str
    feature_ids: List[str]
    source: str
    metadata: RecordMetadata
    description: Optional[str] = None
    locks: Optional[GroupLocks] = None


@dataclass
class GraphNode:
    id: str
    label: str
    type: str
    file_count: int


@dataclass
class GraphEdge:
    source: str
    target: str
    type: Optional[str] = None


@dataclass
class GraphRecord:
    """Shared nodes/edges artifact consumed by graph renderers."""

    version: int
    generated_at: str
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)


def normalize_string_list(values: Optional[List[str]]) -> List[str]:
    """Deduplicate and sort a list of identifiers."""
    if not values:
        return []
    return sorted(set(values))


def format_cluster_name(cluster_id: str) -> str:
    """Turn ``web-components-ui`` into ``Web Components Ui``."""
    return " ".join(part[:1].upper() + part[1:] for part in cluster_id.split("-") if part)
