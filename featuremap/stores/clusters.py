"""Cluster record building, loading and idempotent writing."""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from ..analysis.hashing import composition_hash_for
from ..analysis.layers import detect_layer
from ..models import Cluster, ClusterRecord, DependencyGraph, ExportSymbol, ImportList, PersistedCluster, RecordMetadata
from ..records.codec import dump_yaml, encode_cluster
from ..records.versions import SUPPORTED_VERSIONS
from .atomic import atomic_write_text
from .layout import FeaturemapLayout
from .loader import LoadReport, load_directory
from .record_cache import RecordCache

SCANNER_IDENTITY = "auto"


def load_cluster_records(layout: FeaturemapLayout, cache: Optional[RecordCache] = None) -> LoadReport[ClusterRecord]:
    return load_directory(layout.clusters_dir, "cluster", cache)


def to_persisted(record: ClusterRecord) -> PersistedCluster:
    return PersistedCluster(
        id=record.id,
        files=list(record.files),
        composition_hash=record.composition_hash,
        layer=record.layer,
    )


def build_cluster_record(
    cluster: Cluster,
    graph: DependencyGraph,
    now: str,
    existing: Optional[ClusterRecord] = None,
) -> ClusterRecord:
    """Aggregate per-file facts into a cluster record.

    The existing record's metadata is reused verbatim when the rebuilt content
    is identical; otherwise ``updatedAt`` moves to ``now`` and ``createdAt`` is
    preserved.
    """
    exports = set()
    internal = set()
    external = set()
    for path in cluster.files:
        record = graph.files.get(path)
        if record is None:
            continue
        exports.update(record.exports)
        internal.update(record.imports.internal)
        external.update(record.imports.external)

    imports = ImportList(internal=sorted(internal), external=sorted(external))
    ordered_exports: List[ExportSymbol] = sorted(exports, key=ExportSymbol.sort_key)
    detection = detect_layer(cluster.files, imports, ordered_exports)

    built = ClusterRecord(
        version=SUPPORTED_VERSIONS["cluster"],
        id=cluster.id,
        layer=detection.layer,
        files=sorted(cluster.files),
        exports=ordered_exports,
        imports=imports,
        composition_hash=composition_hash_for(cluster.files),
        metadata=RecordMetadata(created_at=now, updated_at=now, last_modified_by=SCANNER_IDENTITY),
    )
    if existing is None:
        return built
    if cluster_content_equal(existing, built):
        return replace(built, metadata=existing.metadata)
    metadata = replace(existing.metadata, updated_at=now, last_modified_by=SCANNER_IDENTITY)
    return replace(built, metadata=metadata)


def cluster_content_equal(left: ClusterRecord, right: ClusterRecord) -> bool:
    """Compare two records ignoring metadata."""
    left_payload = encode_cluster(left)
    right_payload = encode_cluster(right)
    left_payload.pop("metadata")
    right_payload.pop("metadata")
    return left_payload == right_payload


def write_cluster_records(
    layout: FeaturemapLayout,
    records: Sequence[ClusterRecord],
    existing: Dict[str, ClusterRecord],
    cache: Optional[RecordCache] = None,
) -> List[str]:
    """Write records whose content changed; return the ids actually written."""
    written: List[str] = []
    for record in records:
        previous = existing.get(record.id)
        if previous is not None and previous == record:
            continue
        path = layout.cluster_path(record.id)
        atomic_write_text(path, dump_yaml(encode_cluster(record)))
        if cache is not None:
            cache.invalidate(path)
        written.append(record.id)
    return written


__all__ = [
    "SCANNER_IDENTITY",
    "build_cluster_record",
    "cluster_content_equal",
    "load_cluster_records",
    "to_persisted",
    "write_cluster_records",
]
