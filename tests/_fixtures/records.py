"""Factories for persisted records used across tests."""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from featuremap.analysis.hashing import composition_hash_for, feature_composition_hash
from featuremap.models import (
    ClusterRecord,
    FeatureLocks,
    FeatureRecord,
    ImportList,
    RecordMetadata,
)

CREATED_AT = "2023-12-31T00:00:00Z"


def make_cluster(cluster_id: str, files: Iterable[str] = (), layer: str = "backend") -> ClusterRecord:
    files = sorted(files) or [f"src/{cluster_id}/index.ts"]
    return ClusterRecord(
        version=1,
        id=cluster_id,
        layer=layer,
        files=files,
        exports=[],
        imports=ImportList(),
        composition_hash=composition_hash_for(files),
        metadata=RecordMetadata(created_at=CREATED_AT, updated_at=CREATED_AT),
    )


def cluster_map(*clusters: ClusterRecord) -> Dict[str, ClusterRecord]:
    return {cluster.id: cluster for cluster in clusters}


def make_feature(
    feature_id: str,
    clusters: Dict[str, ClusterRecord],
    cluster_ids: Iterable[str],
    *,
    name: Optional[str] = None,
    description: Optional[str] = "Existing description",
    source: str = "ai",
    status: str = "active",
    scope: str = "backend",
    depends_on: Iterable[str] = (),
    locks: Optional[FeatureLocks] = None,
    reasoning: Optional[str] = None,
    version: int = 1,
) -> FeatureRecord:
    ids = sorted(cluster_ids)
    hashes = {cluster_id: record.composition_hash for cluster_id, record in clusters.items()}
    return FeatureRecord(
        version=1,
        id=feature_id,
        name=name or feature_id.title(),
        description=description,
        source=source,
        status=status,
        scope=scope,
        clusters=ids,
        depends_on=sorted(depends_on),
        composition_hash=feature_composition_hash(ids, hashes),
        metadata=RecordMetadata(
            created_at=CREATED_AT,
            updated_at=CREATED_AT,
            last_modified_by=source,
            version=version,
        ),
        locks=locks,
        reasoning=reasoning,
    )


__all__ = ["CREATED_AT", "cluster_map", "make_cluster", "make_feature"]
