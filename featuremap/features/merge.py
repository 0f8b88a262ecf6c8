"""Lock-aware merging of proposed features into persisted feature records."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ..analysis.hashing import feature_composition_hash
from ..models import ClusterRecord, FeatureLocks, FeatureProposal, FeatureRecord, RecordMetadata, normalize_string_list
from ..records.versions import SUPPORTED_VERSIONS

CREATED = "created"
UPDATED = "updated"
UNCHANGED = "unchanged"


@dataclass
class MergeOutcome:
    feature: FeatureRecord
    status: str
    semantic_changed: bool = False

    @property
    def changed(self) -> bool:
        return self.status != UNCHANGED


def semantic_signature(feature: FeatureRecord) -> Tuple[object, ...]:
    """Fields whose change is a meaningful edit and bumps ``metadata.version``."""
    return (
        feature.name,
        feature.description,
        feature.scope,
        feature.status,
        tuple(normalize_string_list(feature.clusters)),
        tuple(normalize_string_list(feature.depends_on)),
        feature.composition_hash,
    )


def content_signature(feature: FeatureRecord) -> Tuple[object, ...]:
    return semantic_signature(feature) + (feature.reasoning, feature.purpose)


def derive_scope(cluster_ids: Iterable[str], clusters: Mapping[str, ClusterRecord]) -> str:
    """Infer a feature scope from the layers of the clusters it spans."""
    layers = {clusters[cluster_id].layer for cluster_id in cluster_ids if cluster_id in clusters}
    if not layers:
        return "shared"
    if len(layers) > 1:
        return "fullstack"
    layer = next(iter(layers))
    if layer in ("frontend", "backend", "shared"):
        return layer
    # infrastructure
    return "backend"


def cluster_hashes(clusters: Mapping[str, ClusterRecord]) -> Dict[str, str]:
    return {cluster_id: record.composition_hash for cluster_id, record in clusters.items()}


def merge_feature(
    existing: Optional[FeatureRecord],
    proposal: FeatureProposal,
    clusters: Mapping[str, ClusterRecord],
    now: str,
    *,
    proposer: str = "ai",
    warnings: Optional[List[str]] = None,
) -> MergeOutcome:
    """Merge ``proposal`` over ``existing`` honouring per-field locks.

    Locked fields keep the persisted value verbatim. Unlocked fields take the
    proposed value and fall back to the persisted one when the proposal omits
    them. The composition hash is always recomputed from the resolved cluster
    list, with a warning for every cluster id missing from ``clusters``.
    """
    locks = existing.locks if existing is not None else None

    def locked(field_name: str) -> bool:
        return locks is not None and locks.is_locked(field_name)

    if locked("name"):
        name = existing.name
    else:
        name = proposal.name if proposal.name is not None else (existing.name if existing else proposal.id)

    if locked("description"):
        description = existing.description
    elif proposal.description is not None:
        description = proposal.description
    elif existing is not None and existing.description is not None:
        description = existing.description
    else:
        description = proposal.purpose

    if locked("clusters"):
        resolved_clusters = list(existing.clusters)
    elif proposal.clusters is not None:
        resolved_clusters = normalize_string_list(proposal.clusters)
    else:
        resolved_clusters = normalize_string_list(existing.clusters if existing else [])

    if locked("depends_on"):
        depends_on = list(existing.depends_on)
    elif proposal.depends_on is not None:
        depends_on = normalize_string_list(proposal.depends_on)
    else:
        depends_on = normalize_string_list(existing.depends_on if existing else [])

    if locked("scope"):
        scope = existing.scope
    elif proposal.scope is not None:
        scope = proposal.scope
    elif existing is not None:
        scope = existing.scope
    else:
        scope = derive_scope(resolved_clusters, clusters)

    if locked("status"):
        status = existing.status
    else:
        status = proposal.status or (existing.status if existing else "active")

    purpose = proposal.purpose if proposal.purpose is not None else (existing.purpose if existing else None)
    reasoning = proposal.reasoning if proposal.reasoning is not None else (existing.reasoning if existing else None)

    composition_hash = feature_composition_hash(resolved_clusters, cluster_hashes(clusters), warnings)

    if existing is None:
        feature = FeatureRecord(
            version=SUPPORTED_VERSIONS["feature"],
            id=proposal.id,
            name=name,
            description=description,
            purpose=purpose,
            source=proposer,
            status=status,
            scope=scope,
            clusters=resolved_clusters,
            depends_on=depends_on,
            composition_hash=composition_hash,
            metadata=RecordMetadata(created_at=now, updated_at=now, last_modified_by=proposer, version=1),
            reasoning=reasoning,
        )
        return MergeOutcome(feature=feature, status=CREATED, semantic_changed=True)

    candidate = replace(
        existing,
        name=name,
        description=description,
        purpose=purpose,
        status=status,
        scope=scope,
        clusters=resolved_clusters,
        depends_on=depends_on,
        composition_hash=composition_hash,
        reasoning=reasoning,
    )
    return _finalize(existing, candidate, now, proposer)


def mark_feature_ignored(existing: FeatureRecord, now: str, *, proposer: str = "ai") -> MergeOutcome:
    """Retire a feature dropped from a replace-mode batch without deleting it."""
    if existing.is_locked("status") or existing.status == "ignored":
        return MergeOutcome(feature=existing, status=UNCHANGED)
    candidate = replace(existing, status="ignored")
    return _finalize(existing, candidate, now, proposer)


def apply_manual_edit(
    existing: FeatureRecord,
    now: str,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    status: Optional[str] = None,
    lock: bool = False,
    editor: str = "manual",
) -> MergeOutcome:
    """Apply a curator edit; locks guard against automated merges, not curators."""
    changes = {}
    if name is not None:
        changes["name"] = name
    if description is not None:
        changes["description"] = description
    if status is not None:
        changes["status"] = status

    locks = existing.locks
    if lock and changes:
        locks = replace(locks) if locks is not None else FeatureLocks()
        for field_name in changes:
            setattr(locks, field_name, True)

    candidate = replace(existing, locks=locks, **changes)
    outcome = _finalize(existing, candidate, now, editor)
    if outcome.status == UNCHANGED and locks != existing.locks:
        metadata = replace(existing.metadata, updated_at=now, last_modified_by=editor)
        return MergeOutcome(feature=replace(candidate, metadata=metadata), status=UPDATED)
    return outcome


def _finalize(existing: FeatureRecord, candidate: FeatureRecord, now: str, modifier: str) -> MergeOutcome:
    semantic_changed = semantic_signature(existing) != semantic_signature(candidate)
    content_changed = content_signature(existing) != content_signature(candidate)
    if not semantic_changed and not content_changed:
        return MergeOutcome(feature=existing, status=UNCHANGED)

    version = existing.metadata.version
    if semantic_changed:
        version = (version or 0) + 1
    metadata = RecordMetadata(
        created_at=existing.metadata.created_at,
        updated_at=now,
        last_modified_by=modifier,
        version=version,
    )
    return MergeOutcome(
        feature=replace(candidate, metadata=metadata),
        status=UPDATED,
        semantic_changed=semantic_changed,
    )


__all__ = [
    "CREATED",
    "MergeOutcome",
    "UNCHANGED",
    "UPDATED",
    "apply_manual_edit",
    "content_signature",
    "derive_scope",
    "mark_feature_ignored",
    "merge_feature",
    "semantic_signature",
]
