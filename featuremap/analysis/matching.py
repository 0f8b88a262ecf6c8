"""Stable cluster identities across re-analysis.

Freshly grouped clusters only carry a structural *suggested* id. This module
matches them against the clusters persisted by a previous run using Jaccard
overlap of their file sets, so a cluster keeps its id when its folder is
renamed or its membership drifts slightly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..logging import get_logger
from ..models import Cluster, PersistedCluster, format_cluster_name

DEFAULT_MATCH_THRESHOLD = 0.7

logger = get_logger("matching")


@dataclass
class ClusterMatch:
    """Best persisted counterpart for one candidate cluster."""

    matched_id: Optional[str]
    score: float


@dataclass
class ClusterIdMatch:
    suggested_id: str
    matched_id: str
    confidence: float


@dataclass
class ClusterMatchingResult:
    clusters: List[Cluster]
    id_map: Dict[str, str] = field(default_factory=dict)
    matches: List[ClusterIdMatch] = field(default_factory=list)
    orphaned: List[str] = field(default_factory=list)

    @property
    def matched_ids(self) -> List[str]:
        return sorted(match.matched_id for match in self.matches)


def calculate_file_overlap(left: Iterable[str], right: Iterable[str]) -> float:
    """Jaccard similarity of two file sets; 0.0 when both are empty."""
    left_set = set(left)
    right_set = set(right)
    union = left_set | right_set
    if not union:
        return 0.0
    return len(left_set & right_set) / len(union)


def match_cluster(candidate: Cluster, persisted: Sequence[PersistedCluster]) -> ClusterMatch:
    """Return the best-scoring persisted cluster for ``candidate``.

    Equal scores resolve to the lexically smallest persisted id.
    """
    best_id: Optional[str] = None
    best_score = 0.0
    for record in persisted:
        score = calculate_file_overlap(candidate.files, record.files)
        if score <= 0.0:
            continue
        if best_id is None or score > best_score or (score == best_score and record.id < best_id):
            best_id = record.id
            best_score = score
    return ClusterMatch(matched_id=best_id, score=best_score)


def ensure_unique_id(candidate: str, used: Set[str]) -> str:
    if candidate not in used:
        return candidate
    suffix = 2
    while f"{candidate}-{suffix}" in used:
        suffix += 1
    return f"{candidate}-{suffix}"


def apply_cluster_matching(
    clusters: Sequence[Cluster],
    persisted: Sequence[PersistedCluster],
    threshold: float = DEFAULT_MATCH_THRESHOLD,
) -> ClusterMatchingResult:
    """Assign final ids to ``clusters`` given the previously persisted set."""
    if not persisted:
        return ClusterMatchingResult(
            clusters=sorted((_copy(cluster) for cluster in clusters), key=lambda item: item.id),
            id_map={cluster.id: cluster.id for cluster in clusters},
        )

    scored: List[Tuple[Cluster, ClusterMatch]] = [
        (cluster, match_cluster(cluster, persisted)) for cluster in clusters
    ]
    scored.sort(key=lambda item: (-item[1].score, item[0].id))

    used: Set[str] = set()
    claimed: Set[str] = set()
    id_map: Dict[str, str] = {}
    matches: List[ClusterIdMatch] = []
    assigned: List[Tuple[Cluster, str]] = []

    for cluster, match in scored:
        if (
            match.matched_id is not None
            and match.score >= threshold
            and match.matched_id not in claimed
            and match.matched_id not in used
        ):
            final_id = match.matched_id
            claimed.add(final_id)
            matches.append(
                ClusterIdMatch(suggested_id=cluster.id, matched_id=final_id, confidence=match.score)
            )
        else:
            final_id = ensure_unique_id(cluster.id, used)
        used.add(final_id)
        id_map.setdefault(cluster.id, final_id)
        assigned.append((cluster, final_id))

    result_clusters: List[Cluster] = []
    for cluster, final_id in assigned:
        external = sorted({id_map.get(dependency, dependency) for dependency in cluster.external_dependencies})
        result_clusters.append(
            Cluster(
                id=final_id,
                name=format_cluster_name(final_id),
                files=list(cluster.files),
                internal_dependencies=list(cluster.internal_dependencies),
                external_dependencies=external,
            )
        )
    result_clusters.sort(key=lambda item: item.id)

    final_ids = {cluster.id for cluster in result_clusters}
    orphaned = sorted(record.id for record in persisted if record.id not in final_ids)

    for match in matches:
        if match.suggested_id != match.matched_id:
            logger.debug(
                "Cluster %s keeps persisted id %s (overlap %.2f)",
                match.suggested_id,
                match.matched_id,
                match.confidence,
            )
    if orphaned:
        logger.info("Orphaned clusters: %s", ", ".join(orphaned))

    return ClusterMatchingResult(
        clusters=result_clusters,
        id_map=id_map,
        matches=matches,
        orphaned=orphaned,
    )


def _copy(cluster: Cluster) -> Cluster:
    return Cluster(
        id=cluster.id,
        name=cluster.name,
        files=list(cluster.files),
        internal_dependencies=list(cluster.internal_dependencies),
        external_dependencies=list(cluster.external_dependencies),
    )


__all__ = [
    "DEFAULT_MATCH_THRESHOLD",
    "ClusterIdMatch",
    "ClusterMatch",
    "ClusterMatchingResult",
    "apply_cluster_matching",
    "calculate_file_overlap",
    "ensure_unique_id",
    "match_cluster",
]
