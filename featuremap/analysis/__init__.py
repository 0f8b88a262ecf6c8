"""Pure analysis stages: graph building, clustering, hashing, layers and identity matching."""

from .aliases import AliasRule, rules_from_mapping
from .clusters import DEFAULT_SOURCE_ROOTS, GroupingResult, cluster_id_for, get_cluster_stats, group_by_folders
from .graph import GraphBuilder, GraphBuildResult, build_graph, get_graph_stats
from .hashing import composition_hash_for, feature_composition_hash, has_composition_changed
from .layers import LayerDetection, detect_layer
from .matching import (
    DEFAULT_MATCH_THRESHOLD,
    ClusterIdMatch,
    ClusterMatchingResult,
    apply_cluster_matching,
    calculate_file_overlap,
    ensure_unique_id,
)

__all__ = [
    "AliasRule",
    "ClusterIdMatch",
    "ClusterMatchingResult",
    "DEFAULT_MATCH_THRESHOLD",
    "DEFAULT_SOURCE_ROOTS",
    "GraphBuildResult",
    "GraphBuilder",
    "GroupingResult",
    "LayerDetection",
    "apply_cluster_matching",
    "build_graph",
    "calculate_file_overlap",
    "cluster_id_for",
    "composition_hash_for",
    "detect_layer",
    "ensure_unique_id",
    "feature_composition_hash",
    "get_cluster_stats",
    "get_graph_stats",
    "group_by_folders",
    "has_composition_changed",
    "rules_from_mapping",
]
