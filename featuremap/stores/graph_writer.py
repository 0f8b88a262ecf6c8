"""Building and idempotently writing the shared ``graph.yaml`` artifact.

Cluster scans and feature saves each own one overlay of the graph: cluster
nodes with their untyped dependency edges, and feature nodes with
``feature_dep``/``contains`` edges. Rebuilding one overlay keeps the other.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..errors import RecordError
from ..logging import get_logger
from ..models import Cluster, ClusterRecord, FeatureRecord, GraphEdge, GraphNode, GraphRecord, normalize_string_list
from ..records.codec import dump_yaml, encode_edge, encode_graph, encode_node
from ..records.versions import SUPPORTED_VERSIONS
from .atomic import atomic_write_text
from .layout import FeaturemapLayout
from .loader import load_record
from .record_cache import RecordCache

CLUSTER_NODE = "cluster"
FEATURE_NODE = "feature"
FEATURE_DEP_EDGE = "feature_dep"
CONTAINS_EDGE = "contains"
FEATURE_EDGE_TYPES = (FEATURE_DEP_EDGE, CONTAINS_EDGE)

logger = get_logger("graph_writer")


def cluster_overlay(clusters: Sequence[Cluster]) -> Tuple[List[GraphNode], List[GraphEdge]]:
    nodes = [
        GraphNode(id=cluster.id, label=cluster.name, type=CLUSTER_NODE, file_count=len(cluster.files))
        for cluster in clusters
    ]
    edges = [
        GraphEdge(source=cluster.id, target=target)
        for cluster in clusters
        for target in cluster.external_dependencies
    ]
    return nodes, edges


def feature_overlay(
    features: Iterable[FeatureRecord],
    clusters: Mapping[str, ClusterRecord],
    warnings: Optional[List[str]] = None,
) -> Tuple[List[GraphNode], List[GraphEdge]]:
    ordered = sorted(features, key=lambda feature: feature.id)
    known = {feature.id for feature in ordered}
    nodes: List[GraphNode] = []
    edges: List[GraphEdge] = []
    for feature in ordered:
        cluster_ids = normalize_string_list(feature.clusters)
        file_count = sum(len(clusters[cluster_id].files) for cluster_id in cluster_ids if cluster_id in clusters)
        nodes.append(GraphNode(id=feature.id, label=feature.name, type=FEATURE_NODE, file_count=file_count))
        for dependency in normalize_string_list(feature.depends_on):
            edges.append(GraphEdge(source=feature.id, target=dependency, type=FEATURE_DEP_EDGE))
            if dependency not in known and warnings is not None:
                warnings.append(f'Feature "{feature.id}" depends on missing feature "{dependency}".')
        for cluster_id in cluster_ids:
            edges.append(GraphEdge(source=feature.id, target=cluster_id, type=CONTAINS_EDGE))
    return nodes, edges


def _is_feature_node(node: GraphNode) -> bool:
    return node.type == FEATURE_NODE


def _is_feature_edge(edge: GraphEdge) -> bool:
    return edge.type in FEATURE_EDGE_TYPES


def build_cluster_graph(clusters: Sequence[Cluster], now: str, existing: Optional[GraphRecord] = None) -> GraphRecord:
    """Replace the cluster overlay of ``existing`` (if any) with ``clusters``."""
    nodes, edges = cluster_overlay(clusters)
    if existing is not None:
        nodes += [node for node in existing.nodes if _is_feature_node(node)]
        edges += [edge for edge in existing.edges if _is_feature_edge(edge)]
    return _assemble(nodes, edges, now)


def build_feature_graph(
    features: Iterable[FeatureRecord],
    clusters: Mapping[str, ClusterRecord],
    now: str,
    existing: Optional[GraphRecord] = None,
    warnings: Optional[List[str]] = None,
) -> GraphRecord:
    """Replace the feature overlay of ``existing`` (if any) with ``features``."""
    nodes, edges = feature_overlay(features, clusters, warnings)
    if existing is not None:
        nodes += [node for node in existing.nodes if not _is_feature_node(node)]
        edges += [edge for edge in existing.edges if not _is_feature_edge(edge)]
    return _assemble(nodes, edges, now)


def _assemble(nodes: Iterable[GraphNode], edges: Iterable[GraphEdge], now: str) -> GraphRecord:
    unique_nodes: Dict[Tuple[str, str], GraphNode] = {}
    for node in nodes:
        unique_nodes[(node.id, node.type)] = node
    unique_edges: Dict[Tuple[str, str, str], GraphEdge] = {}
    for edge in edges:
        unique_edges[(edge.source, edge.target, edge.type or "")] = edge
    return GraphRecord(
        version=SUPPORTED_VERSIONS["graph"],
        generated_at=now,
        nodes=sorted(unique_nodes.values(), key=_node_key),
        edges=sorted(unique_edges.values(), key=_edge_key),
    )


def _node_key(node: GraphNode) -> Tuple[str, str]:
    return (node.id, node.type)


def _edge_key(edge: GraphEdge) -> Tuple[str, str, str]:
    return (edge.source, edge.target, edge.type or "")


def normalize_graph(record: GraphRecord) -> Dict[str, Any]:
    """Comparison form: sorted nodes and edges, no generation timestamp."""
    return {
        "version": record.version,
        "nodes": [encode_node(node) for node in sorted(record.nodes, key=_node_key)],
        "edges": [encode_edge(edge) for edge in sorted(record.edges, key=_edge_key)],
    }


def graphs_equivalent(left: GraphRecord, right: GraphRecord) -> bool:
    return normalize_graph(left) == normalize_graph(right)


def read_graph(layout: FeaturemapLayout, cache: Optional[RecordCache] = None) -> Optional[GraphRecord]:
    """Load ``graph.yaml``; a missing or malformed file reads as absent."""
    try:
        return load_record(layout.graph_path, "graph", cache)
    except FileNotFoundError:
        return None
    except RecordError as exc:
        logger.warning("Ignoring malformed graph %s", exc)
        return None


def write_graph(
    layout: FeaturemapLayout,
    record: GraphRecord,
    cache: Optional[RecordCache] = None,
    *,
    existing: Optional[GraphRecord] = None,
) -> bool:
    """Write ``record`` unless the persisted graph is equivalent; return True if written."""
    current = existing if existing is not None else read_graph(layout, cache)
    if current is not None and graphs_equivalent(current, record):
        logger.debug("graph.yaml unchanged; skipping write")
        return False
    ordered = GraphRecord(
        version=record.version,
        generated_at=record.generated_at,
        nodes=sorted(record.nodes, key=_node_key),
        edges=sorted(record.edges, key=_edge_key),
    )
    atomic_write_text(layout.graph_path, dump_yaml(encode_graph(ordered)))
    if cache is not None:
        cache.invalidate(layout.graph_path)
    return True


__all__ = [
    "CLUSTER_NODE",
    "CONTAINS_EDGE",
    "FEATURE_DEP_EDGE",
    "FEATURE_NODE",
    "build_cluster_graph",
    "build_feature_graph",
    "cluster_overlay",
    "feature_overlay",
    "graphs_equivalent",
    "normalize_graph",
    "read_graph",
    "write_graph",
]
