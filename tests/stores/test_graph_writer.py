from __future__ import annotations

from pathlib import Path

import yaml

from featuremap.models import Cluster, GraphEdge, GraphNode, GraphRecord
from featuremap.stores.graph_writer import (
    build_cluster_graph,
    build_feature_graph,
    graphs_equivalent,
    read_graph,
    write_graph,
)
from featuremap.stores.layout import FeaturemapLayout
from tests._fixtures.records import cluster_map, make_cluster, make_feature


def _clusters():
    return [
        Cluster(id="web", name="Web", files=["web/a.ts", "web/b.ts"], external_dependencies=["api"]),
        Cluster(id="api", name="Api", files=["api/a.py"]),
    ]


def test_cluster_graph_has_sorted_nodes_and_untyped_edges() -> None:
    graph = build_cluster_graph(_clusters(), "t1")

    assert [(node.id, node.type, node.file_count) for node in graph.nodes] == [
        ("api", "cluster", 1),
        ("web", "cluster", 2),
    ]
    assert graph.edges == [GraphEdge(source="web", target="api")]
    assert graph.generated_at == "t1"


def test_feature_overlay_adds_nodes_and_typed_edges() -> None:
    clusters = cluster_map(make_cluster("api", ["api/a.py"]), make_cluster("web", ["web/a.ts", "web/b.ts"]))
    features = [
        make_feature("checkout", clusters, ["api", "web"], depends_on=["auth", "ghost"]),
        make_feature("auth", clusters, ["api"]),
    ]
    warnings: list[str] = []

    graph = build_feature_graph(features, clusters, "t2", build_cluster_graph(_clusters(), "t1"), warnings)

    feature_nodes = [(node.id, node.file_count) for node in graph.nodes if node.type == "feature"]
    assert feature_nodes == [("auth", 1), ("checkout", 3)]
    assert GraphEdge("checkout", "auth", "feature_dep") in graph.edges
    assert GraphEdge("checkout", "web", "contains") in graph.edges
    assert GraphEdge("web", "api") in graph.edges
    assert warnings == ['Feature "checkout" depends on missing feature "ghost".']


def test_rebuilding_one_overlay_keeps_the_other() -> None:
    clusters = cluster_map(make_cluster("api"))
    with_features = build_feature_graph(
        [make_feature("auth", clusters, ["api"])], clusters, "t2", build_cluster_graph(_clusters(), "t1")
    )

    rescanned = build_cluster_graph([Cluster(id="api", name="Api", files=["api/a.py"])], "t3", with_features)

    assert {node.id for node in rescanned.nodes} == {"api", "auth"}
    assert GraphEdge("auth", "api", "contains") in rescanned.edges
    assert GraphEdge("web", "api") not in rescanned.edges


def test_equivalence_ignores_timestamp_and_order() -> None:
    nodes = [GraphNode("b", "B", "cluster", 1), GraphNode("a", "A", "cluster", 2)]
    left = GraphRecord(version=1, generated_at="t1", nodes=nodes, edges=[])
    right = GraphRecord(version=1, generated_at="t2", nodes=list(reversed(nodes)), edges=[])

    assert graphs_equivalent(left, right)


def test_write_graph_skips_equivalent_content(tmp_path: Path) -> None:
    layout = FeaturemapLayout(tmp_path)

    assert write_graph(layout, build_cluster_graph(_clusters(), "t1"))
    before = layout.graph_path.read_text(encoding="utf-8")

    assert not write_graph(layout, build_cluster_graph(_clusters(), "t9"))
    assert layout.graph_path.read_text(encoding="utf-8") == before
    assert yaml.safe_load(before)["generatedAt"] == "t1"


def test_read_graph_treats_missing_and_malformed_as_absent(tmp_path: Path) -> None:
    layout = FeaturemapLayout(tmp_path)
    assert read_graph(layout) is None

    layout.base.mkdir()
    layout.graph_path.write_text("version: 1\nnodes: nope\n", encoding="utf-8")
    assert read_graph(layout) is None
