from __future__ import annotations

from pathlib import Path

from featuremap.analysis.graph import build_graph
from featuremap.models import Cluster, ExportSymbol, FileRecord, GroupRecord, ImportList, RecordMetadata
from featuremap.stores.clusters import build_cluster_record, load_cluster_records, write_cluster_records
from featuremap.stores.features import dangling_group_references
from featuremap.stores.layout import FeaturemapLayout
from featuremap.stores.record_cache import RecordCache


def _graph():
    return build_graph(
        [
            FileRecord(
                path="src/api/routes/users.py",
                exports=[ExportSymbol("users_router", "variable")],
                imports=ImportList(internal=["./models"], external=["fastapi"]),
            ),
            FileRecord(
                path="src/api/routes/models.py",
                exports=[ExportSymbol("User", "class")],
                imports=ImportList(external=["pydantic", "fastapi"]),
            ),
        ]
    )


def _cluster() -> Cluster:
    return Cluster(
        id="api-routes",
        name="Api Routes",
        files=["src/api/routes/users.py", "src/api/routes/models.py"],
    )


def test_build_cluster_record_aggregates_facts() -> None:
    record = build_cluster_record(_cluster(), _graph(), "t1")

    assert record.files == ["src/api/routes/models.py", "src/api/routes/users.py"]
    assert [symbol.name for symbol in record.exports] == ["User", "users_router"]
    assert record.imports.internal == ["./models"]
    assert record.imports.external == ["fastapi", "pydantic"]
    assert record.layer == "backend"
    assert record.metadata.created_at == record.metadata.updated_at == "t1"
    assert record.metadata.last_modified_by == "auto"


def test_unchanged_content_reuses_metadata() -> None:
    first = build_cluster_record(_cluster(), _graph(), "t1")

    second = build_cluster_record(_cluster(), _graph(), "t2", existing=first)

    assert second == first


def test_changed_content_moves_updated_at_only() -> None:
    first = build_cluster_record(_cluster(), _graph(), "t1")
    smaller = Cluster(id="api-routes", name="Api Routes", files=["src/api/routes/users.py"])

    second = build_cluster_record(smaller, _graph(), "t2", existing=first)

    assert second.metadata.created_at == "t1"
    assert second.metadata.updated_at == "t2"
    assert second.composition_hash != first.composition_hash


def test_write_skips_identical_records_and_loads_back(tmp_path: Path) -> None:
    layout = FeaturemapLayout(tmp_path)
    cache = RecordCache()
    record = build_cluster_record(_cluster(), _graph(), "t1")

    assert write_cluster_records(layout, [record], {}, cache) == ["api-routes"]

    loaded = load_cluster_records(layout, cache)
    assert loaded.records == {"api-routes": record}
    assert write_cluster_records(layout, [record], loaded.records, cache) == []


def test_loader_collects_malformed_and_version_errors(tmp_path: Path) -> None:
    layout = FeaturemapLayout(tmp_path)
    layout.clusters_dir.mkdir(parents=True)
    (layout.clusters_dir / "broken.yaml").write_text("version: 1\nid: broken\n", encoding="utf-8")
    (layout.clusters_dir / "future.yaml").write_text("version: 5\nid: future\n", encoding="utf-8")

    report = load_cluster_records(layout)

    assert report.records == {}
    assert list(report.version_errors) == ["future"]
    assert len(report.warnings) == 1
    assert report.warnings[0].startswith("Skipping malformed cluster record broken.yaml: layer: is required")


def test_dangling_group_references() -> None:
    metadata = RecordMetadata(created_at="t", updated_at="t")
    groups = {
        "commerce": GroupRecord(1, "commerce", "Commerce", ["checkout", "cart", "wishlist"], "user", metadata),
        "ok": GroupRecord(1, "ok", "Ok", ["checkout"], "ai", metadata),
    }

    warnings = dangling_group_references(groups, ["checkout"])

    assert warnings == ['Group "commerce" references unknown features: cart, wishlist']
