"""Tests for featuremap.orchestrator."""

from __future__ import annotations

import pytest

from featuremap.errors import FeaturemapError, RecordVersionError
from featuremap.models import FeatureProposal
from featuremap.orchestrator import Orchestrator, utc_now
from tests._fixtures.repo_builder import RepoBuilder

SAMPLE_PROJECT = {
    "src/api/routes/users.py": """
        from fastapi import APIRouter

        from .helpers import paginate

        router = APIRouter()


        def list_users():
            return paginate([])
        """,
    "src/api/routes/helpers.py": """
        def paginate(items):
            return items
        """,
    "src/web/components/Button.tsx": """
        import React from "react";
        import { formatLabel } from "../lib/format";

        export function Button() {
          return formatLabel("ok");
        }
        """,
    "src/web/lib/format.ts": """
        export const formatLabel = (value: string) => value.toUpperCase();
        """,
    "README.md": "# Sample\n",
}


def _proposals() -> list[FeatureProposal]:
    return [
        FeatureProposal(
            id="user-directory",
            name="User Directory",
            description="Lists users over HTTP",
            clusters=["api-routes"],
        ),
        FeatureProposal(
            id="design-system",
            name="Design System",
            purpose="Shared UI building blocks",
            clusters=["web-components", "web-lib"],
            depends_on=["user-directory"],
        ),
    ]


@pytest.fixture
def scanned(repo_builder: RepoBuilder, orchestrator: Orchestrator) -> RepoBuilder:
    repo_builder.write(SAMPLE_PROJECT)
    orchestrator.run_scan(str(repo_builder.root))
    return repo_builder


def test_utc_now_uses_z_suffix() -> None:
    assert utc_now().endswith("Z")


def test_scan_writes_clusters_and_graph(repo_builder: RepoBuilder, orchestrator: Orchestrator) -> None:
    repo_builder.write(SAMPLE_PROJECT)

    summary = orchestrator.run_scan(str(repo_builder.root))

    assert summary.files == 4
    assert summary.clusters == ["api-routes", "web-components", "web-lib"]
    assert summary.written == summary.clusters
    assert summary.graph_written
    assert summary.unresolved_imports == 0
    assert summary.orphaned == []

    api = repo_builder.read_yaml("clusters/api-routes.yaml")
    assert api["version"] == 1
    assert api["layer"] == "backend"
    assert api["files"] == ["src/api/routes/helpers.py", "src/api/routes/users.py"]
    assert api["imports"] == {"internal": ["./helpers"], "external": ["fastapi"]}
    assert {"name": "router", "type": "variable"} in api["exports"]

    button = repo_builder.read_yaml("clusters/web-components.yaml")
    assert button["layer"] == "frontend"

    graph = repo_builder.read_yaml("graph.yaml")
    assert [node["id"] for node in graph["nodes"]] == ["api-routes", "web-components", "web-lib"]
    assert graph["edges"] == [{"source": "web-components", "target": "web-lib"}]


def test_rescanning_unchanged_project_writes_nothing(scanned: RepoBuilder, orchestrator: Orchestrator) -> None:
    before = scanned.snapshot()

    summary = orchestrator.run_scan(str(scanned.root))

    assert summary.written == []
    assert not summary.graph_written
    assert scanned.snapshot() == before


def test_changed_cluster_is_rewritten_with_created_at_preserved(
    scanned: RepoBuilder, orchestrator: Orchestrator
) -> None:
    created = scanned.read_yaml("clusters/web-lib.yaml")["metadata"]["createdAt"]
    scanned.write({"src/web/lib/colors.ts": "export const primary = 'blue';\n"})

    summary = orchestrator.run_scan(str(scanned.root))

    assert summary.written == ["web-lib"]
    metadata = scanned.read_yaml("clusters/web-lib.yaml")["metadata"]
    assert metadata["createdAt"] == created
    assert metadata["updatedAt"] != created


def test_regrouped_files_keep_persisted_cluster_ids(scanned: RepoBuilder, orchestrator: Orchestrator) -> None:
    scanned.write_yaml("config.yaml", {"version": 1, "scan": {"source_roots": ["nothing"]}})

    summary = orchestrator.run_scan(str(scanned.root))

    assert summary.clusters == ["api-routes", "src-web"]
    assert summary.matches == [{"suggestedId": "src-api", "matchedId": "api-routes", "confidence": 1.0}]
    assert summary.orphaned == ["web-components", "web-lib"]
    assert "Orphaned clusters kept on disk: web-components, web-lib" in summary.warnings
    assert (scanned.layout.clusters_dir / "web-lib.yaml").exists()


def test_incompatible_record_blocks_scan_before_any_write(
    repo_builder: RepoBuilder, orchestrator: Orchestrator
) -> None:
    repo_builder.write(SAMPLE_PROJECT)
    repo_builder.write_yaml("clusters/api-routes.yaml", {"version": 99, "id": "api-routes"})
    before = repo_builder.snapshot()

    with pytest.raises(RecordVersionError):
        orchestrator.run_scan(str(repo_builder.root))

    assert repo_builder.snapshot() == before


def test_unrelated_incompatible_record_is_a_warning(
    repo_builder: RepoBuilder, orchestrator: Orchestrator
) -> None:
    repo_builder.write(SAMPLE_PROJECT)
    repo_builder.write_yaml("clusters/legacy.yaml", {"version": 99, "id": "legacy"})

    summary = orchestrator.run_scan(str(repo_builder.root))

    assert summary.clusters == ["api-routes", "web-components", "web-lib"]
    assert any(warning.startswith("Skipped incompatible cluster record legacy") for warning in summary.warnings)


def test_save_features_requires_a_scan(repo_builder: RepoBuilder, orchestrator: Orchestrator) -> None:
    summary = orchestrator.save_features(str(repo_builder.root), _proposals())

    assert not summary.ok
    assert summary.errors == ['clusters/ directory not found. Run "featuremap scan" first.']


def test_save_features_writes_records_and_feature_graph(
    scanned: RepoBuilder, orchestrator: Orchestrator
) -> None:
    summary = orchestrator.save_features(str(scanned.root), _proposals())

    assert summary.ok
    assert summary.saved.created == ["design-system", "user-directory"]
    assert summary.graph_written
    assert summary.counts["totalFeatures"] == 2
    assert summary.counts["inputFeatures"] == 2

    feature = scanned.read_yaml("features/design-system.yaml")
    assert feature["source"] == "ai"
    assert feature["scope"] == "fullstack"
    assert feature["description"] == "Shared UI building blocks"
    assert feature["dependsOn"] == ["user-directory"]
    assert feature["metadata"]["version"] == 1

    graph = scanned.read_yaml("graph.yaml")
    types = {(node["id"], node["type"]) for node in graph["nodes"]}
    assert ("design-system", "feature") in types
    assert ("web-lib", "cluster") in types
    assert {"source": "design-system", "target": "user-directory", "type": "feature_dep"} in graph["edges"]
    assert {"source": "user-directory", "target": "api-routes", "type": "contains"} in graph["edges"]
    assert {"source": "web-components", "target": "web-lib"} in graph["edges"]

    resaved = orchestrator.save_features(str(scanned.root), _proposals())
    assert resaved.saved.unchanged == ["design-system", "user-directory"]
    assert not resaved.graph_written


def test_rescan_keeps_feature_overlay(scanned: RepoBuilder, orchestrator: Orchestrator) -> None:
    orchestrator.save_features(str(scanned.root), _proposals())
    before = scanned.snapshot()

    summary = orchestrator.run_scan(str(scanned.root))

    assert not summary.graph_written
    assert scanned.snapshot() == before


def test_dry_run_writes_nothing(scanned: RepoBuilder, orchestrator: Orchestrator) -> None:
    before = scanned.snapshot()

    summary = orchestrator.save_features(str(scanned.root), _proposals(), dry_run=True)

    assert summary.ok
    assert summary.saved.created == ["design-system", "user-directory"]
    assert summary.to_dict()["meta"]["dryRun"] is True
    assert scanned.snapshot() == before


def test_rejected_batch_writes_nothing(scanned: RepoBuilder, orchestrator: Orchestrator) -> None:
    before = scanned.snapshot()
    proposals = _proposals() + [FeatureProposal(id="user-directory", name="Again", description="dup")]

    summary = orchestrator.save_features(str(scanned.root), proposals)

    assert summary.errors == ["Duplicate feature ids: user-directory"]
    assert summary.saved.created == []
    assert scanned.snapshot() == before


def test_unknown_clusters_are_rejected(scanned: RepoBuilder, orchestrator: Orchestrator) -> None:
    proposal = FeatureProposal(id="billing", name="Billing", description="x", clusters=["payments"])

    summary = orchestrator.save_features(str(scanned.root), [proposal])

    assert summary.errors == ['Feature "billing" references unknown clusters: payments']
    assert not scanned.layout.features_dir.exists()


def test_replace_mode_ignores_omitted_features(scanned: RepoBuilder, orchestrator: Orchestrator) -> None:
    orchestrator.save_features(str(scanned.root), _proposals())

    summary = orchestrator.save_features(
        str(scanned.root), [FeatureProposal(id="user-directory")], mode="replace"
    )

    assert summary.saved.updated == ["design-system"]
    assert scanned.read_yaml("features/design-system.yaml")["status"] == "ignored"
    assert scanned.read_yaml("features/user-directory.yaml")["status"] == "active"


def test_dangling_group_references_are_warned(scanned: RepoBuilder, orchestrator: Orchestrator) -> None:
    scanned.write_yaml(
        "groups/frontend.yaml",
        {
            "version": 1,
            "id": "frontend",
            "name": "Frontend",
            "featureIds": ["design-system", "checkout"],
            "source": "user",
            "metadata": {"createdAt": "t", "updatedAt": "t"},
        },
    )

    summary = orchestrator.save_features(str(scanned.root), _proposals())

    assert 'Group "frontend" references unknown features: checkout' in summary.warnings


def test_locked_name_survives_later_proposals(scanned: RepoBuilder, orchestrator: Orchestrator) -> None:
    orchestrator.save_features(str(scanned.root), _proposals())

    update = orchestrator.update_feature(str(scanned.root), "user-directory", name="People", lock=True)
    assert update.status == "updated"
    assert update.version == 2
    assert update.changes == ['name: "User Directory" -> "People"', "locks updated"]

    orchestrator.save_features(
        str(scanned.root),
        [FeatureProposal(id="user-directory", name="Users API", reasoning="renamed by grouping")],
    )

    feature = scanned.read_yaml("features/user-directory.yaml")
    assert feature["name"] == "People"
    assert feature["locks"] == {"name": True}
    assert feature["reasoning"] == "renamed by grouping"
    assert feature["metadata"]["version"] == 2
    graph = scanned.read_yaml("graph.yaml")
    labels = {node["id"]: node["label"] for node in graph["nodes"]}
    assert labels["user-directory"] == "People"


def test_update_feature_errors(scanned: RepoBuilder, orchestrator: Orchestrator) -> None:
    with pytest.raises(FeaturemapError, match='Feature "ghost" not found.'):
        orchestrator.update_feature(str(scanned.root), "ghost", name="Ghost")

    with pytest.raises(FeaturemapError, match="Unknown status"):
        orchestrator.update_feature(str(scanned.root), "ghost", status="paused")


def test_noop_update_reports_unchanged(scanned: RepoBuilder, orchestrator: Orchestrator) -> None:
    orchestrator.save_features(str(scanned.root), _proposals())
    before = scanned.snapshot()

    update = orchestrator.update_feature(str(scanned.root), "user-directory", name="User Directory")

    assert update.status == "unchanged"
    assert update.changes == []
    assert scanned.snapshot() == before
