"""Pipeline orchestration for scan and feature curation runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from .analysis.clusters import get_cluster_stats, group_by_folders
from .analysis.graph import GraphBuilder, get_graph_stats
from .analysis.matching import apply_cluster_matching
from .config import FeaturemapConfig, load_alias_rules, load_config
from .errors import BatchValidationError, FeaturemapError
from .features.batch import SavedFeatures, plan_feature_batch
from .features.merge import UNCHANGED, apply_manual_edit
from .inspectors import SourceInspector, discover_inspectors, select_inspector
from .logging import get_logger, log_warnings
from .models import STATUSES, FeatureProposal, FileRecord
from .repo_scanner import RepoScanner
from .stores import (
    FeaturemapLayout,
    RecordCache,
    build_cluster_graph,
    build_cluster_record,
    build_feature_graph,
    dangling_group_references,
    load_cluster_records,
    load_feature,
    load_feature_records,
    load_group_records,
    read_graph,
    to_persisted,
    write_cluster_records,
    write_feature_records,
    write_graph,
)


def utc_now() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


@dataclass
class ScanSummary:
    """Structured result of a scan run."""

    root: str
    files: int
    clusters: List[str]
    written: List[str]
    matches: List[Dict[str, Any]]
    orphaned: List[str]
    graph_written: bool
    unresolved_imports: int
    stats: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": self.root,
            "files": self.files,
            "clusters": self.clusters,
            "written": self.written,
            "matches": self.matches,
            "orphaned": self.orphaned,
            "graphWritten": self.graph_written,
            "unresolvedImports": self.unresolved_imports,
            "stats": self.stats,
            "warnings": self.warnings,
        }


@dataclass
class FeatureSaveSummary:
    """Structured result of a feature batch; ``errors`` non-empty means nothing was written."""

    mode: str
    dry_run: bool
    saved: SavedFeatures = field(default_factory=SavedFeatures)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=dict)
    graph_written: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "saved": self.saved.as_dict(),
            "errors": self.errors,
            "warnings": self.warnings,
            "meta": {
                "dryRun": self.dry_run,
                "mode": self.mode,
                "counts": self.counts,
                "graphWritten": self.graph_written,
            },
        }


@dataclass
class FeatureUpdateSummary:
    feature_id: str
    status: str
    changes: List[str]
    version: Optional[int]
    graph_written: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.feature_id,
            "status": self.status,
            "changes": self.changes,
            "version": self.version,
            "graphWritten": self.graph_written,
        }


class Orchestrator:
    """Coordinates the analysis-to-persistence pipelines.

    Every run loads inputs, computes in memory and only then writes. An
    exception raised before the write phase leaves ``.featuremap/`` untouched.
    """

    def __init__(
        self,
        inspectors: Optional[Iterable[SourceInspector]] = None,
        cache: RecordCache | None = None,
        clock: Callable[[], str] | None = None,
    ) -> None:
        self._inspector_overrides = list(inspectors) if inspectors is not None else None
        self.cache = cache or RecordCache()
        self.clock = clock or utc_now
        self.logger = get_logger("orchestrator")

    def run_scan(self, path: str) -> ScanSummary:
        """Analyze the project at ``path`` and persist clusters and the cluster graph."""
        repo_path = Path(path).expanduser().resolve()
        self.logger.info("Starting scan for %s", repo_path)
        config = load_config(repo_path)
        layout = FeaturemapLayout(config.root)

        files = RepoScanner(config.scan.include, config.scan.exclude).scan(config.scan_root)
        self.logger.debug("Scanner discovered %d files", len(files))
        records = self._inspect(config, files)

        build = GraphBuilder(load_alias_rules(config)).build(records)
        graph = build.graph
        grouping = group_by_folders(graph, config.scan.source_roots)

        existing = load_cluster_records(layout, self.cache)
        warnings: List[str] = list(existing.warnings)
        matching = apply_cluster_matching(
            grouping.clusters,
            [to_persisted(record) for record in existing.records.values()],
            config.matching.threshold,
        )

        blocked = sorted(cluster.id for cluster in matching.clusters if cluster.id in existing.version_errors)
        if blocked:
            raise existing.version_errors[blocked[0]]
        for cluster_id in sorted(existing.version_errors):
            warnings.append(f"Skipped incompatible cluster record {cluster_id}: {existing.version_errors[cluster_id]}")

        now = self.clock()
        cluster_records = [
            build_cluster_record(cluster, graph, now, existing.records.get(cluster.id))
            for cluster in matching.clusters
        ]
        current_graph = read_graph(layout, self.cache)
        graph_record = build_cluster_graph(matching.clusters, now, current_graph)

        if build.unresolved:
            warnings.append(
                f"{build.unresolved_count} internal imports in {len(build.unresolved)} files could not be resolved"
            )
        if matching.orphaned:
            warnings.append(f"Orphaned clusters kept on disk: {', '.join(matching.orphaned)}")

        written = write_cluster_records(layout, cluster_records, existing.records, self.cache)
        graph_written = write_graph(layout, graph_record, self.cache, existing=current_graph)

        self.logger.info(
            "Scan complete: %d files, %d clusters (%d written), graph %s",
            len(files),
            len(cluster_records),
            len(written),
            "written" if graph_written else "unchanged",
        )
        log_warnings(self.logger, warnings, context="scan")

        return ScanSummary(
            root=str(config.root),
            files=len(records),
            clusters=[cluster.id for cluster in matching.clusters],
            written=written,
            matches=[
                {
                    "suggestedId": match.suggested_id,
                    "matchedId": match.matched_id,
                    "confidence": round(match.confidence, 4),
                }
                for match in matching.matches
            ],
            orphaned=matching.orphaned,
            graph_written=graph_written,
            unresolved_imports=build.unresolved_count,
            stats={"graph": get_graph_stats(graph), "clusters": get_cluster_stats(matching.clusters)},
            warnings=warnings,
        )

    def save_features(
        self,
        path: str,
        proposals: Sequence[FeatureProposal],
        *,
        mode: str = "merge",
        dry_run: bool = False,
        proposer: str = "ai",
    ) -> FeatureSaveSummary:
        """Merge a proposal batch into persisted features and refresh the feature graph."""
        layout = FeaturemapLayout(Path(path).expanduser().resolve())
        summary = FeatureSaveSummary(mode=mode, dry_run=dry_run)
        if not layout.clusters_dir.is_dir():
            summary.errors.append('clusters/ directory not found. Run "featuremap scan" first.')
            return summary

        clusters = load_cluster_records(layout, self.cache)
        features = load_feature_records(layout, self.cache)
        summary.warnings.extend(clusters.warnings)
        summary.warnings.extend(features.warnings)

        for proposal in proposals:
            error = features.version_errors.get(proposal.id)
            if error is not None:
                summary.errors.append(str(error))
        if summary.errors:
            return summary

        now = self.clock()
        try:
            plan = plan_feature_batch(
                proposals,
                features.records,
                clusters.records,
                now,
                mode=mode,
                proposer=proposer,
            )
        except BatchValidationError as exc:
            summary.errors.extend(exc.errors)
            log_warnings(self.logger, exc.errors, context="save-features rejected")
            return summary

        summary.saved = plan.saved
        summary.warnings.extend(plan.warnings)

        current_graph = read_graph(layout, self.cache)
        graph_record = build_feature_graph(
            plan.features.values(), clusters.records, now, current_graph, summary.warnings
        )
        groups = load_group_records(layout, self.cache)
        summary.warnings.extend(groups.warnings)
        summary.warnings.extend(dangling_group_references(groups.records, plan.features))

        summary.counts = {
            "inputFeatures": len(proposals),
            "created": len(plan.saved.created),
            "updated": len(plan.saved.updated),
            "unchanged": len(plan.saved.unchanged),
            "totalFeatures": len(plan.features),
            "graphNodes": len(graph_record.nodes),
            "graphEdges": len(graph_record.edges),
        }

        if not dry_run:
            write_feature_records(layout, plan.to_write, self.cache)
            summary.graph_written = write_graph(layout, graph_record, self.cache, existing=current_graph)

        self.logger.info(
            "Features saved (%s%s): %d created, %d updated, %d unchanged",
            mode,
            ", dry run" if dry_run else "",
            len(plan.saved.created),
            len(plan.saved.updated),
            len(plan.saved.unchanged),
        )
        log_warnings(self.logger, summary.warnings, context="save-features")
        return summary

    def update_feature(
        self,
        path: str,
        feature_id: str,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        status: Optional[str] = None,
        lock: bool = False,
    ) -> FeatureUpdateSummary:
        """Apply a curator edit to one feature, optionally locking the edited fields."""
        layout = FeaturemapLayout(Path(path).expanduser().resolve())
        if status is not None and status not in STATUSES:
            raise FeaturemapError(f'Unknown status "{status}"; expected one of: {", ".join(STATUSES)}')
        try:
            existing = load_feature(layout, feature_id, self.cache)
        except FileNotFoundError as exc:
            raise FeaturemapError(f'Feature "{feature_id}" not found.') from exc

        now = self.clock()
        outcome = apply_manual_edit(
            existing,
            now,
            name=name,
            description=description,
            status=status,
            lock=lock,
        )
        changes = _describe_changes(existing, outcome.feature)
        if outcome.status == UNCHANGED:
            return FeatureUpdateSummary(
                feature_id=feature_id,
                status=outcome.status,
                changes=changes,
                version=existing.metadata.version,
            )

        features = load_feature_records(layout, self.cache).records
        features[feature_id] = outcome.feature
        clusters = load_cluster_records(layout, self.cache).records
        current_graph = read_graph(layout, self.cache)
        warnings: List[str] = []
        graph_record = build_feature_graph(features.values(), clusters, now, current_graph, warnings)

        write_feature_records(layout, [outcome.feature], self.cache)
        graph_written = write_graph(layout, graph_record, self.cache, existing=current_graph)
        log_warnings(self.logger, warnings, context="update-feature")
        self.logger.info("Updated feature %s: %s", feature_id, "; ".join(changes) or "metadata only")
        return FeatureUpdateSummary(
            feature_id=feature_id,
            status=outcome.status,
            changes=changes,
            version=outcome.feature.metadata.version,
            graph_written=graph_written,
        )

    def _inspect(self, config: FeaturemapConfig, files: Sequence[str]) -> List[FileRecord]:
        inspectors = (
            self._inspector_overrides if self._inspector_overrides is not None else discover_inspectors()
        )
        for inspector in inspectors:
            inspector.prepare(files, config.scan.source_roots)

        records: List[FileRecord] = []
        for rel_path in files:
            inspector = select_inspector(inspectors, rel_path)
            if inspector is None:
                continue
            source = (config.scan_root / rel_path).read_text(encoding="utf-8", errors="replace")
            records.append(inspector.inspect(rel_path, source))
        self.logger.debug("Inspected %d of %d files", len(records), len(files))
        return records


def _describe_changes(before: Any, after: Any) -> List[str]:
    changes: List[str] = []
    for attribute in ("name", "description", "status"):
        old = getattr(before, attribute)
        new = getattr(after, attribute)
        if old != new:
            changes.append(f'{attribute}: "{old or "(empty)"}" -> "{new or "(empty)"}"')
    if before.locks != after.locks:
        changes.append("locks updated")
    return changes


__all__ = [
    "FeatureSaveSummary",
    "FeatureUpdateSummary",
    "Orchestrator",
    "ScanSummary",
    "utc_now",
]
