"""Locations of persisted records inside a project."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

FEATUREMAP_DIRNAME = ".featuremap"


@dataclass(frozen=True)
class FeaturemapLayout:
    root: Path

    @property
    def base(self) -> Path:
        return self.root / FEATUREMAP_DIRNAME

    @property
    def config_path(self) -> Path:
        return self.base / "config.yaml"

    @property
    def clusters_dir(self) -> Path:
        return self.base / "clusters"

    @property
    def features_dir(self) -> Path:
        return self.base / "features"

    @property
    def groups_dir(self) -> Path:
        return self.base / "groups"

    @property
    def graph_path(self) -> Path:
        return self.base / "graph.yaml"

    def cluster_path(self, cluster_id: str) -> Path:
        return self.clusters_dir / f"{cluster_id}.yaml"

    def feature_path(self, feature_id: str) -> Path:
        return self.features_dir / f"{feature_id}.yaml"


__all__ = ["FEATUREMAP_DIRNAME", "FeaturemapLayout"]
