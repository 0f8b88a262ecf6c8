"""On-disk persistence for featuremap records."""

from .atomic import atomic_write_text
from .clusters import build_cluster_record, load_cluster_records, to_persisted, write_cluster_records
from .features import (
    dangling_group_references,
    load_feature,
    load_feature_records,
    load_group_records,
    write_feature_records,
)
from .graph_writer import build_cluster_graph, build_feature_graph, normalize_graph, read_graph, write_graph
from .layout import FEATUREMAP_DIRNAME, FeaturemapLayout
from .loader import LoadReport, load_directory, load_record
from .record_cache import RecordCache

__all__ = [
    "FEATUREMAP_DIRNAME",
    "FeaturemapLayout",
    "LoadReport",
    "RecordCache",
    "atomic_write_text",
    "build_cluster_graph",
    "build_cluster_record",
    "build_feature_graph",
    "dangling_group_references",
    "load_cluster_records",
    "load_directory",
    "load_feature",
    "load_feature_records",
    "load_group_records",
    "load_record",
    "normalize_graph",
    "read_graph",
    "to_persisted",
    "write_cluster_records",
    "write_feature_records",
    "write_graph",
]
