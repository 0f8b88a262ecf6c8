"""Feature curation: lock-aware merges, manual edits and batch planning."""

from .batch import MODES, FeatureBatchPlan, SavedFeatures, find_duplicate_ids, plan_feature_batch, validate_batch
from .proposals import parse_proposals
from .merge import (
    CREATED,
    UNCHANGED,
    UPDATED,
    MergeOutcome,
    apply_manual_edit,
    derive_scope,
    mark_feature_ignored,
    merge_feature,
)

__all__ = [
    "CREATED",
    "FeatureBatchPlan",
    "MODES",
    "MergeOutcome",
    "SavedFeatures",
    "UNCHANGED",
    "UPDATED",
    "apply_manual_edit",
    "derive_scope",
    "find_duplicate_ids",
    "mark_feature_ignored",
    "merge_feature",
    "parse_proposals",
    "plan_feature_batch",
    "validate_batch",
]
