"""Persisted record codec, schema versions and validation."""

from .codec import (
    decode_record,
    dump_yaml,
    encode_cluster,
    encode_feature,
    encode_graph,
    encode_group,
    parse_yaml,
)
from .validation import Invalid, Valid, ValidationResult
from .versions import MIN_SUPPORTED_VERSIONS, SUPPORTED_VERSIONS, VersionCheck, check_version

__all__ = [
    "Invalid",
    "MIN_SUPPORTED_VERSIONS",
    "SUPPORTED_VERSIONS",
    "Valid",
    "ValidationResult",
    "VersionCheck",
    "check_version",
    "decode_record",
    "dump_yaml",
    "encode_cluster",
    "encode_feature",
    "encode_graph",
    "encode_group",
    "parse_yaml",
]
