"""YAML encoding and decoding of persisted records.

Each ``encode_*`` function builds its mapping in the on-disk key order and
assigns optional fields only when they carry a value, so dumping with
``sort_keys=False`` yields stable, diff-friendly files.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

import yaml

from ..errors import RecordError, RecordVersionError
from ..models import (
    ClusterRecord,
    ExportSymbol,
    FeatureLocks,
    FeatureRecord,
    GraphEdge,
    GraphNode,
    GraphRecord,
    GroupLocks,
    GroupRecord,
    RecordMetadata,
)
from .validation import (
    Invalid,
    validate_cluster,
    validate_feature,
    validate_graph,
    validate_group,
)
from .versions import check_version

_VALIDATORS: Dict[str, Callable[[object], Any]] = {
    "cluster": validate_cluster,
    "feature": validate_feature,
    "group": validate_group,
    "graph": validate_graph,
}


def encode_metadata(metadata: RecordMetadata) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "createdAt": metadata.created_at,
        "updatedAt": metadata.updated_at,
    }
    if metadata.last_modified_by is not None:
        payload["lastModifiedBy"] = metadata.last_modified_by
    if metadata.version is not None:
        payload["version"] = metadata.version
    return payload


def encode_export(symbol: ExportSymbol) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"name": symbol.name, "type": symbol.kind}
    if symbol.is_default:
        payload["isDefault"] = True
    return payload


def encode_cluster(record: ClusterRecord) -> Dict[str, Any]:
    return {
        "version": record.version,
        "id": record.id,
        "layer": record.layer,
        "files": sorted(record.files),
        "exports": [encode_export(symbol) for symbol in sorted(record.exports, key=ExportSymbol.sort_key)],
        "imports": {
            "internal": sorted(record.imports.internal),
            "external": sorted(record.imports.external),
        },
        "compositionHash": record.composition_hash,
        "metadata": encode_metadata(record.metadata),
    }


def _encode_feature_locks(locks: Optional[FeatureLocks]) -> Optional[Dict[str, bool]]:
    if locks is None:
        return None
    payload: Dict[str, bool] = {}
    for key, value in (
        ("name", locks.name),
        ("description", locks.description),
        ("clusters", locks.clusters),
        ("dependsOn", locks.depends_on),
        ("scope", locks.scope),
        ("status", locks.status),
    ):
        if value is not None:
            payload[key] = value
    return payload or None


def encode_feature(record: FeatureRecord) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "version": record.version,
        "id": record.id,
        "name": record.name,
    }
    if record.description is not None:
        payload["description"] = record.description
    if record.purpose is not None:
        payload["purpose"] = record.purpose
    payload["source"] = record.source
    payload["status"] = record.status
    payload["scope"] = record.scope
    payload["clusters"] = list(record.clusters)
    if record.depends_on:
        payload["dependsOn"] = list(record.depends_on)
    payload["composition"] = {"hash": record.composition_hash}
    locks = _encode_feature_locks(record.locks)
    if locks is not None:
        payload["locks"] = locks
    payload["metadata"] = encode_metadata(record.metadata)
    if record.reasoning is not None:
        payload["reasoning"] = record.reasoning
    return payload


def _encode_group_locks(locks: Optional[GroupLocks]) -> Optional[Dict[str, bool]]:
    if locks is None:
        return None
    payload: Dict[str, bool] = {}
    if locks.name is not None:
        payload["name"] = locks.name
    if locks.description is not None:
        payload["description"] = locks.description
    if locks.feature_ids is not None:
        payload["featureIds"] = locks.feature_ids
    return payload or None


def encode_group(record: GroupRecord) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "version": record.version,
        "id": record.id,
        "name": record.name,
    }
    if record.description is not None:
        payload["description"] = record.description
    payload["featureIds"] = list(record.feature_ids)
    payload["source"] = record.source
    locks = _encode_group_locks(record.locks)
    if locks is not None:
        payload["locks"] = locks
    payload["metadata"] = encode_metadata(record.metadata)
    return payload


def encode_node(node: GraphNode) -> Dict[str, Any]:
    return {"id": node.id, "label": node.label, "type": node.type, "fileCount": node.file_count}


def encode_edge(edge: GraphEdge) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"source": edge.source, "target": edge.target}
    if edge.type is not None:
        payload["type"] = edge.type
    return payload


def encode_graph(record: GraphRecord) -> Dict[str, Any]:
    return {
        "version": record.version,
        "generatedAt": record.generated_at,
        "nodes": [encode_node(node) for node in record.nodes],
        "edges": [encode_edge(edge) for edge in record.edges],
    }


def dump_yaml(payload: Dict[str, Any]) -> str:
    return yaml.safe_dump(
        payload,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=10_000,
    )


def parse_yaml(text: str, *, path: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise RecordError(path, [f"YAML parse error: {exc}"]) from exc


def decode_record(kind: str, payload: object, *, path: str) -> Any:
    """Turn a parsed YAML payload into a typed record.

    Raises :class:`RecordError` for malformed payloads (including a missing
    version) and :class:`RecordVersionError` for versions outside the
    supported window.
    """
    if not isinstance(payload, dict):
        raise RecordError(path, ["<root>: expected a mapping"])

    check = check_version(kind, payload.get("version"))
    if not check.valid:
        if check.error == "missing":
            raise RecordError(path, [f"version: {check.message}"])
        raise RecordVersionError(
            path,
            kind=kind,
            reason=check.error or "invalid",
            file_version=check.file_version,
            minimum=check.minimum,
            supported=check.supported,
            message=check.message or "Unsupported version",
        )

    result = _VALIDATORS[kind](payload)
    if isinstance(result, Invalid):
        raise RecordError(path, result.errors)
    return result.value


__all__ = [
    "decode_record",
    "dump_yaml",
    "encode_cluster",
    "encode_feature",
    "encode_graph",
    "encode_group",
    "encode_metadata",
    "parse_yaml",
]
