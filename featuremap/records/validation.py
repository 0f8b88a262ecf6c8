"""Structural validation of raw record payloads into typed records.

Every ``validate_*`` function is pure: it takes the mapping produced by the YAML
parser and returns either :class:`Valid` wrapping the typed record or
:class:`Invalid` listing every problem found, formatted as ``field.path: reason``.
Version compatibility is checked separately (see :mod:`featuremap.records.versions`).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, List, Mapping, Optional, Sequence, TypeVar, Union

from ..analysis.hashing import composition_hash_for
from ..models import (
    LAYERS,
    SCOPES,
    SOURCES,
    STATUSES,
    ClusterRecord,
    ExportSymbol,
    FeatureLocks,
    FeatureRecord,
    GraphEdge,
    GraphNode,
    GraphRecord,
    GroupLocks,
    GroupRecord,
    ImportList,
    RecordMetadata,
)

T = TypeVar("T")

_MISSING = object()


@dataclass(frozen=True)
class Valid(Generic[T]):
    value: T
    ok: bool = True


@dataclass(frozen=True)
class Invalid:
    errors: List[str] = field(default_factory=list)
    ok: bool = False


ValidationResult = Union[Valid[T], Invalid]


class _Reader:
    """Reads typed fields from a mapping while accumulating error messages."""

    def __init__(self, payload: Mapping[str, Any], errors: List[str], prefix: str = "") -> None:
        self._payload = payload
        self._errors = errors
        self._prefix = prefix

    def path(self, key: str) -> str:
        return f"{self._prefix}.{key}" if self._prefix else key

    def has(self, key: str) -> bool:
        return self._payload.get(key) is not None

    def fail(self, key: str, message: str) -> None:
        self._errors.append(f"{self.path(key)}: {message}")

    def _get(self, key: str, required: bool) -> Any:
        value = self._payload.get(key, _MISSING)
        if value is _MISSING or value is None:
            if required:
                self.fail(key, "is required")
            return _MISSING
        return value

    def string(self, key: str, *, required: bool = True) -> Optional[str]:
        value = self._get(key, required)
        if value is _MISSING:
            return None
        if not isinstance(value, str):
            self.fail(key, "expected a string")
            return None
        return value

    def integer(self, key: str, *, required: bool = True) -> Optional[int]:
        value = self._get(key, required)
        if value is _MISSING:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            self.fail(key, "expected an integer")
            return None
        return value

    def boolean(self, key: str) -> Optional[bool]:
        value = self._get(key, False)
        if value is _MISSING:
            return None
        if not isinstance(value, bool):
            self.fail(key, "expected a boolean")
            return None
        return value

    def choice(self, key: str, choices: Sequence[str], *, required: bool = True) -> Optional[str]:
        value = self.string(key, required=required)
        if value is None:
            return None
        if value not in choices:
            self.fail(key, f"expected one of {', '.join(choices)}; got {value!r}")
            return None
        return value

    def string_list(self, key: str, *, required: bool = True) -> List[str]:
        value = self._get(key, required)
        if value is _MISSING:
            return []
        if not isinstance(value, list):
            self.fail(key, "expected a list of strings")
            return []
        result: List[str] = []
        for index, item in enumerate(value):
            if not isinstance(item, str):
                self._errors.append(f"{self.path(key)}[{index}]: expected a string")
                continue
            result.append(item)
        return result

    def mapping(self, key: str, *, required: bool = True) -> Optional["_Reader"]:
        value = self._get(key, required)
        if value is _MISSING:
            return None
        if not isinstance(value, Mapping):
            self.fail(key, "expected a mapping")
            return None
        return _Reader(value, self._errors, self.path(key))

    def items(self, key: str) -> List["_Reader"]:
        value = self._get(key, True)
        if value is _MISSING:
            return []
        if not isinstance(value, list):
            self.fail(key, "expected a list")
            return []
        readers: List[_Reader] = []
        for index, item in enumerate(value):
            item_path = f"{self.path(key)}[{index}]"
            if not isinstance(item, Mapping):
                self._errors.append(f"{item_path}: expected a mapping")
                continue
            readers.append(_Reader(item, self._errors, item_path))
        return readers


def _root(payload: object, errors: List[str]) -> Optional[_Reader]:
    if not isinstance(payload, Mapping):
        errors.append("<root>: expected a mapping")
        return None
    return _Reader(payload, errors)


def _read_metadata(reader: _Reader, key: str = "metadata") -> Optional[RecordMetadata]:
    section = reader.mapping(key)
    if section is None:
        return None
    created_at = section.string("createdAt")
    updated_at = section.string("updatedAt")
    last_modified_by = section.string("lastModifiedBy", required=False)
    version = section.integer("version", required=False)
    if created_at is None or updated_at is None:
        return None
    return RecordMetadata(
        created_at=created_at,
        updated_at=updated_at,
        last_modified_by=last_modified_by,
        version=version,
    )


def validate_cluster(payload: object) -> ValidationResult[ClusterRecord]:
    errors: List[str] = []
    reader = _root(payload, errors)
    if reader is None:
        return Invalid(errors)

    version = reader.integer("version")
    cluster_id = reader.string("id")
    layer = reader.choice("layer", LAYERS)
    files = reader.string_list("files")
    composition_hash = reader.string("compositionHash", required=False)
    metadata = _read_metadata(reader)

    exports: List[ExportSymbol] = []
    if reader.has("exports"):
        for entry in reader.items("exports"):
            name = entry.string("name")
            kind = entry.string("type")
            is_default = entry.boolean("isDefault") or False
            if name is not None and kind is not None:
                exports.append(ExportSymbol(name=name, kind=kind, is_default=is_default))

    imports = ImportList()
    imports_reader = reader.mapping("imports", required=False)
    if imports_reader is not None:
        imports = ImportList(
            internal=imports_reader.string_list("internal", required=False),
            external=imports_reader.string_list("external", required=False),
        )

    if errors:
        return Invalid(errors)
    return Valid(
        ClusterRecord(
            version=version,  # type: ignore[arg-type]
            id=cluster_id,  # type: ignore[arg-type]
            layer=layer,  # type: ignore[arg-type]
            files=files,
            exports=exports,
            imports=imports,
            composition_hash=composition_hash or composition_hash_for(files),
            metadata=metadata,  # type: ignore[arg-type]
        )
    )


def _read_feature_locks(reader: _Reader) -> Optional[FeatureLocks]:
    section = reader.mapping("locks", required=False)
    if section is None:
        return None
    locks = FeatureLocks(
        name=section.boolean("name"),
        description=section.boolean("description"),
        clusters=section.boolean("clusters"),
        depends_on=section.boolean("dependsOn"),
        scope=section.boolean("scope"),
        status=section.boolean("status"),
    )
    return None if locks.is_empty() else locks


def validate_feature(payload: object) -> ValidationResult[FeatureRecord]:
    errors: List[str] = []
    reader = _root(payload, errors)
    if reader is None:
        return Invalid(errors)

    version = reader.integer("version")
    feature_id = reader.string("id")
    name = reader.string("name")
    description = reader.string("description", required=False)
    purpose = reader.string("purpose", required=False)
    source = reader.choice("source", SOURCES)
    status = reader.choice("status", STATUSES)
    scope = reader.choice("scope", SCOPES)
    clusters = reader.string_list("clusters")
    depends_on = reader.string_list("dependsOn", required=False)
    composition = reader.mapping("composition")
    composition_hash = composition.string("hash") if composition is not None else None
    locks = _read_feature_locks(reader)
    metadata = _read_metadata(reader)
    reasoning = reader.string("reasoning", required=False)

    if errors:
        return Invalid(errors)
    return Valid(
        FeatureRecord(
            version=version,  # type: ignore[arg-type]
            id=feature_id,  # type: ignore[arg-type]
            name=name,  # type: ignore[arg-type]
            source=source,  # type: ignore[arg-type]
            status=status,  # type: ignore[arg-type]
            scope=scope,  # type: ignore[arg-type]
            clusters=clusters,
            composition_hash=composition_hash,  # type: ignore[arg-type]
            metadata=metadata,  # type: ignore[arg-type]
            description=description,
            purpose=purpose,
            depends_on=depends_on,
            locks=locks,
            reasoning=reasoning,
        )
    )


def validate_group(payload: object) -> ValidationResult[GroupRecord]:
    errors: List[str] = []
    reader = _root(payload, errors)
    if reader is None:
        return Invalid(errors)

    version = reader.integer("version")
    group_id = reader.string("id")
    name = reader.string("name")
    description = reader.string("description", required=False)
    feature_ids = reader.string_list("featureIds")
    source = reader.choice("source", ("ai", "user"))
    metadata = _read_metadata(reader)

    locks: Optional[GroupLocks] = None
    locks_reader = reader.mapping("locks", required=False)
    if locks_reader is not None:
        locks = GroupLocks(
            name=locks_reader.boolean("name"),
            description=locks_reader.boolean("description"),
            feature_ids=locks_reader.boolean("featureIds"),
        )

    if errors:
        return Invalid(errors)
    return Valid(
        GroupRecord(
            version=version,  # type: ignore[arg-type]
            id=group_id,  # type: ignore[arg-type]
            name=name,  # type: ignore[arg-type]
            feature_ids=feature_ids,
            source=source,  # type: ignore[arg-type]
            metadata=metadata,  # type: ignore[arg-type]
            description=description,
            locks=locks,
        )
    )


def validate_graph(payload: object) -> ValidationResult[GraphRecord]:
    errors: List[str] = []
    reader = _root(payload, errors)
    if reader is None:
        return Invalid(errors)

    version = reader.integer("version")
    generated_at = reader.string("generatedAt")

    nodes: List[GraphNode] = []
    for entry in reader.items("nodes"):
        node_id = entry.string("id")
        label = entry.string("label")
        node_type = entry.string("type")
        file_count = entry.integer("fileCount")
        if None not in (node_id, label, node_type, file_count):
            nodes.append(
                GraphNode(id=node_id, label=label, type=node_type, file_count=file_count)  # type: ignore[arg-type]
            )

    edges: List[GraphEdge] = []
    for entry in reader.items("edges"):
        source = entry.string("source")
        target = entry.string("target")
        edge_type = entry.string("type", required=False)
        if source is not None and target is not None:
            edges.append(GraphEdge(source=source, target=target, type=edge_type))

    if errors:
        return Invalid(errors)
    return Valid(
        GraphRecord(
            version=version,  # type: ignore[arg-type]
            generated_at=generated_at,  # type: ignore[arg-type]
            nodes=nodes,
            edges=edges,
        )
    )


__all__ = [
    "Invalid",
    "Valid",
    "ValidationResult",
    "validate_cluster",
    "validate_feature",
    "validate_graph",
    "validate_group",
]
