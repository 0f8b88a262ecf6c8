"""Source inspector plugins and discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Iterable, List, Optional, Set

from ..logging import get_logger
from .base import SourceInspector
from .ecmascript import EcmaScriptInspector
from .python import PythonInspector

_ENTRY_POINT_GROUP = "featuremap.inspectors"

logger = get_logger("inspectors")

_BUILTIN_FACTORIES: dict[str, Callable[[], SourceInspector]] = {
    "python": PythonInspector,
    "ecmascript": EcmaScriptInspector,
}


def discover_inspectors() -> List[SourceInspector]:
    """Built-in inspectors first, then one per ``featuremap.inspectors`` entry point.

    An entry point reusing a built-in name is skipped, so a plugin cannot
    silently replace the Python or ECMAScript inspector.
    """
    inspectors: List[SourceInspector] = [factory() for factory in _BUILTIN_FACTORIES.values()]
    names: Set[str] = set(_BUILTIN_FACTORIES)

    for entry in _iter_entry_points():
        name = entry.name.lower()
        if name in names:
            logger.debug("Skipping duplicate inspector entry point %s", entry.name)
            continue
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - plugin import failure
            raise RuntimeError(f"Cannot load inspector plugin '{entry.name}': {exc}") from exc
        inspectors.append(_coerce_inspector(entry.name, loaded))
        names.add(name)

    return inspectors


def select_inspector(inspectors: Iterable[SourceInspector], path: str) -> Optional[SourceInspector]:
    for inspector in inspectors:
        if inspector.supports(path):
            return inspector
    return None


def _coerce_inspector(name: str, obj: object) -> SourceInspector:
    instance = obj() if callable(obj) and not isinstance(obj, SourceInspector) else obj
    if not isinstance(instance, SourceInspector):
        raise TypeError(f"Inspector plugin '{name}' did not provide a SourceInspector")
    return instance


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "EcmaScriptInspector",
    "PythonInspector",
    "SourceInspector",
    "discover_inspectors",
    "select_inspector",
]
