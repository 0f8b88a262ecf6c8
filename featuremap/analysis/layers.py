"""Heuristic architectural layer detection for clusters."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence

from ..models import LAYERS, ExportSymbol, ImportList

_FRONTEND_IMPORTS = {
    "react",
    "react-dom",
    "vue",
    "svelte",
    "solid-js",
    "@xyflow/react",
    "tailwindcss",
    "styled-components",
    "streamlit",
}
_FRONTEND_IMPORT_PREFIXES = ("@angular/", "@emotion/")

_BACKEND_IMPORTS = {
    "express",
    "fastify",
    "koa",
    "hapi",
    "nest",
    "pg",
    "mysql",
    "mongodb",
    "prisma",
    "drizzle",
    "sequelize",
    "fastapi",
    "flask",
    "django",
    "starlette",
    "aiohttp",
    "sqlalchemy",
    "psycopg2",
    "uvicorn",
}
_BACKEND_IMPORT_PREFIXES = ("@nestjs/", "@modelcontextprotocol/")

_INFRA_IMPORTS = {"vite", "webpack", "rollup", "esbuild", "tsup", "setuptools", "invoke", "nox"}

_FRONTEND_PATHS = ("/web/", "/ui/", "/components/", "/pages/", "/views/", "/frontend/")
_BACKEND_PATHS = ("/api/", "/server/", "/backend/", "/routes/", "/controllers/", "/service/")
_SHARED_PATHS = ("/shared/", "/common/", "/utils/", "/types/", "/lib/")
_INFRA_PATHS = ("/scripts/", "/config/", "/build/", "/.github/", "/ci/")

_FRONTEND_EXTENSIONS = (".tsx", ".jsx", ".vue", ".svelte")
_INFRA_FILE_PREFIXES = ("vite.config", "tsconfig", "webpack", "rollup", ".eslintrc", "setup.py", "noxfile")

_COMPONENT_NAME = re.compile(r"^[A-Z][A-Za-z0-9]*$")
_ROUTE_MARKERS = ("handler", "middleware", "router", "controller", "route")
_TYPE_KINDS = ("type", "interface")


@dataclass
class LayerDetection:
    layer: str
    confidence: str
    signals: List[str] = field(default_factory=list)


class _Votes:
    def __init__(self) -> None:
        self.by_layer: Dict[str, List[str]] = {layer: [] for layer in LAYERS}
        self.signals: List[str] = []

    def add(self, layer: str, message: str) -> None:
        if message not in self.by_layer[layer]:
            self.by_layer[layer].append(message)
        if message not in self.signals:
            self.signals.append(message)


def detect_layer(
    files: Sequence[str],
    imports: ImportList,
    exports: Iterable[ExportSymbol] = (),
) -> LayerDetection:
    """Vote for a layer from path, extension, import and export signals.

    The layer with the most distinct signals wins. No signals, or a tie for
    first place, yields ``shared`` with low confidence.
    """
    exports = list(exports)
    paths = [f"/{path.replace(chr(92), '/').lower().lstrip('/')}/" for path in files]
    names = [path.rstrip("/").rsplit("/", 1)[-1] for path in paths]
    extensions = {_extension(name) for name in names}
    packages = _package_roots(imports.external)
    votes = _Votes()

    for patterns, layer in (
        (_FRONTEND_PATHS, "frontend"),
        (_BACKEND_PATHS, "backend"),
        (_SHARED_PATHS, "shared"),
        (_INFRA_PATHS, "infrastructure"),
    ):
        for pattern in patterns:
            if any(pattern in path for path in paths):
                votes.add(layer, f"path contains {pattern}")

    for extension in _FRONTEND_EXTENSIONS:
        if extension in extensions:
            votes.add("frontend", f"file extension {extension}")

    for prefix in _INFRA_FILE_PREFIXES:
        if any(name.startswith(prefix) for name in names):
            votes.add("infrastructure", f"file name starts with {prefix}")

    has_frontend_import = False
    for package in packages:
        if _matches(package, _FRONTEND_IMPORTS, _FRONTEND_IMPORT_PREFIXES):
            has_frontend_import = True
            votes.add("frontend", f"imports {package}")
        if _matches(package, _BACKEND_IMPORTS, _BACKEND_IMPORT_PREFIXES):
            votes.add("backend", f"imports {package}")
        if _matches(package, _INFRA_IMPORTS, ()):
            votes.add("infrastructure", f"imports {package}")

    has_jsx = any(extension in extensions for extension in _FRONTEND_EXTENSIONS)
    exports_components = any(
        _COMPONENT_NAME.match(symbol.name) and symbol.kind not in _TYPE_KINDS for symbol in exports
    )
    if exports_components and (has_jsx or has_frontend_import):
        votes.add("frontend", "exports React components")

    if any(
        symbol.kind in ("function", "variable", "class")
        and any(marker in symbol.name.lower() for marker in _ROUTE_MARKERS)
        for symbol in exports
    ):
        votes.add("backend", "exports route handlers")

    if exports and all(symbol.kind in _TYPE_KINDS for symbol in exports):
        votes.add("shared", "exports only types")

    internal = [f"/{value.lower().lstrip('/')}/" for value in imports.internal]
    if any(_contains(value, _FRONTEND_PATHS) for value in internal) and any(
        _contains(value, _BACKEND_PATHS) for value in internal
    ):
        votes.add("shared", "internal imports reference frontend and backend")

    ranked = sorted(LAYERS, key=lambda layer: -len(votes.by_layer[layer]))
    top, second = ranked[0], ranked[1]
    top_count = len(votes.by_layer[top])
    second_count = len(votes.by_layer[second])

    if top_count == 0:
        return LayerDetection(layer="shared", confidence="low", signals=votes.signals)
    if second_count:
        if second_count == top_count:
            return LayerDetection(layer="shared", confidence="low", signals=votes.signals)
        return LayerDetection(layer=top, confidence="medium", signals=votes.signals)
    confidence = "high" if top_count >= 3 else "medium"
    return LayerDetection(layer=top, confidence=confidence, signals=votes.signals)


def _package_roots(specifiers: Iterable[str]) -> List[str]:
    roots: List[str] = []
    for specifier in sorted(specifiers):
        value = specifier.strip().lower()
        if not value:
            continue
        if value.startswith("@"):
            root = "/".join(value.split("/")[:2])
        else:
            root = value.split("/")[0].split(".")[0]
        if root and root not in roots:
            roots.append(root)
    return roots


def _matches(value: str, exact: set, prefixes: Sequence[str]) -> bool:
    return value in exact or any(value.startswith(prefix) for prefix in prefixes)


def _contains(value: str, patterns: Sequence[str]) -> bool:
    return any(pattern in value for pattern in patterns)


def _extension(name: str) -> str:
    index = name.rfind(".")
    return name[index:] if index != -1 else ""


__all__ = ["LayerDetection", "detect_layer"]
