"""Python source inspector built on the standard-library ``ast`` module."""

from __future__ import annotations

import ast
import posixpath
import sys
from typing import Dict, List, Mapping, Optional, Sequence, Set

from ..logging import get_logger
from ..models import ExportSymbol, FileRecord, ImportList
from .base import SourceInspector, count_lines

_SUFFIXES = (".py", ".pyi")
_STDLIB = frozenset(getattr(sys, "stdlib_module_names", ())) | {"__future__"}

logger = get_logger("inspectors.python")


def python_roots(paths: Sequence[str], source_roots: Sequence[str] = ()) -> Dict[str, str]:
    """Map importable top-level names to their project-relative location.

    ``src/acme/core.py`` yields ``{"acme": "src/acme"}`` when ``src`` is a
    source root; ``tools.py`` yields ``{"tools": "tools"}``.
    """
    roots: Dict[str, str] = {}
    source_root_set = set(source_roots)
    for path in sorted(paths):
        if not path.endswith(_SUFFIXES):
            continue
        parts = path.split("/")
        prefix: List[str] = []
        if len(parts) > 1 and parts[0] in source_root_set:
            prefix, parts = [parts[0]], parts[1:]
        head = parts[0]
        if len(parts) == 1:
            head = posixpath.splitext(head)[0]
        if not head.isidentifier() or head == "__init__":
            continue
        roots.setdefault(head, "/".join(prefix + [head]))
    return roots


def module_paths(paths: Sequence[str]) -> Set[str]:
    """Project-relative module paths without suffix; packages appear as their directory."""
    modules: Set[str] = set()
    for path in paths:
        if not path.endswith(_SUFFIXES):
            continue
        stem = posixpath.splitext(path)[0]
        if posixpath.basename(stem) == "__init__":
            stem = posixpath.dirname(stem)
        if stem:
            modules.add(stem)
    return modules


class PythonInspector(SourceInspector):
    """Extracts public top-level definitions and classified imports."""

    def __init__(self, internal_roots: Optional[Mapping[str, str]] = None) -> None:
        self.internal_roots: Dict[str, str] = dict(internal_roots or {})
        self.modules: Set[str] = set()

    def prepare(self, paths: Sequence[str], source_roots: Sequence[str] = ()) -> None:
        self.internal_roots = python_roots(paths, source_roots)
        self.modules = module_paths(paths)

    def supports(self, path: str) -> bool:
        return path.endswith(_SUFFIXES)

    def inspect(self, path: str, source: str) -> FileRecord:
        try:
            tree = ast.parse(source, filename=path)
        except (SyntaxError, ValueError) as exc:
            logger.debug("Unable to parse %s: %s", path, exc)
            return FileRecord(path=path, line_count=count_lines(source))
        return FileRecord(
            path=path,
            exports=self._exports(tree),
            imports=self._imports(tree, path),
            line_count=count_lines(source),
        )

    def _exports(self, tree: ast.Module) -> List[ExportSymbol]:
        declared = _declared_all(tree)
        symbols: Dict[str, ExportSymbol] = {}
        for node in tree.body:
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                symbols.setdefault(node.name, ExportSymbol(name=node.name, kind="function"))
            elif isinstance(node, ast.ClassDef):
                symbols.setdefault(node.name, ExportSymbol(name=node.name, kind="class"))
            elif isinstance(node, ast.Assign):
                for target in node.targets:
                    if isinstance(target, ast.Name):
                        symbols.setdefault(target.id, ExportSymbol(name=target.id, kind="variable"))
            elif isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name):
                symbols.setdefault(node.target.id, ExportSymbol(name=node.target.id, kind="variable"))

        if declared is not None:
            return [symbols.get(name, ExportSymbol(name=name, kind="variable")) for name in declared]
        return [symbol for name, symbol in symbols.items() if not name.startswith("_")]

    def _imports(self, tree: ast.Module, path: str) -> ImportList:
        internal: List[str] = []
        external: List[str] = []

        def add(target: List[str], value: Optional[str]) -> None:
            if value and value not in target:
                target.append(value)

        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    local = self._internal_path(alias.name)
                    if local is not None:
                        add(internal, local)
                    elif alias.name.split(".")[0] not in _STDLIB:
                        add(external, alias.name)
            elif isinstance(node, ast.ImportFrom):
                if node.level:
                    for specifier in self._relative_targets(node, path):
                        add(internal, specifier)
                    continue
                module = node.module or ""
                local = self._internal_path(module)
                if local is not None:
                    for alias in node.names:
                        add(internal, self._submodule(local, alias.name) or local)
                elif module and module.split(".")[0] not in _STDLIB:
                    add(external, module)
        return ImportList(internal=internal, external=external)

    def _relative_targets(self, node: ast.ImportFrom, path: str) -> List[str]:
        base = "./" if node.level == 1 else "../" * (node.level - 1)
        if not node.module:
            return [base + alias.name for alias in node.names if alias.name != "*"]
        module = node.module.replace(".", "/")
        package = posixpath.dirname(path)
        for _ in range(node.level - 1):
            package = posixpath.dirname(package)
        targets = []
        for alias in node.names:
            if self._submodule(posixpath.join(package, module), alias.name):
                targets.append(f"{base}{module}/{alias.name}")
            else:
                targets.append(base + module)
        return targets

    def _submodule(self, location: str, name: str) -> Optional[str]:
        """Return ``location/name`` when the imported name is itself a module."""
        if name == "*":
            return None
        candidate = posixpath.normpath(f"{location}/{name}")
        return candidate if candidate in self.modules else None

    def _internal_path(self, module: str) -> Optional[str]:
        head, _, rest = module.partition(".")
        location = self.internal_roots.get(head)
        if location is None:
            return None
        return f"{location}/{rest.replace('.', '/')}" if rest else location


def _declared_all(tree: ast.Module) -> Optional[List[str]]:
    for node in tree.body:
        if not isinstance(node, ast.Assign):
            continue
        if not any(isinstance(target, ast.Name) and target.id == "__all__" for target in node.targets):
            continue
        if isinstance(node.value, (ast.List, ast.Tuple)):
            return [
                element.value
                for element in node.value.elts
                if isinstance(element, ast.Constant) and isinstance(element.value, str)
            ]
    return None


__all__ = ["PythonInspector", "module_paths", "python_roots"]
