"""Tree-sitter powered inspector for JavaScript and TypeScript modules."""

from __future__ import annotations

from typing import Callable, Dict, Iterator, List, Optional

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from ..models import ExportSymbol, FileRecord, ImportList
from .base import SourceInspector, count_lines

_GRAMMARS: Dict[str, Callable[[], object]] = {
    "typescript": tree_sitter_typescript.language_typescript,
    "tsx": tree_sitter_typescript.language_tsx,
    "javascript": tree_sitter_javascript.language,
}

_GRAMMAR_BY_SUFFIX = {
    ".ts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}

_DECLARATION_KINDS = {
    "function_declaration": "function",
    "generator_function_declaration": "function",
    "function_signature": "function",
    "class_declaration": "class",
    "abstract_class_declaration": "class",
    "interface_declaration": "interface",
    "type_alias_declaration": "type",
    "enum_declaration": "enum",
}

_DEFAULT_KINDS = {
    "function_declaration": "function",
    "generator_function_declaration": "function",
    "function_expression": "function",
    "function": "function",
    "generator_function": "function",
    "class_declaration": "class",
    "abstract_class_declaration": "class",
    "class": "class",
}

_VARIABLE_DECLARATIONS = {"lexical_declaration", "variable_declaration"}


class EcmaScriptInspector(SourceInspector):
    """Reads import specifiers and exported names from ES and CommonJS modules.

    Relative and absolute-path specifiers are internal; everything else is
    external until alias rules reclassify it during graph building.
    """

    def __init__(self) -> None:
        self._parsers: Dict[str, Parser] = {}

    def supports(self, path: str) -> bool:
        return _grammar_for(path) is not None

    def inspect(self, path: str, source: str) -> FileRecord:
        grammar = _grammar_for(path) or "typescript"
        source_bytes = source.encode("utf-8")
        root = self._get_parser(grammar).parse(source_bytes).root_node
        return FileRecord(
            path=path,
            exports=_exports(root, source_bytes),
            imports=_imports(root, source_bytes),
            line_count=count_lines(source),
        )

    def _get_parser(self, grammar: str) -> Parser:
        parser = self._parsers.get(grammar)
        if parser is None:
            parser = Parser(Language(_GRAMMARS[grammar]()))
            self._parsers[grammar] = parser
        return parser


def _grammar_for(path: str) -> Optional[str]:
    dot = path.rfind(".")
    if dot == -1:
        return None
    return _GRAMMAR_BY_SUFFIX.get(path[dot:].lower())


def _node_text(node: Node, source_bytes: bytes) -> str:
    return source_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")


def _string_value(node: Optional[Node], source_bytes: bytes) -> Optional[str]:
    if node is None or node.type != "string":
        return None
    return _node_text(node, source_bytes)[1:-1].strip() or None


def _walk(root: Node) -> Iterator[Node]:
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _specifier(node: Node, source_bytes: bytes) -> Optional[str]:
    if node.type in {"import_statement", "export_statement"}:
        source = node.child_by_field_name("source")
        if source is not None:
            return _string_value(source, source_bytes)
        for child in node.children:
            if child.type == "import_require_clause":
                source = child.child_by_field_name("source")
                if source is None:
                    source = next((item for item in child.named_children if item.type == "string"), None)
                return _string_value(source, source_bytes)
        return None
    if node.type == "call_expression":
        function = node.child_by_field_name("function")
        if function is None:
            return None
        if function.type != "import" and _node_text(function, source_bytes) != "require":
            return None
        arguments = node.child_by_field_name("arguments")
        named = arguments.named_children if arguments is not None else []
        if len(named) != 1:
            return None
        return _string_value(named[0], source_bytes)
    return None


def _imports(root: Node, source_bytes: bytes) -> ImportList:
    internal: List[str] = []
    external: List[str] = []
    for node in _walk(root):
        specifier = _specifier(node, source_bytes)
        if specifier is None:
            continue
        target = internal if specifier.startswith((".", "/")) else external
        if specifier not in target:
            target.append(specifier)
    return ImportList(internal=internal, external=external)


def _declared_symbols(node: Node, source_bytes: bytes) -> Iterator[ExportSymbol]:
    if node.type == "ambient_declaration":
        for child in node.named_children:
            yield from _declared_symbols(child, source_bytes)
        return
    if node.type in _VARIABLE_DECLARATIONS:
        for declarator in node.named_children:
            if declarator.type != "variable_declarator":
                continue
            name = declarator.child_by_field_name("name")
            if name is not None and name.type == "identifier":
                yield ExportSymbol(name=_node_text(name, source_bytes), kind="variable")
        return
    kind = _DECLARATION_KINDS.get(node.type)
    name = node.child_by_field_name("name")
    if kind is not None and name is not None:
        yield ExportSymbol(name=_node_text(name, source_bytes), kind=kind)


def _default_symbol(node: Node, source_bytes: bytes) -> ExportSymbol:
    target = node.child_by_field_name("declaration") or node.child_by_field_name("value")
    if target is not None and target.type in _DEFAULT_KINDS:
        name = target.child_by_field_name("name")
        if name is not None:
            return ExportSymbol(name=_node_text(name, source_bytes), kind=_DEFAULT_KINDS[target.type], is_default=True)
    return ExportSymbol(name="default", kind="variable", is_default=True)


def _clause_symbols(clause: Node, source_bytes: bytes) -> Iterator[ExportSymbol]:
    for specifier in clause.named_children:
        if specifier.type != "export_specifier":
            continue
        name = specifier.child_by_field_name("alias") or specifier.child_by_field_name("name")
        if name is None:
            continue
        text = _node_text(name, source_bytes)
        if text == "default":
            yield ExportSymbol(name="default", kind="variable", is_default=True)
        else:
            yield ExportSymbol(name=text, kind="variable")


def _exports(root: Node, source_bytes: bytes) -> List[ExportSymbol]:
    symbols: Dict[tuple, ExportSymbol] = {}

    def add(symbol: ExportSymbol) -> None:
        symbols.setdefault((symbol.name, symbol.kind, symbol.is_default), symbol)

    for node in root.named_children:
        if node.type != "export_statement":
            continue
        if any(child.type == "default" for child in node.children):
            add(_default_symbol(node, source_bytes))
            continue
        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            for symbol in _declared_symbols(declaration, source_bytes):
                add(symbol)
            continue
        for child in node.named_children:
            if child.type == "export_clause":
                for symbol in _clause_symbols(child, source_bytes):
                    add(symbol)

    return list(symbols.values())


__all__ = ["EcmaScriptInspector"]
