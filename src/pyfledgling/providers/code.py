from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Iterator

import jedi
from tree_sitter_language_pack import get_parser

from ..engine.table import Table
from ..util.fs import SandboxConfig
from ..util.patterns import like_match

LANGUAGES = {
    ".py": "python",
    ".pyi": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
}

# syntax node type -> definition kind
_JS_DEFS = {
    "function_declaration": "function",
    "generator_function_declaration": "function",
    "class_declaration": "class",
    "method_definition": "method",
}
_TS_DEFS = {
    **_JS_DEFS,
    "abstract_class_declaration": "class",
    "interface_declaration": "interface",
    "type_alias_declaration": "type",
    "enum_declaration": "enum",
}
_DEF_NODES: dict[str, dict[str, str]] = {
    "javascript": _JS_DEFS,
    "typescript": _TS_DEFS,
    "tsx": _TS_DEFS,
    "go": {
        "function_declaration": "function",
        "method_declaration": "method",
        "type_spec": "type",
    },
    "rust": {
        "function_item": "function",
        "struct_item": "struct",
        "enum_item": "enum",
        "trait_item": "trait",
        "impl_item": "impl",
        "mod_item": "module",
        "type_item": "type",
    },
    "java": {
        "class_declaration": "class",
        "record_declaration": "class",
        "interface_declaration": "interface",
        "enum_declaration": "enum",
        "method_declaration": "method",
        "constructor_declaration": "method",
    },
}

_FUNCTION_VALUES = {"arrow_function", "function", "function_expression", "generator_function"}
_GO_TYPE_KINDS = {"struct_type": "struct", "interface_type": "interface"}
_OWNER_KINDS = {"class", "impl", "trait", "interface"}
_IDENT_NODES = {"identifier", "field_identifier", "property_identifier", "type_identifier"}
_CALL_NODES = {
    "python": "call",
    "javascript": "call_expression",
    "typescript": "call_expression",
    "tsx": "call_expression",
    "go": "call_expression",
    "rust": "call_expression",
    "java": "method_invocation",
}


@dataclass
class Definition:
    name: str
    kind: str
    start_line: int
    end_line: int
    signature: str
    parent: "Definition | None" = field(default=None, repr=False)


@dataclass
class FileAnalysis:
    path: str
    definitions: list[Definition]
    calls: list[tuple[str, int, str]]
    imports: list[tuple[str, str, int]]


def language_for(path: str) -> str | None:
    return LANGUAGES.get(os.path.splitext(path)[1].lower())


@lru_cache(maxsize=None)
def _parser(lang: str):
    return get_parser(lang)


def _clip(text: str, width: int = 120) -> str:
    text = text.strip()
    return text if len(text) <= width else text[: width - 3] + "..."


def _text(node: Any, src: bytes) -> str:
    if node is None:
        return ""
    return src[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def _unquote(node: Any, src: bytes) -> str:
    return _text(node, src).strip("'\"`")


def _line(node: Any) -> int:
    return node.start_point[0] + 1


def _walk(root: Any) -> Iterator[Any]:
    """Named nodes in document order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.named_children))


# -- definitions --


def _python_definitions(path: str, source: str) -> list[Definition]:
    lines = source.splitlines()
    script = jedi.Script(code=source, path=path)
    defs: list[Definition] = []
    by_pos: dict[tuple[int, int], Definition] = {}
    for name in script.get_names(all_scopes=True, definitions=True, references=False):
        start = name.get_definition_start_position()
        # imported names report the type of what they import
        if start is None or lines[start[0] - 1][start[1]:].startswith(("from ", "import ")):
            continue
        if name.type not in ("class", "function"):
            continue
        parent = name.parent()
        owner = None
        if parent is not None and parent.type in ("class", "function"):
            owner = by_pos.get((parent.line, parent.column))
        kind = "method" if name.type == "function" and owner is not None and owner.kind == "class" else name.type
        end = name.get_definition_end_position()
        end_line = name.line if end is None else (end[0] - 1 if end[1] == 0 else end[0])
        d = Definition(
            name=name.name,
            kind=kind,
            start_line=name.line,
            end_line=max(end_line, name.line),
            signature=_clip(lines[name.line - 1].strip().rstrip(":")),
            parent=owner,
        )
        defs.append(d)
        by_pos[(name.line, name.column)] = d
    return defs


def _definition_of(node: Any, lang: str, src: bytes) -> tuple[str, str] | None:
    kinds = _DEF_NODES.get(lang, {})
    if node.type == "variable_declarator" and lang in ("javascript", "typescript", "tsx"):
        value = node.child_by_field_name("value")
        if value is not None and value.type in _FUNCTION_VALUES:
            return _text(node.child_by_field_name("name"), src), "function"
        return None
    kind = kinds.get(node.type)
    if kind is None:
        return None
    if node.type == "impl_item":
        return _text(node.child_by_field_name("type"), src), kind
    if node.type == "type_spec":
        kind = _GO_TYPE_KINDS.get(getattr(node.child_by_field_name("type"), "type", ""), "type")
    name = _text(node.child_by_field_name("name"), src)
    return (name, kind) if name else None


def _tree_definitions(lang: str, root: Any, src: bytes) -> list[Definition]:
    defs: list[Definition] = []
    stack: list[tuple[Any, Definition | None]] = [(root, None)]
    while stack:
        node, parent = stack.pop()
        found = _definition_of(node, lang, src)
        current = parent
        if found is not None:
            name, kind = found
            if kind == "function" and parent is not None and parent.kind in _OWNER_KINDS:
                kind = "method"
            first_line = _text(node, src).split("\n", 1)[0]
            current = Definition(
                name=name,
                kind=kind,
                start_line=_line(node),
                end_line=node.end_point[0] + 1,
                signature=_clip(first_line.rstrip().rstrip("{")),
                parent=parent,
            )
            defs.append(current)
        stack.extend((child, current) for child in reversed(node.named_children))
    return defs


# -- calls --


def _callee_name(fn: Any, src: bytes) -> str | None:
    if fn.type in _IDENT_NODES:
        return _text(fn, src)
    for field_name in ("attribute", "property", "field", "name"):
        part = fn.child_by_field_name(field_name)
        if part is not None:
            return _text(part, src)
    return None


def _tree_calls(lang: str, root: Any, src: bytes) -> list[tuple[str, int, str]]:
    node_type = _CALL_NODES[lang]
    out = []
    for node in _walk(root):
        if node.type != node_type:
            continue
        if lang == "java":
            name = _text(node.child_by_field_name("name"), src)
            obj = node.child_by_field_name("object")
            expr = f"{_text(obj, src)}.{name}" if obj is not None else name
        else:
            fn = node.child_by_field_name("function")
            name = _callee_name(fn, src) if fn is not None else None
            expr = "".join(_text(fn, src).split())
        if name:
            out.append((name, _line(node), _clip(expr + "(...)")))
    out.sort(key=lambda c: (c[1], c[0]))
    return out


# -- imports --


def _python_import(node: Any, src: bytes) -> list[tuple[str, str]]:
    if node.type == "import_statement":
        out = []
        for item in node.children_by_field_name("name"):
            if item.type == "aliased_import":
                out.append((_text(item.child_by_field_name("name"), src), _text(item.child_by_field_name("alias"), src)))
            else:
                out.append((_text(item, src), ""))
        return out
    if node.type == "import_from_statement":
        names = ", ".join(_text(n, src) for n in node.children_by_field_name("name"))
        if not names and any(c.type == "wildcard_import" for c in node.children):
            names = "*"
        return [(_text(node.child_by_field_name("module_name"), src), names)]
    return []


def _js_import(node: Any, src: bytes) -> list[tuple[str, str]]:
    if node.type in ("import_statement", "export_statement"):
        source = node.child_by_field_name("source")
        if source is None:
            return []
        clause = next((c for c in node.named_children if c.type in ("import_clause", "export_clause")), None)
        return [(_unquote(source, src), _text(clause, src))]
    if node.type == "call_expression" and _text(node.child_by_field_name("function"), src) == "require":
        args = node.child_by_field_name("arguments")
        first = args.named_children[0] if args is not None and args.named_children else None
        if first is not None and first.type in ("string", "template_string"):
            return [(_unquote(first, src), "")]
    return []


def _go_import(node: Any, src: bytes) -> list[tuple[str, str]]:
    if node.type != "import_spec":
        return []
    return [(_unquote(node.child_by_field_name("path"), src), _text(node.child_by_field_name("name"), src))]


def _rust_import(node: Any, src: bytes) -> list[tuple[str, str]]:
    if node.type == "use_declaration":
        module = _text(node.child_by_field_name("argument"), src)
        return [(module, module.split("::")[-1].strip("{} "))]
    if node.type == "extern_crate_declaration":
        return [(_text(node.child_by_field_name("name"), src), "")]
    return []


def _java_import(node: Any, src: bytes) -> list[tuple[str, str]]:
    if node.type != "import_declaration":
        return []
    module = ".".join(_text(c, src) for c in node.named_children)
    return [(module, module.rsplit(".", 1)[-1])]


_IMPORT_READERS = {
    "python": _python_import,
    "javascript": _js_import,
    "typescript": _js_import,
    "tsx": _js_import,
    "go": _go_import,
    "rust": _rust_import,
    "java": _java_import,
}


def _tree_imports(lang: str, root: Any, src: bytes) -> list[tuple[str, str, int]]:
    read = _IMPORT_READERS[lang]
    return [(module, names, _line(node)) for node in _walk(root) for module, names in read(node, src)]


# -- per-file analysis --


def analyze_source(path: str, source: str) -> FileAnalysis:
    """Definitions, calls and imports of one source file.

    Everything is read from the tree-sitter syntax tree, which tolerates
    syntax errors; Python definitions come from jedi so that nested scopes and
    methods are named the way Python tooling names them.
    """
    lang = language_for(path)
    if lang is None:
        return FileAnalysis(path, [], [], [])
    src = source.encode("utf-8")
    root = _parser(lang).parse(src).root_node
    if lang == "python":
        defs = _python_definitions(path, source)
    else:
        defs = _tree_definitions(lang, root, src)
    return FileAnalysis(path, defs, _tree_calls(lang, root, src), _tree_imports(lang, root, src))


def _analyze_pattern(sandbox: SandboxConfig, file_pattern: str) -> list[FileAnalysis]:
    out = []
    for path in sandbox.glob(file_pattern):
        if language_for(path) is None:
            continue
        out.append(analyze_source(path, sandbox.read_text(path)))
    return out


def find_definitions(sandbox: SandboxConfig, file_pattern: str, name_pattern: str | None = None) -> Table:
    rows = []
    for fa in _analyze_pattern(sandbox, file_pattern):
        for d in fa.definitions:
            if like_match(d.name, name_pattern):
                rows.append((fa.path, d.name, d.kind, d.start_line, d.end_line, d.signature))
    return Table(columns=["file_path", "name", "kind", "start_line", "end_line", "signature"], rows=rows)


def find_calls(sandbox: SandboxConfig, file_pattern: str, name_pattern: str | None = None) -> Table:
    rows = []
    for fa in _analyze_pattern(sandbox, file_pattern):
        for name, line, expr in fa.calls:
            if like_match(name, name_pattern):
                rows.append((fa.path, name, line, expr))
    return Table(columns=["file_path", "name", "start_line", "call_expression"], rows=rows)


def find_imports(sandbox: SandboxConfig, file_pattern: str) -> Table:
    rows = []
    for fa in _analyze_pattern(sandbox, file_pattern):
        for module, names, line in fa.imports:
            rows.append((fa.path, module, names, line))
    return Table(columns=["file_path", "module", "names", "start_line"], rows=rows)


def code_structure(sandbox: SandboxConfig, file_pattern: str) -> Table:
    """Top-level definitions per file with their size and number of nested definitions."""
    rows = []
    for fa in _analyze_pattern(sandbox, file_pattern):
        for d in fa.definitions:
            if d.parent is not None:
                continue
            children = sum(1 for o in fa.definitions if o.parent is d)
            rows.append((fa.path, d.name, d.kind, d.start_line, d.end_line, d.end_line - d.start_line + 1, children))
    return Table(
        columns=["file_path", "name", "kind", "start_line", "end_line", "line_count", "children"],
        rows=rows,
    )
