from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from ..args import schema, text_arg
from ..base import QueryTool, ToolContext, ToolSpec
from ...engine.table import Table
from ...providers import code

_FILE_PATTERN = {"type": "string", "description": "Glob of source files, e.g. 'src/**/*.py'."}
_NAME_PATTERN = {"type": "string", "description": "Name filter with SQL LIKE wildcards ('%', '_')."}

@dataclass
class FindDefinitionsTool(QueryTool):
    spec: ToolSpec = ToolSpec(
        name="FindDefinitions",
        description="Find function, class and method definitions in source files, optionally filtered by name.",
        group="code",
        parameters=schema({"file_pattern": _FILE_PATTERN, "name_pattern": _NAME_PATTERN}, required=["file_pattern"]),
    )

    def run(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        pattern = ctx.sandbox.resolve(text_arg(args, "file_pattern", required=True))
        return code.find_definitions(ctx.sandbox, pattern, text_arg(args, "name_pattern"))

@dataclass
class FindCallsTool(QueryTool):
    spec: ToolSpec = ToolSpec(
        name="FindCalls",
        description="Find call sites in source files, optionally filtered by the called name.",
        group="code",
        parameters=schema({"file_pattern": _FILE_PATTERN, "name_pattern": _NAME_PATTERN}, required=["file_pattern"]),
    )

    def run(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        pattern = ctx.sandbox.resolve(text_arg(args, "file_pattern", required=True))
        return code.find_calls(ctx.sandbox, pattern, text_arg(args, "name_pattern"))

@dataclass
class FindImportsTool(QueryTool):
    spec: ToolSpec = ToolSpec(
        name="FindImports",
        description="List import statements in source files.",
        group="code",
        parameters=schema({"file_pattern": _FILE_PATTERN}, required=["file_pattern"]),
    )

    def run(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        pattern = ctx.sandbox.resolve(text_arg(args, "file_pattern", required=True))
        return code.find_imports(ctx.sandbox, pattern)

@dataclass
class CodeStructureTool(QueryTool):
    spec: ToolSpec = ToolSpec(
        name="CodeStructure",
        description="Top-level definitions per file with their size and number of nested definitions.",
        group="code",
        parameters=schema({"file_pattern": _FILE_PATTERN}, required=["file_pattern"]),
    )

    def run(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        pattern = ctx.sandbox.resolve(text_arg(args, "file_pattern", required=True))
        return code.code_structure(ctx.sandbox, pattern)
