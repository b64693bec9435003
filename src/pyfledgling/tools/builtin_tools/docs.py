from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from ..args import int_arg, schema, text_arg
from ..base import QueryTool, ToolContext, ToolSpec
from ...engine.table import Table
from ...providers import markdown

@dataclass
class MDOutlineTool(QueryTool):
    spec: ToolSpec = ToolSpec(
        name="MDOutline",
        description="Heading outline of markdown files: section ids, levels and line spans.",
        group="docs",
        parameters=schema(
            {
                "file_pattern": {"type": "string", "description": "Glob of markdown files, e.g. 'docs/**/*.md'."},
                "max_level": {"type": "integer", "description": "Deepest heading level to include (1-6)."},
            },
            required=["file_pattern"],
        ),
    )

    def run(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        pattern = ctx.sandbox.resolve(text_arg(args, "file_pattern", required=True))
        return markdown.doc_outline(ctx.sandbox, pattern, int_arg(args, "max_level"))

@dataclass
class MDSectionTool(QueryTool):
    spec: ToolSpec = ToolSpec(
        name="MDSection",
        description="Content of one markdown section (by the id MDOutline reports), including its subsections.",
        group="docs",
        parameters=schema(
            {
                "file_path": {"type": "string", "description": "Markdown file path."},
                "section_id": {"type": "string", "description": "Section id, e.g. 'installation'."},
            },
            required=["file_path", "section_id"],
        ),
    )

    def run(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        path = ctx.sandbox.resolve(text_arg(args, "file_path", required=True))
        return markdown.read_doc_section(ctx.sandbox, path, text_arg(args, "section_id", required=True))
