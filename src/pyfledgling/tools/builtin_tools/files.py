from __future__ import annotations
import fnmatch
from dataclasses import dataclass
from typing import Any

from ..args import int_arg, schema, text_arg
from ..base import QueryTool, ToolContext, ToolSpec
from ...engine.table import Table
from ...providers import repo, source
from ...util.patterns import like_match

@dataclass
class ListFilesTool(QueryTool):
    spec: ToolSpec = ToolSpec(
        name="ListFiles",
        description=(
            "List files matching a glob pattern ('**' recurses). "
            "With 'commit', list files tracked in git at that revision instead of the working tree."
        ),
        group="files",
        parameters=schema(
            {
                "pattern": {"type": "string", "description": "Glob pattern, e.g. 'src/**/*.py'."},
                "commit": {"type": "string", "description": "Git revision (e.g. 'HEAD', 'HEAD~1', a branch)."},
            },
            required=["pattern"],
        ),
    )

    def run(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        pattern = text_arg(args, "pattern", required=True)
        commit = text_arg(args, "commit")
        if commit is None:
            return source.list_files(ctx.sandbox, ctx.sandbox.resolve(pattern))
        tracked = repo.repo_files(ctx.sandbox, ctx.root, commit)
        # repository paths accept LIKE wildcards as well as globs
        if "%" in pattern:
            keep = [r for r in tracked.rows if like_match(r[0], pattern)]
        else:
            keep = [r for r in tracked.rows if fnmatch.fnmatchcase(r[0], pattern)]
        return Table(columns=tracked.columns, rows=keep)

@dataclass
class ReadLinesTool(QueryTool):
    spec: ToolSpec = ToolSpec(
        name="ReadLines",
        description=(
            "Read lines of a text file with line numbers. "
            "'lines' selects '10', '5-20', '42 +/-3' or a comma list; 'ctx' adds context lines around each range; "
            "'match' keeps lines containing the text (case-insensitive). "
            "With 'commit', read the file as of that git revision."
        ),
        group="files",
        parameters=schema(
            {
                "file_path": {"type": "string", "description": "File path, relative to the project root or absolute."},
                "lines": {"type": "string", "description": "Line selection, e.g. '1-5'."},
                "ctx": {"type": "integer", "description": "Context lines around each selected range."},
                "match": {"type": "string", "description": "Only lines containing this text."},
                "commit": {"type": "string", "description": "Git revision to read from."},
            },
            required=["file_path"],
        ),
    )

    def run(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        path = ctx.sandbox.resolve(text_arg(args, "file_path", required=True))
        spec = text_arg(args, "lines")
        context = int_arg(args, "ctx", 0)
        match = text_arg(args, "match")
        commit = text_arg(args, "commit")
        if commit is None:
            return source.read_source(ctx.sandbox, path, spec, context, match)
        text = repo.file_at_version(ctx.sandbox, ctx.root, path, commit)
        return source.select_lines(text.splitlines(), spec, context, match)

@dataclass
class ReadAsTableTool(QueryTool):
    spec: ToolSpec = ToolSpec(
        name="ReadAsTable",
        description="Read a CSV/TSV, JSON/NDJSON or Parquet file as a table (first 'limit' rows, default 100).",
        group="files",
        parameters=schema(
            {
                "file_path": {"type": "string", "description": "Data file path."},
                "limit": {"type": "integer", "description": "Maximum rows (default 100)."},
            },
            required=["file_path"],
        ),
    )

    def run(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        path = ctx.sandbox.resolve(text_arg(args, "file_path", required=True))
        return ctx.engine.read_file(path, int_arg(args, "limit", 100))
