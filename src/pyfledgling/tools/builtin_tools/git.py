from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from ..args import int_arg, schema, text_arg
from ..base import QueryTool, ToolContext, ToolSpec
from ...engine.table import Table
from ...providers import repo

_REPO = {"type": "string", "description": "Repository directory (default: the project root)."}
_FROM = {"type": "string", "description": "Base revision, e.g. 'HEAD~1'."}
_TO = {"type": "string", "description": "Target revision, e.g. 'HEAD'."}

def _repo(ctx: ToolContext, args: dict[str, Any]) -> str:
    return ctx.sandbox.resolve(text_arg(args, "repo")) or ctx.root

@dataclass
class GitChangesTool(QueryTool):
    spec: ToolSpec = ToolSpec(
        name="GitChanges",
        description="Most recent commits: short hash, author, ISO date and subject line.",
        group="git",
        parameters=schema({
            "count": {"type": "integer", "description": "Number of commits (default 10)."},
            "repo": _REPO,
        }),
    )

    def run(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        return repo.recent_changes(ctx.sandbox, _repo(ctx, args), int_arg(args, "count", 10))

@dataclass
class GitBranchesTool(QueryTool):
    spec: ToolSpec = ToolSpec(
        name="GitBranches",
        description="Local and remote branches with their head commit; marks the current branch.",
        group="git",
        parameters=schema({"repo": _REPO}),
    )

    def run(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        return repo.branch_list(ctx.sandbox, _repo(ctx, args))

@dataclass
class GitStatusTool(QueryTool):
    spec: ToolSpec = ToolSpec(
        name="GitStatus",
        description="Working tree changes: modified, added, deleted and untracked files.",
        group="git",
        parameters=schema({"repo": _REPO}),
    )

    def run(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        return repo.working_tree_status(ctx.sandbox, _repo(ctx, args))

@dataclass
class GitDiffSummaryTool(QueryTool):
    spec: ToolSpec = ToolSpec(
        name="GitDiffSummary",
        description="Files changed between two revisions with status and sizes before and after.",
        group="git",
        parameters=schema({"from_rev": _FROM, "to_rev": _TO, "repo": _REPO}, required=["from_rev", "to_rev"]),
    )

    def run(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        return repo.file_changes(
            ctx.sandbox,
            _repo(ctx, args),
            text_arg(args, "from_rev", required=True),
            text_arg(args, "to_rev", required=True),
        )

@dataclass
class GitDiffFileTool(QueryTool):
    spec: ToolSpec = ToolSpec(
        name="GitDiffFile",
        description="Line-level diff of one file between two revisions (ADDED, REMOVED, CONTEXT).",
        group="git",
        parameters=schema(
            {
                "file_path": {"type": "string", "description": "File path inside the repository."},
                "from_rev": _FROM,
                "to_rev": _TO,
                "repo": _REPO,
            },
            required=["file_path", "from_rev", "to_rev"],
        ),
    )

    def run(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        return repo.file_diff(
            ctx.sandbox,
            _repo(ctx, args),
            text_arg(args, "file_path", required=True),
            text_arg(args, "from_rev", required=True),
            text_arg(args, "to_rev", required=True),
        )
