from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from ..args import int_arg, schema, text_arg
from ..base import QueryTool, ToolContext, ToolSpec
from ...engine.table import Table
from ...providers.conversations import ConversationStore

_PROJECT = {"type": "string", "description": "Project directory name (substring match)."}
_DAYS = {"type": "integer", "description": "Only the last N days."}
_LIMIT = {"type": "integer", "description": "Maximum rows (default 20)."}

def _store(ctx: ToolContext) -> ConversationStore:
    return ctx.conversations if ctx.conversations is not None else ConversationStore()

@dataclass
class ChatSessionsTool(QueryTool):
    spec: ToolSpec = ToolSpec(
        name="ChatSessions",
        description="Recorded assistant sessions, newest first: slug, start, duration, message and tool-call counts.",
        group="chat",
        parameters=schema({"project": _PROJECT, "days": _DAYS, "limit": _LIMIT}),
    )

    def run(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        return _store(ctx).sessions(
            project=text_arg(args, "project"),
            days=int_arg(args, "days"),
            limit=int_arg(args, "limit", 20),
        )

@dataclass
class ChatSearchTool(QueryTool):
    spec: ToolSpec = ToolSpec(
        name="ChatSearch",
        description="Search user and assistant message text (case-insensitive) across sessions.",
        group="chat",
        parameters=schema(
            {
                "query": {"type": "string", "description": "Text to look for."},
                "role": {"type": "string", "enum": ["user", "assistant"], "description": "Only this role."},
                "project": _PROJECT,
                "days": _DAYS,
                "limit": _LIMIT,
            },
            required=["query"],
        ),
    )

    def run(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        return _store(ctx).search(
            text_arg(args, "query", required=True),
            role=text_arg(args, "role"),
            project=text_arg(args, "project"),
            days=int_arg(args, "days"),
            limit=int_arg(args, "limit", 20),
        )

@dataclass
class ChatToolUsageTool(QueryTool):
    spec: ToolSpec = ToolSpec(
        name="ChatToolUsage",
        description="How often each tool was called, and in how many sessions.",
        group="chat",
        parameters=schema({
            "session_id": {"type": "string", "description": "Only this session."},
            "project": _PROJECT,
            "days": _DAYS,
            "limit": _LIMIT,
        }),
    )

    def run(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        return _store(ctx).tool_usage(
            session_id=text_arg(args, "session_id"),
            project=text_arg(args, "project"),
            days=int_arg(args, "days"),
            limit=int_arg(args, "limit", 20),
        )

@dataclass
class ChatDetailTool(QueryTool):
    spec: ToolSpec = ToolSpec(
        name="ChatDetail",
        description="One session's metadata with a per-tool call breakdown.",
        group="chat",
        parameters=schema(
            {"session_id": {"type": "string", "description": "Session id from ChatSessions."}},
            required=["session_id"],
        ),
    )

    def run(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        return _store(ctx).detail(text_arg(args, "session_id", required=True))
