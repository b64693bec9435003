from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Protocol

from ..engine.query import QueryEngine
from ..engine.table import Table
from ..providers.conversations import ConversationStore
from ..util.fs import SandboxConfig

@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    parameters: dict[str, Any]   # JSONSchema
    group: str                   # "files" | "code" | "docs" | "git" | "help" | "chat" | "sql"

class Tool(Protocol):
    spec: ToolSpec
    def execute(self, ctx: "ToolContext", args: dict[str, Any]) -> Table: ...

@dataclass
class ToolResult:
    content: str
    is_error: bool = False
    rows: int | None = None
    error_kind: str | None = None

@dataclass
class ToolContext:
    sandbox: SandboxConfig
    engine: QueryEngine
    # Loaded before lockdown; None when the profile has no conversation logs.
    conversations: ConversationStore | None = None

    @property
    def root(self) -> str:
        return self.sandbox.session_root

@dataclass
class SqlTool:
    """A tool whose body is a SQL template with ``$name`` parameters."""
    spec: ToolSpec
    sql: str

    def execute(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        return ctx.engine.run_template(self.sql, args)

@dataclass
class QueryTool:
    """A tool implemented in Python over the providers; subclasses define ``run``."""
    spec: ToolSpec

    def run(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        raise NotImplementedError

    def execute(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        return ctx.engine.call(self.run, ctx, args)
