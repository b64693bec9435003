from __future__ import annotations

import json
import sys
import time
from typing import IO, Any, TextIO

from rich.console import Console

from ..engine.query import UpstreamQueryError
from ..events.store import EventStore
from ..tools.base import Tool, ToolContext, ToolResult
from ..tools.registry import ToolNotFound, ToolRegistry
from ..util.fs import FsError
from ..util.markdown_table import render_markdown_table
from .models import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    Request,
    RpcError,
    reply,
    text_content,
)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "pyfledgling"
SERVER_VERSION = "0.1.0"

# stdout carries the protocol.
console = Console(stderr=True)


def error_kind(exc: BaseException) -> str:
    if isinstance(exc, (FsError, UpstreamQueryError)):
        return type(exc).__name__
    return "UpstreamQueryError"


def normalize_arguments(tool: Tool, arguments: dict[str, Any]) -> dict[str, Any]:
    """Caller arguments plus ``None`` for every declared property the caller left out."""
    args = dict(arguments)
    for prop in tool.spec.parameters.get("properties", {}):
        args.setdefault(prop, None)
    return args


class McpServer:
    """JSON-RPC dispatcher over one tool registry and one session context.

    ``handle_payload`` is the whole protocol; ``serve`` only moves lines
    between a stream pair and it.
    """

    def __init__(
        self,
        tools: ToolRegistry,
        ctx: ToolContext,
        *,
        events: EventStore | None = None,
        trace: bool = False,
    ):
        self.tools = tools
        self.ctx = ctx
        self.events = events
        self.trace = trace

    def list_tools(self) -> list[dict[str, Any]]:
        return [
            {"name": s.name, "description": s.description, "inputSchema": s.parameters}
            for s in self.tools.list_specs()
        ]

    def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> ToolResult:
        """Run one published tool; raises ToolNotFound, every later failure becomes an error result."""
        tool = self.tools.get(name)
        args = normalize_arguments(tool, arguments or {})
        t0 = time.perf_counter()
        try:
            table = tool.execute(self.ctx, args)
            res = ToolResult(render_markdown_table(table.columns, table.rows), rows=len(table))
        except Exception as e:
            kind = error_kind(e)
            msg = str(e) if isinstance(e, (FsError, UpstreamQueryError)) else f"{type(e).__name__}: {e}"
            res = ToolResult(f"{kind}: {msg}", is_error=True, error_kind=kind)
        ms = int((time.perf_counter() - t0) * 1000)
        if self.trace:
            outcome = f"[red]{res.error_kind}[/red]" if res.is_error else f"{res.rows} row(s)"
            console.print(f"[dim]tool[/dim] {name} {outcome} [dim]{ms}ms[/dim]")
        if self.events is not None:
            self.events.append(
                "tool_call",
                {"name": name, "ok": not res.is_error, "rows": res.rows, "error_kind": res.error_kind, "ms": ms},
            )
        return res

    def _dispatch(self, req: Request) -> Any:
        params = req.params if isinstance(req.params, dict) else {}
        if req.method == "initialize":
            return {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {"tools": {"listChanged": False}},
                "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
            }
        if req.method == "ping":
            return {}
        if req.method == "notifications/initialized":
            return None
        if req.method == "tools/list":
            return {"tools": self.list_tools()}
        if req.method == "tools/call":
            name = params.get("name")
            if not isinstance(name, str):
                raise RpcError(INVALID_PARAMS, "tools/call requires a tool name")
            arguments = params.get("arguments")
            if arguments is None:
                arguments = {}
            if not isinstance(arguments, dict):
                raise RpcError(INVALID_PARAMS, "tools/call arguments must be an object")
            try:
                res = self.call_tool(name, arguments)
            except ToolNotFound as e:
                raise RpcError(INVALID_PARAMS, str(e), kind="ToolNotFound") from e
            return text_content(res.content, res.is_error)
        raise RpcError(METHOD_NOT_FOUND, f"Unknown method: {req.method}")

    def handle_payload(self, obj: Any) -> dict[str, Any] | None:
        """Answer one decoded request; ``None`` for notifications."""
        rid = obj.get("id") if isinstance(obj, dict) else None
        try:
            req = Request.from_obj(obj)
        except RpcError as e:
            return reply(rid, error=e)
        try:
            result = self._dispatch(req)
        except RpcError as e:
            return None if req.is_notification else reply(req.id, error=e)
        except Exception as e:
            console.print(f"[red]internal error[/red] {req.method}: {type(e).__name__}: {e}")
            if req.is_notification:
                return None
            return reply(req.id, error=RpcError(INTERNAL_ERROR, f"Internal error: {type(e).__name__}: {e}"))
        if req.is_notification:
            return None
        return reply(req.id, result)

    def handle_json_line(self, line: str) -> dict[str, Any] | None:
        try:
            obj = json.loads(line)
        except json.JSONDecodeError as e:
            return reply(None, error=RpcError(PARSE_ERROR, f"Parse error: {e.msg}"))
        return self.handle_payload(obj)

    def serve(self, stdin: IO[Any] | None = None, stdout: TextIO | None = None) -> None:
        """Answer one request per line until ``stdin`` ends.

        Lines are read as bytes and decoded one at a time; a line that is not
        UTF-8 gets a parse error and the loop goes on.
        """
        stdin = stdin or sys.stdin.buffer
        stdout = stdout or sys.stdout
        for raw in stdin:
            if isinstance(raw, bytes):
                try:
                    line = raw.decode("utf-8")
                except UnicodeDecodeError as e:
                    self._write(stdout, reply(None, error=RpcError(PARSE_ERROR, f"Parse error: {e.reason}")))
                    continue
            else:
                line = raw
            line = line.strip()
            if not line:
                continue
            msg = self.handle_json_line(line)
            if msg is not None:
                self._write(stdout, msg)

    @staticmethod
    def _write(stdout: TextIO, msg: dict[str, Any]) -> None:
        stdout.write(json.dumps(msg, ensure_ascii=False, default=str) + "\n")
        stdout.flush()
