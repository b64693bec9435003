from __future__ import annotations

from pathlib import Path
import json
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from datetime import datetime

from .app_context import AppContext
from .config.loader import load_config
from .events.store import EventStore
from .profiles.registry import ProfileRegistry
from .tools.registry import ToolNotFound


app = typer.Typer(add_completion=False, help="pyfledgling: read-only code, docs, git and conversation tools over MCP.")
console = Console()
err_console = Console(stderr=True)


def _resolve_root(root: Path | None) -> Path | None:
    if root is None:
        return None
    root = root.expanduser().resolve()
    if not root.is_dir():
        raise typer.BadParameter(f"--root must be an existing directory, got: {root}")
    return root


def _parse_kv(pairs: list[str]) -> dict[str, str]:
    out: dict[str, str] = {}
    for item in pairs:
        if "=" not in item:
            raise typer.BadParameter(f"Arguments must look like key=value, got: {item}")
        k, v = item.split("=", 1)
        out[k.strip()] = v
    return out


def _open(
    root: Path | None,
    profile: str | None,
    config: Path | None,
    conversations: str | None = None,
    no_lockdown: bool = False,
    trace: bool = False,
    event_log: bool | Path | None = None,
) -> AppContext:
    try:
        return AppContext.from_profile(
            root=_resolve_root(root),
            profile_name=profile,
            config_path=config,
            conversations=conversations,
            lockdown=False if no_lockdown else None,
            trace=trace,
            event_log=event_log,
        )
    except (KeyError, ValueError, FileNotFoundError) as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=2)


@app.command()
def serve(
    profile: str = typer.Option(None, "--profile", help="Profile name (core/analyst or custom). Default from config."),
    root: Path = typer.Option(None, "--root", help="Session root directory. Defaults to the profile root or cwd."),
    config: Path = typer.Option(None, "--config", help="Explicit YAML/JSON config path."),
    conversations: str = typer.Option(None, "--conversations", help="Glob of conversation JSONL logs."),
    no_lockdown: bool = typer.Option(False, "--no-lockdown", help="Do not restrict file access to the root."),
    trace: bool = typer.Option(False, "--trace", help="Log every tool call to stderr."),
    event_log: bool = typer.Option(False, "--event-log", help="Record tool calls in the audit log."),
):
    """Run the MCP server over stdio (newline-delimited JSON-RPC)."""
    actx = _open(root, profile, config, conversations, no_lockdown, trace, event_log or None)

    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column(justify="right", style="bold green")
    table.add_column(style="bright_cyan")
    table.add_row("root", str(actx.root))
    table.add_row("profile", actx.profile.name)
    table.add_row("tools", str(len(actx.tools.names())))
    table.add_row("lockdown", "on" if actx.ctx.sandbox.locked else "off")
    table.add_row("config", str(actx.config.loaded_from or "(none)"))
    if actx.events is not None:
        table.add_row("events", str(actx.events.path))
    err_console.print(Panel.fit(table, title="pyfledgling", border_style="cyan"))

    try:
        actx.server().serve()
    except KeyboardInterrupt:
        pass
    finally:
        actx.close()


@app.command()
def tools(
    profile: str = typer.Option(None, "--profile", help="Profile name."),
    root: Path = typer.Option(None, "--root", help="Session root directory."),
    config: Path = typer.Option(None, "--config", help="Explicit YAML/JSON config path."),
):
    """List the tools a profile publishes."""
    actx = _open(root, profile, config)
    try:
        table = Table(title=f"Tools ({actx.profile.name})")
        table.add_column("name", style="bold")
        table.add_column("parameters")
        table.add_column("description")
        for spec in actx.tools.list_specs():
            props = spec.parameters.get("properties", {})
            required = set(spec.parameters.get("required", []))
            params = ", ".join(f"{p}*" if p in required else p for p in props)
            table.add_row(spec.name, params, spec.description)
        console.print(table)
    finally:
        actx.close()


@app.command()
def call(
    tool: str = typer.Argument(..., help="Tool name, e.g. ReadLines."),
    args: list[str] = typer.Argument(None, help="Tool arguments as key=value pairs."),
    profile: str = typer.Option(None, "--profile", help="Profile name."),
    root: Path = typer.Option(None, "--root", help="Session root directory."),
    config: Path = typer.Option(None, "--config", help="Explicit YAML/JSON config path."),
    conversations: str = typer.Option(None, "--conversations", help="Glob of conversation JSONL logs."),
):
    """Run one tool in-process and print its markdown table."""
    arguments = _parse_kv(args or [])
    actx = _open(root, profile, config, conversations)
    try:
        res = actx.server().call_tool(tool, arguments)
    except ToolNotFound as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    finally:
        actx.close()
    typer.echo(res.content)
    if res.is_error:
        raise typer.Exit(code=1)


@app.command()
def profiles(
    root: Path = typer.Option(None, "--root", help="Project directory to read config from."),
    config: Path = typer.Option(None, "--config", help="Explicit YAML/JSON config path."),
):
    """List known profiles."""
    try:
        cfg = load_config(root=_resolve_root(root) or Path.cwd(), explicit_path=config)
        reg = ProfileRegistry.from_defaults(cfg)
    except (KeyError, ValueError, FileNotFoundError) as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=2)
    table = Table(title="Profiles")
    table.add_column("name", style="bold")
    table.add_column("lockdown")
    table.add_column("tools", justify="right")
    table.add_column("description")
    for p in reg.all():
        name = f"{p.name} (default)" if p.name == reg.default_profile else p.name
        table.add_row(name, "on" if p.lockdown else "off", str(len(p.tools)), p.description)
    console.print(table)


@app.command()
def events(
    file: Path = typer.Argument(..., help="Audit log (.jsonl) written by 'serve --event-log'."),
    tail: int = typer.Option(50, "--tail", help="Show last N events."),
):
    """Summarize a tool-call audit log."""
    es = EventStore(session_id=file.stem, path=file)
    evs = list(es.iter_events())
    calls = [e for e in evs if e.type == "tool_call"]
    errors = [e for e in calls if not e.data.get("ok")]
    freq: dict[str, int] = {}
    for e in calls:
        name = str(e.data.get("name"))
        freq[name] = freq.get(name, 0) + 1

    lines = [f"file: {es.path}", f"tool_calls: {len(calls)}  errors: {len(errors)}"]
    for name, c in sorted(freq.items(), key=lambda x: x[1], reverse=True):
        lines.append(f"  - {name}: {c}")
    console.print(Panel.fit("\n".join(lines), title="Events"))

    for e in (evs[-tail:] if tail > 0 else evs):
        ts = datetime.fromtimestamp(e.ts).strftime("%Y-%m-%d %H:%M:%S")
        console.print(f"[dim]{ts}[/dim] {e.type} {json.dumps(e.data, ensure_ascii=False)}")


if __name__ == "__main__":
    app()
