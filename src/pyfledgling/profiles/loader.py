from __future__ import annotations

import dataclasses
import os
from pathlib import Path

from rich.console import Console

from ..config.models import FledglingConfig
from ..engine.query import QueryEngine
from ..providers import markdown
from ..providers.conversations import ConversationStore
from ..tools.base import ToolContext
from ..tools.builtin import register_builtin_tools
from ..tools.builtin_tools.help_tool import HELP_TABLE
from ..tools.registry import ToolRegistry
from ..util.fs import SandboxConfig
from .models import Profile
from .registry import ProfileRegistry

console = Console(stderr=True)

HELP_PATH = Path(__file__).resolve().parent.parent / "help" / "SKILL.md"
CHAT_TOOLS = ("ChatSessions", "ChatSearch", "ChatToolUsage", "ChatDetail")


def load_profile(name: str | None = None, config: FledglingConfig | None = None) -> Profile:
    return ProfileRegistry.from_defaults(config).get(name)


def apply_profile(
    profile: Profile,
    *,
    root: str | None = None,
    conversations: str | None = None,
    lockdown: bool | None = None,
    help_path: Path = HELP_PATH,
) -> tuple[ToolRegistry, ToolContext]:
    """Build a locked-down session for ``profile``.

    Order matters: tools are registered and overridden first, then the root is
    set, then everything that needs broad file access (help guide, conversation
    logs) is loaded, and only then are the sandbox and the engine locked and the
    registry frozen.
    """
    registry = ToolRegistry()
    register_builtin_tools(registry)
    for name, description in profile.overrides.items():
        tool = registry.get(name)
        registry.register(dataclasses.replace(tool, spec=dataclasses.replace(tool.spec, description=description)))
    registry.publish(profile.tools)

    session_root = os.path.abspath(os.path.expanduser(root or profile.root or os.getcwd()))
    sandbox = SandboxConfig(session_root=session_root)
    engine = QueryEngine(sandbox)

    engine.materialize(HELP_TABLE, markdown.read_sections(sandbox, str(help_path)))
    store: ConversationStore | None = None
    if any(registry.is_published(n) for n in CHAT_TOOLS):
        store = ConversationStore.load(sandbox, conversations)
        engine.materialize("chat_messages", store.messages_table())
        engine.materialize("chat_tool_calls", store.tool_calls_table())

    if profile.lockdown if lockdown is None else lockdown:
        sandbox.apply_lockdown(session_root)
        engine.apply_lockdown(session_root)
    else:
        console.print(f"[yellow]Profile '{profile.name}' runs without filesystem lockdown[/yellow]")

    registry.freeze()
    return registry, ToolContext(sandbox=sandbox, engine=engine, conversations=store)
