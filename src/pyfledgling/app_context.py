from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config.loader import load_config
from .config.models import FledglingConfig
from .events.store import EventStore
from .mcp.server import McpServer
from .profiles.loader import apply_profile
from .profiles.models import Profile
from .profiles.registry import ProfileRegistry
from .tools.base import ToolContext
from .tools.registry import ToolRegistry

@dataclass
class AppContext:
    root: Path
    profile: Profile
    tools: ToolRegistry
    ctx: ToolContext
    config: FledglingConfig
    events: EventStore | None = None
    trace: bool = False

    def close(self) -> None:
        self.ctx.engine.close()

    def server(self) -> McpServer:
        return McpServer(self.tools, self.ctx, events=self.events, trace=self.trace)

    @staticmethod
    def from_profile(
        root: Path | None = None,
        profile_name: str | None = None,
        config_path: Optional[Path] = None,
        conversations: str | None = None,
        lockdown: bool | None = None,
        trace: bool = False,
        event_log: bool | Path | None = None,
    ) -> "AppContext":
        """Load config, pick the profile and build a ready-to-serve session.

        ``event_log`` may be a path, True for the default location, or None to
        follow the config file.
        """
        if root is not None:
            root = root.expanduser().resolve()
        config = load_config(root=root or Path.cwd(), explicit_path=config_path)
        profile = ProfileRegistry.from_defaults(config).get(profile_name)

        # an explicit root beats the profile's, which beats the working directory
        tools, ctx = apply_profile(
            profile,
            root=str(root) if root is not None else None,
            conversations=conversations or config.conversations,
            lockdown=lockdown,
        )

        if event_log is None:
            event_log = config.event_log
        events = None
        if isinstance(event_log, Path):
            events = EventStore.open(path=event_log)
        elif event_log:
            events = EventStore.open()

        return AppContext(
            root=Path(ctx.sandbox.session_root),
            profile=profile,
            tools=tools,
            ctx=ctx,
            config=config,
            events=events,
            trace=trace,
        )
