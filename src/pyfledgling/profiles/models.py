from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Profile:
    name: str
    description: str
    tools: tuple[str, ...]
    lockdown: bool = True
    root: str | None = None
    overrides: dict[str, str] = field(default_factory=dict)
