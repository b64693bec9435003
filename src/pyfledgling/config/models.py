from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


def _str_list(v: Any) -> list[str] | None:
    if v is None:
        return None
    if not isinstance(v, list) or not all(isinstance(x, str) for x in v):
        return None
    return list(v)


@dataclass
class ProfileConfig:
    name: str
    description: str = ""
    extends: str | None = None
    tools: list[str] | None = None
    exclude: list[str] = field(default_factory=list)
    root: str | None = None
    lockdown: bool | None = None
    overrides: dict[str, str] = field(default_factory=dict)

    @staticmethod
    def from_obj(name: str, obj: Any) -> "ProfileConfig | None":
        if not isinstance(obj, dict):
            return None
        desc = obj.get("description", "")
        extends = obj.get("extends")
        root = obj.get("root")
        lockdown = obj.get("lockdown")
        if not isinstance(desc, str):
            return None
        if extends is not None and not isinstance(extends, str):
            return None
        if root is not None and not isinstance(root, str):
            return None
        if lockdown is not None and not isinstance(lockdown, bool):
            return None
        overrides = obj.get("overrides", {})
        if not isinstance(overrides, dict):
            overrides = {}
        return ProfileConfig(
            name=name,
            description=desc,
            extends=extends,
            tools=_str_list(obj.get("tools")),
            exclude=_str_list(obj.get("exclude")) or [],
            root=root,
            lockdown=lockdown,
            overrides={str(k): str(v) for k, v in overrides.items()},
        )


@dataclass
class FledglingConfig:
    """Settings loaded from YAML or JSON files."""

    default_profile: str = "analyst"
    conversations: str | None = None
    event_log: bool = False
    profiles: dict[str, ProfileConfig] = field(default_factory=dict)

    loaded_from: Path | None = None
