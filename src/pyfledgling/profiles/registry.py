from __future__ import annotations

from dataclasses import dataclass

from ..config.models import FledglingConfig, ProfileConfig
from ..tools.builtin import CORE_TOOL_NAMES, SQL_TOOL_NAMES
from .models import Profile

KNOWN_TOOLS = CORE_TOOL_NAMES + SQL_TOOL_NAMES


def _default_profiles() -> list[Profile]:
    return [
        Profile(
            name="core",
            description="Files, code, docs, git, conversations and help; no raw SQL.",
            tools=tuple(CORE_TOOL_NAMES),
        ),
        Profile(
            name="analyst",
            description="Everything in core plus query, describe and list_tables.",
            tools=tuple(CORE_TOOL_NAMES + SQL_TOOL_NAMES),
        ),
    ]


def _check_names(profile: str, names: list[str]) -> None:
    unknown = [n for n in names if n not in KNOWN_TOOLS]
    if unknown:
        raise ValueError(f"Profile '{profile}' names unknown tool(s): {', '.join(unknown)}")


@dataclass
class ProfileRegistry:
    _profiles: dict[str, Profile]
    default_profile: str = "analyst"

    @staticmethod
    def from_defaults(config: FledglingConfig | None = None) -> "ProfileRegistry":
        profiles = {p.name: p for p in _default_profiles()}
        default_profile = "analyst"
        if config is None:
            return ProfileRegistry(_profiles=profiles, default_profile=default_profile)

        default_profile = config.default_profile or default_profile
        resolving: list[str] = []

        def build(pc: ProfileConfig) -> Profile:
            if pc.name in resolving:
                chain = " -> ".join(resolving + [pc.name])
                raise ValueError(f"Profile inheritance cycle: {chain}")
            resolving.append(pc.name)
            try:
                base: Profile | None = None
                if pc.extends is not None:
                    if pc.extends in config.profiles and pc.extends != pc.name:
                        base = build(config.profiles[pc.extends])
                    elif pc.extends in profiles:
                        base = profiles[pc.extends]
                    else:
                        raise KeyError(f"Profile '{pc.name}' extends unknown profile '{pc.extends}'")
                if pc.tools is not None:
                    tools = list(pc.tools)
                else:
                    tools = list(base.tools) if base else list(CORE_TOOL_NAMES)
                _check_names(pc.name, tools + pc.exclude + list(pc.overrides))
                tools = [t for t in tools if t not in pc.exclude]
                missing = [t for t in pc.overrides if t not in tools]
                if missing:
                    raise ValueError(f"Profile '{pc.name}' overrides unpublished tool(s): {', '.join(missing)}")
                overrides = dict(base.overrides) if base else {}
                overrides.update(pc.overrides)
                return Profile(
                    name=pc.name,
                    description=pc.description or f"Custom profile: {pc.name}",
                    tools=tuple(tools),
                    lockdown=pc.lockdown if pc.lockdown is not None else (base.lockdown if base else True),
                    root=pc.root if pc.root is not None else (base.root if base else None),
                    overrides={k: v for k, v in overrides.items() if k in tools},
                )
            finally:
                resolving.pop()

        for name, pc in config.profiles.items():
            profiles[name] = build(pc)
        return ProfileRegistry(_profiles=profiles, default_profile=default_profile)

    def names(self) -> list[str]:
        return sorted(self._profiles.keys())

    def all(self) -> list[Profile]:
        return [self._profiles[n] for n in self.names()]

    def get(self, name: str | None = None) -> Profile:
        name = name or self.default_profile
        if name not in self._profiles:
            raise KeyError(f"Unknown profile '{name}'; known profiles: {', '.join(self.names())}")
        return self._profiles[name]
