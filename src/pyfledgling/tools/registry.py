from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ..engine.query import template_params
from .base import Tool, ToolSpec

class ToolNotFound(KeyError):
    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown tool: {self.name}"

class ToolDefinitionError(ValueError):
    pass

def validate_tool(tool: Tool) -> None:
    spec = tool.spec
    if not spec.name:
        raise ToolDefinitionError("Tool name must not be empty")
    if not spec.description or not spec.description.strip():
        raise ToolDefinitionError(f"{spec.name}: description must not be empty")
    schema = spec.parameters
    if not isinstance(schema, Mapping) or schema.get("type") != "object":
        raise ToolDefinitionError(f"{spec.name}: parameters must be a JSON schema of type 'object'")
    props = schema.get("properties", {})
    if not isinstance(props, Mapping):
        raise ToolDefinitionError(f"{spec.name}: 'properties' must be a mapping")
    for req in schema.get("required", []):
        if req not in props:
            raise ToolDefinitionError(f"{spec.name}: required parameter '{req}' is not a declared property")
    sql = getattr(tool, "sql", None)
    if sql is not None:
        for p in template_params(sql):
            if p not in props:
                raise ToolDefinitionError(f"{spec.name}: template references undeclared parameter '${p}'")

@dataclass
class ToolRegistry:
    """Tools by name in registration order, plus the subset the active profile publishes."""
    _tools: Dict[str, Tool] = field(default_factory=dict)
    _published: Optional[List[str]] = None
    _frozen: bool = False

    def register(self, tool: Tool) -> None:
        """Add or replace a tool; a replacement keeps the original listing position."""
        if self._frozen:
            raise RuntimeError(f"Registry is frozen; cannot register {tool.spec.name}")
        validate_tool(tool)
        self._tools[tool.spec.name] = tool

    def publish(self, names: Iterable[str]) -> None:
        if self._frozen:
            raise RuntimeError("Registry is frozen; cannot change the published tools")
        names = list(names)
        unknown = [n for n in names if n not in self._tools]
        if unknown:
            raise ToolNotFound(", ".join(unknown))
        self._published = names

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def is_published(self, name: str) -> bool:
        return name in self._tools and (self._published is None or name in self._published)

    def names(self, published: bool = True) -> List[str]:
        return [n for n in self._tools if not published or self.is_published(n)]

    def get(self, name: str) -> Tool:
        if not self.is_published(name):
            raise ToolNotFound(name)
        return self._tools[name]

    def get_optional(self, name: str) -> Optional[Tool]:
        """Return a published tool, otherwise None."""
        return self._tools[name] if self.is_published(name) else None

    def list_specs(self, published: bool = True) -> List[ToolSpec]:
        return [self._tools[n].spec for n in self.names(published)]
