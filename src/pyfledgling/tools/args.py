from __future__ import annotations

from typing import Any


def text_arg(args: dict[str, Any], name: str, required: bool = False) -> str | None:
    v = args.get(name)
    if v is None or (isinstance(v, str) and v == ""):
        if required:
            raise ValueError(f"Missing required argument '{name}'")
        return None
    return str(v)


def int_arg(args: dict[str, Any], name: str, default: int | None = None) -> int | None:
    """Integers arrive as numbers or numeric strings (``"5"``)."""
    v = args.get(name)
    if v is None or (isinstance(v, str) and not v.strip()):
        return default
    if isinstance(v, bool):
        raise ValueError(f"Argument '{name}' must be an integer, got {v!r}")
    try:
        return int(v)
    except (TypeError, ValueError):
        raise ValueError(f"Argument '{name}' must be an integer, got {v!r}") from None


def schema(properties: dict[str, dict[str, Any]], required: list[str] | None = None) -> dict[str, Any]:
    return {"type": "object", "properties": properties, "required": list(required or [])}
