from __future__ import annotations

import re

from ..engine.table import Table
from ..util.fs import SandboxConfig

_RANGE_RE = re.compile(r"^(\d+)?\s*(?:-\s*(\d+)?)?$")
_CONTEXT_RE = re.compile(r"^(\d+)\s*\+/-\s*(\d+)$")


def parse_line_spec(spec: str | None, ctx: int = 0) -> list[tuple[int, int]] | None:
    """Turn ``"10"``, ``"1-5"``, ``"10 +/-2"`` or a comma list into inclusive ranges.

    ``None`` means the whole file. ``ctx`` widens every range on both sides.
    """
    if spec is None or not str(spec).strip():
        return None
    ranges: list[tuple[int, int]] = []
    for part in str(spec).split(","):
        part = part.strip()
        if not part:
            continue
        m = _CONTEXT_RE.match(part)
        if m:
            center, k = int(m.group(1)), int(m.group(2))
            start, end = center - k, center + k
        else:
            m = _RANGE_RE.match(part)
            if not m or (m.group(1) is None and m.group(2) is None):
                raise ValueError(f"Invalid line spec: {part!r}")
            start = int(m.group(1)) if m.group(1) else 1
            if "-" in part:
                end = int(m.group(2)) if m.group(2) else 10**9
            else:
                end = start
        if end < start:
            raise ValueError(f"Invalid line range: {part!r}")
        ranges.append((max(1, start - ctx), end + ctx))
    return ranges


def select_lines(
    lines: list[str],
    spec: str | None = None,
    ctx: int = 0,
    match: str | None = None,
) -> Table:
    ranges = parse_line_spec(spec, ctx)
    needle = match.lower() if match else None
    rows = []
    for n, text in enumerate(lines, start=1):
        if ranges is not None and not any(a <= n <= b for a, b in ranges):
            continue
        if needle is not None and needle not in text.lower():
            continue
        rows.append((n, text))
    return Table(columns=["line_number", "content"], rows=rows)


def read_source(
    sandbox: SandboxConfig,
    path: str,
    spec: str | None = None,
    ctx: int = 0,
    match: str | None = None,
) -> Table:
    return select_lines(sandbox.read_lines(path), spec, ctx, match)


def list_files(sandbox: SandboxConfig, pattern: str) -> Table:
    return Table(columns=["file_path"], rows=[(p,) for p in sandbox.glob(pattern)])

