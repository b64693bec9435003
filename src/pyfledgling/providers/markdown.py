from __future__ import annotations

import re
from dataclasses import dataclass

from ..engine.table import Table
from ..util.fs import SandboxConfig

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+?)(?:\s+#+)?\s*$")
_FENCE_RE = re.compile(r"^(`{3,}|~{3,})")

SECTION_COLUMNS = ["section_id", "section_path", "level", "title", "content", "start_line", "end_line"]


@dataclass
class Section:
    section_id: str
    section_path: str
    level: int
    title: str
    content: str
    start_line: int
    end_line: int

    def row(self) -> tuple:
        return (self.section_id, self.section_path, self.level, self.title, self.content, self.start_line, self.end_line)


def slugify(title: str) -> str:
    s = title.strip().lower()
    s = re.sub(r"[^\w\s-]", "", s)
    s = re.sub(r"[\s_]+", "-", s)
    return re.sub(r"-{2,}", "-", s).strip("-")


def _headings(lines: list[str]) -> list[tuple[int, int, str]]:
    out = []
    fence: str | None = None
    for n, line in enumerate(lines, start=1):
        m = _FENCE_RE.match(line.strip())
        if m:
            marker = m.group(1)
            if fence is None:
                fence = marker[0] * 3
            elif marker.startswith(fence):
                fence = None
            continue
        if fence is not None:
            continue
        h = _HEADING_RE.match(line)
        if h:
            out.append((n, len(h.group(1)), h.group(2).strip()))
    return out


def parse_sections(text: str) -> list[Section]:
    """Split a markdown document into heading sections in document order.

    A section runs from its heading to the line before the next heading of the
    same or a higher level, so its content includes its subsections.
    """
    lines = text.splitlines()
    heads = _headings(lines)
    seen: dict[str, int] = {}
    stack: list[tuple[int, str]] = []
    out: list[Section] = []
    for i, (start, level, title) in enumerate(heads):
        end = len(lines)
        for nxt_start, nxt_level, _ in heads[i + 1:]:
            if nxt_level <= level:
                end = nxt_start - 1
                break
        base = slugify(title) or "section"
        sid = base if base not in seen else f"{base}-{seen[base]}"
        seen[base] = seen.get(base, 0) + 1
        while stack and stack[-1][0] >= level:
            stack.pop()
        stack.append((level, sid))
        path = "/" + "/".join(s for _, s in stack)
        content = "\n".join(lines[start - 1:end]).rstrip()
        out.append(Section(sid, path, level, title, content, start, end))
    return out


def _matches_section(section: Section, section_id: str) -> bool:
    return section.section_id == section_id or f"/{section_id}/" in section.section_path + "/"


def read_sections(sandbox: SandboxConfig, path: str) -> Table:
    return Table(columns=SECTION_COLUMNS, rows=[s.row() for s in parse_sections(sandbox.read_text(path))])


def doc_outline(sandbox: SandboxConfig, file_pattern: str, max_level: int | None = None) -> Table:
    rows = []
    for path in sandbox.glob(file_pattern):
        for s in parse_sections(sandbox.read_text(path)):
            if max_level is not None and s.level > max_level:
                continue
            rows.append((path, s.section_id, s.level, s.title, s.start_line, s.end_line))
    return Table(columns=["file_path", "section_id", "level", "title", "start_line", "end_line"], rows=rows)


def read_doc_section(sandbox: SandboxConfig, path: str, section_id: str) -> Table:
    """The section with ``section_id`` plus its subsections; empty when there is no such id."""
    rows = [
        (s.section_id, s.title, s.level, s.content, s.start_line, s.end_line)
        for s in parse_sections(sandbox.read_text(path))
        if _matches_section(s, section_id)
    ]
    return Table(columns=["section_id", "title", "level", "content", "start_line", "end_line"], rows=rows)
