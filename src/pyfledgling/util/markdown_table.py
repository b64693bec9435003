from __future__ import annotations

from datetime import date, datetime
from typing import Any, Sequence

NEWLINE_PLACEHOLDER = "<br>"


def format_cell(value: Any) -> str:
    """Render one cell so that it can never break the row onto a second line."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    text = str(value)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = text.replace("\n", NEWLINE_PLACEHOLDER)
    return text.replace("|", "\\|")


def render_markdown_table(columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> str:
    """Render a pipe table: header, dash separator, one line per row.

    An empty result still has the header and separator, so data rows are always
    the pipe-prefixed lines minus two.
    """
    header = [format_cell(c) for c in columns] or [""]
    lines = [
        "| " + " | ".join(header) + " |",
        "|" + "|".join("---" for _ in header) + "|",
    ]
    for row in rows:
        cells = [format_cell(v) for v in row] or [""]
        lines.append("| " + " | ".join(cells) + " |")
    return "\n".join(lines)


def count_rows(text: str) -> int:
    lines = [ln for ln in text.strip().split("\n") if ln.strip().startswith("|")]
    return max(0, len(lines) - 2)
