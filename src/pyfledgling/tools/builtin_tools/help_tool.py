from __future__ import annotations
from dataclasses import dataclass

from ..args import schema
from ..base import SqlTool, ToolSpec

HELP_TABLE = "_help_sections"

# No section: the outline without content. A section: it and every section
# whose path runs through it, compared segment by segment.
HELP_SQL = f"""
SELECT section_id, title, level,
       CASE WHEN CAST($section AS VARCHAR) IS NULL THEN NULL ELSE content END AS content
FROM {HELP_TABLE}
WHERE CAST($section AS VARCHAR) IS NULL
   OR list_contains(string_split(ltrim(section_path, '/'), '/'), CAST($section AS VARCHAR))
ORDER BY start_line
"""

@dataclass
class HelpTool(SqlTool):
    spec: ToolSpec = ToolSpec(
        name="Help",
        description=(
            "Usage guide for these tools. Without 'section' returns the outline; "
            "with a section id returns that section and its subsections."
        ),
        group="help",
        parameters=schema({"section": {"type": "string", "description": "Section id from the outline."}}),
    )
    sql: str = HELP_SQL
