from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from ..args import schema, text_arg
from ..base import QueryTool, SqlTool, ToolContext, ToolSpec
from ...engine.table import Table

@dataclass
class QuerySqlTool(QueryTool):
    spec: ToolSpec = ToolSpec(
        name="query",
        description=(
            "Run a SQL query on the session's DuckDB database. "
            "File access is limited to the project root once the session is locked down."
        ),
        group="sql",
        parameters=schema({"sql": {"type": "string", "description": "SQL statement."}}, required=["sql"]),
    )

    def run(self, ctx: ToolContext, args: dict[str, Any]) -> Table:
        return ctx.engine.execute_sql(text_arg(args, "sql", required=True))

@dataclass
class DescribeTool(SqlTool):
    spec: ToolSpec = ToolSpec(
        name="describe",
        description="Columns of a table: name, type and nullability.",
        group="sql",
        parameters=schema({"table": {"type": "string", "description": "Table name."}}, required=["table"]),
    )
    sql: str = """
SELECT column_name, data_type AS column_type, is_nullable AS "null"
FROM information_schema.columns
WHERE table_name = CAST($table AS VARCHAR)
ORDER BY ordinal_position
"""

@dataclass
class ListTablesTool(SqlTool):
    spec: ToolSpec = ToolSpec(
        name="list_tables",
        description="Tables and views in the session database.",
        group="sql",
        parameters=schema({}),
    )
    sql: str = """
SELECT table_schema, table_name, table_type
FROM information_schema.tables
ORDER BY table_schema, table_name
"""
