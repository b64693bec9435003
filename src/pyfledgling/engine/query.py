from __future__ import annotations

import os
import re
import threading
from typing import Any, Callable

import duckdb

from ..util.fs import ConfigurationLocked, FsError, PathNotFound, PermissionDenied, SandboxConfig
from .table import Table

_PARAM_RE = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)")
_LOCKED_MSG = "configuration has been locked"


class UpstreamQueryError(RuntimeError):
    """A bound query failed inside the engine or one of its providers."""


def template_params(sql: str) -> list[str]:
    """Named ``$param`` references in a SQL template, in first-seen order."""
    seen: list[str] = []
    for name in _PARAM_RE.findall(sql):
        if name not in seen:
            seen.append(name)
    return seen


def _sql_type(values: list[Any]) -> str:
    for v in values:
        if v is None:
            continue
        if isinstance(v, bool):
            return "BOOLEAN"
        if isinstance(v, int):
            return "BIGINT"
        if isinstance(v, float):
            return "DOUBLE"
        return "VARCHAR"
    return "VARCHAR"


def _quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _translate(e: duckdb.Error) -> FsError | UpstreamQueryError:
    msg = str(e)
    if isinstance(e, duckdb.PermissionException):
        return PermissionDenied(msg)
    if _LOCKED_MSG in msg:
        return ConfigurationLocked(msg)
    return UpstreamQueryError(msg)


class QueryEngine:
    """One DuckDB connection plus the provider call boundary for a session.

    Executions are serialized; callers that need parallelism open another session.
    """

    def __init__(self, sandbox: SandboxConfig, database: str = ":memory:"):
        self.sandbox = sandbox
        self._con = duckdb.connect(database)
        self._lock = threading.RLock()

    def close(self) -> None:
        with self._lock:
            self._con.close()

    def call(self, fn: Callable[..., Table], *args: Any, **kwargs: Any) -> Table:
        """Run a provider function; anything that is not a sandbox error becomes UpstreamQueryError."""
        with self._lock:
            try:
                return fn(*args, **kwargs)
            except (FsError, UpstreamQueryError):
                raise
            except duckdb.Error as e:
                raise _translate(e) from e
            except Exception as e:
                raise UpstreamQueryError(f"{type(e).__name__}: {e}") from e

    def execute_sql(self, sql: str, params: dict[str, Any] | None = None) -> Table:
        with self._lock:
            try:
                cur = self._con.execute(sql, params) if params else self._con.execute(sql)
                if cur.description is None:
                    return Table(columns=[])
                cols = [d[0] for d in cur.description]
                rows = [tuple(r) for r in cur.fetchall()]
            except duckdb.Error as e:
                raise _translate(e) from e
        return Table(columns=cols, rows=rows)

    def run_template(self, sql: str, args: dict[str, Any]) -> Table:
        """Execute a SQL template, binding every ``$name`` it references from ``args``."""
        missing = [p for p in template_params(sql) if p not in args]
        if missing:
            raise UpstreamQueryError(f"Parameter(s) never bound: {', '.join(missing)}")
        return self.execute_sql(sql, {p: args[p] for p in template_params(sql)} or None)

    def read_file(self, path: str, limit: int | None = None) -> Table:
        """Load a CSV/TSV, JSON/NDJSON or Parquet file through DuckDB's readers."""
        full = self.sandbox.check_path(path)
        if not os.path.isfile(full):
            raise PathNotFound(f"No such file: {path}")
        ext = os.path.splitext(full)[1].lower()
        with self._lock:
            try:
                if ext in (".json", ".jsonl", ".ndjson"):
                    rel = self._con.read_json(full)
                elif ext == ".parquet":
                    rel = self._con.read_parquet(full)
                else:
                    rel = self._con.read_csv(full)
                if limit is not None:
                    rel = rel.limit(limit)
                return Table(columns=list(rel.columns), rows=[tuple(r) for r in rel.fetchall()])
            except duckdb.Error as e:
                raise _translate(e) from e

    def materialize(self, name: str, table: Table) -> None:
        """Create (or replace) a table holding ``table``'s rows so SQL tools can query it."""
        types = [_sql_type(table.column(c)) for c in table.columns]
        cols_sql = ", ".join(f"{_quote_ident(c)} {t}" for c, t in zip(table.columns, types))
        rows = [
            tuple(str(v) if (t == "VARCHAR" and v is not None) else v for v, t in zip(r, types))
            for r in table.rows
        ]
        with self._lock:
            try:
                self._con.execute(f"CREATE OR REPLACE TABLE {_quote_ident(name)} ({cols_sql})")
                if rows:
                    marks = ", ".join("?" for _ in table.columns)
                    self._con.executemany(f"INSERT INTO {_quote_ident(name)} VALUES ({marks})", rows)
            except duckdb.Error as e:
                raise _translate(e) from e

    def set_option(self, name: str, value: Any) -> None:
        if self.sandbox.locked:
            raise ConfigurationLocked(f"Cannot change '{name}': the engine configuration has been locked")
        literal = "true" if value is True else "false" if value is False else f"'{value}'"
        self.execute_sql(f"SET {name} = {literal}")

    def apply_lockdown(self, root: str) -> None:
        escaped = root.replace("'", "''")
        self.execute_sql(f"SET allowed_directories = ['{escaped}']")
        self.execute_sql("SET enable_external_access = false")
        self.execute_sql("SET lock_configuration = true")
