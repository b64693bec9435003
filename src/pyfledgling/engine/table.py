from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence


@dataclass
class Table:
    """Tabular result of a query: ordered column names and row tuples."""

    columns: list[str]
    rows: list[tuple[Any, ...]] = field(default_factory=list)

    @staticmethod
    def from_dicts(columns: Sequence[str], records: Iterable[dict[str, Any]]) -> "Table":
        cols = list(columns)
        return Table(columns=cols, rows=[tuple(r.get(c) for c in cols) for r in records])

    def __len__(self) -> int:
        return len(self.rows)

    def column(self, name: str) -> list[Any]:
        i = self.columns.index(name)
        return [r[i] for r in self.rows]

    def records(self) -> list[dict[str, Any]]:
        return [dict(zip(self.columns, r)) for r in self.rows]
