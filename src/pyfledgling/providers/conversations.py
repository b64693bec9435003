from __future__ import annotations

import json
import os
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from rich.console import Console

from ..engine.table import Table
from ..util.fs import SandboxConfig

console = Console(stderr=True)

DEFAULT_PATTERN = "~/.claude/projects/*/*.jsonl"
EXCERPT_CHARS = 160


@dataclass
class ToolUse:
    tool_use_id: str | None
    name: str
    input: dict[str, Any]


@dataclass
class Record:
    """One line of a conversation log, flattened."""

    uuid: str | None
    session_id: str
    project: str
    slug: str | None
    record_type: str
    role: str | None
    timestamp: datetime | None
    text: str
    model: str | None = None
    tool_uses: list[ToolUse] = field(default_factory=list)

    @property
    def is_message(self) -> bool:
        return self.record_type in ("user", "assistant")


def _parse_ts(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _flatten(obj: dict[str, Any], project: str) -> Record | None:
    session_id = obj.get("sessionId")
    if not isinstance(session_id, str):
        return None
    msg = obj.get("message") if isinstance(obj.get("message"), dict) else {}
    content = msg.get("content")
    texts: list[str] = []
    uses: list[ToolUse] = []
    if isinstance(content, str):
        texts.append(content)
    elif isinstance(content, list):
        for block in content:
            if not isinstance(block, dict):
                continue
            kind = block.get("type")
            if kind == "text" and isinstance(block.get("text"), str):
                texts.append(block["text"])
            elif kind == "tool_use":
                inp = block.get("input") if isinstance(block.get("input"), dict) else {}
                uses.append(ToolUse(block.get("id"), str(block.get("name") or ""), inp))
    return Record(
        uuid=obj.get("uuid"),
        session_id=session_id,
        project=project,
        slug=obj.get("slug"),
        record_type=str(obj.get("type") or ""),
        role=msg.get("role"),
        timestamp=_parse_ts(obj.get("timestamp")),
        text="\n".join(texts),
        model=msg.get("model"),
        tool_uses=uses,
    )


def _excerpt(text: str, needle: str) -> str:
    pos = text.lower().find(needle.lower())
    start = max(0, pos - EXCERPT_CHARS // 4)
    snippet = text[start:start + EXCERPT_CHARS]
    if start > 0:
        snippet = "..." + snippet
    if start + EXCERPT_CHARS < len(text):
        snippet += "..."
    return snippet


def _duration(started: datetime | None, ended: datetime | None) -> str | None:
    if started is None or ended is None:
        return None
    return str(ended - started)


class ConversationStore:
    """Conversation logs read once at startup, before the sandbox is locked.

    The project of a record is the name of the directory holding its log file.
    """

    def __init__(self, records: Iterable[Record] = ()) -> None:
        self.records: list[Record] = list(records)

    @classmethod
    def load(cls, sandbox: SandboxConfig, pattern: str | None = None) -> "ConversationStore":
        pattern = os.path.expanduser(pattern or DEFAULT_PATTERN)
        records: list[Record] = []
        for path in sandbox.glob(pattern):
            project = os.path.basename(os.path.dirname(path))
            bad = 0
            for line in sandbox.read_lines(path):
                line = line.strip()
                if not line:
                    continue
                try:
                    obj = json.loads(line)
                except json.JSONDecodeError:
                    bad += 1
                    continue
                if isinstance(obj, dict):
                    rec = _flatten(obj, project)
                    if rec is not None:
                        records.append(rec)
            if bad:
                console.print(f"[yellow]Skipped {bad} malformed line(s) in {path}[/yellow]")
        return cls(records)

    def __len__(self) -> int:
        return len(self.records)

    def _select(
        self,
        *,
        session_id: str | None = None,
        project: str | None = None,
        days: int | None = None,
        now: datetime | None = None,
    ) -> list[Record]:
        cutoff = None
        if days is not None:
            cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)
        needle = project.lower() if project else None
        out = []
        for rec in self.records:
            if session_id is not None and rec.session_id != session_id:
                continue
            if needle is not None and needle not in rec.project.lower():
                continue
            if cutoff is not None and (rec.timestamp is None or rec.timestamp < cutoff):
                continue
            out.append(rec)
        return out

    def _by_session(self, records: list[Record]) -> dict[str, list[Record]]:
        groups: dict[str, list[Record]] = defaultdict(list)
        for rec in records:
            groups[rec.session_id].append(rec)
        return groups

    def sessions(
        self,
        project: str | None = None,
        days: int | None = None,
        limit: int = 20,
        now: datetime | None = None,
    ) -> Table:
        rows = []
        for sid, recs in self._by_session(self._select(project=project, days=days, now=now)).items():
            stamps = [r.timestamp for r in recs if r.timestamp is not None]
            started = min(stamps) if stamps else None
            ended = max(stamps) if stamps else None
            slug = next((r.slug for r in recs if r.slug), None)
            rows.append((
                sid,
                recs[0].project,
                slug,
                started.isoformat() if started else None,
                _duration(started, ended),
                sum(1 for r in recs if r.is_message),
                sum(len(r.tool_uses) for r in recs),
            ))
        rows.sort(key=lambda r: r[3] or "", reverse=True)
        return Table(
            columns=["session_id", "project", "slug", "started_at", "duration", "messages", "tool_calls"],
            rows=rows[:limit],
        )

    def search(
        self,
        query: str,
        role: str | None = None,
        project: str | None = None,
        days: int | None = None,
        limit: int = 20,
        now: datetime | None = None,
    ) -> Table:
        needle = query.lower()
        hits = []
        for rec in self._select(project=project, days=days, now=now):
            if not rec.is_message or not rec.text:
                continue
            if role is not None and rec.role != role:
                continue
            if needle not in rec.text.lower():
                continue
            hits.append(rec)
        hits.sort(key=lambda r: r.timestamp or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
        rows = [
            (r.session_id, r.role, r.timestamp.isoformat() if r.timestamp else None, _excerpt(r.text, query))
            for r in hits[:limit]
        ]
        return Table(columns=["session_id", "role", "timestamp", "excerpt"], rows=rows)

    def tool_usage(
        self,
        session_id: str | None = None,
        project: str | None = None,
        days: int | None = None,
        limit: int = 20,
        now: datetime | None = None,
    ) -> Table:
        calls: dict[str, int] = defaultdict(int)
        sessions: dict[str, set[str]] = defaultdict(set)
        for rec in self._select(session_id=session_id, project=project, days=days, now=now):
            for use in rec.tool_uses:
                calls[use.name] += 1
                sessions[use.name].add(rec.session_id)
        rows = sorted(((n, c, len(sessions[n])) for n, c in calls.items()), key=lambda r: (-r[1], r[0]))
        return Table(columns=["tool_name", "calls", "sessions"], rows=rows[:limit])

    def detail(self, session_id: str) -> Table:
        """Session metadata repeated on one row per tool used; empty for an unknown session."""
        recs = self._select(session_id=session_id)
        columns = ["session_id", "slug", "project", "started_at", "duration", "tool_name", "calls"]
        if not recs:
            return Table(columns=columns, rows=[])
        stamps = [r.timestamp for r in recs if r.timestamp is not None]
        started = min(stamps) if stamps else None
        ended = max(stamps) if stamps else None
        head = (
            session_id,
            next((r.slug for r in recs if r.slug), None),
            recs[0].project,
            started.isoformat() if started else None,
            _duration(started, ended),
        )
        counts: dict[str, int] = defaultdict(int)
        for rec in recs:
            for use in rec.tool_uses:
                counts[use.name] += 1
        if not counts:
            return Table(columns=columns, rows=[head + (None, 0)])
        rows = [head + (name, n) for name, n in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))]
        return Table(columns=columns, rows=rows)

    def messages_table(self) -> Table:
        """User and assistant messages, for SQL access as ``chat_messages``."""
        rows = [
            (r.uuid, r.session_id, r.project, r.slug, r.role, r.timestamp, r.model, r.text)
            for r in self.records
            if r.is_message
        ]
        return Table(
            columns=["message_id", "session_id", "project", "slug", "role", "timestamp", "model", "content"],
            rows=rows,
        )

    def tool_calls_table(self) -> Table:
        rows = []
        for r in self.records:
            for use in r.tool_uses:
                rows.append((
                    use.tool_use_id,
                    r.session_id,
                    use.name,
                    r.timestamp,
                    use.input.get("command") if use.name == "Bash" else None,
                    use.input.get("file_path"),
                    json.dumps(use.input, sort_keys=True),
                ))
        return Table(
            columns=["tool_use_id", "session_id", "tool_name", "timestamp", "bash_command", "file_path", "input"],
            rows=rows,
        )
