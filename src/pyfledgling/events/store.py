from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from platformdirs import user_data_dir

APP_NAME = "pyfledgling"


def _events_dir() -> Path:
    d = Path(user_data_dir(APP_NAME)) / "events"
    d.mkdir(parents=True, exist_ok=True)
    return d


def new_session_id() -> str:
    return time.strftime("%Y%m%d-%H%M%S") + "-" + uuid.uuid4().hex[:6]


@dataclass
class Event:
    ts: float
    type: str
    data: dict[str, Any]


@dataclass
class EventStore:
    """Append-only jsonl audit log of one server session's tool calls.

    Reading skips lines that do not parse, so a log cut short by a crash stays usable.
    """

    session_id: str
    path: Path

    @staticmethod
    def open(session_id: str | None = None, path: Path | None = None) -> "EventStore":
        session_id = session_id or new_session_id()
        if path is None:
            path = _events_dir() / f"{session_id}.jsonl"
        else:
            path = path.expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
        return EventStore(session_id=session_id, path=path)

    def append(self, event_type: str, data: dict[str, Any]) -> None:
        ev = Event(ts=time.time(), type=event_type, data=data)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(ev.__dict__, ensure_ascii=False, default=str) + "\n")

    def iter_events(self) -> Iterable[Event]:
        if not self.path.exists():
            return []
        out: list[Event] = []
        for line in self.path.read_text(encoding="utf-8", errors="replace").splitlines():
            if not line.strip():
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError:
                continue
            if not isinstance(obj, dict):
                continue
            out.append(Event(ts=float(obj.get("ts", 0.0)), type=str(obj.get("type")), data=obj.get("data") or {}))
        return out
