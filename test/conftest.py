from __future__ import annotations

import json
import shutil
import subprocess
import textwrap
from pathlib import Path

import pytest

from pyfledgling.mcp.server import McpServer
from pyfledgling.profiles.loader import apply_profile, load_profile
from pyfledgling.util.markdown_table import count_rows

HAS_GIT = shutil.which("git") is not None
needs_git = pytest.mark.skipif(not HAS_GIT, reason="git executable not available")

APP_PY_V1 = textwrap.dedent("""\
    import os
    from pathlib import Path


    class Greeter:
        def __init__(self, name):
            self.name = name

        def greet(self):
            return "hello " + self.name


    def main():
        g = Greeter(os.getcwd())
        print(g.greet())
    """)

APP_PY_V2 = APP_PY_V1 + textwrap.dedent("""\


    def shout(text):
        return text.upper()
    """)

README_MD = textwrap.dedent("""\
    # Demo Project

    Short intro.

    ## Installation

    Run the installer.

    ### From Source

    Clone and build.

    ## Usage

    Call `main()`.

    ```python
    # not a heading
    ```
    """)

UTIL_JS = textwrap.dedent("""\
    import { readFile } from "fs";
    const path = require("path");

    export function loadConfig(name) {
      return readFile(path.join("cfg", name));
    }

    class Store {
      lookup(key) {
        return this.items[key];
      }
    }
    """)

NOTES_TXT = "\n".join(f"note line {i}" for i in range(1, 21)) + "\n"

SAMPLE_CSV = "id,name,score\n1,alpha,3.5\n2,beta,4.0\n3,gamma,2.25\n"

# Two sessions in one project directory: 7 records, 3 tool calls.
CONVERSATION_RECORDS = [
    {
        "uuid": "u1", "parentUuid": None, "sessionId": "sess-001", "type": "user",
        "message": {"role": "user", "content": "Help me fix the bug in auth"},
        "timestamp": "2025-01-15T10:00:00Z", "slug": "fix-auth",
    },
    {
        "uuid": "u2", "parentUuid": "u1", "sessionId": "sess-001", "type": "assistant",
        "message": {
            "role": "assistant",
            "content": [
                {"type": "text", "text": "Let me look at the code"},
                {"type": "tool_use", "id": "tu_001", "name": "Bash", "input": {"command": "git status"}},
            ],
            "model": "claude-sonnet-4-20250514",
        },
        "timestamp": "2025-01-15T10:00:05Z", "slug": "fix-auth",
    },
    {
        "uuid": "u3", "parentUuid": "u2", "sessionId": "sess-001", "type": "user",
        "message": {
            "role": "user",
            "content": [{"type": "tool_result", "tool_use_id": "tu_001", "content": "On branch main"}],
        },
        "timestamp": "2025-01-15T10:00:10Z", "slug": "fix-auth",
    },
    {
        "uuid": "u4", "parentUuid": "u3", "sessionId": "sess-001", "type": "assistant",
        "message": {
            "role": "assistant",
            "content": [
                {"type": "text", "text": "I see the issue in the auth module"},
                {"type": "tool_use", "id": "tu_002", "name": "Read", "input": {"file_path": "/src/auth.py"}},
            ],
            "model": "claude-sonnet-4-20250514",
        },
        "timestamp": "2025-01-15T10:00:15Z", "slug": "fix-auth",
    },
    {
        "uuid": "u5", "parentUuid": "u4", "sessionId": "sess-001", "type": "progress",
        "timestamp": "2025-01-15T10:00:20Z", "slug": "fix-auth",
    },
    {
        "uuid": "u6", "parentUuid": None, "sessionId": "sess-002", "type": "user",
        "message": {"role": "user", "content": "Show me the project files"},
        "timestamp": "2025-01-15T11:00:00Z", "slug": "explore",
    },
    {
        "uuid": "u7", "parentUuid": "u6", "sessionId": "sess-002", "type": "assistant",
        "message": {
            "role": "assistant",
            "content": [{"type": "tool_use", "id": "tu_003", "name": "Bash", "input": {"command": "cat README.md"}}],
            "model": "claude-haiku-4-20250414",
        },
        "timestamp": "2025-01-15T11:00:05Z", "slug": "explore",
    },
]


def git(root: Path, *args: str) -> str:
    p = subprocess.run(
        ["git", "-c", "user.name=Test User", "-c", "user.email=test@example.com",
         "-c", "commit.gpgsign=false", *args],
        cwd=root, check=True, capture_output=True, text=True,
    )
    return p.stdout


def build_project(root: Path, with_git: bool = HAS_GIT) -> Path:
    (root / "src").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "data").mkdir()
    (root / "src" / "app.py").write_text(APP_PY_V1, encoding="utf-8")
    (root / "src" / "util.js").write_text(UTIL_JS, encoding="utf-8")
    (root / "docs" / "README.md").write_text(README_MD, encoding="utf-8")
    (root / "notes.txt").write_text(NOTES_TXT, encoding="utf-8")
    (root / "data" / "sample.csv").write_text(SAMPLE_CSV, encoding="utf-8")
    if with_git:
        git(root, "init", "-q")
        git(root, "symbolic-ref", "HEAD", "refs/heads/main")
        git(root, "add", ".")
        git(root, "commit", "-q", "-m", "Initial commit")
        (root / "src" / "app.py").write_text(APP_PY_V2, encoding="utf-8")
        (root / "CHANGES.md").write_text("# Changes\n\n- shout\n", encoding="utf-8")
        git(root, "add", ".")
        git(root, "commit", "-q", "-m", "Add shout helper\n\nLonger body that must not show up.")
        git(root, "branch", "feature")
    return root


def write_conversations(base: Path) -> str:
    project_dir = base / ".claude" / "projects" / "test-project"
    project_dir.mkdir(parents=True)
    with open(project_dir / "conversations.jsonl", "w", encoding="utf-8") as f:
        for rec in CONVERSATION_RECORDS:
            f.write(json.dumps(rec) + "\n")
        f.write("{not json\n")
    return str(base / ".claude" / "projects" / "*" / "*.jsonl")


@pytest.fixture
def project(tmp_path: Path) -> Path:
    return build_project(tmp_path / "project")


@pytest.fixture
def conversations_glob(tmp_path: Path) -> str:
    return write_conversations(tmp_path)


@pytest.fixture
def server(project: Path, conversations_glob: str):
    """Analyst-profile server over the sample project, locked down to it."""
    tools, ctx = apply_profile(load_profile("analyst"), root=str(project), conversations=conversations_glob)
    yield McpServer(tools, ctx)
    ctx.engine.close()


def call_tool(server: McpServer, name: str, arguments: dict | None = None) -> str:
    res = server.call_tool(name, arguments or {})
    assert not res.is_error, res.content
    return res.content


def md_row_count(text: str) -> int:
    return count_rows(text)


def data_lines(text: str) -> list[str]:
    return [ln for ln in text.strip().split("\n") if ln.strip().startswith("|")][2:]
