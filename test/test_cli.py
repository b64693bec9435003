from __future__ import annotations

import pytest
from typer.testing import CliRunner

from conftest import md_row_count
from pyfledgling.config import loader
from pyfledgling.events.store import EventStore
from pyfledgling.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def no_global_config(tmp_path, monkeypatch):
    monkeypatch.setattr(loader, "_global_candidate_paths", lambda: [])


@pytest.fixture
def base_args(project, conversations_glob):
    return ["--root", str(project), "--conversations", conversations_glob]


def test_tools_lists_published_tools(project):
    result = runner.invoke(app, ["tools", "--profile", "core", "--root", str(project)])
    assert result.exit_code == 0, result.output
    assert "ReadLines" in result.stdout
    assert "list_tables" not in result.stdout


def test_call_prints_table(base_args):
    result = runner.invoke(app, ["call", "ReadLines", "file_path=notes.txt", "lines=2-4", *base_args])
    assert result.exit_code == 0, result.output
    assert md_row_count(result.stdout) == 3
    assert "note line 3" in result.stdout


def test_call_tool_error_exits_nonzero(base_args):
    result = runner.invoke(app, ["call", "ReadLines", "file_path=/etc/passwd", *base_args])
    assert result.exit_code == 1
    assert "PermissionDenied" in result.stdout


def test_call_unknown_tool(base_args):
    result = runner.invoke(app, ["call", "NoSuchTool", *base_args])
    assert result.exit_code == 1
    assert "Unknown tool" in result.output


def test_call_rejects_malformed_argument(base_args):
    result = runner.invoke(app, ["call", "ReadLines", "notes.txt", *base_args])
    assert result.exit_code != 0


def test_unknown_profile_exits_2(project):
    result = runner.invoke(app, ["tools", "--profile", "nope", "--root", str(project)])
    assert result.exit_code == 2


def test_missing_config_exits_2(project, tmp_path):
    result = runner.invoke(app, ["tools", "--root", str(project), "--config", str(tmp_path / "missing.yaml")])
    assert result.exit_code == 2


def test_profiles_from_project_config(project):
    (project / ".pyfledgling.yaml").write_text(
        "default_profile: reader\nprofiles:\n  reader:\n    extends: core\n    lockdown: false\n",
        encoding="utf-8",
    )
    result = runner.invoke(app, ["profiles", "--root", str(project)])
    assert result.exit_code == 0, result.output
    for name in ("analyst", "core", "reader", "(default)"):
        assert name in result.stdout


def test_events_summary(tmp_path):
    store = EventStore.open(path=tmp_path / "audit.jsonl")
    store.append("tool_call", {"name": "ReadLines", "ok": True})
    store.append("tool_call", {"name": "ReadLines", "ok": False})
    result = runner.invoke(app, ["events", str(store.path)])
    assert result.exit_code == 0, result.output
    assert "tool_calls: 2" in result.stdout
    assert "errors: 1" in result.stdout
