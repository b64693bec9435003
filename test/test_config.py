from __future__ import annotations

import json
from pathlib import Path

import pytest

from pyfledgling.config import loader
from pyfledgling.config.loader import load_config


@pytest.fixture
def global_dir(tmp_path, monkeypatch):
    d = tmp_path / "global"
    d.mkdir()
    monkeypatch.setattr(loader, "_global_candidate_paths", lambda: [d / "pyfledgling.yaml", d / "pyfledgling.json"])
    return d


def test_defaults_without_files(tmp_path, global_dir):
    cfg = load_config(root=tmp_path)
    assert cfg.default_profile == "analyst"
    assert cfg.conversations is None
    assert cfg.event_log is False
    assert cfg.profiles == {}
    assert cfg.loaded_from is None


def test_project_yaml(tmp_path, global_dir):
    (tmp_path / ".pyfledgling.yaml").write_text(
        "default_profile: reader\n"
        "profiles:\n"
        "  reader:\n"
        "    extends: core\n"
        "    exclude: [GitDiffFile]\n"
        "    overrides:\n"
        "      ReadLines: Read project files.\n",
        encoding="utf-8",
    )
    cfg = load_config(root=tmp_path)
    assert cfg.default_profile == "reader"
    pc = cfg.profiles["reader"]
    assert pc.extends == "core"
    assert pc.exclude == ["GitDiffFile"]
    assert pc.overrides == {"ReadLines": "Read project files."}
    assert cfg.loaded_from == tmp_path / ".pyfledgling.yaml"


def test_project_overrides_global(tmp_path, global_dir):
    (global_dir / "pyfledgling.yaml").write_text(
        "default_profile: core\nevent_log: true\nconversations: /logs/*.jsonl\n", encoding="utf-8"
    )
    (tmp_path / "pyfledgling.json").write_text(json.dumps({"default_profile": "analyst"}), encoding="utf-8")
    cfg = load_config(root=tmp_path)
    assert cfg.default_profile == "analyst"
    assert cfg.event_log is True
    assert cfg.conversations == "/logs/*.jsonl"


def test_first_project_file_wins(tmp_path, global_dir):
    (tmp_path / ".pyfledgling.yaml").write_text("default_profile: first\n", encoding="utf-8")
    (tmp_path / "pyfledgling.yaml").write_text("default_profile: second\n", encoding="utf-8")
    assert load_config(root=tmp_path).default_profile == "first"


def test_explicit_path_has_the_last_word(tmp_path, global_dir):
    (tmp_path / ".pyfledgling.yaml").write_text("default_profile: core\n", encoding="utf-8")
    explicit = tmp_path / "custom.json"
    explicit.write_text(json.dumps({"profiles": {"x": {"tools": ["Help"]}}}), encoding="utf-8")
    cfg = load_config(root=tmp_path, explicit_path=explicit)
    assert cfg.default_profile == "core"
    assert cfg.profiles["x"].tools == ["Help"]
    assert cfg.loaded_from == explicit.resolve()


def test_explicit_path_missing(tmp_path, global_dir):
    with pytest.raises(FileNotFoundError):
        load_config(root=tmp_path, explicit_path=Path(tmp_path / "nope.yaml"))


def test_explicit_path_not_a_mapping(tmp_path, global_dir):
    p = tmp_path / "list.yaml"
    p.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(root=tmp_path, explicit_path=p)


def test_broken_project_file_is_skipped(tmp_path, global_dir):
    (tmp_path / ".pyfledgling.yaml").write_text("profiles: [unclosed\n", encoding="utf-8")
    assert load_config(root=tmp_path).default_profile == "analyst"


def test_malformed_profile_entries_are_dropped(tmp_path, global_dir):
    (tmp_path / ".pyfledgling.yaml").write_text(
        "profiles:\n  good:\n    tools: [Help]\n  bad: just-a-string\n  worse:\n    lockdown: maybe\n",
        encoding="utf-8",
    )
    assert set(load_config(root=tmp_path).profiles) == {"good"}
