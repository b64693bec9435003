from __future__ import annotations

import os

import pytest

from pyfledgling.engine.query import QueryEngine, UpstreamQueryError
from pyfledgling.util.fs import (
    ConfigurationLocked,
    PathNotFound,
    PermissionDenied,
    SandboxConfig,
    resolve_path,
)


class TestResolve:
    def test_relative_path_prepends_root(self):
        assert resolve_path("/srv/proj", "README.md") == "/srv/proj/README.md"

    def test_nested_relative_path(self):
        assert resolve_path("/srv/proj", "src/app.py") == "/srv/proj/src/app.py"

    def test_absolute_path_passes_through(self):
        assert resolve_path("/srv/proj", "/etc/hostname") == "/etc/hostname"

    def test_none_returns_none(self):
        assert resolve_path("/srv/proj", None) is None

    def test_traversal_is_kept_literally(self):
        assert resolve_path("/srv/proj", "../../../etc/passwd") == "/srv/proj/../../../etc/passwd"

    def test_sandbox_resolve_uses_session_root(self):
        sb = SandboxConfig(session_root="/srv/proj")
        assert sb.resolve("a/b.txt") == "/srv/proj/a/b.txt"


@pytest.fixture
def locked(project):
    sb = SandboxConfig(session_root=str(project))
    sb.apply_lockdown()
    return sb


class TestSandboxLockdown:
    def test_reads_inside_root(self, locked, project):
        assert locked.read_lines(locked.resolve("notes.txt"))[0] == "note line 1"

    def test_absolute_path_inside_root(self, locked, project):
        assert "note line 2" in locked.read_text(str(project / "notes.txt"))

    def test_absolute_path_outside_root_denied(self, locked):
        with pytest.raises(PermissionDenied):
            locked.read_text("/etc/hostname")

    def test_traversal_denied(self, locked):
        with pytest.raises(PermissionDenied):
            locked.read_text(locked.resolve("../../../etc/passwd"))

    def test_traversal_that_stays_inside_is_allowed(self, locked):
        assert locked.read_lines(locked.resolve("src/../notes.txt"))[1] == "note line 2"

    def test_sibling_with_common_prefix_denied(self, locked, project, tmp_path):
        sibling = tmp_path / (project.name + "-other")
        sibling.mkdir()
        (sibling / "x.txt").write_text("x", encoding="utf-8")
        with pytest.raises(PermissionDenied):
            locked.read_text(str(sibling / "x.txt"))

    def test_missing_file_is_not_a_permission_error(self, locked):
        with pytest.raises(PathNotFound):
            locked.read_text(locked.resolve("nope.txt"))

    def test_cannot_reenable_external_access(self, locked):
        with pytest.raises(ConfigurationLocked):
            locked.set("enable_external_access", True)
        assert locked.enable_external_access is False

    def test_cannot_widen_allowed_directories(self, locked):
        with pytest.raises(ConfigurationLocked):
            locked.set("allowed_directories", ["/"])

    def test_getenv_disabled(self, locked):
        with pytest.raises(PermissionDenied):
            locked.getenv("HOME")

    def test_getenv_before_lockdown(self, project, monkeypatch):
        monkeypatch.setenv("PYFLEDGLING_TEST", "1")
        assert SandboxConfig(session_root=str(project)).getenv("PYFLEDGLING_TEST") == "1"

    def test_glob_outside_root_denied(self, locked):
        with pytest.raises(PermissionDenied):
            locked.glob("/etc/*.conf")

    def test_unknown_setting(self, project):
        with pytest.raises(ValueError):
            SandboxConfig(session_root=str(project)).set("max_memory", "1GB")


@pytest.fixture
def engine(project):
    sb = SandboxConfig(session_root=str(project))
    eng = QueryEngine(sb)
    root = os.path.realpath(str(project))
    sb.apply_lockdown(root)
    eng.apply_lockdown(root)
    yield eng
    eng.close()


class TestEngineLockdown:
    def test_reads_csv_inside_root(self, engine, project):
        table = engine.read_file(os.path.realpath(str(project / "data" / "sample.csv")))
        assert table.columns == ["id", "name", "score"]
        assert len(table) == 3

    def test_sql_read_outside_root_denied(self, engine, tmp_path):
        outside = tmp_path / "outside.csv"
        outside.write_text("a\n1\n", encoding="utf-8")
        with pytest.raises(PermissionDenied):
            engine.execute_sql(f"SELECT * FROM read_csv('{outside}')")

    def test_reenable_external_access_fails(self, engine):
        with pytest.raises(ConfigurationLocked):
            engine.execute_sql("SET enable_external_access = true")

    def test_set_option_after_lockdown(self, engine):
        with pytest.raises(ConfigurationLocked):
            engine.set_option("enable_external_access", True)

    def test_getenv_blocked(self, engine):
        with pytest.raises((PermissionDenied, UpstreamQueryError)):
            engine.execute_sql("SELECT getenv('HOME')")
