from __future__ import annotations

import pytest

from pyfledgling.config.models import FledglingConfig, ProfileConfig
from pyfledgling.profiles.loader import apply_profile, load_profile
from pyfledgling.profiles.registry import ProfileRegistry
from pyfledgling.tools.builtin import CORE_TOOL_NAMES, SQL_TOOL_NAMES
from pyfledgling.tools.registry import ToolNotFound
from pyfledgling.util.fs import ConfigurationLocked


def _config(**profiles) -> FledglingConfig:
    return FledglingConfig(profiles={n: ProfileConfig.from_obj(n, obj) for n, obj in profiles.items()})


@pytest.fixture
def session(project, conversations_glob):
    opened = []

    def _apply(profile, **kw):
        kw.setdefault("conversations", conversations_glob)
        tools, ctx = apply_profile(profile, root=str(project), **kw)
        opened.append(ctx)
        return tools, ctx

    yield _apply
    for ctx in opened:
        ctx.engine.close()


def test_default_profiles():
    reg = ProfileRegistry.from_defaults()
    assert reg.names() == ["analyst", "core"]
    assert "query" not in reg.get("core").tools
    assert list(reg.get("analyst").tools) == CORE_TOOL_NAMES + SQL_TOOL_NAMES
    assert reg.get().name == "analyst"


def test_unknown_profile():
    with pytest.raises(KeyError, match="known profiles"):
        load_profile("nope")


def test_core_hides_sql_tools(session):
    tools, _ = session(load_profile("core"))
    assert "query" not in tools.names()
    with pytest.raises(ToolNotFound):
        tools.get("query")
    # registered but unpublished
    assert "query" in tools.names(published=False)


def test_custom_profile_extends_and_excludes():
    cfg = _config(reader={"extends": "core", "exclude": ["GitDiffFile", "GitDiffSummary"]})
    p = ProfileRegistry.from_defaults(cfg).get("reader")
    assert "GitDiffFile" not in p.tools
    assert "ReadLines" in p.tools
    assert p.lockdown is True


def test_explicit_tool_list_and_default_profile():
    cfg = _config(tiny={"tools": ["ReadLines", "Help"], "description": "Just reading"})
    cfg.default_profile = "tiny"
    reg = ProfileRegistry.from_defaults(cfg)
    assert reg.get().tools == ("ReadLines", "Help")
    assert reg.get().description == "Just reading"


def test_profile_chain():
    cfg = _config(
        base={"extends": "analyst", "exclude": ["query"]},
        child={"extends": "base", "exclude": ["describe"]},
    )
    tools = ProfileRegistry.from_defaults(cfg).get("child").tools
    assert "query" not in tools and "describe" not in tools
    assert "list_tables" in tools


def test_unknown_tool_name_rejected():
    with pytest.raises(ValueError, match="NoSuchTool"):
        ProfileRegistry.from_defaults(_config(bad={"tools": ["ReadLines", "NoSuchTool"]}))


def test_unknown_base_profile_rejected():
    with pytest.raises(KeyError):
        ProfileRegistry.from_defaults(_config(orphan={"extends": "missing"}))


def test_inheritance_cycle_rejected():
    with pytest.raises(ValueError, match="cycle"):
        ProfileRegistry.from_defaults(_config(a={"extends": "b"}, b={"extends": "a"}))


def test_override_of_unpublished_tool_rejected():
    cfg = _config(x={"tools": ["Help"], "overrides": {"ReadLines": "Read stuff"}})
    with pytest.raises(ValueError, match="unpublished"):
        ProfileRegistry.from_defaults(cfg)


def test_override_replaces_description(session):
    cfg = _config(custom={"extends": "core", "overrides": {"ReadLines": "Read lines of project files."}})
    tools, _ = session(ProfileRegistry.from_defaults(cfg).get("custom"))
    assert tools.get("ReadLines").spec.description == "Read lines of project files."
    assert tools.get("ReadLines").spec.parameters["required"] == ["file_path"]


def test_registry_frozen_after_apply(session):
    tools, _ = session(load_profile("core"))
    assert tools.frozen
    with pytest.raises(RuntimeError):
        tools.register(tools.get("Help"))
    with pytest.raises(RuntimeError):
        tools.publish(["Help"])


def test_lockdown_applied(session, project):
    _, ctx = session(load_profile("analyst"))
    assert ctx.sandbox.locked
    assert ctx.root == str(project)
    with pytest.raises(ConfigurationLocked):
        ctx.sandbox.set("enable_external_access", True)


def test_lockdown_can_be_disabled(session):
    _, ctx = session(load_profile("analyst"), lockdown=False)
    assert not ctx.sandbox.locked
    assert ctx.sandbox.check_path("/etc/hosts") == "/etc/hosts"


def test_profile_root_used_when_none_given(project, conversations_glob):
    cfg = _config(rooted={"extends": "core", "root": str(project / "src")})
    tools, ctx = apply_profile(ProfileRegistry.from_defaults(cfg).get("rooted"), conversations=conversations_glob)
    try:
        assert ctx.root == str(project / "src")
    finally:
        ctx.engine.close()


def test_conversations_loaded_only_with_chat_tools(session):
    _, ctx = session(_tools_profile(["ReadLines"]))
    assert ctx.conversations is None
    _, ctx = session(_tools_profile(["ChatSessions"]))
    assert len(ctx.conversations) == 7


def test_help_table_available_without_sql_tools(session):
    tools, ctx = session(load_profile("core"))
    assert len(tools.get("Help").execute(ctx, {"section": None})) > 5


def _tools_profile(names):
    cfg = _config(p={"tools": names})
    return ProfileRegistry.from_defaults(cfg).get("p")
