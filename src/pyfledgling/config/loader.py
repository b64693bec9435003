from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from platformdirs import user_config_dir

from .models import FledglingConfig, ProfileConfig

APP_NAME = "pyfledgling"


def _candidate_paths(root: Path) -> list[Path]:
    # project-level (higher priority)
    return [
        root / ".pyfledgling.yaml",
        root / "pyfledgling.yaml",
        root / ".pyfledgling.json",
        root / "pyfledgling.json",
    ]


def _global_candidate_paths() -> list[Path]:
    cfg_dir = Path(user_config_dir(APP_NAME))
    return [
        cfg_dir / "pyfledgling.yaml",
        cfg_dir / "pyfledgling.json",
    ]


def _load_mapping(p: Path) -> dict[str, Any] | None:
    # JSON is a subset of YAML, one parser covers both
    try:
        obj = yaml.safe_load(p.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError):
        return None
    return obj if isinstance(obj, dict) else None


def _merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge_dicts(out[k], v)
        else:
            out[k] = v
    return out


def load_config(*, root: Path, explicit_path: Path | None = None) -> FledglingConfig:
    """Load settings.

    Merge order: global < project < explicit_path. An explicit path that does not
    exist or does not hold a mapping is an error; other files are skipped when unreadable.
    """
    merged: dict[str, Any] = {}
    loaded_from: Path | None = None

    for p in _global_candidate_paths():
        if p.is_file():
            obj = _load_mapping(p)
            if obj is not None:
                merged = _merge_dicts(merged, obj)
                loaded_from = p

    for p in _candidate_paths(root):
        if p.is_file():
            obj = _load_mapping(p)
            if obj is not None:
                merged = _merge_dicts(merged, obj)
                loaded_from = p
                break  # first match wins for project-level

    if explicit_path is not None:
        p = explicit_path.expanduser().resolve()
        if not p.is_file():
            raise FileNotFoundError(f"Config file not found: {p}")
        obj = _load_mapping(p)
        if obj is None:
            raise ValueError(f"Config file is not a YAML/JSON mapping: {p}")
        merged = _merge_dicts(merged, obj)
        loaded_from = p

    cfg = FledglingConfig()
    cfg.loaded_from = loaded_from

    dp = merged.get("default_profile")
    if isinstance(dp, str) and dp.strip():
        cfg.default_profile = dp.strip()

    conv = merged.get("conversations")
    if isinstance(conv, str) and conv.strip():
        cfg.conversations = conv.strip()

    ev = merged.get("event_log")
    if isinstance(ev, bool):
        cfg.event_log = ev

    profiles = merged.get("profiles", {})
    if isinstance(profiles, dict):
        for name, obj in profiles.items():
            if not isinstance(name, str):
                continue
            pc = ProfileConfig.from_obj(name, obj)
            if pc is not None:
                cfg.profiles[name] = pc

    return cfg
