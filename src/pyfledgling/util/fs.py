from __future__ import annotations

import glob as _glob
import os
import re
from dataclasses import dataclass, field
from typing import Any


class FsError(RuntimeError):
    pass


class PermissionDenied(FsError):
    """Access outside the allowed directories, or env lookup while locked down."""


class PathNotFound(FsError):
    pass


class ConfigurationLocked(FsError):
    """Raised on any attempt to change a setting after lock_configuration."""


_SETTINGS = ("session_root", "allowed_directories", "enable_external_access", "lock_configuration")
_GLOB_CHARS = re.compile(r"[*?\[]")


def resolve_path(root: str, path: str | None) -> str | None:
    """Anchor a user-supplied path to the session root.

    Absolute paths come back unchanged and relative ones are joined to ``root``
    with a single separator. Nothing is normalized here: ``../`` segments survive
    and are judged by ``SandboxConfig.check_path`` when the file is opened.
    """
    if path is None:
        return None
    if path.startswith("/"):
        return path
    return f"{root}/{path}"


def _is_within(path: str, directory: str) -> bool:
    directory = os.path.normpath(directory)
    if directory == "/":
        return True
    return path == directory or path.startswith(directory + os.sep)


@dataclass
class SandboxConfig:
    """Filesystem and environment access settings for one session.

    Passed by reference to the query engine and every tool; lockdown is one-way.
    """

    session_root: str
    allowed_directories: list[str] = field(default_factory=list)
    enable_external_access: bool = True
    lock_configuration: bool = False

    @property
    def locked(self) -> bool:
        return self.lock_configuration

    def set(self, name: str, value: Any) -> None:
        if name not in _SETTINGS:
            raise ValueError(f"Unknown sandbox setting: {name}")
        if self.lock_configuration:
            raise ConfigurationLocked(f"Cannot change '{name}': the sandbox configuration has been locked")
        if name == "allowed_directories":
            value = [os.path.normpath(str(d)) for d in value]
        elif name in ("enable_external_access", "lock_configuration"):
            value = bool(value)
        else:
            value = str(value)
        setattr(self, name, value)

    def apply_lockdown(self, root: str | None = None) -> None:
        root = root or self.session_root
        self.set("allowed_directories", [root])
        self.set("enable_external_access", False)
        self.set("lock_configuration", True)

    def resolve(self, path: str | None) -> str | None:
        return resolve_path(self.session_root, path)

    def check_path(self, path: str) -> str:
        """Return the lexically normalized absolute form of ``path`` or raise PermissionDenied."""
        full = path if os.path.isabs(path) else os.path.join(self.session_root, path)
        full = os.path.normpath(full)
        if self.enable_external_access:
            return full
        for d in self.allowed_directories:
            if _is_within(full, d):
                return full
        raise PermissionDenied(f"Cannot access '{path}': outside of the allowed directories")

    def getenv(self, name: str, default: str | None = None) -> str | None:
        if not self.enable_external_access:
            raise PermissionDenied(f"Environment lookup of '{name}' is disabled")
        return os.environ.get(name, default)

    def read_text(self, path: str) -> str:
        full = self.check_path(path)
        try:
            with open(full, encoding="utf-8", errors="replace") as f:
                return f.read()
        except FileNotFoundError:
            raise PathNotFound(f"No such file: {path}") from None
        except IsADirectoryError:
            raise PathNotFound(f"Not a file: {path}") from None

    def read_lines(self, path: str) -> list[str]:
        return self.read_text(path).splitlines()

    def glob(self, pattern: str) -> list[str]:
        """Expand a glob pattern (``**`` allowed) inside the sandbox, sorted.

        The literal prefix is checked first so a pattern aimed outside the root
        fails with PermissionDenied instead of silently matching nothing.
        """
        full = pattern if os.path.isabs(pattern) else os.path.join(self.session_root, pattern)
        m = _GLOB_CHARS.search(full)
        if m is None:
            self.check_path(full)
            return [os.path.normpath(full)] if os.path.isfile(full) else []
        prefix = os.path.dirname(full[: m.start()]) or "/"
        self.check_path(prefix)
        out = []
        for hit in _glob.glob(full, recursive=True):
            if not os.path.isfile(hit):
                continue
            out.append(self.check_path(hit))
        return sorted(out)
