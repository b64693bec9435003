from __future__ import annotations

import os
import shutil

from ..engine.table import Table
from ..util.fs import PathNotFound, PermissionDenied, SandboxConfig
from ..util.subprocess import run_cmd

_STATUS_NAMES = {
    "A": "added",
    "D": "deleted",
    "M": "modified",
    "T": "modified",
    "R": "renamed",
    "C": "copied",
    "U": "conflicted",
}


def _git(sandbox: SandboxConfig, repo: str, *args: str) -> str:
    root = sandbox.check_path(repo)
    if not os.path.isdir(root):
        raise PathNotFound(f"No such repository directory: {repo}")
    git = shutil.which("git")
    if not git:
        raise RuntimeError("git executable not found")
    return run_cmd([git, "-C", root, *args], cwd=root, check=True).stdout


def _commit(sandbox: SandboxConfig, repo: str, rev: str) -> str:
    """Resolve a caller-supplied revision to a full commit id.

    Only the resolved id ever reaches other git commands, so a revision can
    never be read as an option. Option-like values are refused outright.
    """
    if not rev or rev.startswith("-"):
        raise PermissionDenied(f"Invalid revision: {rev!r}")
    return _git(sandbox, repo, "rev-parse", "--verify", f"{rev}^{{commit}}").strip()


def _repo_relative(sandbox: SandboxConfig, repo: str, path: str) -> str:
    if os.path.isabs(path):
        full = sandbox.check_path(path)
        return os.path.relpath(full, sandbox.check_path(repo))
    return path


def recent_changes(sandbox: SandboxConfig, repo: str, count: int = 10) -> Table:
    out = _git(sandbox, repo, "log", f"-n{count}", "--date=iso-strict", "--format=%H%x1f%an%x1f%ad%x1f%s%x1e")
    rows = []
    for rec in out.split("\x1e"):
        rec = rec.strip("\n")
        if not rec:
            continue
        sha, author, date, subject = rec.split("\x1f", 3)
        rows.append((sha[:8], author, date, subject))
    return Table(columns=["hash", "author", "date", "message"], rows=rows)


def branch_list(sandbox: SandboxConfig, repo: str) -> Table:
    out = _git(
        sandbox, repo, "for-each-ref",
        "--format=%(refname)\t%(objectname:short=8)\t%(HEAD)",
        "refs/heads", "refs/remotes",
    )
    rows = []
    for line in out.splitlines():
        refname, sha, head = line.split("\t")
        if refname.endswith("/HEAD"):
            continue
        is_remote = refname.startswith("refs/remotes/")
        name = refname.split("/", 2)[2]
        rows.append((name, sha, head.strip() == "*", is_remote))
    return Table(columns=["branch_name", "hash", "is_current", "is_remote"], rows=rows)


def _tree_sizes(sandbox: SandboxConfig, repo: str, rev: str) -> dict[str, int | None]:
    sizes: dict[str, int | None] = {}
    out = _git(sandbox, repo, "ls-tree", "-r", "-l", "--full-tree", _commit(sandbox, repo, rev))
    for line in out.splitlines():
        meta, path = line.split("\t", 1)
        size = meta.split()[-1]
        sizes[path] = int(size) if size.isdigit() else None
    return sizes


def repo_files(sandbox: SandboxConfig, repo: str, rev: str = "HEAD") -> Table:
    rows = sorted(_tree_sizes(sandbox, repo, rev).items())
    return Table(columns=["file_path", "size_bytes"], rows=rows)


def file_at_version(sandbox: SandboxConfig, repo: str, path: str, rev: str = "HEAD") -> str:
    rel = _repo_relative(sandbox, repo, path)
    return _git(sandbox, repo, "show", f"{_commit(sandbox, repo, rev)}:{rel}")


def file_changes(sandbox: SandboxConfig, repo: str, from_rev: str, to_rev: str) -> Table:
    from_rev = _commit(sandbox, repo, from_rev)
    to_rev = _commit(sandbox, repo, to_rev)
    out = _git(sandbox, repo, "diff", "--name-status", "--no-renames", from_rev, to_rev)
    old = _tree_sizes(sandbox, repo, from_rev)
    new = _tree_sizes(sandbox, repo, to_rev)
    rows = []
    for line in out.splitlines():
        if not line.strip():
            continue
        code, path = line.split("\t", 1)
        rows.append((path, _STATUS_NAMES.get(code[0], "modified"), old.get(path), new.get(path)))
    rows.sort(key=lambda r: r[0])
    return Table(columns=["file_path", "status", "old_size", "new_size"], rows=rows)


def file_diff(sandbox: SandboxConfig, repo: str, path: str, from_rev: str, to_rev: str) -> Table:
    rel = _repo_relative(sandbox, repo, path)
    from_rev = _commit(sandbox, repo, from_rev)
    to_rev = _commit(sandbox, repo, to_rev)
    out = _git(sandbox, repo, "diff", "--no-color", "--no-ext-diff", "-U3", from_rev, to_rev, "--", rel)
    rows = []
    in_hunk = False
    for line in out.splitlines():
        if line.startswith("@@"):
            in_hunk = True
            continue
        if not in_hunk or line.startswith("\\"):
            continue
        if line.startswith("diff --git"):
            in_hunk = False
            continue
        kind = {"+": "ADDED", "-": "REMOVED"}.get(line[:1], "CONTEXT")
        rows.append((len(rows) + 1, kind, line[1:]))
    return Table(columns=["seq", "line_type", "content"], rows=rows)


def working_tree_status(sandbox: SandboxConfig, repo: str) -> Table:
    """Changed and untracked files; clean tracked files are not listed."""
    out = _git(sandbox, repo, "status", "--porcelain=v1", "-z", "--untracked-files=all")
    entries = out.split("\0")
    rows = []
    i = 0
    while i < len(entries):
        entry = entries[i]
        i += 1
        if len(entry) < 4:
            continue
        xy, path = entry[:2], entry[3:]
        if xy == "??":
            status = "untracked"
        else:
            code = xy[0] if xy[0] != " " else xy[1]
            status = _STATUS_NAMES.get(code, "modified")
            if code in ("R", "C"):
                i += 1
        rows.append((path, status))
    rows.sort(key=lambda r: r[0])
    return Table(columns=["file_path", "status"], rows=rows)
