from __future__ import annotations
import subprocess
from dataclasses import dataclass
from typing import Mapping, Sequence, Optional

class CmdError(RuntimeError):
    def __init__(self, cmd: Sequence[str], returncode: int, stderr: str):
        super().__init__(f"{' '.join(cmd)} exited with {returncode}: {stderr.strip()}")
        self.returncode = returncode
        self.stderr = stderr

@dataclass
class CmdResult:
    returncode: int
    stdout: str
    stderr: str

def run_cmd(
    cmd: Sequence[str],
    cwd: str,
    timeout: Optional[int] = 120,
    env: Optional[Mapping[str, str]] = None,
    check: bool = False,
) -> CmdResult:
    p = subprocess.run(
        list(cmd),
        cwd=cwd,
        text=True,
        capture_output=True,
        timeout=timeout,
        shell=False,
        env=dict(env) if env is not None else None,
        errors="replace",
    )
    if check and p.returncode != 0:
        raise CmdError(cmd, p.returncode, p.stderr)
    return CmdResult(p.returncode, p.stdout, p.stderr)
