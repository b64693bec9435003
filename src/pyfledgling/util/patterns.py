from __future__ import annotations

import re
from functools import lru_cache


@lru_cache(maxsize=256)
def like_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a SQL LIKE pattern (``%`` any run, ``_`` one char) to an anchored regex."""
    out = []
    for ch in pattern:
        if ch == "%":
            out.append(".*")
        elif ch == "_":
            out.append(".")
        else:
            out.append(re.escape(ch))
    return re.compile("^" + "".join(out) + "$", re.DOTALL)


def like_match(value: str, pattern: str | None) -> bool:
    if pattern is None:
        return True
    return like_to_regex(pattern).match(value) is not None
