"""
Glob matching over repository-relative, forward-slash paths.

Patterns are evaluated against a file listing supplied by the content
source, never against the file system:
- ``**`` matches any number of directories (including none)
- ``*`` matches within one path segment
- ``?`` matches one character within a segment
- ``[abc]`` character classes
"""

import re
from functools import lru_cache
from typing import Iterable, List, Pattern


def is_pattern(text: str) -> bool:
    """Check whether a target is a glob pattern rather than a plain path."""
    return any(ch in text for ch in ("*", "?"))


def translate(pattern: str) -> str:
    """Translate a glob pattern into an anchored regular expression."""
    i, n = 0, len(pattern)
    parts = []
    while i < n:
        ch = pattern[i]
        if pattern.startswith("**", i):
            at_segment_start = i == 0 or pattern[i - 1] == "/"
            if at_segment_start and pattern.startswith("**/", i):
                parts.append("(?:.*/)?")
                i += 3
                continue
            parts.append(".*")
            i += 2
            continue
        if ch == "*":
            parts.append("[^/]*")
        elif ch == "?":
            parts.append("[^/]")
        elif ch == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                parts.append(re.escape(ch))
            else:
                body = pattern[i + 1:end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                parts.append(f"[{body}]")
                i = end + 1
                continue
        else:
            parts.append(re.escape(ch))
        i += 1
    return "^" + "".join(parts) + "$"


@lru_cache(maxsize=256)
def compile_glob(pattern: str) -> Pattern:
    if pattern.startswith("./"):
        pattern = pattern[2:]
    return re.compile(translate(pattern))


def glob_match(pattern: str, path: str) -> bool:
    """Check a single path against a glob pattern."""
    return compile_glob(pattern).match(path) is not None


def expand(pattern: str, paths: Iterable[str]) -> List[str]:
    """
    Expand a pattern against a listing.

    Returns:
        Matching paths, sorted
    """
    regex = compile_glob(pattern)
    return sorted(p for p in paths if regex.match(p))
