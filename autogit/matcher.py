"""Exclusion pattern matching for changed paths.

Patterns are a simplified glob dialect:

- ``**`` matches any sequence of characters, path separators included
- ``*`` matches any sequence that does not contain ``/``
- ``?`` matches a single character other than ``/``
- ``[...]`` is a character class (``[!...]`` negates it)

Everything else is matched literally and the whole path must match; a
pattern is never searched for as a substring.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Iterable, List, Optional, Pattern, Sequence

from .config import CONFIG_DIR_NAME
from .exceptions import PatternCompileError

logger = logging.getLogger(__name__)

GIT_DIR = ".git"
# Never committed or watched, whatever the configured patterns say
INTERNAL_DIRS = (GIT_DIR, CONFIG_DIR_NAME)

_warned_patterns: set[str] = set()


def normalize_path(path: str) -> str:
    """Return ``path`` as a POSIX-style relative path."""
    norm = path.replace("\\", "/")
    while norm.startswith("./"):
        norm = norm[2:]
    return norm


def is_internal_path(relative_path: str) -> bool:
    """Return True for paths inside ``.git`` or the settings directory."""
    path = normalize_path(relative_path)
    return any(path == d or path.startswith(d + "/") for d in INTERNAL_DIRS)


def _translate(pattern: str) -> str:
    parts: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "*":
            if i + 1 < n and pattern[i + 1] == "*":
                parts.append(".*")
                i += 2
                # Collapse runs such as "***" into a single wildcard
                while i < n and pattern[i] == "*":
                    i += 1
                continue
            parts.append("[^/]*")
        elif ch == "?":
            parts.append("[^/]")
        elif ch == "[":
            j = i + 1
            if pattern[j : j + 1] == "!":
                j += 1
            if pattern[j : j + 1] == "]":
                j += 1
            end = pattern.find("]", j)
            if end == -1:
                raise PatternCompileError(pattern, "unterminated character class")
            body = pattern[i + 1 : end]
            if body.startswith("!"):
                body = "^" + body[1:]
            body = body.replace("\\", "\\\\")
            parts.append(f"[{body}]")
            i = end
        else:
            parts.append(re.escape(ch))
        i += 1
    return "".join(parts)


@lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> Pattern[str]:
    """Compile one glob ``pattern`` into an anchored regular expression.

    Raises:
        PatternCompileError: If the pattern is not a string or is malformed.
    """
    if not isinstance(pattern, str):
        raise PatternCompileError(pattern, "pattern must be a string")
    try:
        return re.compile(_translate(normalize_path(pattern)))
    except re.error as exc:
        raise PatternCompileError(pattern, str(exc)) from exc


def _safe_compile(pattern: str) -> Optional[Pattern[str]]:
    try:
        return compile_pattern(pattern)
    except TypeError:
        # Unhashable values cannot reach the cache at all
        err = PatternCompileError(pattern, "pattern must be a string")
    except PatternCompileError as exc:
        err = exc
    key = repr(pattern)
    if key not in _warned_patterns:
        _warned_patterns.add(key)
        logger.warning("%s; pattern ignored", err)
    return None


def should_exclude(relative_path: str, patterns: Optional[Iterable[str]]) -> bool:
    """Return True when ``relative_path`` fully matches any of ``patterns``.

    Malformed patterns never raise; they are logged and treated as
    non-matching.
    """
    if not patterns:
        return False
    path = normalize_path(relative_path)
    for pattern in patterns:
        regex = _safe_compile(pattern)
        if regex is not None and regex.fullmatch(path):
            return True
    return False


class ExclusionMatcher:
    """Binds a pattern list so callers can test paths repeatedly."""

    def __init__(self, patterns: Optional[Sequence[str]] = None) -> None:
        self.patterns = list(patterns or [])

    def excludes(self, relative_path: str) -> bool:
        return should_exclude(relative_path, self.patterns)

    @property
    def invalid_patterns(self) -> List[str]:
        """Patterns that fail to compile and therefore never match."""
        return [p for p in self.patterns if _safe_compile(p) is None]

    def __call__(self, relative_path: str) -> bool:
        return self.excludes(relative_path)

    def __repr__(self) -> str:
        return f"ExclusionMatcher({self.patterns!r})"
