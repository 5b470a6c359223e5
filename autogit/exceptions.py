"""Custom exceptions and failure classification for autogit."""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional, Sequence


class AutoGitError(Exception):
    """Base exception for autogit."""


class GitError(AutoGitError):
    """Raised when a git command fails."""

    def __init__(
        self,
        message: str,
        command: Optional[Sequence[str]] = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.command = list(command) if command else []
        self.stderr = stderr or ""


class LLMError(AutoGitError):
    """Raised when the text-generation backend is unavailable or fails."""


class ConfigError(AutoGitError):
    """Raised for invalid configuration values."""


class ValidationError(AutoGitError):
    """Raised when input data fails validation."""


class PatternCompileError(AutoGitError):
    """Raised when an exclusion pattern cannot be compiled."""

    def __init__(self, pattern: object, reason: str) -> None:
        super().__init__(f"Invalid exclude pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class ErrorKind(str, Enum):
    """Classified failure reported in a commit cycle outcome."""

    NOT_A_REPOSITORY = "not_a_repository"
    STAGING_FAILED = "staging_failed"
    NOTHING_TO_COMMIT = "nothing_to_commit"
    COMMIT_FAILED = "commit_failed"
    AUTHENTICATION_FAILED = "authentication_failed"
    PUSH_REJECTED = "push_rejected"
    PUSH_FAILED = "push_failed"
    GENERATOR_UNAVAILABLE = "generator_unavailable"
    PATTERN_COMPILE_ERROR = "pattern_compile_error"
    MERGE_CONFLICT = "merge_conflict"


_AUTH_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"authentication failed",
        r"could not read (username|password)",
        r"permission denied \(publickey",
        r"invalid username or password",
        r"terminal prompts disabled",
        r"the requested url returned error: 40[13]",
        r"access denied",
        r"support for password authentication was removed",
    )
]

_REJECTED_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\[rejected\]",
        r"\[remote rejected\]",
        r"non-fast-forward",
        r"fetch first",
        r"updates were rejected",
        r"protected branch",
    )
]

_GUIDANCE = {
    ErrorKind.NOT_A_REPOSITORY: (
        "The working directory is not a git repository. Run 'git init' "
        "or point autogit at an existing repository."
    ),
    ErrorKind.STAGING_FAILED: (
        "Some paths could not be staged and were left out of the commit."
    ),
    ErrorKind.NOTHING_TO_COMMIT: "No changes to commit.",
    ErrorKind.COMMIT_FAILED: (
        "git commit failed. Check the repository state and your "
        "user.name/user.email settings."
    ),
    ErrorKind.AUTHENTICATION_FAILED: (
        "Push failed: authentication was refused by the remote. Check your "
        "credentials, token or SSH key. The commit was kept locally."
    ),
    ErrorKind.PUSH_REJECTED: (
        "Push rejected: the remote has commits you do not have. Pull and "
        "integrate them, then push again. The commit was kept locally."
    ),
    ErrorKind.PUSH_FAILED: (
        "Push failed. The commit was kept locally; push manually once the "
        "remote is reachable."
    ),
    ErrorKind.GENERATOR_UNAVAILABLE: (
        "AI commit message unavailable; a generated summary was used instead."
    ),
    ErrorKind.PATTERN_COMPILE_ERROR: (
        "Some exclude patterns are malformed and were ignored."
    ),
    ErrorKind.MERGE_CONFLICT: (
        "Unresolved merge conflicts. Resolve them and commit the merge "
        "yourself; auto-commit resumes once the conflicts are gone."
    ),
}


def classify_push_error(text: str) -> ErrorKind:
    """Map raw ``git push`` error output to an :class:`ErrorKind`.

    Authentication problems win over rejections because a rejected push
    never reaches the ref update stage without valid credentials.
    """
    raw = text or ""
    if any(p.search(raw) for p in _AUTH_PATTERNS):
        return ErrorKind.AUTHENTICATION_FAILED
    if any(p.search(raw) for p in _REJECTED_PATTERNS):
        return ErrorKind.PUSH_REJECTED
    return ErrorKind.PUSH_FAILED


def guidance_for(kind: Optional[ErrorKind]) -> str:
    """Return a short, user-actionable hint for ``kind``."""
    if kind is None:
        return ""
    return _GUIDANCE.get(kind, "")
