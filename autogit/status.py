"""Classification of git porcelain status codes.

``git status --porcelain`` reports two characters per path: the index
column and the worktree column. A single code can carry several flags
(``AM``, ``MD``, ``RM`` ...) so the classifier applies a fixed precedence:

    ADDED > MODIFIED > DELETED > RENAMED > COPIED > UNTRACKED > CHANGED

This order is a policy choice, not something git defines. A flag counts
when it appears in either column; ``?`` marks an untracked path and any
code without a recognised flag (type changes, unmerged states) falls back
to CHANGED.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional


class ChangeKind(str, Enum):
    ADDED = "Added"
    MODIFIED = "Modified"
    DELETED = "Deleted"
    RENAMED = "Renamed"
    COPIED = "Copied"
    UNTRACKED = "Untracked"
    CHANGED = "Changed"

    @property
    def label(self) -> str:
        return self.value


# Flag checked per kind, in precedence order
_PRECEDENCE = (
    ("A", ChangeKind.ADDED),
    ("M", ChangeKind.MODIFIED),
    ("D", ChangeKind.DELETED),
    ("R", ChangeKind.RENAMED),
    ("C", ChangeKind.COPIED),
    ("?", ChangeKind.UNTRACKED),
)


# Porcelain codes of paths with unresolved conflicts
_UNMERGED_CODES = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})


@dataclass(frozen=True)
class RepoStatusEntry:
    """Raw status of one path as reported by git."""

    path: str
    index_state: str
    worktree_state: str
    orig_path: Optional[str] = None

    @property
    def code(self) -> str:
        return f"{self.index_state}{self.worktree_state}"

    @property
    def is_staged(self) -> bool:
        return self.index_state not in (" ", "?", "!")

    @property
    def is_unmerged(self) -> bool:
        return self.code in _UNMERGED_CODES


@dataclass(frozen=True)
class ClassifiedChange:
    path: str
    kind: ChangeKind

    def describe(self) -> str:
        return f"{self.kind.label}: {self.path}"


def classify(status_code: str) -> ChangeKind:
    """Return the :class:`ChangeKind` for a two-character status code."""
    code = (status_code or "")[:2]
    for flag, kind in _PRECEDENCE:
        if flag in code:
            return kind
    return ChangeKind.CHANGED


def classify_entry(entry: RepoStatusEntry) -> ClassifiedChange:
    return ClassifiedChange(path=entry.path, kind=classify(entry.code))


def classify_entries(entries: Iterable[RepoStatusEntry]) -> List[ClassifiedChange]:
    return [classify_entry(e) for e in entries]
