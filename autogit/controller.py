"""Stage, commit and push one batch of changes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .commit import CommitMessageGenerator
from .exceptions import ErrorKind, GitError, classify_push_error, guidance_for
from .git import GitRepo
from .matcher import ExclusionMatcher, is_internal_path
from .status import ChangeKind, ClassifiedChange, RepoStatusEntry, classify_entry

logger = logging.getLogger(__name__)

_STAGE_KINDS = {
    ChangeKind.ADDED,
    ChangeKind.MODIFIED,
    ChangeKind.RENAMED,
    ChangeKind.COPIED,
    ChangeKind.CHANGED,
}


@dataclass
class CommitOutcome:
    """Result of one commit cycle."""

    committed: bool = False
    pushed: bool = False
    message: str = ""
    error: Optional[ErrorKind] = None
    detail: str = ""
    commit_hash: Optional[str] = None
    staged: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    # Best-effort steps that degraded without failing the cycle
    warnings: List[ErrorKind] = field(default_factory=list)

    @property
    def noop(self) -> bool:
        return self.error is ErrorKind.NOTHING_TO_COMMIT

    @property
    def ok(self) -> bool:
        return self.error is None or self.noop

    def summary(self) -> str:
        if self.noop:
            return "Nothing to commit"
        if self.committed and self.pushed:
            return f'Committed and pushed: "{self.message}"'
        if self.committed and self.error is None:
            return f'Committed: "{self.message}"'
        if self.committed:
            return f'Committed: "{self.message}" ({self.detail})'
        return self.detail or "Commit cycle failed"


class RepositoryController:
    """Runs stage → commit → push against the live repository.

    Holds no state between cycles: every run re-reads ``git status``.
    """

    def __init__(
        self,
        repo: GitRepo,
        generator: CommitMessageGenerator,
        matcher: Optional[ExclusionMatcher] = None,
        include_untracked: bool = True,
        auto_push: bool = True,
        remote: str = "origin",
    ) -> None:
        self.repo = repo
        self.generator = generator
        self.matcher = matcher or ExclusionMatcher()
        self.include_untracked = include_untracked
        self.auto_push = auto_push
        self.remote = remote

    def run_cycle(self) -> CommitOutcome:
        if not self.repo.is_repository():
            logger.error("Not a git repository: %s", self.repo.repo_path)
            return _failure(ErrorKind.NOT_A_REPOSITORY)

        try:
            entries = self.repo.status()
        except GitError as e:
            logger.error("git status failed: %s", e)
            return _failure(ErrorKind.COMMIT_FAILED, e.stderr or str(e))
        if not entries:
            logger.info("No changes to commit")
            return _failure(ErrorKind.NOTHING_TO_COMMIT)

        unmerged = [e.path for e in entries if e.is_unmerged]
        if unmerged:
            logger.warning(
                "Unresolved conflicts, not committing: %s", ", ".join(unmerged)
            )
            outcome = _failure(ErrorKind.MERGE_CONFLICT)
            outcome.skipped = unmerged
            return outcome

        to_stage, to_remove = self._partition(entries)

        outcome = CommitOutcome()
        if self.matcher.invalid_patterns:
            outcome.warnings.append(ErrorKind.PATTERN_COMPILE_ERROR)
        changes: List[ClassifiedChange] = []
        for change in to_stage:
            self._apply(self.repo.stage, change, changes, outcome)
        for change in to_remove:
            self._apply(self.repo.remove, change, changes, outcome)

        try:
            staged = self.repo.staged_paths()
        except GitError as e:
            logger.error("Could not read staged changes: %s", e)
            return _failure(ErrorKind.COMMIT_FAILED, e.stderr or str(e))
        if outcome.skipped:
            outcome.warnings.append(ErrorKind.STAGING_FAILED)
        if not staged:
            if outcome.skipped:
                kind = ErrorKind.STAGING_FAILED
            else:
                kind = ErrorKind.NOTHING_TO_COMMIT
            logger.info("Nothing staged after filtering")
            outcome.error = kind
            outcome.detail = guidance_for(kind)
            return outcome
        outcome.staged = staged

        outcome.message = self.generator.generate(changes)
        if self.generator.last_failure is not None:
            outcome.warnings.append(ErrorKind.GENERATOR_UNAVAILABLE)

        try:
            outcome.commit_hash = self.repo.commit(outcome.message)
        except GitError as e:
            logger.error("Commit failed: %s", e)
            outcome.error = ErrorKind.COMMIT_FAILED
            outcome.detail = e.stderr or str(e)
            return outcome
        outcome.committed = True
        logger.info("Committed %d path(s): %s", len(staged), outcome.message)

        if self.auto_push:
            self._push(outcome)
        return outcome

    def _partition(self, entries: List[RepoStatusEntry]):
        to_stage: List[ClassifiedChange] = []
        to_remove: List[ClassifiedChange] = []
        for entry in entries:
            change = classify_entry(entry)
            if is_internal_path(entry.path) or self.matcher.excludes(entry.path):
                logger.debug("Excluding %s", entry.path)
                if entry.is_staged:
                    self._unstage_excluded(entry.path)
                continue
            if change.kind is ChangeKind.DELETED:
                to_remove.append(change)
            elif change.kind in _STAGE_KINDS:
                to_stage.append(change)
            elif change.kind is ChangeKind.UNTRACKED and self.include_untracked:
                to_stage.append(change)
        return to_stage, to_remove

    def _unstage_excluded(self, path: str) -> None:
        try:
            self.repo.unstage(path)
        except GitError as e:
            logger.warning("Could not unstage excluded path %s: %s", path, e)

    def _apply(
        self,
        operation: Callable[[str], None],
        change: ClassifiedChange,
        changes: List[ClassifiedChange],
        outcome: CommitOutcome,
    ) -> None:
        try:
            operation(change.path)
        except GitError as e:
            logger.warning("Staging failed for %s, skipping: %s", change.path, e)
            outcome.skipped.append(change.path)
            return
        changes.append(change)

    def _push(self, outcome: CommitOutcome) -> None:
        if not self.repo.has_remote(self.remote):
            logger.warning("No remote named %r; commit kept locally", self.remote)
            outcome.error = ErrorKind.PUSH_FAILED
            outcome.detail = (
                f"No remote named '{self.remote}' is configured. "
                "The commit was kept locally."
            )
            return
        try:
            self.repo.push(self.remote)
        except GitError as e:
            kind = classify_push_error(e.stderr or str(e))
            logger.warning("Push failed (%s): %s", kind.value, e)
            outcome.error = kind
            outcome.detail = guidance_for(kind)
            return
        outcome.pushed = True
        logger.info("Pushed to %s", self.remote)


def _failure(kind: ErrorKind, detail: Optional[str] = None) -> CommitOutcome:
    return CommitOutcome(error=kind, detail=detail or guidance_for(kind))
