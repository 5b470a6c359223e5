"""Git operations for autogit."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import List, Optional

from .exceptions import GitError
from .status import RepoStatusEntry

logger = logging.getLogger(__name__)


def find_git_repo_root(start_path: Optional[Path] = None) -> Optional[Path]:
    """Return the top-level Git repository directory for ``start_path``.

    Attempts ``git rev-parse --show-toplevel`` first so worktrees and
    submodules are handled correctly. Falls back to walking parent
    directories looking for a ``.git`` directory or file. Returns ``None``
    when no Git repository can be found starting from ``start_path``.
    """

    path = Path(start_path or Path.cwd()).expanduser().resolve(strict=False)
    if path.is_file():
        path = path.parent

    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=path,
            capture_output=True,
            text=True,
            check=True,
        )
        top = result.stdout.strip()
        if top:
            return Path(top)
    except (subprocess.CalledProcessError, FileNotFoundError, NotADirectoryError):
        pass

    for candidate in (path, *path.parents):
        if (candidate / ".git").exists():
            return candidate

    return None


def parse_porcelain_z(output: str) -> List[RepoStatusEntry]:
    """Parse ``git status --porcelain -z`` output.

    Records are NUL separated. Renames and copies are followed by an extra
    record holding the original path.
    """
    entries: List[RepoStatusEntry] = []
    records = output.split("\0")
    i = 0
    while i < len(records):
        record = records[i]
        i += 1
        if len(record) < 4:
            continue
        index_state, worktree_state = record[0], record[1]
        path = record[3:]
        orig_path = None
        if index_state in ("R", "C") or worktree_state in ("R", "C"):
            if i < len(records):
                orig_path = records[i] or None
                i += 1
        entries.append(
            RepoStatusEntry(
                path=path,
                index_state=index_state,
                worktree_state=worktree_state,
                orig_path=orig_path,
            )
        )
    return entries


class GitRepo:
    """Handles Git repository operations."""

    def __init__(self, repo_path: Optional[str] = None) -> None:
        """Bind to the work tree containing ``repo_path``.

        Status paths are relative to the top level, so every command runs
        from there even when ``repo_path`` is a subdirectory. A path outside
        any repository is kept as is.
        """
        path = Path(repo_path or ".").expanduser().resolve(strict=False)
        top = find_git_repo_root(path) if path.is_dir() else None
        self.repo_path = top.resolve(strict=False) if top else path

    def _run(
        self,
        args: List[str],
        input_text: Optional[str] = None,
        env: Optional[dict] = None,
    ) -> subprocess.CompletedProcess:
        logger.debug("git %s (cwd=%s)", " ".join(args), self.repo_path)
        try:
            return subprocess.run(
                ["git"] + args,
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                check=True,
                input=input_text,
                env=env,
            )
        except subprocess.CalledProcessError as e:
            cmd = " ".join(args)
            stderr = (e.stderr or "").strip()
            stdout = (e.stdout or "").strip()
            detail = stderr or stdout
            raise GitError(
                f"Git command failed: {cmd}\n{detail}",
                command=["git"] + args,
                stderr=detail,
            ) from e
        except FileNotFoundError as exc:
            raise GitError(
                "Git command not found. Please install Git.",
                command=["git"] + args,
            ) from exc
        except NotADirectoryError as exc:
            raise GitError(
                f"Repository path is not a directory: {self.repo_path}",
                command=["git"] + args,
            ) from exc

    def _run_git_command(self, args: List[str]) -> str:
        """Run a Git command and return its stripped output."""
        return self._run(args).stdout.strip()

    def is_repository(self) -> bool:
        """Return True when ``repo_path`` is inside a git work tree."""
        if not self.repo_path.is_dir():
            return False
        try:
            out = self._run_git_command(["rev-parse", "--is-inside-work-tree"])
        except GitError:
            return False
        return out == "true"

    def status(self) -> List[RepoStatusEntry]:
        """Return live porcelain status, untracked files listed individually."""
        output = self._run(
            ["status", "--porcelain", "-z", "--untracked-files=all"]
        ).stdout
        return parse_porcelain_z(output)

    def stage(self, file_path: str) -> None:
        """Stage a specific path (additions, modifications and removals)."""
        self._run_git_command(["add", "--", file_path])

    def remove(self, file_path: str) -> None:
        """Stage the removal of a path that is gone from the work tree."""
        self._run_git_command(
            ["rm", "--cached", "--quiet", "--ignore-unmatch", "--", file_path]
        )

    def unstage(self, file_path: str) -> None:
        """Drop a path from the index, leaving the work tree untouched."""
        self._run_git_command(["reset", "--quiet", "--", file_path])

    def staged_paths(self) -> List[str]:
        """Return the paths currently staged for commit."""
        output = self._run(
            ["diff", "--cached", "--name-only", "-z", "--no-renames"]
        ).stdout
        return [p for p in output.split("\0") if p]

    def commit(self, message: str) -> str:
        """Create a commit with ``message`` and return the new commit hash.

        The message travels on stdin so it never passes through shell or
        argument quoting.
        """
        clean = message.replace("\0", "")
        self._run(["commit", "--quiet", "-F", "-"], input_text=clean)
        return self._run_git_command(["rev-parse", "HEAD"])

    def current_branch(self) -> str:
        return self._run_git_command(["rev-parse", "--abbrev-ref", "HEAD"])

    def has_remote(self, remote: str = "origin") -> bool:
        try:
            remotes = self._run_git_command(["remote"]).splitlines()
        except GitError:
            return False
        return remote in remotes

    def push(self, remote: str = "origin", branch: Optional[str] = None) -> str:
        """Push current branch to remote.

        If branch is None, determine it via 'git rev-parse --abbrev-ref HEAD'.
        Credential prompts are disabled so a missing credential fails fast.
        Returns the combined output from git push.
        """
        if branch is None:
            branch = self.current_branch()
        env = dict(os.environ)
        env["GIT_TERMINAL_PROMPT"] = "0"
        result = self._run(["push", remote, branch], env=env)
        return ((result.stdout or "") + (result.stderr or "")).strip()

    def get_recent_commits(self, count: int = 5) -> List[str]:
        """Get recent commit subjects prefixed with abbreviated hashes."""
        output = self._run_git_command(["log", f"-{count}", "--pretty=%h %s"])
        return output.split("\n") if output else []
