import os
import subprocess
from collections.abc import Generator
from pathlib import Path

import pytest

from autogit.scheduler import ManualScheduler

_PROVIDER_ENV = (
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "XAI_API_KEY",
    "GITHUB_TOKEN",
    "GH_TOKEN",
)


@pytest.fixture(autouse=True)
def reset_config(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    # No test may reach a real text-generation provider
    for name in list(os.environ):
        upper = name.upper()
        if name in _PROVIDER_ENV or name.startswith("AUTOGIT_"):
            monkeypatch.delenv(name, raising=False)
        elif any(h in upper for h in ("OPENAI", "ANTHROPIC", "CLAUDE", "XAI", "GROK")):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GIT_TERMINAL_PROMPT", "0")

    from autogit.config import clear_active_config

    clear_active_config()
    yield
    clear_active_config()


def git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """A fresh repository with a local identity and no commits."""
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "-q")
    git(repo, "config", "user.name", "Test User")
    git(repo, "config", "user.email", "test@example.com")
    git(repo, "config", "commit.gpgsign", "false")
    return repo


@pytest.fixture
def committed_repo(git_repo: Path) -> Path:
    """A repository with one initial commit containing ``base.txt``."""
    (git_repo / "base.txt").write_text("base\n")
    git(git_repo, "add", "base.txt")
    git(git_repo, "commit", "-q", "-m", "chore: init")
    return git_repo


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def run_git():
    return git
