import subprocess

import pytest

from autogit.exceptions import GitError
from autogit.git import GitRepo, find_git_repo_root, parse_porcelain_z
from autogit.status import RepoStatusEntry


def test_parse_porcelain_z_handles_renames_and_spaces():
    output = " M src/app.py\0R  new name.txt\0old name.txt\0?? notes.md\0 D gone.txt\0"
    entries = parse_porcelain_z(output)
    assert entries == [
        RepoStatusEntry("src/app.py", " ", "M"),
        RepoStatusEntry("new name.txt", "R", " ", orig_path="old name.txt"),
        RepoStatusEntry("notes.md", "?", "?"),
        RepoStatusEntry("gone.txt", " ", "D"),
    ]


def test_parse_porcelain_z_empty():
    assert parse_porcelain_z("") == []


def test_run_git_command_called_process_error(monkeypatch, tmp_path):
    def fake_run(*args, **kwargs):
        raise subprocess.CalledProcessError(1, "git", stderr="bad\n")

    monkeypatch.setattr(subprocess, "run", fake_run)
    repo = GitRepo(str(tmp_path))

    with pytest.raises(GitError) as ei:
        repo._run_git_command(["x"])
    assert "failed" in str(ei.value)
    assert ei.value.stderr == "bad"
    assert ei.value.command == ["git", "x"]


def test_run_git_command_file_not_found(monkeypatch, tmp_path):
    def fake_run(*args, **kwargs):
        raise FileNotFoundError()

    monkeypatch.setattr(subprocess, "run", fake_run)
    repo = GitRepo(str(tmp_path))

    with pytest.raises(GitError) as ei:
        repo._run_git_command(["x"])
    assert "not found" in str(ei.value).lower()


def test_is_repository(tmp_path, git_repo):
    plain = tmp_path / "plain"
    plain.mkdir()
    assert GitRepo(str(git_repo)).is_repository() is True
    assert GitRepo(str(plain)).is_repository() is False
    assert GitRepo(str(tmp_path / "missing")).is_repository() is False


def test_find_git_repo_root(git_repo):
    nested = git_repo / "a" / "b"
    nested.mkdir(parents=True)
    assert find_git_repo_root(nested).resolve() == git_repo.resolve()


def test_status_lists_untracked_files_individually(git_repo):
    (git_repo / "dir" / "sub").mkdir(parents=True)
    (git_repo / "dir" / "sub" / "a.txt").write_text("a")
    (git_repo / "top.txt").write_text("t")

    entries = GitRepo(str(git_repo)).status()
    paths = sorted(e.path for e in entries)
    assert paths == ["dir/sub/a.txt", "top.txt"]
    assert all(e.code == "??" for e in entries)


def test_stage_commit_and_staged_paths(git_repo, run_git):
    repo = GitRepo(str(git_repo))
    (git_repo / "a.txt").write_text("hello")

    repo.stage("a.txt")
    assert repo.staged_paths() == ["a.txt"]

    message = 'feat: say "hello" and `bye`; $(rm -rf /)'
    commit_hash = repo.commit(message)
    assert len(commit_hash) == 40
    assert run_git(git_repo, "log", "-1", "--pretty=%B").strip() == message
    assert repo.staged_paths() == []
    assert repo.get_recent_commits(1)[0].endswith(message)


def test_remove_stages_deletion(committed_repo):
    repo = GitRepo(str(committed_repo))
    (committed_repo / "base.txt").unlink()
    repo.remove("base.txt")
    assert repo.staged_paths() == ["base.txt"]
    assert [e.code for e in repo.status()] == ["D "]


def test_unstage(committed_repo):
    repo = GitRepo(str(committed_repo))
    (committed_repo / "base.txt").write_text("changed")
    repo.stage("base.txt")
    repo.unstage("base.txt")
    assert repo.staged_paths() == []


def test_stage_missing_path_raises(git_repo):
    with pytest.raises(GitError):
        GitRepo(str(git_repo)).stage("does-not-exist.txt")


def test_push_to_bare_remote(committed_repo, tmp_path, run_git):
    remote = tmp_path / "remote.git"
    run_git(tmp_path, "init", "-q", "--bare", str(remote))
    run_git(committed_repo, "remote", "add", "origin", str(remote))
    repo = GitRepo(str(committed_repo))

    assert repo.has_remote("origin") is True
    assert repo.has_remote("upstream") is False
    repo.push("origin")
    branch = repo.current_branch()
    assert run_git(remote, "rev-parse", branch).strip() == run_git(
        committed_repo, "rev-parse", "HEAD"
    ).strip()


def test_repo_bound_to_top_level_from_subdirectory(committed_repo):
    sub = committed_repo / "sub"
    sub.mkdir()
    (sub / "a.txt").write_text("a\n")
    repo = GitRepo(str(sub))

    assert repo.repo_path == committed_repo.resolve()
    assert [e.path for e in repo.status()] == ["sub/a.txt"]
    repo.stage("sub/a.txt")
    assert repo.staged_paths() == ["sub/a.txt"]
