import subprocess
from pathlib import Path

import pytest

from autogit.commit import CommitMessageGenerator
from autogit.controller import CommitOutcome, RepositoryController
from autogit.exceptions import ErrorKind, GitError
from autogit.git import GitRepo
from autogit.matcher import ExclusionMatcher
from autogit.status import RepoStatusEntry


def _controller(path, patterns=(), client=None, **kw):
    kw.setdefault("auto_push", False)
    return RepositoryController(
        GitRepo(str(path)),
        CommitMessageGenerator(client),
        matcher=ExclusionMatcher(patterns),
        **kw,
    )


def _tracked(run_git, repo: Path):
    return run_git(repo, "ls-files").split()


class RecordingClient:
    def __init__(self, reply="feat: add feature", error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    def generate(self, prompt, request_timeout=None):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


def test_commits_untracked_file_with_fallback_message(committed_repo, run_git):
    (committed_repo / "a.txt").write_text("hello\n")

    outcome = _controller(committed_repo).run_cycle()

    assert outcome.committed is True
    assert outcome.error is None
    assert outcome.message == "Auto-commit: 1 added file"
    assert outcome.staged == ["a.txt"]
    assert "a.txt" in _tracked(run_git, committed_repo)
    head = run_git(committed_repo, "rev-parse", "HEAD").strip()
    assert outcome.commit_hash == head


def test_fresh_repository_first_commit(git_repo, run_git):
    (git_repo / "a.txt").write_text("hello\n")

    outcome = _controller(git_repo).run_cycle()

    assert outcome.committed is True
    assert "1 added" in outcome.message
    assert run_git(git_repo, "ls-files").split() == ["a.txt"]


def test_second_cycle_is_noop(committed_repo):
    (committed_repo / "a.txt").write_text("hello\n")
    controller = _controller(committed_repo)

    assert controller.run_cycle().committed is True
    second = controller.run_cycle()
    assert second.committed is False
    assert second.error is ErrorKind.NOTHING_TO_COMMIT
    assert second.noop and second.ok


def test_clean_tree_is_noop(committed_repo):
    outcome = _controller(committed_repo).run_cycle()
    assert outcome.error is ErrorKind.NOTHING_TO_COMMIT
    assert outcome.summary() == "Nothing to commit"


def test_excluded_files_are_never_committed(committed_repo, run_git):
    (committed_repo / "a.txt").write_text("a\n")
    (committed_repo / "debug.log").write_text("noise\n")

    outcome = _controller(committed_repo, ["*.log"]).run_cycle()

    assert outcome.committed is True
    assert outcome.message == "Auto-commit: 1 added file"
    tracked = _tracked(run_git, committed_repo)
    assert "a.txt" in tracked
    assert "debug.log" not in tracked


def test_only_excluded_changes_is_noop(committed_repo):
    (committed_repo / "logs").mkdir()
    (committed_repo / "logs" / "x.log").write_text("x\n")

    outcome = _controller(committed_repo, ["logs/**"]).run_cycle()

    assert outcome.committed is False
    assert outcome.error is ErrorKind.NOTHING_TO_COMMIT


def test_excluded_path_already_staged_is_unstaged(committed_repo, run_git):
    (committed_repo / "secret.env").write_text("TOKEN=1\n")
    (committed_repo / "a.txt").write_text("a\n")
    run_git(committed_repo, "add", "secret.env")

    outcome = _controller(committed_repo, ["*.env"]).run_cycle()

    assert outcome.committed is True
    assert "secret.env" not in _tracked(run_git, committed_repo)


def test_untracked_files_skipped_when_disabled(committed_repo, run_git):
    (committed_repo / "base.txt").write_text("changed\n")
    (committed_repo / "new.txt").write_text("new\n")

    outcome = _controller(committed_repo, include_untracked=False).run_cycle()

    assert outcome.committed is True
    assert outcome.message == "Auto-commit: 1 modified file"
    assert "new.txt" not in _tracked(run_git, committed_repo)


def test_deletion_is_committed(committed_repo, run_git):
    (committed_repo / "base.txt").unlink()

    outcome = _controller(committed_repo).run_cycle()

    assert outcome.committed is True
    assert outcome.message == "Auto-commit: 1 deleted file"
    assert "base.txt" not in _tracked(run_git, committed_repo)


def test_mixed_changes_summary(committed_repo):
    (committed_repo / "base.txt").write_text("changed\n")
    (committed_repo / "a.txt").write_text("a\n")
    (committed_repo / "b.txt").write_text("b\n")

    outcome = _controller(committed_repo).run_cycle()

    assert outcome.message == "Auto-commit: 2 added, 1 modified files"


def test_not_a_repository(tmp_path):
    outcome = _controller(tmp_path).run_cycle()
    assert outcome.committed is False
    assert outcome.error is ErrorKind.NOT_A_REPOSITORY
    assert not outcome.ok


def test_ai_message_used_and_prompt_lists_only_included_paths(committed_repo):
    (committed_repo / "app.py").write_text("print('x')\n")
    (committed_repo / "trace.log").write_text("x\n")
    client = RecordingClient(reply='"feat: add app entry point"')

    outcome = _controller(committed_repo, ["*.log"], client=client).run_cycle()

    assert outcome.message == "feat: add app entry point"
    assert len(client.prompts) == 1
    assert "app.py" in client.prompts[0]
    assert "trace.log" not in client.prompts[0]


def test_ai_failure_falls_back(committed_repo):
    (committed_repo / "app.py").write_text("x\n")
    client = RecordingClient(error=RuntimeError("offline"))

    outcome = _controller(committed_repo, client=client).run_cycle()

    assert outcome.committed is True
    assert outcome.message == "Auto-commit: 1 added file"


class FakeRepo:
    """In-memory stand-in driven by a scripted status."""

    repo_path = Path("/fake")

    def __init__(self, entries, stage_fail=(), commit_error=None, push_error=None,
                 remote=True):
        self.entries = entries
        self.stage_fail = set(stage_fail)
        self.commit_error = commit_error
        self.push_error = push_error
        self.remote = remote
        self.staged = []
        self.pushed = False

    def is_repository(self):
        return True

    def status(self):
        return list(self.entries)

    def stage(self, path):
        if path in self.stage_fail:
            raise GitError("add failed", stderr="fatal: unable to index file")
        self.staged.append(path)

    remove = stage

    def unstage(self, path):
        pass

    def staged_paths(self):
        return list(self.staged)

    def commit(self, message):
        if self.commit_error is not None:
            raise self.commit_error
        return "deadbeef"

    def has_remote(self, remote="origin"):
        return self.remote

    def push(self, remote="origin", branch=None):
        if self.push_error is not None:
            raise self.push_error
        self.pushed = True
        return ""


def _fake_controller(repo, **kw):
    return RepositoryController(repo, CommitMessageGenerator(), **kw)


def test_staging_failure_skips_path_and_commits_rest():
    repo = FakeRepo(
        [RepoStatusEntry("ok.txt", "?", "?"), RepoStatusEntry("bad.txt", "?", "?")],
        stage_fail={"bad.txt"},
    )

    outcome = _fake_controller(repo, auto_push=False).run_cycle()

    assert outcome.committed is True
    assert outcome.skipped == ["bad.txt"]
    assert outcome.staged == ["ok.txt"]
    assert outcome.message == "Auto-commit: 1 added file"
    assert outcome.error is None
    assert outcome.warnings == [ErrorKind.STAGING_FAILED]


def test_all_staging_failures_report_staging_failed():
    repo = FakeRepo([RepoStatusEntry("bad.txt", "?", "?")], stage_fail={"bad.txt"})

    outcome = _fake_controller(repo, auto_push=False).run_cycle()

    assert outcome.committed is False
    assert outcome.error is ErrorKind.STAGING_FAILED
    assert not outcome.ok
    assert outcome.skipped == ["bad.txt"]


def test_commit_failure_reported():
    repo = FakeRepo(
        [RepoStatusEntry("a.txt", " ", "M")],
        commit_error=GitError("commit failed", stderr="pre-commit hook failed"),
    )

    outcome = _fake_controller(repo).run_cycle()

    assert outcome.committed is False
    assert outcome.pushed is False
    assert outcome.error is ErrorKind.COMMIT_FAILED
    assert "pre-commit hook failed" in outcome.detail
    assert repo.pushed is False


def test_status_failure_reported_as_commit_failure():
    class BrokenStatus(FakeRepo):
        def status(self):
            raise GitError("status failed", stderr="fatal: index file corrupt")

    outcome = _fake_controller(BrokenStatus([])).run_cycle()
    assert outcome.error is ErrorKind.COMMIT_FAILED
    assert "index file corrupt" in outcome.detail


@pytest.mark.parametrize(
    "stderr,kind",
    [
        (
            "fatal: Authentication failed for 'https://example.com/r.git/'",
            ErrorKind.AUTHENTICATION_FAILED,
        ),
        (
            "fatal: could not read Username for 'https://github.com': "
            "terminal prompts disabled",
            ErrorKind.AUTHENTICATION_FAILED,
        ),
        (
            " ! [rejected]        main -> main (fetch first)",
            ErrorKind.PUSH_REJECTED,
        ),
        ("fatal: unable to access: Could not resolve host", ErrorKind.PUSH_FAILED),
    ],
)
def test_push_failures_are_classified(stderr, kind):
    repo = FakeRepo(
        [RepoStatusEntry("a.txt", " ", "M")],
        push_error=GitError("push failed", stderr=stderr),
    )

    outcome = _fake_controller(repo).run_cycle()

    assert outcome.committed is True
    assert outcome.pushed is False
    assert outcome.error is kind
    assert outcome.detail
    assert outcome.message in outcome.summary()


def test_missing_remote_keeps_commit(committed_repo):
    (committed_repo / "a.txt").write_text("a\n")

    outcome = _controller(committed_repo, auto_push=True).run_cycle()

    assert outcome.committed is True
    assert outcome.pushed is False
    assert outcome.error is ErrorKind.PUSH_FAILED
    assert "origin" in outcome.detail


def test_push_to_bare_remote(committed_repo, tmp_path, run_git):
    remote = tmp_path / "remote.git"
    run_git(tmp_path, "init", "-q", "--bare", str(remote))
    run_git(committed_repo, "remote", "add", "origin", str(remote))
    (committed_repo / "a.txt").write_text("a\n")

    outcome = _controller(committed_repo, auto_push=True).run_cycle()

    assert outcome.committed is True
    assert outcome.pushed is True
    assert outcome.error is None
    assert outcome.summary().startswith("Committed and pushed")
    branch = run_git(committed_repo, "rev-parse", "--abbrev-ref", "HEAD").strip()
    assert run_git(remote, "rev-parse", branch).strip() == outcome.commit_hash


def test_outcome_summary_variants():
    assert CommitOutcome(committed=True, message="m").summary() == 'Committed: "m"'
    failed = CommitOutcome(
        committed=True,
        message="m",
        error=ErrorKind.PUSH_REJECTED,
        detail="pull first",
    )
    assert failed.summary() == 'Committed: "m" (pull first)'
    assert CommitOutcome(error=ErrorKind.COMMIT_FAILED).summary() == "Commit cycle failed"


def test_generator_failure_is_reported_as_warning(committed_repo):
    (committed_repo / "app.py").write_text("x\n")
    client = RecordingClient(error=RuntimeError("offline"))

    outcome = _controller(committed_repo, client=client).run_cycle()

    assert outcome.error is None
    assert outcome.warnings == [ErrorKind.GENERATOR_UNAVAILABLE]


def test_malformed_pattern_is_reported_as_warning(committed_repo):
    (committed_repo / "a.txt").write_text("a\n")

    outcome = _controller(committed_repo, ["[unterminated", "*.log"]).run_cycle()

    assert outcome.committed is True
    assert outcome.warnings == [ErrorKind.PATTERN_COMPILE_ERROR]


def test_clean_cycle_has_no_warnings(committed_repo):
    (committed_repo / "a.txt").write_text("a\n")
    assert _controller(committed_repo).run_cycle().warnings == []


def test_settings_directory_is_never_committed(committed_repo, run_git):
    from autogit.config import Config, save_config

    save_config(Config(), committed_repo)
    (committed_repo / "a.txt").write_text("a\n")

    outcome = _controller(committed_repo).run_cycle()

    assert outcome.committed is True
    assert outcome.staged == ["a.txt"]
    assert not any(
        p.startswith(".autogit/") for p in _tracked(run_git, committed_repo)
    )
    # Only the settings file left: nothing to do
    assert _controller(committed_repo).run_cycle().noop


def test_unresolved_merge_conflict_is_not_committed(committed_repo, run_git):
    run_git(committed_repo, "checkout", "-q", "-b", "feature")
    (committed_repo / "base.txt").write_text("feature side\n")
    run_git(committed_repo, "commit", "-q", "-am", "feature change")
    run_git(committed_repo, "checkout", "-q", "-")
    (committed_repo / "base.txt").write_text("main side\n")
    run_git(committed_repo, "commit", "-q", "-am", "main change")
    with pytest.raises(subprocess.CalledProcessError):
        run_git(committed_repo, "merge", "-q", "feature")
    (committed_repo / "other.txt").write_text("unrelated\n")
    head = run_git(committed_repo, "rev-parse", "HEAD").strip()

    outcome = _controller(committed_repo).run_cycle()

    assert outcome.committed is False
    assert outcome.error is ErrorKind.MERGE_CONFLICT
    assert outcome.skipped == ["base.txt"]
    assert run_git(committed_repo, "rev-parse", "HEAD").strip() == head
    status = run_git(committed_repo, "status", "--porcelain")
    assert "UU base.txt" in status


def test_repository_subdirectory_stages_from_top_level(committed_repo, run_git):
    sub = committed_repo / "sub"
    sub.mkdir()
    (sub / "a.txt").write_text("a\n")

    outcome = _controller(sub).run_cycle()

    assert outcome.committed is True
    assert outcome.staged == ["sub/a.txt"]
    assert outcome.skipped == []
    assert "sub/a.txt" in _tracked(run_git, committed_repo)
