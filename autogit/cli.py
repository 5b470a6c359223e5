"""Command line interface for autogit."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import __version__
from .config import describe_provider, load_config
from .controller import CommitOutcome
from .engine import AutoGitEngine
from .exceptions import AutoGitError, guidance_for
from .git import GitRepo, find_git_repo_root
from .matcher import should_exclude
from .status import classify_entry

RESET = "\033[0m"
BOLD = "\033[1m"
CYAN = "\033[96m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
DIM = "\033[2m"
RED = "\033[91m"


def _add_cycle_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--exclude",
        action="append",
        metavar="PATTERN",
        help="Glob pattern to ignore (repeatable; ** crosses directories)",
    )
    parser.add_argument(
        "--no-untracked",
        action="store_true",
        help="Do not stage untracked files",
    )
    parser.add_argument(
        "--no-push",
        action="store_true",
        help="Commit locally without pushing",
    )
    parser.add_argument("--remote", help="Remote to push to (default: origin)")
    parser.add_argument(
        "--provider",
        choices=["openai", "anthropic", "xai", "github", "none"],
        help="Text-generation provider for commit messages",
    )
    parser.add_argument("--model", help="Model name for the provider")
    parser.add_argument(
        "--max-length",
        type=int,
        help="Maximum commit message length (default: 72)",
    )


class CLI:
    """argparse front end over :class:`autogit.engine.AutoGitEngine`."""

    def __init__(self) -> None:
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="autogit",
            description="Automatically commit and push changes in a git work tree.",
        )
        parser.add_argument("--version", action="version", version=__version__)
        parser.add_argument(
            "--repo-path",
            help="Repository to operate on (default: current directory)",
        )
        verbosity = parser.add_mutually_exclusive_group()
        verbosity.add_argument("--debug", action="store_true", help="Debug logging")
        verbosity.add_argument("--verbose", "-v", action="store_true", help="Info logging")

        sub = parser.add_subparsers(dest="command", required=True)

        watch = sub.add_parser("watch", help="Commit automatically as files change")
        _add_cycle_options(watch)
        watch.add_argument(
            "--delay-ms",
            type=int,
            help="Quiet period before committing (default: 3000)",
        )
        watch.add_argument(
            "--poll-interval",
            type=float,
            help="Seconds between work tree scans (default: 5)",
        )

        now = sub.add_parser("commit-now", help="Run one commit cycle immediately")
        _add_cycle_options(now)

        sub.add_parser("status", help="Show classified changes and recent commits")

        check = sub.add_parser("check", help="Test a path against exclude patterns")
        check.add_argument("path")
        check.add_argument("--exclude", action="append", metavar="PATTERN")
        return parser

    def run(self, args: Optional[List[str]] = None) -> int:
        try:
            parsed = self.parser.parse_args(args)
        except SystemExit as e:
            return int(e.code or 0)

        _configure_logging(parsed)
        try:
            if parsed.command == "watch":
                return self._watch(parsed)
            if parsed.command == "commit-now":
                return self._commit_now(parsed)
            if parsed.command == "status":
                return self._status(parsed)
            return self._check(parsed)
        except AutoGitError as e:
            self._print_error(str(e))
            return 1
        except KeyboardInterrupt:
            self._print_info("\nInterrupted")
            return 1

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def _load_config(self, parsed: argparse.Namespace):
        root = _resolve_root(parsed.repo_path)
        overrides: Dict[str, Any] = {"git_repo_path": str(root)}
        if getattr(parsed, "exclude", None):
            overrides["exclude_patterns"] = parsed.exclude
        if getattr(parsed, "no_untracked", False):
            overrides["include_untracked"] = False
        if getattr(parsed, "no_push", False):
            overrides["auto_push"] = False
        for attr, key in (
            ("remote", "remote"),
            ("provider", "provider"),
            ("model", "model"),
            ("max_length", "max_commit_length"),
            ("delay_ms", "delay_ms"),
            ("poll_interval", "poll_interval"),
        ):
            value = getattr(parsed, attr, None)
            if value is not None:
                overrides[key] = value
        return load_config(repo_root=root, overrides=overrides)

    def _commit_now(self, parsed: argparse.Namespace) -> int:
        config = self._load_config(parsed)
        engine = AutoGitEngine(config)
        engine.enable()
        try:
            outcome = engine.commit_now()
        finally:
            engine.close()
        if outcome is None:
            self._print_error("Commit cycle did not run")
            return 1
        self._print_outcome(outcome)
        return 0 if outcome.ok else 1

    def _watch(self, parsed: argparse.Namespace) -> int:
        config = self._load_config(parsed)
        engine = AutoGitEngine(config)
        stop = threading.Event()

        engine.subscribe(self._print_outcome)
        engine.enable()
        engine.start_polling(config.poll_interval or None)
        self._print_info(
            f"{BOLD}Watching{RESET} {config.git_repo_path} "
            f"(delay {config.delay_ms} ms, messages: {describe_provider(config.provider)})"
        )

        previous = signal.getsignal(signal.SIGINT)
        signal.signal(signal.SIGINT, lambda *_: stop.set())
        try:
            while not stop.wait(0.5):
                pass
        finally:
            signal.signal(signal.SIGINT, previous)
            engine.close()
            self._print_info("Stopped")
        return 0

    def _status(self, parsed: argparse.Namespace) -> int:
        root = _resolve_root(parsed.repo_path)
        repo = GitRepo(str(root))
        if not repo.is_repository():
            self._print_error(f"Not a git repository: {root}")
            return 1
        entries = repo.status()
        if not entries:
            self._print_info("Working tree clean")
        for entry in entries:
            change = classify_entry(entry)
            print(f"{CYAN}{change.kind.label:<10}{RESET} {change.path}")
        recent = repo.get_recent_commits() if _has_commits(repo) else []
        if recent:
            print(f"\n{DIM}Recent commits:{RESET}")
            for line in recent:
                print(f"  {line}")
        return 0

    def _check(self, parsed: argparse.Namespace) -> int:
        patterns = parsed.exclude or load_config(
            repo_root=_resolve_root(parsed.repo_path)
        ).exclude_patterns
        excluded = should_exclude(parsed.path, patterns)
        verdict = f"{YELLOW}excluded{RESET}" if excluded else f"{GREEN}included{RESET}"
        print(f"{parsed.path}: {verdict}")
        return 0

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------
    def _print_outcome(self, outcome: CommitOutcome) -> None:
        if outcome.noop:
            print(f"{DIM}{outcome.summary()}{RESET}")
        elif outcome.error is None:
            print(f"{GREEN}{outcome.summary()}{RESET}")
        elif outcome.committed:
            print(f"{YELLOW}{outcome.summary()}{RESET}")
        else:
            print(f"{RED}{outcome.summary()}{RESET}")
        for path in outcome.skipped:
            print(f"{YELLOW}  skipped {path}{RESET}")
        for kind in outcome.warnings:
            print(f"{DIM}  {guidance_for(kind)}{RESET}")

    def _print_error(self, message: str) -> None:
        print(f"{RED}Error: {message}{RESET}", file=sys.stderr)

    def _print_info(self, message: str) -> None:
        print(message)


def _configure_logging(parsed: argparse.Namespace) -> None:
    level = logging.WARNING
    if parsed.debug:
        level = logging.DEBUG
    elif parsed.verbose:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _resolve_root(repo_path: Optional[str]) -> Path:
    start = Path(repo_path).expanduser() if repo_path else Path.cwd()
    return find_git_repo_root(start) or start.resolve(strict=False)


def _has_commits(repo: GitRepo) -> bool:
    try:
        repo.current_branch()
    except AutoGitError:
        return False
    return True


def main(argv: Optional[List[str]] = None) -> int:
    return CLI().run(argv)


if __name__ == "__main__":
    sys.exit(main())
