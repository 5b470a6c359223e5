"""Host-facing facade wiring configuration to the commit pipeline."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from .aggregator import ChangeAggregator, EngineState, EventKind, OutcomeListener, StateListener
from .commit import CommitMessageGenerator
from .config import Config, get_active_config
from .controller import CommitOutcome, RepositoryController
from .git import GitRepo
from .llm import TextGenerator, create_client
from .matcher import ExclusionMatcher
from .scheduler import Scheduler, ThreadingScheduler
from .watcher import PollingChangeSource

logger = logging.getLogger(__name__)


class AutoGitEngine:
    """One independent auto-commit pipeline for one repository.

    Exposes the operations a host needs: ``enable``, ``disable``,
    ``on_change_event``, ``commit_now`` and outcome subscription.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        scheduler: Optional[Scheduler] = None,
        text_generator: Optional[TextGenerator] = None,
        repo: Optional[GitRepo] = None,
    ) -> None:
        self.config = config or get_active_config()
        self.repo = repo or GitRepo(self.config.git_repo_path)
        self.matcher = ExclusionMatcher(self.config.exclude_patterns)

        client = text_generator
        if client is None and self.config.ai_enabled:
            client = create_client(self.config)
        self.generator = CommitMessageGenerator(
            client,
            max_length=self.config.max_commit_length,
            request_timeout=self.config.request_timeout,
        )
        self.controller = RepositoryController(
            self.repo,
            self.generator,
            matcher=self.matcher,
            include_untracked=self.config.include_untracked,
            auto_push=self.config.auto_push,
            remote=self.config.remote,
        )
        self.scheduler = scheduler or ThreadingScheduler()
        self.aggregator = ChangeAggregator(
            self.controller.run_cycle,
            self.scheduler,
            matcher=self.matcher,
            root=self.repo.repo_path,
            delay_ms=self.config.delay_ms,
        )
        self._poller: Optional[PollingChangeSource] = None
        if self.config.enabled:
            self.enable()

    @property
    def state(self) -> EngineState:
        return self.aggregator.state

    def enable(self) -> None:
        self.aggregator.enable()

    def disable(self) -> None:
        self.aggregator.disable()

    def on_change_event(
        self, path: Union[str, Path], kind: Union[EventKind, str] = EventKind.MODIFIED
    ) -> bool:
        return self.aggregator.on_change_event(path, kind)

    def commit_now(self) -> Optional[CommitOutcome]:
        return self.aggregator.commit_now()

    def subscribe(self, callback: OutcomeListener) -> None:
        self.aggregator.add_listener(callback)

    def subscribe_state(self, callback: StateListener) -> None:
        self.aggregator.add_state_listener(callback)

    def start_polling(self, interval: Optional[float] = None) -> PollingChangeSource:
        """Start the polling change source feeding :meth:`on_change_event`."""
        if self._poller is None:
            self._poller = PollingChangeSource(
                self.repo.repo_path,
                self.on_change_event,
                interval=interval or self.config.poll_interval or 5.0,
            )
        self._poller.start()
        return self._poller

    def stop_polling(self) -> None:
        if self._poller is not None:
            self._poller.stop()

    def close(self, timeout: Optional[float] = 60.0) -> bool:
        """Stop the engine and wait for an in-flight cycle to finish.

        Returns False when the cycle was still running after ``timeout``.
        """
        self.stop_polling()
        self.disable()
        cancel_all = getattr(self.scheduler, "cancel_all", None)
        if cancel_all is not None:
            cancel_all()
        finished = self.aggregator.wait_idle(timeout)
        if not finished:
            logger.warning("Commit cycle still running after %ss", timeout)
        logger.debug("Engine for %s closed", self.repo.repo_path)
        return finished
