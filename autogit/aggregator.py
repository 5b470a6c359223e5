"""Debounce state machine turning change events into commit cycles.

States::

    DISABLED -> IDLE <-> PENDING -> RUNNING -> IDLE

Every accepted event re-arms the debounce timer, so a cycle starts only
after ``delay`` seconds without further qualifying events. At most one
cycle runs at a time; events that arrive meanwhile are collected into a
fresh batch which is scheduled once the running cycle ends.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, FrozenSet, List, Optional, Set, Union

from .config import DEFAULT_DELAY_MS
from .controller import CommitOutcome
from .exceptions import ValidationError
from .matcher import ExclusionMatcher, is_internal_path, normalize_path
from .scheduler import Scheduler

logger = logging.getLogger(__name__)

class EngineState(str, Enum):
    DISABLED = "disabled"
    IDLE = "idle"
    PENDING = "pending"
    RUNNING = "running"


class EventKind(str, Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"

    @classmethod
    def parse(cls, value: Union["EventKind", str]) -> "EventKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ValidationError(f"Unknown change kind: {value!r}") from exc


@dataclass(frozen=True)
class ChangeEvent:
    path: str
    kind: EventKind


OutcomeListener = Callable[[CommitOutcome], None]
StateListener = Callable[[EngineState], None]


class ChangeAggregator:
    """Coalesces bursts of change events into single commit cycles."""

    def __init__(
        self,
        runner: Callable[[], CommitOutcome],
        scheduler: Scheduler,
        matcher: Optional[ExclusionMatcher] = None,
        root: Optional[Union[str, Path]] = None,
        delay_ms: int = DEFAULT_DELAY_MS,
    ) -> None:
        self._runner = runner
        self._scheduler = scheduler
        self.matcher = matcher or ExclusionMatcher()
        self.root = Path(root).expanduser().resolve(strict=False) if root else None
        self.delay_ms = delay_ms

        self._lock = threading.RLock()
        self._idle = threading.Condition(self._lock)
        # Threads inside a cycle, listener notification included
        self._dispatching: Set[threading.Thread] = set()
        self._state = EngineState.DISABLED
        self._batch: Set[str] = set()
        self._timer_id: Optional[int] = None
        self._generation = 0
        self._in_flight = False
        self._rerun_requested = False
        self._listeners: List[OutcomeListener] = []
        self._state_listeners: List[StateListener] = []
        self.cycles = 0

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def state(self) -> EngineState:
        with self._lock:
            return self._state

    @property
    def pending_paths(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._batch)

    def add_listener(self, callback: OutcomeListener) -> None:
        self._listeners.append(callback)

    def add_state_listener(self, callback: StateListener) -> None:
        self._state_listeners.append(callback)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def enable(self) -> None:
        with self._lock:
            if self._state is not EngineState.DISABLED:
                return
            self._batch.clear()
            self._set_state(
                EngineState.RUNNING if self._in_flight else EngineState.IDLE
            )
        logger.info("Auto-commit enabled")

    def disable(self) -> None:
        """Stop reacting to events. A cycle already running is not aborted."""
        with self._lock:
            self._cancel_timer()
            self._batch.clear()
            self._rerun_requested = False
            self._set_state(EngineState.DISABLED)
        logger.info("Auto-commit disabled")

    def on_change_event(
        self, path: Union[str, Path], kind: Union[EventKind, str] = EventKind.MODIFIED
    ) -> bool:
        """Record a change; return True when it was accepted into the batch."""
        event_kind = EventKind.parse(kind)
        with self._lock:
            if self._state is EngineState.DISABLED:
                return False
            rel = self._relativize(path)
            if rel is None:
                return False
            if self.matcher.excludes(rel):
                logger.debug("Ignoring excluded path %s", rel)
                return False
            self._batch.add(rel)
            logger.debug("Change %s: %s", event_kind.value, rel)
            if self._in_flight:
                # Picked up when the running cycle finishes
                return True
            self._arm_timer()
            self._set_state(EngineState.PENDING)
            return True

    def commit_now(self) -> Optional[CommitOutcome]:
        """Run a cycle immediately, skipping the debounce window.

        Returns None when disabled. While a cycle is running the request is
        queued and a follow-up cycle runs right after it.
        """
        with self._lock:
            if self._state is EngineState.DISABLED:
                return None
            if self._in_flight:
                self._rerun_requested = True
                return None
        logger.info("Manual commit triggered")
        return self._run_if_started()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no cycle is running or notifying; False on timeout.

        Called from inside a running cycle it returns False at once.
        """
        with self._idle:
            if threading.current_thread() in self._dispatching:
                return False
            return self._idle.wait_for(lambda: not self._dispatching, timeout)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _relativize(self, path: Union[str, Path]) -> Optional[str]:
        raw = os.fspath(path)
        if self.root is not None and os.path.isabs(raw):
            # Only the parent is resolved so a symlink keeps its own name
            absolute = Path(os.path.abspath(raw))
            located = absolute.parent.resolve(strict=False) / absolute.name
            try:
                rel_path = located.relative_to(self.root)
            except ValueError:
                logger.debug("Ignoring path outside the watched root: %s", raw)
                return None
            rel = rel_path.as_posix()
        else:
            rel = normalize_path(raw)
        if rel in ("", "."):
            return None
        if is_internal_path(rel):
            return None
        return rel

    def _set_state(self, state: EngineState) -> None:
        if state is self._state:
            return
        self._state = state
        for listener in list(self._state_listeners):
            try:
                listener(state)
            except Exception:  # noqa: BLE001 - host callbacks must not break the engine
                logger.exception("State listener failed")

    def _arm_timer(self) -> None:
        self._cancel_timer()
        self._generation += 1
        generation = self._generation
        self._timer_id = self._scheduler.call_later(
            self.delay_ms / 1000.0, lambda: self._on_timer(generation)
        )

    def _cancel_timer(self) -> None:
        if self._timer_id is not None:
            self._scheduler.cancel(self._timer_id)
            self._timer_id = None
        self._generation += 1

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._timer_id is None:
                return
            self._timer_id = None
        self._run_if_started()

    def _begin_cycle(self) -> bool:
        with self._lock:
            if self._state is EngineState.DISABLED or self._in_flight:
                return False
            self._cancel_timer()
            dispatched = len(self._batch)
            # The dispatched paths are dropped whatever the outcome
            self._batch = set()
            self._in_flight = True
            self._dispatching.add(threading.current_thread())
            self.cycles += 1
            self._set_state(EngineState.RUNNING)
        logger.debug("Starting commit cycle for %d pending path(s)", dispatched)
        return True

    def _finish_cycle(self) -> bool:
        """Leave RUNNING; return True when a follow-up cycle was requested."""
        with self._lock:
            self._in_flight = False
            if self._state is EngineState.DISABLED:
                return False
            if self._rerun_requested:
                self._rerun_requested = False
                self._set_state(EngineState.IDLE)
                return True
            if self._batch:
                self._arm_timer()
                self._set_state(EngineState.PENDING)
            else:
                self._set_state(EngineState.IDLE)
            return False

    def _run_if_started(self) -> Optional[CommitOutcome]:
        if not self._begin_cycle():
            return None
        try:
            while True:
                outcome = self._invoke_runner()
                rerun = self._finish_cycle()
                self._notify(outcome)
                if not rerun or not self._begin_cycle():
                    return outcome
        finally:
            with self._idle:
                self._dispatching.discard(threading.current_thread())
                self._idle.notify_all()

    def _invoke_runner(self) -> Optional[CommitOutcome]:
        try:
            return self._runner()
        except Exception:  # noqa: BLE001 - a failed cycle must leave the engine usable
            logger.exception("Commit cycle crashed")
            return None

    def _notify(self, outcome: Optional[CommitOutcome]) -> None:
        if outcome is None:
            return
        for listener in list(self._listeners):
            try:
                listener(outcome)
            except Exception:  # noqa: BLE001
                logger.exception("Outcome listener failed")
