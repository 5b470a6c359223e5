"""Timer capabilities used by the change aggregator.

The aggregator only needs to arm a callback after a delay and cancel it by
id. ``ThreadingScheduler`` backs that with real timers; ``ManualScheduler``
is a fake clock advanced explicitly, for deterministic hosts and tests.
"""

from __future__ import annotations

import itertools
import threading
from typing import Callable, Dict, List, Protocol, Tuple


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> int:
        ...

    def cancel(self, timer_id: int) -> bool:
        ...


class ThreadingScheduler:
    """Runs callbacks on ``threading.Timer`` daemon threads."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._timers: Dict[int, threading.Timer] = {}
        self._lock = threading.Lock()

    def call_later(self, delay: float, callback: Callable[[], None]) -> int:
        with self._lock:
            timer_id = next(self._ids)

            def fire() -> None:
                with self._lock:
                    if self._timers.pop(timer_id, None) is None:
                        return
                callback()

            timer = threading.Timer(max(delay, 0.0), fire)
            timer.daemon = True
            self._timers[timer_id] = timer
        timer.start()
        return timer_id

    def cancel(self, timer_id: int) -> bool:
        with self._lock:
            timer = self._timers.pop(timer_id, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def cancel_all(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()


class ManualScheduler:
    """Fake clock: callbacks run only when :meth:`advance` passes their due time."""

    def __init__(self) -> None:
        self.now = 0.0
        self._ids = itertools.count(1)
        self._pending: Dict[int, Tuple[float, Callable[[], None]]] = {}

    def call_later(self, delay: float, callback: Callable[[], None]) -> int:
        timer_id = next(self._ids)
        self._pending[timer_id] = (self.now + max(delay, 0.0), callback)
        return timer_id

    def cancel(self, timer_id: int) -> bool:
        return self._pending.pop(timer_id, None) is not None

    @property
    def pending(self) -> int:
        return len(self._pending)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due callbacks in due-time order.

        Returns the number of callbacks fired. Callbacks armed while
        advancing run too if they fall due within the window.
        """
        target = self.now + seconds
        fired = 0
        while True:
            due: List[Tuple[float, int]] = sorted(
                (when, tid) for tid, (when, _cb) in self._pending.items() if when <= target
            )
            if not due:
                break
            when, tid = due[0]
            _when, callback = self._pending.pop(tid)
            self.now = when
            callback()
            fired += 1
        self.now = target
        return fired
