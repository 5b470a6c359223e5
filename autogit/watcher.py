"""Polling change detector.

A fallback event source for hosts without native file notifications: it
snapshots the work tree periodically and reports differences through the
same callback a watcher or editor integration would use.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from .aggregator import ChangeEvent, EventKind
from .matcher import INTERNAL_DIRS

logger = logging.getLogger(__name__)

Snapshot = Dict[str, Tuple[int, int]]
EventCallback = Callable[[str, EventKind], object]


class PollingChangeSource:
    """Emits CREATED/MODIFIED/DELETED events by diffing tree snapshots."""

    def __init__(
        self,
        root: Union[str, Path],
        callback: EventCallback,
        interval: float = 5.0,
    ) -> None:
        self.root = Path(root).expanduser().resolve(strict=False)
        self.callback = callback
        self.interval = interval
        self._snapshot: Optional[Snapshot] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def take_snapshot(self) -> Snapshot:
        snapshot: Snapshot = {}
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = [d for d in dirnames if d not in INTERNAL_DIRS]
            for name in filenames:
                full = os.path.join(dirpath, name)
                try:
                    st = os.lstat(full)
                except OSError:
                    # Vanished between listing and stat
                    continue
                snapshot[full] = (st.st_mtime_ns, st.st_size)
        return snapshot

    def scan(self) -> List[ChangeEvent]:
        """Compare the tree with the previous snapshot and emit differences.

        The first scan only records a baseline.
        """
        current = self.take_snapshot()
        previous = self._snapshot
        self._snapshot = current
        if previous is None:
            return []

        events: List[ChangeEvent] = []
        for path, sig in current.items():
            old = previous.get(path)
            if old is None:
                events.append(ChangeEvent(path, EventKind.CREATED))
            elif old != sig:
                events.append(ChangeEvent(path, EventKind.MODIFIED))
        for path in previous.keys() - current.keys():
            events.append(ChangeEvent(path, EventKind.DELETED))

        for event in events:
            try:
                self.callback(event.path, event.kind)
            except Exception:  # noqa: BLE001 - keep polling after a bad callback
                logger.exception("Change callback failed for %s", event.path)
        return events

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._snapshot = self.take_snapshot()
        self._thread = threading.Thread(
            target=self._loop, name="autogit-poller", daemon=True
        )
        self._thread.start()
        logger.info("Polling %s every %.1fs", self.root, self.interval)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.scan()
            except OSError as exc:
                logger.warning("Polling scan failed: %s", exc)
