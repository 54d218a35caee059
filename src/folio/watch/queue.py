"""Debounced queue of changed paths."""

import logging
import threading
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)

BatchCallback = Callable[[list[Path]], None]


class ChangeQueue:
    """Collects changed paths and hands them over in quiet-period batches.

    Every push() restarts the debounce timer. When the timer fires, the
    queued paths are drained and passed to ``on_batch``. Only one batch runs
    at a time: paths pushed while a batch runs wait, and all of them are
    delivered together in a single follow-up batch.

    Attributes:
        debounce_seconds: Quiet period before a batch is delivered.
    """

    def __init__(self, debounce_seconds: float, on_batch: BatchCallback):
        self.debounce_seconds = debounce_seconds
        self.on_batch = on_batch
        self._pending: dict[Path, None] = {}
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._running = False
        self._closed = False
        self._idle = threading.Event()
        self._idle.set()

    def push(self, path: Path) -> None:
        with self._lock:
            if self._closed:
                return
            self._pending[Path(path)] = None
            self._idle.clear()
            self._restart_timer()

    def _restart_timer(self) -> None:
        # Caller holds the lock
        if self._timer is not None:
            self._timer.cancel()
        self._timer = threading.Timer(self.debounce_seconds, self.flush)
        self._timer.daemon = True
        self._timer.start()

    def pending(self) -> list[Path]:
        with self._lock:
            return list(self._pending)

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    def flush(self) -> None:
        """Deliver the queued paths now, unless a batch is already running."""
        with self._lock:
            if self._running or not self._pending:
                if not self._running and not self._pending:
                    self._idle.set()
                return
            batch = list(self._pending)
            self._pending = {}
            self._running = True

        try:
            logger.info(f"Processing {len(batch)} changed paths")
            self.on_batch(batch)
        except Exception:
            logger.exception("Rebuild after file changes failed")
        finally:
            with self._lock:
                self._running = False
                follow_up = bool(self._pending) and not self._closed
                timer_waiting = self._timer is not None and self._timer.is_alive()
                if follow_up and not timer_waiting:
                    self._restart_timer()
                elif not follow_up:
                    self._idle.set()

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until nothing is queued or running."""
        return self._idle.wait(timeout)

    def close(self) -> None:
        """Cancel the timer and drop queued paths."""
        with self._lock:
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
            self._pending = {}
            if not self._running:
                self._idle.set()
