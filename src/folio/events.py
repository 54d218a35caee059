"""Build lifecycle events and a synchronous publish/subscribe bus."""

import logging
import threading
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class BuildEvent(str, Enum):
    """Named points in a build that plugins can hook."""

    INIT_FINISHED = "init-finished"
    FILESYSTEM_PARSED = "filesystem-parsed"
    BEFORE_PARSE_ASSET = "before-parse-asset"
    BEFORE_PARSE_FILE = "before-parse-file"
    AFTER_PARSE_FILE = "after-parse-file"
    AFTER_LAYOUT_RENDER = "after-layout-render"


Subscriber = Callable[[Any], None]


class EventBus:
    """Delivers events to subscribers in subscription order.

    emit() runs every subscriber before returning. An exception raised by a
    subscriber is logged with its traceback and does not stop the remaining
    subscribers or the build.
    """

    def __init__(self):
        self._subscribers: dict[BuildEvent, list[Subscriber]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event: BuildEvent, callback: Subscriber) -> None:
        event = BuildEvent(event)
        with self._lock:
            self._subscribers.setdefault(event, []).append(callback)

    def unsubscribe(self, event: BuildEvent, callback: Subscriber) -> bool:
        """Remove a subscription. Returns False if it was not registered."""
        event = BuildEvent(event)
        with self._lock:
            callbacks = self._subscribers.get(event, [])
            if callback in callbacks:
                callbacks.remove(callback)
                return True
        return False

    def subscribers(self, event: BuildEvent) -> list[Subscriber]:
        with self._lock:
            return list(self._subscribers.get(BuildEvent(event), []))

    def emit(self, event: BuildEvent, payload: Any = None) -> None:
        for callback in self.subscribers(event):
            try:
                callback(payload)
            except Exception:
                logger.exception(f"Subscriber {callback!r} failed handling {BuildEvent(event).value}")
