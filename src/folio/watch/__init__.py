"""Watch mode: debounced rebuilds on file changes."""

from folio.watch.queue import ChangeQueue
from folio.watch.watcher import RebuildPlan, SiteEventHandler, SiteWatcher, classify_batch

__all__ = [
    "ChangeQueue",
    "RebuildPlan",
    "SiteEventHandler",
    "SiteWatcher",
    "classify_batch",
]
