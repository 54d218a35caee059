"""Filesystem watching and rebuild classification."""

import fnmatch
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from folio.config import Config
from folio.watch.queue import ChangeQueue

logger = logging.getLogger(__name__)


@dataclass
class RebuildPlan:
    """What a batch of changes requires.

    Attributes:
        full: Rescan and rebuild the whole site.
        files: Changed files for a partial build (empty when full).
    """

    full: bool
    files: list[Path] = field(default_factory=list)


def _is_within(path: Path, parent: Path) -> bool:
    return path == parent or parent in path.parents


def classify_batch(paths: Iterable[Path], settings: Config) -> RebuildPlan:
    """Decide between a full and a partial rebuild.

    Any change to a layout, a data file, config.ini or site.yaml affects
    every document, so the batch becomes a full rebuild.
    """
    files = []
    for path in paths:
        path = Path(path)
        if (
            _is_within(path, settings.layouts_path)
            or _is_within(path, settings.data_path)
            or path in (settings.config_file_path, settings.site_file_path)
        ):
            logger.info(f"{path} changed, rebuilding everything")
            return RebuildPlan(full=True)
        files.append(path)
    return RebuildPlan(full=False, files=files)


class SiteEventHandler(FileSystemEventHandler):
    """Feeds relevant file events into a ChangeQueue."""

    def __init__(self, settings: Config, queue: ChangeQueue):
        self.settings = settings
        self.queue = queue
        self.ignore = list(settings.watch.ignore)

    def is_ignored(self, path: Path) -> bool:
        if _is_within(path, self.settings.output_path):
            return True
        cache_file = self.settings.cache_file_path
        if path == cache_file or path.name.startswith(cache_file.name):
            return True
        try:
            relative = path.relative_to(self.settings.site_path).as_posix()
        except ValueError:
            return True
        return any(
            fnmatch.fnmatch(relative, pattern) or fnmatch.fnmatch(path.name, pattern)
            for pattern in self.ignore
        )

    def handle(self, src_path, is_directory: bool) -> None:
        if is_directory:
            return
        path = Path(os.fsdecode(src_path))
        if self.is_ignored(path):
            return
        logger.debug(f"Change detected: {path}")
        self.queue.push(path)

    def on_modified(self, event: FileSystemEvent) -> None:
        self.handle(event.src_path, event.is_directory)

    def on_created(self, event: FileSystemEvent) -> None:
        self.handle(event.src_path, event.is_directory)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self.handle(event.src_path, event.is_directory)

    def on_moved(self, event: FileSystemEvent) -> None:
        self.handle(event.src_path, event.is_directory)
        self.handle(event.dest_path, event.is_directory)


RebuildFn = Callable[[RebuildPlan], None]


class SiteWatcher:
    """Watches a site and triggers debounced rebuilds.

    Attributes:
        settings: Site configuration.
        queue: Debounced change queue.
    """

    def __init__(self, settings: Config, rebuild: RebuildFn, debounce_seconds: float | None = None):
        self.settings = settings
        self.rebuild = rebuild
        if debounce_seconds is None:
            debounce_seconds = settings.watch.debounce_seconds
        self.queue = ChangeQueue(debounce_seconds, self._on_batch)
        self.handler = SiteEventHandler(settings, self.queue)
        self._observer = None

    def _on_batch(self, paths: list[Path]) -> None:
        self.rebuild(classify_batch(paths, self.settings))

    def start(self) -> None:
        observer = Observer()
        observer.schedule(self.handler, str(self.settings.site_path), recursive=True)
        observer.start()
        self._observer = observer
        logger.info(f"Watching {self.settings.site_path} for changes")

    def stop(self) -> None:
        self.queue.close()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
        logger.info("Stopped watching")
