"""Tests for watch mode: change classification, event filtering and debouncing."""

import threading
from dataclasses import replace
from pathlib import Path

import pytest
from watchdog.events import DirModifiedEvent, FileMovedEvent, FileModifiedEvent

from folio.config import load_settings
from folio.watch import ChangeQueue, SiteEventHandler, classify_batch


class RecordingQueue:
    def __init__(self):
        self.paths: list[Path] = []

    def push(self, path: Path) -> None:
        self.paths.append(path)


@pytest.fixture
def settings(site):
    return load_settings(site(files={"index.md": "home", "blog/a.md": "a"}))


# =============================================================================
# classify_batch
# =============================================================================


def test_content_changes_are_partial(settings):
    paths = [settings.site_path / "index.md", settings.site_path / "blog/a.md"]

    plan = classify_batch(paths, settings)

    assert plan.full is False
    assert plan.files == paths


@pytest.mark.parametrize(
    "relative", ["_layouts/base.html", "_data/nav.yaml", "config.ini", "site.yaml"]
)
def test_shared_inputs_force_full_rebuild(settings, relative):
    plan = classify_batch([settings.site_path / "index.md", settings.site_path / relative], settings)

    assert plan.full is True
    assert plan.files == []


# =============================================================================
# SiteEventHandler
# =============================================================================


def test_handler_queues_file_changes(settings):
    queue = RecordingQueue()
    handler = SiteEventHandler(settings, queue)

    handler.on_modified(FileModifiedEvent(str(settings.site_path / "index.md")))
    handler.on_modified(DirModifiedEvent(str(settings.site_path / "blog")))

    assert queue.paths == [settings.site_path / "index.md"]


def test_handler_queues_both_sides_of_a_move(settings):
    queue = RecordingQueue()
    handler = SiteEventHandler(settings, queue)

    handler.on_moved(
        FileMovedEvent(str(settings.site_path / "a.md"), str(settings.site_path / "b.md"))
    )

    assert queue.paths == [settings.site_path / "a.md", settings.site_path / "b.md"]


def test_handler_ignores_output_cache_and_patterns(settings):
    settings = replace(settings, watch=replace(settings.watch, ignore=["*.swp", "tmp/*"]))
    handler = SiteEventHandler(settings, RecordingQueue())

    assert handler.is_ignored(settings.output_path / "index.html")
    assert handler.is_ignored(settings.cache_file_path)
    assert handler.is_ignored(settings.site_path / ".cache.json.tmp")
    assert handler.is_ignored(settings.site_path / "blog/.a.md.swp")
    assert handler.is_ignored(settings.site_path / "tmp/x.md")
    assert handler.is_ignored(Path("/somewhere/else.md"))
    assert not handler.is_ignored(settings.site_path / "blog/a.md")


# =============================================================================
# ChangeQueue
# =============================================================================


def test_changes_are_coalesced_into_one_batch():
    batches = []
    queue = ChangeQueue(60, batches.append)

    for name in ["a.md", "b.md", "a.md"]:
        queue.push(Path(name))
    queue.flush()

    assert batches == [[Path("a.md"), Path("b.md")]]
    assert queue.wait_idle(1)
    queue.close()


def test_changes_during_a_batch_form_one_follow_up_batch():
    batches = []
    queue = ChangeQueue(60, lambda paths: None)

    def on_batch(paths):
        batches.append(paths)
        if len(batches) == 1:
            queue.push(Path("c.md"))
            queue.push(Path("d.md"))
            # A second flush while running must not start another batch
            queue.flush()

    queue.on_batch = on_batch
    queue.push(Path("a.md"))
    queue.flush()

    assert batches == [[Path("a.md")]]
    assert queue.pending() == [Path("c.md"), Path("d.md")]
    assert not queue.wait_idle(0)

    queue.flush()

    assert batches[1] == [Path("c.md"), Path("d.md")]
    assert queue.wait_idle(1)
    queue.close()


def test_failing_batch_is_logged_and_queue_recovers(caplog):
    calls = []

    def on_batch(paths):
        calls.append(paths)
        raise RuntimeError("rebuild exploded")

    queue = ChangeQueue(60, on_batch)
    queue.push(Path("a.md"))
    queue.flush()

    assert "Rebuild after file changes failed" in caplog.text
    assert queue.running is False
    assert queue.wait_idle(1)
    queue.close()


def test_timer_delivers_after_quiet_period():
    delivered = threading.Event()
    batches = []

    def on_batch(paths):
        batches.append(paths)
        delivered.set()

    queue = ChangeQueue(0.05, on_batch)
    queue.push(Path("a.md"))
    queue.push(Path("b.md"))

    assert delivered.wait(5)
    assert queue.wait_idle(5)
    assert batches == [[Path("a.md"), Path("b.md")]]
    queue.close()


def test_closed_queue_drops_pushes():
    batches = []
    queue = ChangeQueue(60, batches.append)
    queue.close()

    queue.push(Path("a.md"))
    queue.flush()

    assert batches == []
    assert queue.pending() == []
