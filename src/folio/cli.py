"""Command line interface for folio."""

import argparse
import asyncio
import logging
import signal
import threading
from dataclasses import replace
from pathlib import Path
from typing import Iterable

from folio.build import (
    AggregationContext,
    BuildOptions,
    BuildOrchestrator,
    BuildResult,
    DuplicatePermalinkError,
    OutputError,
)
from folio.config import Config, ConfigError, load_settings
from folio.events import BuildEvent, EventBus
from folio.plugins import load_plugins
from folio.watch import RebuildPlan, SiteWatcher

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="folio", description="Build a static site from a tree of documents"
    )
    parser.add_argument(
        "site", nargs="?", type=Path, default=Path("."), help="Site directory (default: current)"
    )
    parser.add_argument("--output", type=Path, default=None, help="Output directory")
    parser.add_argument(
        "--level",
        type=str.lower,
        choices=LOG_LEVELS,
        default="info",
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--clean", action="store_true", help="Ignore the asset cache and reprocess everything"
    )
    parser.add_argument("--watch", action="store_true", help="Rebuild when files change")
    parser.add_argument(
        "--incremental",
        action="store_true",
        help="Do not re-render documents older than the staleness threshold",
    )
    parser.add_argument("--noimages", action="store_true", help="Skip image assets")
    parser.add_argument(
        "--dryrun", action="store_true", help="Run every phase without writing output"
    )
    parser.add_argument(
        "--debounce",
        type=float,
        default=None,
        help="Seconds of quiet before a watch rebuild (default: from config.ini)",
    )
    return parser.parse_args(list(argv) if argv is not None else None)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        level=getattr(logging, level.upper()),
    )


def run_build(
    settings: Config,
    options: BuildOptions,
    bus: EventBus,
    files: list[Path] | None = None,
    previous: AggregationContext | None = None,
) -> BuildResult:
    """Run one build to completion on a fresh event loop."""
    orchestrator = BuildOrchestrator(settings, options, bus=bus, previous=previous)
    return asyncio.run(orchestrator.run(files=files))


class WatchSession:
    """Keeps the state of consecutive rebuilds in watch mode."""

    def __init__(self, args: argparse.Namespace, settings: Config, options: BuildOptions, bus: EventBus):
        self.args = args
        self.settings = settings
        self.options = replace(options, clean=False, watching=True)
        self.bus = bus
        self.context: AggregationContext | None = None

    def rebuild(self, plan: RebuildPlan) -> None:
        if plan.full:
            load_settings.cache_clear()
            try:
                self.settings = load_settings(self.args.site, self.args.output)
            except ConfigError as e:
                logger.error(f"Not rebuilding, configuration is invalid: {e}")
                return
            result = run_build(self.settings, self.options, self.bus)
        else:
            result = run_build(
                self.settings, self.options, self.bus, files=plan.files, previous=self.context
            )
        self.context = result.context


def watch(args: argparse.Namespace, settings: Config, options: BuildOptions, bus: EventBus, result: BuildResult) -> int:
    """Watch the site until SIGINT or SIGTERM."""
    session = WatchSession(args, settings, options, bus)
    session.context = result.context
    watcher = SiteWatcher(settings, session.rebuild, debounce_seconds=args.debounce)

    stop = threading.Event()

    def request_stop(signum, frame) -> None:
        logger.info(f"Received signal {signum}, stopping")
        stop.set()

    previous_handlers = {
        sig: signal.signal(sig, request_stop) for sig in (signal.SIGINT, signal.SIGTERM)
    }
    watcher.start()
    try:
        while not stop.wait(1):
            pass
    finally:
        watcher.stop()
        for sig, handler in previous_handlers.items():
            signal.signal(sig, handler)
    return 0


def main(argv: Iterable[str] | None = None) -> int:
    """Build a site.

    Returns:
        0 when the build completed (even with per-document errors), 1 on a
        configuration, plugin or structural error.
    """
    args = parse_args(argv)
    configure_logging(args.level)

    options = BuildOptions(
        clean=args.clean,
        incremental=args.incremental,
        noimages=args.noimages,
        dryrun=args.dryrun,
        watching=args.watch,
    )

    try:
        settings = load_settings(args.site, args.output)
        bus = EventBus()
        load_plugins(bus, settings)
        bus.emit(BuildEvent.INIT_FINISHED, settings)
        result = run_build(settings, options, bus)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except DuplicatePermalinkError as e:
        logger.error(f"Build aborted: {e}")
        return 1
    except OutputError as e:
        logger.error(f"Build aborted: {e}")
        return 1
    except Exception:
        logger.exception("Build failed")
        return 1

    if args.watch:
        return watch(args, settings, options, bus, result)
    return 0
