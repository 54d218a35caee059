"""Source discovery with allow/deny filtering."""

import fnmatch
import logging
import os
from pathlib import Path
from typing import Iterable, Iterator

from folio.config import Config, FiltersConfig

logger = logging.getLogger(__name__)


class SourceScanner:
    """Walk a site directory and yield the files that should be built.

    Filters are applied in a fixed order:

    1. ``ignore_files_first`` filename prefixes reject a file outright.
    2. Deny rules: ``ignore_paths`` globs on directory segments,
       ``ignore_files`` prefixes/globs on filenames, ``ignore_exts``.
    3. Allow rules, only when configured: ``allow_paths`` globs on the
       relative directory and ``allow_files`` globs on the filename.

    Deny beats allow.
    """

    def __init__(
        self,
        site_path: Path,
        filters: FiltersConfig,
        always_exclude: Iterable[Path] = (),
    ):
        """Initialize the scanner.

        Args:
            site_path: Root of the site.
            filters: Filter configuration.
            always_exclude: Absolute directories or files that are never
                scanned (output directory, cache file).
        """
        self.site_path = Path(site_path)
        self.filters = filters
        self.ignore_exts = {
            ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in filters.ignore_exts
        }
        self.always_exclude = [Path(p) for p in always_exclude]

    @classmethod
    def from_settings(cls, settings: Config) -> "SourceScanner":
        return cls(
            settings.site_path,
            settings.filters,
            always_exclude=[
                settings.output_path,
                settings.layouts_path,
                settings.data_path,
                settings.cache_file_path,
            ],
        )

    def _is_always_excluded(self, path: Path) -> bool:
        for excluded in self.always_exclude:
            if path == excluded or excluded in path.parents:
                return True
        return False

    def _segment_ignored(self, segment: str) -> bool:
        return any(fnmatch.fnmatch(segment, pattern) for pattern in self.filters.ignore_paths)

    def _file_denied(self, name: str) -> bool:
        for pattern in self.filters.ignore_files:
            if name.startswith(pattern) or fnmatch.fnmatch(name, pattern):
                return True
        return os.path.splitext(name)[1].lower() in self.ignore_exts

    def _file_allowed(self, relative_dir: str, name: str) -> bool:
        if self.filters.allow_paths and relative_dir:
            if not any(
                relative_dir == pattern
                or relative_dir.startswith(pattern.rstrip("/") + "/")
                or fnmatch.fnmatch(relative_dir, pattern)
                for pattern in self.filters.allow_paths
            ):
                return False
        if self.filters.allow_files:
            if not any(fnmatch.fnmatch(name, pattern) for pattern in self.filters.allow_files):
                return False
        return True

    def accepts(self, path: Path) -> bool:
        """Check a single absolute path against every rule.

        Args:
            path: Absolute file path under the site root.

        Returns:
            True if the file should be built.
        """
        path = Path(path)
        try:
            relative = path.relative_to(self.site_path)
        except ValueError:
            return False
        if self._is_always_excluded(path):
            return False

        name = relative.name
        if any(name.startswith(prefix) for prefix in self.filters.ignore_files_first):
            return False

        directory_parts = relative.parts[:-1]
        if any(self._segment_ignored(part) for part in directory_parts):
            return False
        if self._file_denied(name):
            return False
        return self._file_allowed("/".join(directory_parts), name)

    def scan(self) -> Iterator[Path]:
        """Yield absolute paths of files to build.

        The walk is lazy and single-pass; call again for a fresh scan.
        Directories and files are visited in sorted order. Unreadable
        directories are logged and skipped.
        """

        def on_error(error: OSError) -> None:
            logger.warning(f"Skipping unreadable directory {error.filename}: {error.strerror}")

        for dirpath, dirnames, filenames in os.walk(self.site_path, onerror=on_error):
            current = Path(dirpath)
            # Prune in place so os.walk never descends into ignored directories
            dirnames[:] = sorted(
                d
                for d in dirnames
                if not self._segment_ignored(d) and not self._is_always_excluded(current / d)
            )
            for filename in sorted(filenames):
                file_path = current / filename
                if self.accepts(file_path):
                    yield file_path

    def filter_paths(self, paths: Iterable[Path]) -> list[Path]:
        """Apply the scan rules to an explicit list of paths.

        Missing files and directories are dropped.
        """
        result = []
        for path in paths:
            path = Path(path)
            if path.is_file() and self.accepts(path):
                result.append(path)
        return sorted(set(result))
