"""Loading source files into page documents.

A document's data is merged from, in increasing precedence: built-in
defaults, site data, its layout chain (outermost layout first) and its own
front matter. Layout bodies are not read here; the layout pass renders them.
"""

import logging
import os
import threading
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from folio.config import Config
from folio.constants import BUILTIN_DEFAULTS, PHASES
from folio.documents.frontmatter import FrontMatterError, parse_frontmatter
from folio.documents.handlers import HandlerRegistry
from folio.documents.merge import merge_layers
from folio.documents.models import (
    ComputedFields,
    DocumentError,
    InvalidPhaseError,
    PageDocument,
    SourceFile,
)

logger = logging.getLogger(__name__)

# Front matter fields that become parts of output paths
PATH_FIELDS = ("permalink", "output_filename")


class LayoutNotFoundError(DocumentError):
    """Raised when a declared layout file does not exist."""

    pass


class LayoutCycleError(DocumentError):
    """Raised when layouts extend each other in a loop."""

    pass


def to_datetime(value: Any, field_name: str, path: Path) -> datetime:
    """Normalise a front matter date value to an aware UTC datetime.

    Raises:
        FrontMatterError: If the value cannot be interpreted as a date.
    """
    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        result = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        result = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            result = datetime.fromisoformat(text)
        except ValueError as e:
            raise FrontMatterError(f"invalid {field_name!r} value {value!r}", str(path)) from e
    else:
        raise FrontMatterError(f"invalid {field_name!r} value {value!r}", str(path))

    if result.tzinfo is None:
        result = result.replace(tzinfo=timezone.utc)
    return result.astimezone(timezone.utc)


def _stat_times(path: Path | None) -> tuple[datetime, datetime]:
    if path is None:
        now = datetime.now(timezone.utc)
        return now, now
    stat = os.stat(path)
    created = getattr(stat, "st_birthtime", None) or stat.st_ctime
    return (
        datetime.fromtimestamp(created, tz=timezone.utc),
        datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
    )


class DocumentLoader:
    """Builds PageDocuments from source files.

    Attributes:
        settings: Build configuration.
        handlers: Registry deciding default layouts per extension.
    """

    def __init__(self, settings: Config, handlers: HandlerRegistry | None = None):
        self.settings = settings
        self.handlers = handlers or HandlerRegistry.from_config(settings.templates)
        self._layout_cache: dict[Path, dict[str, Any]] = {}
        self._layout_lock = threading.Lock()

    def load(self, path: Path, site_data: Mapping[str, Any]) -> PageDocument:
        """Load a source file from disk.

        Args:
            path: Absolute path of the source file.
            site_data: Site-wide data layer.

        Returns:
            A PageDocument with merged data and computed timestamps, phase
            and published flag. The permalink is not assigned yet.

        Raises:
            FrontMatterError: If the front matter is malformed.
            LayoutNotFoundError: If a declared layout does not exist.
            LayoutCycleError: If the layout chain loops.
            InvalidPhaseError: If the phase is unknown.
            OSError: If the file cannot be read.
        """
        source = SourceFile.read(path)
        try:
            text = source.text()
        except UnicodeDecodeError as e:
            raise FrontMatterError(f"not valid UTF-8: {e}", str(path)) from e
        return self._build(source.path, source.extension, text, site_data, stat_path=source.path)

    def load_text(
        self,
        virtual_path: Path,
        text: str,
        site_data: Mapping[str, Any],
        stat_path: Path | None = None,
    ) -> PageDocument:
        """Build a document from in-memory text.

        Used for generated pages that have no file of their own. Timestamps
        come from ``stat_path`` when given, otherwise the current time.
        """
        virtual_path = Path(virtual_path)
        ext = virtual_path.suffix.lstrip(".").lower()
        return self._build(virtual_path, ext, text, site_data, stat_path=stat_path)

    def _build(
        self,
        path: Path,
        ext: str,
        text: str,
        site_data: Mapping[str, Any],
        stat_path: Path | None,
    ) -> PageDocument:
        file_data, body = parse_frontmatter(text, str(path))
        return self.load_parsed(path, file_data, body, site_data, stat_path=stat_path, ext=ext)

    def load_parsed(
        self,
        path: Path,
        file_data: Mapping[str, Any],
        body: str,
        site_data: Mapping[str, Any],
        stat_path: Path | None = None,
        ext: str | None = None,
    ) -> PageDocument:
        """Build a document from front matter that is already parsed."""
        path = Path(path)
        if ext is None:
            ext = path.suffix.lstrip(".").lower()
        layout_name = file_data.get("layout")
        if "layout" not in file_data:
            spec = self.handlers.get(ext)
            if spec is not None and spec.default_layout:
                layout_name = spec.default_layout

        chain = self._layout_chain(layout_name, path) if layout_name else []

        # Layout data, outermost first; a layout's own parent reference is not data
        layout_layers = [
            {k: v for k, v in data.items() if k != "layout"} for _, data in reversed(chain)
        ]
        data = merge_layers([BUILTIN_DEFAULTS, site_data, *layout_layers, file_data])
        data["layout"] = layout_name if layout_name else None

        computed = self._compute(data, path, stat_path)
        return PageDocument(
            source_path=path,
            extension=ext,
            data=data,
            body=body,
            computed=computed,
            layout_chain=[layout_path for layout_path, _ in chain],
        )

    def _compute(self, data: dict[str, Any], path: Path, stat_path: Path | None) -> ComputedFields:
        phase = data.get("phase")
        if phase not in PHASES:
            raise InvalidPhaseError(
                f"{path}: unknown phase {phase!r}, expected one of {', '.join(PHASES)}"
            )
        for name in PATH_FIELDS:
            value = data.get(name)
            if value is not None and not isinstance(value, str):
                raise FrontMatterError(
                    f"{name} must be a string, not {type(value).__name__} ({value!r})", str(path)
                )

        fs_created, fs_modified = _stat_times(stat_path)
        created_at = to_datetime(data["date"], "date", path) if data.get("date") else fs_created
        modified_at = (
            to_datetime(data["modified"], "modified", path) if data.get("modified") else fs_modified
        )

        if "published" in data and data["published"] is not None:
            published = bool(data["published"])
        else:
            published = created_at <= datetime.now(timezone.utc)

        return ComputedFields(
            created_at=created_at,
            modified_at=modified_at,
            phase=phase,
            published=published,
        )

    def resolve_layout_path(self, name: str, source: Path) -> Path:
        """Locate a layout file by name.

        Raises:
            LayoutNotFoundError: If the layout does not exist.
        """
        filename = name if Path(name).suffix else f"{name}.{self.settings.templates.layout_ext}"
        layout_path = self.settings.layouts_path / filename
        if not layout_path.is_file():
            raise LayoutNotFoundError(f"{source}: layout {name!r} not found at {layout_path}")
        return layout_path

    def _layout_chain(self, name: str, source: Path) -> list[tuple[Path, dict[str, Any]]]:
        """Resolve a layout and its ancestors, innermost first."""
        chain: list[tuple[Path, dict[str, Any]]] = []
        seen: set[Path] = set()
        current: Any = name
        while current:
            layout_path = self.resolve_layout_path(str(current), source)
            if layout_path in seen:
                raise LayoutCycleError(f"{source}: layout cycle at {layout_path}")
            seen.add(layout_path)
            data = self._layout_data(layout_path)
            chain.append((layout_path, data))
            current = data.get("layout")
        return chain

    def _layout_data(self, layout_path: Path) -> dict[str, Any]:
        with self._layout_lock:
            cached = self._layout_cache.get(layout_path)
        if cached is not None:
            return cached
        data, _ = parse_frontmatter(layout_path.read_text(encoding="utf-8"), str(layout_path))
        with self._layout_lock:
            self._layout_cache[layout_path] = data
        return data
