"""Data models for source files and page documents."""

from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any


class DocumentError(Exception):
    """Base class for errors that reject a single document."""

    pass


class InvalidPhaseError(DocumentError):
    """Raised when a document declares a phase that does not exist."""

    pass


class LocationAlreadyAssignedError(DocumentError):
    """Raised when a document's permalink is assigned a second time."""

    pass


@dataclass(frozen=True)
class SourceFile:
    """Raw contents of a file found by the scanner."""

    path: Path
    extension: str
    raw: bytes

    @classmethod
    def read(cls, path: Path) -> "SourceFile":
        """Read a file from disk.

        Raises:
            OSError: If the file cannot be read.
        """
        path = Path(path)
        return cls(path=path, extension=path.suffix.lstrip(".").lower(), raw=path.read_bytes())

    def text(self) -> str:
        return self.raw.decode("utf-8")


@dataclass(frozen=True)
class NavLink:
    """Link to a neighbouring document in a sorted collection."""

    url: str
    title: str


@dataclass
class ComputedFields:
    """Fields derived by the pipeline rather than written by authors.

    Attributes:
        permalink: Canonical site-relative URL, set once by assign_location().
        output_path: File the rendered document is written to.
        created_at: Front matter date or filesystem creation time.
        modified_at: Front matter modified date or filesystem mtime.
        phase: Phase the document is resolved in.
        published: Whether the document is written to output.
    """

    permalink: str | None = None
    output_path: Path | None = None
    created_at: datetime | None = None
    modified_at: datetime | None = None
    phase: str | None = None
    published: bool = True

    def assign_location(self, output_path: Path, permalink: str) -> None:
        """Set output path and permalink.

        Raises:
            LocationAlreadyAssignedError: If a permalink was already assigned.
        """
        if self.permalink is not None:
            raise LocationAlreadyAssignedError(
                f"Permalink already assigned ({self.permalink}), refusing {permalink}"
            )
        self.output_path = output_path
        self.permalink = permalink


@dataclass
class PageDocument:
    """The unit of work of a build.

    Attributes:
        source_path: Absolute path of the source file (virtual for taxonomy pages).
        extension: Source extension without the dot.
        data: Merged front matter, site data and layout data.
        body: Raw content before rendering.
        computed: Pipeline-derived fields.
        layout_chain: Layout files, innermost first.
        synthetic: True for documents created by pagination or taxonomies.
        prev: Previous document in the paginated source collection.
        next: Next document in the paginated source collection.
        rendered: Final output after the layout pass.
    """

    source_path: Path
    extension: str
    data: dict[str, Any]
    body: str
    computed: ComputedFields = field(default_factory=ComputedFields)
    layout_chain: list[Path] = field(default_factory=list)
    synthetic: bool = False
    prev: NavLink | None = None
    next: NavLink | None = None
    rendered: str | None = None

    @property
    def permalink(self) -> str | None:
        return self.computed.permalink

    @property
    def output_path(self) -> Path | None:
        return self.computed.output_path

    @property
    def phase(self) -> str | None:
        return self.computed.phase

    @property
    def title(self) -> str:
        return str(self.data.get("title") or "")

    @property
    def url(self) -> str | None:
        """Alias of permalink for templates."""
        return self.computed.permalink

    def clone(self, overrides: dict[str, Any]) -> "PageDocument":
        """Create a new unresolved document from this one's data and body.

        The clone has no permalink yet; overrides are applied on top of a deep
        copy of the data.
        """
        data = deepcopy({k: v for k, v in self.data.items() if k != "pagination"})
        if "pagination" in self.data:
            data["pagination"] = dict(self.data["pagination"])
        data.update(overrides)
        return PageDocument(
            source_path=self.source_path,
            extension=self.extension,
            data=data,
            body=self.body,
            computed=ComputedFields(
                created_at=self.computed.created_at,
                modified_at=self.computed.modified_at,
                phase=self.computed.phase,
                published=self.computed.published,
            ),
            layout_chain=list(self.layout_chain),
            synthetic=True,
        )

    def context(self) -> dict[str, Any]:
        """Template context: the merged data plus computed fields."""
        ctx = dict(self.data)
        ctx.update(
            {
                "permalink": self.computed.permalink,
                "url": self.computed.permalink,
                "output_path": str(self.computed.output_path) if self.computed.output_path else None,
                "created_at": self.computed.created_at,
                "modified_at": self.computed.modified_at,
                "phase": self.computed.phase,
                "published": self.computed.published,
                "prev": self.prev,
                "next": self.next,
                "page": self,
            }
        )
        return ctx
