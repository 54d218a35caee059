"""Source documents: front matter, data merging and loading."""

from folio.documents.frontmatter import FrontMatterError, parse_frontmatter
from folio.documents.handlers import HandlerRegistry, TemplateHandlerSpec
from folio.documents.loader import (
    DocumentLoader,
    LayoutCycleError,
    LayoutNotFoundError,
    to_datetime,
)
from folio.documents.merge import deep_merge, merge_layers
from folio.documents.models import (
    ComputedFields,
    DocumentError,
    InvalidPhaseError,
    LocationAlreadyAssignedError,
    NavLink,
    PageDocument,
    SourceFile,
)

__all__ = [
    "ComputedFields",
    "DocumentError",
    "DocumentLoader",
    "FrontMatterError",
    "HandlerRegistry",
    "InvalidPhaseError",
    "LayoutCycleError",
    "LayoutNotFoundError",
    "LocationAlreadyAssignedError",
    "NavLink",
    "PageDocument",
    "SourceFile",
    "TemplateHandlerSpec",
    "deep_merge",
    "merge_layers",
    "parse_frontmatter",
    "to_datetime",
]
