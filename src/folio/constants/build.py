"""Document pipeline constants.

These values describe the fixed vocabulary of the build: the phases a
document can be resolved in, the defaults every document starts from, and
the front matter fields the pipeline itself interprets.
"""

# =============================================================================
# Phases
# =============================================================================
# Documents are resolved in one of three ordered phases. A listing page that
# needs to see every post declares a later phase than the posts it lists.

PHASE_EARLY = "early"
PHASE_LATE = "late"
PHASE_LAST = "last"

PHASES = (PHASE_EARLY, PHASE_LATE, PHASE_LAST)

# =============================================================================
# Built-in Defaults
# =============================================================================
# The lowest-precedence layer of every document's data. Site data, layouts
# and the document's own front matter are merged on top of it.

BUILTIN_DEFAULTS = {
    "phase": PHASE_EARLY,
}

# =============================================================================
# Reserved Fields
# =============================================================================
# Fields the pipeline interprets. They are taken whole from the most specific
# layer that sets them instead of being deep-merged.

RESERVED_FIELDS = frozenset(
    {
        "permalink",
        "output_filename",
        "layout",
        "phase",
        "published",
        "date",
        "modified",
        "pagination",
        "title",
        "description",
        "robots",
        "sitemap",
    }
)

# =============================================================================
# Taxonomy Skeleton Placeholders
# =============================================================================
# Replaced in the taxonomy skeleton's front matter and body for every entry.

PLACEHOLDER_ENTRY = "(((entry)))"
PLACEHOLDER_ENTRY_SLUG = "(((entryslug)))"
PLACEHOLDER_TAXTYPE = "(((taxtype)))"
PLACEHOLDER_TAXTYPE_SLUG = "(((taxtypeslug)))"

# Fields of taxonomy_defs copied onto generated taxonomy pages.
TAXONOMY_DEF_FIELDS = ("title", "description", "headline")

# Paginated pages after the first get these values.
PAGINATED_ROBOTS = "noindex,follow"

# Collection name used for every document.
ALL_COLLECTION = "all"

__all__ = [
    "ALL_COLLECTION",
    "BUILTIN_DEFAULTS",
    "PAGINATED_ROBOTS",
    "PHASES",
    "PHASE_EARLY",
    "PHASE_LAST",
    "PHASE_LATE",
    "PLACEHOLDER_ENTRY",
    "PLACEHOLDER_ENTRY_SLUG",
    "PLACEHOLDER_TAXTYPE",
    "PLACEHOLDER_TAXTYPE_SLUG",
    "RESERVED_FIELDS",
    "TAXONOMY_DEF_FIELDS",
]
