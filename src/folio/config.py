# src/folio/config.py
"""Configuration system for folio.

This module handles loading build settings from a site's ``config.ini`` and
environment variables, providing sensible defaults, and computing derived
paths for the output, layout, data and cache locations. Site data (the
values merged into every document) is loaded separately from ``site.yaml``
by :func:`load_site_data`.
"""

from configparser import ConfigParser, Error as ConfigParserError
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional
import logging
import os

import yaml

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


# =============================================================================
# CONFIG_SCHEMA
# =============================================================================

# Schema: section -> key -> (type, default, min, max, description)
# ``list`` values are written comma-separated in config.ini.
CONFIG_SCHEMA: dict[str, dict[str, tuple[type, Any, Any, Any, str]]] = {
    "build": {
        "parallel_limit": (int, 8, 1, 64, "Documents processed concurrently per phase"),
        "render_unpublished": (bool, False, None, None, "Write documents dated in the future"),
        "incremental_max_age_hours": (float, 24.0, 0.0, None, "Staleness threshold for --incremental"),
        "plugins": (list, [], None, None, "Plugin callables as module:function"),
    },
    "paths": {
        "output_dir": (str, "_site", None, None, "Output directory name"),
        "layouts_dir": (str, "_layouts", None, None, "Layout directory name"),
        "data_dir": (str, "_data", None, None, "Site data directory name"),
        "cache_file": (str, ".cache.json", None, None, "Incremental asset cache file"),
        "site_file": (str, "site.yaml", None, None, "Site data file name"),
        "taxonomy_template": (str, "dummies/taxonomy", None, None, "Taxonomy skeleton, relative to layouts"),
    },
    "filters": {
        "allow_paths": (list, [], None, None, "Directory globs a file must live under"),
        "ignore_paths": (
            list,
            ["_layouts", "_data", "_drafts", "_tmp", "_cache", "node_modules", ".*"],
            None,
            None,
            "Directory segment globs that prune a subtree",
        ),
        "allow_files": (list, [], None, None, "Filename globs a file must match"),
        "ignore_files": (
            list,
            [".", "package.json", "package-lock.json", "config.ini", "site.yaml"],
            None,
            None,
            "Filename prefixes or globs to skip",
        ),
        "ignore_files_first": (list, [], None, None, "Filename prefixes rejected before any other check"),
        "ignore_exts": (list, [".sh"], None, None, "Extensions to skip"),
    },
    "templates": {
        "markdown_exts": (list, ["md", "markdown"], None, None, "Extensions converted from markdown"),
        "template_exts": (list, ["html", "j2", "njk"], None, None, "Extensions rendered as templates"),
        "layout_ext": (str, "html", None, None, "Extension added to bare layout names"),
        "markdown_default_layout": (str, "post", None, None, "Layout for markdown without one"),
        "template_default_layout": (str, "", None, None, "Layout for templates without one"),
        "index_name": (str, "index", None, None, "Naked filename treated as a directory index"),
        "output_suffix": (str, ".html", None, None, "Suffix of rendered output files"),
        "ignore_parts": (list, [r"^\d{4}-\d{2}-\d{2}-"], None, None, "Regexes stripped from path segments"),
        "private_prefix": (str, "_", None, None, "Path segments with this prefix are dropped from URLs"),
    },
    "collections": {
        "taxonomies": (list, ["tags", "cats", "type"], None, None, "Front matter fields that fan out"),
        "sort": (str, "date", None, None, "Default comparator for collections"),
        "taxonomy_sort": (list, [], None, None, "Per-taxonomy comparator as field:name"),
    },
    "pagination": {
        "size": (int, 10, 1, 1000, "Default page size"),
        "order": (str, "desc", None, None, "Default sort order for pages"),
    },
    "cache": {
        "enabled": (bool, True, None, None, "Skip unchanged assets between runs"),
        "fingerprint": (str, "mtime", None, None, "mtime or hash"),
        "never_cache_exts": (list, ["scss"], None, None, "Asset extensions always reprocessed"),
        "asset_exts": (list, ["jpg", "jpeg", "png", "webp", "gif", "scss"], None, None, "Asset extensions"),
        "image_exts": (list, ["jpg", "jpeg", "png", "webp", "gif"], None, None, "Skipped by --noimages"),
        "copy_dirs": (list, [], None, None, "Relative prefixes whose assets are only copied"),
    },
    "watch": {
        "debounce_seconds": (float, 0.5, 0.0, 60.0, "Quiet period before a rebuild"),
        "ignore": (list, [], None, None, "Extra globs the watcher ignores"),
    },
}

CHOICES: dict[tuple[str, str], tuple[str, ...]] = {
    ("collections", "sort"): ("date", "alpha"),
    ("pagination", "order"): ("desc", "asc"),
    ("cache", "fingerprint"): ("mtime", "hash"),
}


# =============================================================================
# Section Dataclasses
# =============================================================================


@dataclass(frozen=True)
class BuildConfig:
    """Pipeline behaviour."""

    parallel_limit: int
    render_unpublished: bool
    incremental_max_age_hours: float
    plugins: list[str]


@dataclass(frozen=True)
class PathsConfig:
    """Directory and file names, relative to the site root."""

    output_dir: str
    layouts_dir: str
    data_dir: str
    cache_file: str
    site_file: str
    taxonomy_template: str


@dataclass(frozen=True)
class FiltersConfig:
    """Source scanning filters."""

    allow_paths: list[str]
    ignore_paths: list[str]
    allow_files: list[str]
    ignore_files: list[str]
    ignore_files_first: list[str]
    ignore_exts: list[str]


@dataclass(frozen=True)
class TemplatesConfig:
    """Template handling and output naming."""

    markdown_exts: list[str]
    template_exts: list[str]
    layout_ext: str
    markdown_default_layout: str
    template_default_layout: str
    index_name: str
    output_suffix: str
    ignore_parts: list[str]
    private_prefix: str


@dataclass(frozen=True)
class CollectionsConfig:
    """Collection and taxonomy configuration."""

    taxonomies: list[str]
    sort: str
    taxonomy_sort: list[str]

    def comparator_for(self, name: str) -> str:
        """Comparator name for a taxonomy field (or "all")."""
        for entry in self.taxonomy_sort:
            field_name, _, comparator = entry.partition(":")
            if field_name.strip() == name and comparator.strip():
                return comparator.strip()
        return self.sort


@dataclass(frozen=True)
class PaginationConfig:
    """Pagination defaults."""

    size: int
    order: str


@dataclass(frozen=True)
class CacheConfig:
    """Incremental asset cache."""

    enabled: bool
    fingerprint: str
    never_cache_exts: list[str]
    asset_exts: list[str]
    image_exts: list[str]
    copy_dirs: list[str]


@dataclass(frozen=True)
class WatchConfig:
    """File watcher."""

    debounce_seconds: float
    ignore: list[str]


SECTION_TYPES: dict[str, type] = {
    "build": BuildConfig,
    "paths": PathsConfig,
    "filters": FiltersConfig,
    "templates": TemplatesConfig,
    "collections": CollectionsConfig,
    "pagination": PaginationConfig,
    "cache": CacheConfig,
    "watch": WatchConfig,
}


# =============================================================================
# Config Loader Functions
# =============================================================================


def _parse_list(raw_value: str) -> list[str]:
    return [item.strip() for item in raw_value.split(",") if item.strip()]


def _load_section(
    parser: ConfigParser, section: str, schema: dict[str, tuple[type, Any, Any, Any, str]]
) -> dict[str, Any]:
    """Load and validate a configuration section.

    Args:
        parser: ConfigParser instance with loaded config
        section: Section name to load
        schema: Schema definition for the section

    Returns:
        Dictionary of validated configuration values

    Raises:
        ConfigError: If validation fails
    """
    result = {}

    for key, (typ, default, min_val, max_val, _) in schema.items():
        if parser.has_option(section, key):
            raw_value = parser.get(section, key)
            value: Any
            try:
                if typ is bool:
                    value = raw_value.lower() in ("true", "1", "yes", "on")
                elif typ is int:
                    value = int(raw_value)
                elif typ is float:
                    value = float(raw_value)
                elif typ is list:
                    value = _parse_list(raw_value)
                else:
                    value = raw_value
            except ValueError as e:
                raise ConfigError(
                    f"Invalid value for [{section}].{key}: {raw_value!r} (expected {typ.__name__})"
                ) from e
        else:
            value = list(default) if typ is list else default

        # Validate range for numeric types
        if typ in (int, float) and value is not None:
            if min_val is not None and value < min_val:
                raise ConfigError(
                    f"Value for [{section}].{key} is {value}, but minimum is {min_val}"
                )
            if max_val is not None and value > max_val:
                raise ConfigError(
                    f"Value for [{section}].{key} is {value}, but maximum is {max_val}"
                )

        choices = CHOICES.get((section, key))
        if choices and value not in choices:
            raise ConfigError(
                f"Value for [{section}].{key} is {value!r}, expected one of {', '.join(choices)}"
            )

        result[key] = value

    return result


def _default_section(section: str) -> Any:
    values = {
        key: list(default) if typ is list else default
        for key, (typ, default, _, _, _) in CONFIG_SCHEMA[section].items()
    }
    return SECTION_TYPES[section](**values)


def _load_config(site_path: Path, config_path: Optional[Path] = None) -> "Config":
    """Load configuration from an INI file.

    Args:
        site_path: Root of the site being built.
        config_path: Path to config file. If None, uses defaults from schema.

    Returns:
        Config object with all sections populated.

    Raises:
        ConfigError: If the file cannot be parsed or validation fails.
    """
    parser = ConfigParser(interpolation=None)

    if config_path and config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                parser.read_file(f)
        except (OSError, ConfigParserError) as e:
            raise ConfigError(f"Cannot read config file {config_path}: {e}") from e

    sections = {
        section: SECTION_TYPES[section](**_load_section(parser, section, schema))
        for section, schema in CONFIG_SCHEMA.items()
    }

    return Config(site_path=site_path, **sections)


# =============================================================================
# Config Dataclass with Computed Properties
# =============================================================================


@dataclass(frozen=True)
class Config:
    """Complete build configuration for one site."""

    site_path: Path
    output_override: Optional[Path] = None

    # Section configs - defaults set in __post_init__, type: ignore needed because
    # frozen dataclass doesn't allow proper initialization pattern
    build: BuildConfig = None  # type: ignore[assignment]
    paths: PathsConfig = None  # type: ignore[assignment]
    filters: FiltersConfig = None  # type: ignore[assignment]
    templates: TemplatesConfig = None  # type: ignore[assignment]
    collections: CollectionsConfig = None  # type: ignore[assignment]
    pagination: PaginationConfig = None  # type: ignore[assignment]
    cache: CacheConfig = None  # type: ignore[assignment]
    watch: WatchConfig = None  # type: ignore[assignment]

    def __post_init__(self):
        """Initialize section configs with defaults if not provided."""
        # Since frozen=True, we need to use object.__setattr__
        for section in SECTION_TYPES:
            if getattr(self, section) is None:
                object.__setattr__(self, section, _default_section(section))

    @property
    def output_path(self) -> Path:
        """Directory rendered files are written to."""
        if self.output_override is not None:
            return self.output_override
        return self.site_path / self.paths.output_dir

    @property
    def layouts_path(self) -> Path:
        """Directory holding layout templates."""
        return self.site_path / self.paths.layouts_dir

    @property
    def data_path(self) -> Path:
        """Directory holding site data files."""
        return self.site_path / self.paths.data_dir

    @property
    def cache_file_path(self) -> Path:
        """Path to the incremental asset cache."""
        return self.site_path / self.paths.cache_file

    @property
    def site_file_path(self) -> Path:
        """Path to site.yaml."""
        return self.site_path / self.paths.site_file

    @property
    def config_file_path(self) -> Path:
        """Path to config.ini."""
        return self.site_path / "config.ini"

    @property
    def taxonomy_template_path(self) -> Path:
        """Path to the taxonomy page skeleton."""
        template = self.paths.taxonomy_template
        if not Path(template).suffix:
            template = f"{template}.{self.templates.layout_ext}"
        return self.layouts_path / template


@lru_cache(maxsize=8)
def load_settings(site_path: Path, output_path: Optional[Path] = None) -> Config:
    """Load settings for a site from config.ini and environment variables.

    Settings are cached per site. Use load_settings.cache_clear() to reload.

    Args:
        site_path: Root directory of the site.
        output_path: Optional output directory overriding [paths].output_dir.

    Returns:
        Config object populated from the config file and environment.

    Raises:
        ConfigError: If the site directory is missing or config is invalid.
    """
    site_path = Path(site_path).resolve()
    if not site_path.is_dir():
        raise ConfigError(f"Site directory does not exist: {site_path}")

    config_file = site_path / "config.ini"
    base_config = _load_config(site_path, config_file if config_file.exists() else None)

    output_env = os.getenv("FOLIO_OUTPUT_DIR")
    if output_path is None and output_env:
        output_path = Path(output_env)
    if output_path is not None:
        output_path = Path(output_path)
        if not output_path.is_absolute():
            output_path = site_path / output_path

    build = base_config.build
    parallel_env = os.getenv("FOLIO_PARALLEL_LIMIT")
    if parallel_env:
        try:
            parallel_limit = int(parallel_env)
        except ValueError as e:
            raise ConfigError(f"FOLIO_PARALLEL_LIMIT must be an integer, got {parallel_env!r}") from e
        if parallel_limit < 1:
            raise ConfigError("FOLIO_PARALLEL_LIMIT must be at least 1")
        build = BuildConfig(
            parallel_limit=parallel_limit,
            render_unpublished=build.render_unpublished,
            incremental_max_age_hours=build.incremental_max_age_hours,
            plugins=build.plugins,
        )

    return Config(
        site_path=site_path,
        output_override=output_path,
        build=build,
        paths=base_config.paths,
        filters=base_config.filters,
        templates=base_config.templates,
        collections=base_config.collections,
        pagination=base_config.pagination,
        cache=base_config.cache,
        watch=base_config.watch,
    )


# =============================================================================
# Site Data
# =============================================================================


@dataclass
class SiteData:
    """User data merged into every document, plus taxonomy page overrides."""

    data: dict[str, Any] = field(default_factory=dict)
    taxonomy_defs: dict[str, Any] = field(default_factory=dict)


def _read_yaml(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot load {path}: {e}") from e


def load_site_data(settings: Config) -> SiteData:
    """Load site.yaml and fold in the data directory.

    Files under the data directory are nested under a key path built from
    their relative path without extension, e.g. ``_data/nav/top.yaml``
    lands at ``data["nav"]["top"]``. Segments starting with ``_`` are
    skipped.

    Raises:
        ConfigError: If any file is unreadable or not a mapping.
    """
    site = SiteData()

    site_file = settings.site_file_path
    if site_file.exists():
        loaded = _read_yaml(site_file) or {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"{site_file} must contain a mapping")
        data = loaded.get("data") or {}
        defs = loaded.get("taxonomy_defs") or {}
        if not isinstance(data, dict) or not isinstance(defs, dict):
            raise ConfigError(f"'data' and 'taxonomy_defs' in {site_file} must be mappings")
        site.data = data
        site.taxonomy_defs = defs
    else:
        logger.warning(f"No site data found at {site_file}")

    data_path = settings.data_path
    if data_path.is_dir():
        for data_file in sorted(data_path.rglob("*")):
            if data_file.suffix.lower() not in (".yaml", ".yml") or not data_file.is_file():
                continue
            loaded = _read_yaml(data_file)
            if not isinstance(loaded, dict):
                raise ConfigError(f"Data file {data_file} must contain a mapping")
            parts = data_file.relative_to(data_path).with_suffix("").parts
            target = site.data
            for part in parts:
                if part.startswith("_"):
                    continue
                target = target.setdefault(part, {})
            target.update(loaded)

    return site
