"""Shared pytest fixtures for all tests.

Tests build small sites in temporary directories through the ``site``
factory and load their settings with ``load_settings``.
"""

from pathlib import Path
from textwrap import dedent

import pytest

from folio.config import load_settings

POST_LAYOUT = """\
---
layout: base
section: blog
---
<article>{{ content }}</article>
"""

BASE_LAYOUT = """\
<html><title>{{ title }}</title><body>{{ content }}</body></html>
"""


@pytest.fixture(autouse=True)
def clear_settings_cache(monkeypatch):
    """Reload settings in every test and ignore the caller's environment."""
    monkeypatch.delenv("FOLIO_OUTPUT_DIR", raising=False)
    monkeypatch.delenv("FOLIO_PARALLEL_LIMIT", raising=False)
    load_settings.cache_clear()
    yield
    load_settings.cache_clear()


@pytest.fixture
def site(tmp_path):
    """Factory writing a site tree and returning its root.

    Args (of the returned callable):
        files: Relative path to file content; content is dedented.
        config: Content of config.ini, if any.
        site_yaml: Content of site.yaml, if any.
        layouts: Write the default ``post`` and ``base`` layouts.
    """

    def _make(
        files: dict[str, str] | None = None,
        config: str | None = None,
        site_yaml: str | None = None,
        layouts: bool = True,
    ) -> Path:
        root = tmp_path / "site"
        root.mkdir(exist_ok=True)
        if config is not None:
            (root / "config.ini").write_text(dedent(config))
        if site_yaml is not None:
            (root / "site.yaml").write_text(dedent(site_yaml))
        if layouts:
            (root / "_layouts").mkdir(exist_ok=True)
            (root / "_layouts" / "post.html").write_text(POST_LAYOUT)
            (root / "_layouts" / "base.html").write_text(BASE_LAYOUT)
        for relative, content in (files or {}).items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(dedent(content))
        return root

    return _make
