"""Tests for asset processing and output writing."""

import logging
from dataclasses import replace
from pathlib import Path

import pytest

from folio.build import (
    AssetOutcome,
    AssetProcessor,
    IncrementalCache,
    OutputError,
    OutputWriter,
    prepare_output_directory,
)
from folio.config import load_settings
from folio.events import BuildEvent, EventBus


@pytest.fixture
def asset_site(site):
    root = site(
        files={"img/logo.png": "png", "css/site.css": "body {}", "vendor/lib.png": "png"},
        layouts=False,
    )
    return load_settings(root)


def make_processor(settings, dry_run=False, **kwargs):
    cache = IncrementalCache(settings.cache_file_path, settings.site_path)
    cache.load()
    return AssetProcessor(settings, cache, OutputWriter(dry_run), **kwargs), cache


# =============================================================================
# AssetProcessor
# =============================================================================


def test_asset_is_processed_then_cached(asset_site):
    processor, _ = make_processor(asset_site)
    logo = asset_site.site_path / "img/logo.png"

    assert processor.process(logo) is AssetOutcome.PROCESSED
    assert (asset_site.output_path / "img/logo.png").read_text() == "png"
    assert processor.process(logo) is AssetOutcome.CACHED


def test_cached_asset_with_missing_output_is_reprocessed(asset_site):
    processor, _ = make_processor(asset_site)
    logo = asset_site.site_path / "img/logo.png"
    processor.process(logo)

    (asset_site.output_path / "img/logo.png").unlink()

    assert processor.process(logo) is AssetOutcome.PROCESSED


def test_other_files_are_copied(asset_site):
    processor, cache = make_processor(asset_site)

    outcome = processor.process(asset_site.site_path / "css/site.css")

    assert outcome is AssetOutcome.COPIED
    assert (asset_site.output_path / "css/site.css").exists()
    assert len(cache) == 0


def test_copy_dirs_bypass_handlers(asset_site):
    settings = replace(asset_site, cache=replace(asset_site.cache, copy_dirs=["vendor/"]))
    processor, _ = make_processor(settings)

    assert processor.process(settings.site_path / "vendor/lib.png") is AssetOutcome.COPIED


def test_noimages_skips_images(asset_site, caplog):
    processor, _ = make_processor(asset_site, noimages=True)

    outcome = processor.process(asset_site.site_path / "img/logo.png")

    assert outcome is AssetOutcome.SKIPPED
    assert not (asset_site.output_path / "img/logo.png").exists()
    assert "--noimages" in caplog.text


def test_custom_handler_and_event(asset_site):
    calls = []
    seen = []

    class Upper:
        def process(self, source: Path, dest: Path, writer: OutputWriter) -> None:
            calls.append(source.name)
            writer.write_text(dest, source.read_text().upper())

    bus = EventBus()
    bus.subscribe(BuildEvent.BEFORE_PARSE_ASSET, seen.append)
    processor, _ = make_processor(asset_site, bus=bus)
    processor.register(".png", Upper())
    logo = asset_site.site_path / "img/logo.png"

    processor.process(logo)

    assert calls == ["logo.png"]
    assert seen == [logo]
    assert (asset_site.output_path / "img/logo.png").read_text() == "PNG"


def test_dry_run_writes_nothing_and_records_nothing(asset_site, caplog):
    caplog.set_level(logging.INFO)
    processor, cache = make_processor(asset_site, dry_run=True)

    outcome = processor.process(asset_site.site_path / "img/logo.png")

    assert outcome is AssetOutcome.PROCESSED
    assert not asset_site.output_path.exists()
    assert len(cache) == 0
    assert "[dryrun] would copy" in caplog.text


# =============================================================================
# Output Directory
# =============================================================================


def test_prepare_cleans_existing_output(tmp_path):
    site_path = tmp_path / "site"
    output = site_path / "_site"
    (output / "stale").mkdir(parents=True)

    prepare_output_directory(output, site_path, clean=True)

    assert output.is_dir()
    assert list(output.iterdir()) == []


def test_prepare_keeps_output_without_clean(tmp_path):
    site_path = tmp_path / "site"
    output = site_path / "_site"
    (output / "kept").mkdir(parents=True)

    prepare_output_directory(output, site_path, clean=False)

    assert (output / "kept").exists()


@pytest.mark.parametrize("relative", [".", ".."])
def test_prepare_refuses_site_or_parent(tmp_path, relative):
    site_path = tmp_path / "site"
    site_path.mkdir()

    with pytest.raises(OutputError, match="contains the site"):
        prepare_output_directory(site_path / relative, site_path, clean=True)

    assert site_path.exists()
