"""Tests for the build event bus and plugin loading."""

from textwrap import dedent

import pytest

from folio.config import ConfigError, load_settings
from folio.events import BuildEvent, EventBus
from folio.plugins import PluginError, load_plugins


# =============================================================================
# EventBus
# =============================================================================


def test_subscribers_run_in_order():
    bus = EventBus()
    calls = []
    bus.subscribe(BuildEvent.AFTER_PARSE_FILE, lambda doc: calls.append(("first", doc)))
    bus.subscribe(BuildEvent.AFTER_PARSE_FILE, lambda doc: calls.append(("second", doc)))

    bus.emit(BuildEvent.AFTER_PARSE_FILE, "doc")

    assert calls == [("first", "doc"), ("second", "doc")]


def test_events_accept_string_names():
    bus = EventBus()
    calls = []
    bus.subscribe("filesystem-parsed", calls.append)

    bus.emit(BuildEvent.FILESYSTEM_PARSED, ["a"])

    assert calls == [["a"]]


def test_failing_subscriber_does_not_stop_others(caplog):
    bus = EventBus()
    calls = []

    def broken(payload):
        raise RuntimeError("boom")

    bus.subscribe(BuildEvent.BEFORE_PARSE_FILE, broken)
    bus.subscribe(BuildEvent.BEFORE_PARSE_FILE, calls.append)

    bus.emit(BuildEvent.BEFORE_PARSE_FILE, 1)

    assert calls == [1]
    assert "boom" in caplog.text


def test_unsubscribe():
    bus = EventBus()
    calls = []
    bus.subscribe(BuildEvent.INIT_FINISHED, calls.append)

    assert bus.unsubscribe(BuildEvent.INIT_FINISHED, calls.append) is True
    assert bus.unsubscribe(BuildEvent.INIT_FINISHED, calls.append) is False

    bus.emit(BuildEvent.INIT_FINISHED)
    assert calls == []


def test_unknown_event_rejected():
    with pytest.raises(ValueError):
        EventBus().subscribe("before-everything", print)


# =============================================================================
# Plugins
# =============================================================================


@pytest.fixture
def plugin_module(tmp_path, monkeypatch):
    """Write an importable plugin module and return its name."""
    module_dir = tmp_path / "plugins"
    module_dir.mkdir()
    (module_dir / "sample_folio_plugin.py").write_text(
        dedent(
            """\
            from folio.events import BuildEvent

            seen = []


            def register(bus, settings):
                bus.subscribe(BuildEvent.INIT_FINISHED, seen.append)


            def broken(bus, settings):
                raise RuntimeError("cannot register")


            not_callable = 42
            """
        )
    )
    monkeypatch.syspath_prepend(str(module_dir))
    return "sample_folio_plugin"


def test_plugin_registers_subscribers(site, plugin_module):
    root = site(config=f"[build]\nplugins = {plugin_module}:register\n")
    settings = load_settings(root)
    bus = EventBus()

    loaded = load_plugins(bus, settings)
    bus.emit(BuildEvent.INIT_FINISHED, settings)

    assert loaded == [f"{plugin_module}:register"]
    assert len(bus.subscribers(BuildEvent.INIT_FINISHED)) == 1


@pytest.mark.parametrize(
    "reference,message",
    [
        ("no_colon_here", "module:callable"),
        ("folio_missing_plugin_module:register", "Cannot import"),
        ("{module}:absent", "no callable"),
        ("{module}:not_callable", "no callable"),
        ("{module}:broken", "cannot register"),
    ],
)
def test_plugin_errors(site, plugin_module, reference, message):
    root = site(config=f"[build]\nplugins = {reference.format(module=plugin_module)}\n")

    with pytest.raises(PluginError, match=message):
        load_plugins(EventBus(), load_settings(root))


def test_plugin_error_is_config_error():
    assert issubclass(PluginError, ConfigError)
