"""Loading of plugins named in config.ini."""

import importlib
import logging

from folio.config import Config, ConfigError
from folio.events import EventBus

logger = logging.getLogger(__name__)


class PluginError(ConfigError):
    """Raised when a configured plugin cannot be imported or called."""

    pass


def load_plugins(bus: EventBus, settings: Config) -> list[str]:
    """Import and register every plugin in ``[build] plugins``.

    Each entry is a ``module:callable`` reference. The callable receives the
    event bus and the settings and subscribes whatever it needs.

    Returns:
        The references that were loaded.

    Raises:
        PluginError: If a reference is malformed, its module or attribute
            cannot be found, or the callable raises.
    """
    loaded = []
    for reference in settings.build.plugins:
        module_name, sep, attr = reference.partition(":")
        if not sep or not module_name or not attr:
            raise PluginError(f"Plugin reference {reference!r} must look like 'module:callable'")

        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise PluginError(f"Cannot import plugin module {module_name!r}: {e}") from e

        register = getattr(module, attr, None)
        if not callable(register):
            raise PluginError(f"Plugin module {module_name!r} has no callable {attr!r}")

        try:
            register(bus, settings)
        except Exception as e:
            raise PluginError(f"Plugin {reference!r} failed to register: {e}") from e

        logger.info(f"Loaded plugin {reference}")
        loaded.append(reference)
    return loaded
