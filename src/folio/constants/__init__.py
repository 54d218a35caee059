"""Build constants.

Re-exports all constants for convenient importing:
    from folio.constants import PHASES, BUILTIN_DEFAULTS
"""

from folio.constants.build import *  # noqa: F403
