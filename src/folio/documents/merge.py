"""Layered merging of document data."""

from copy import deepcopy
from typing import Any, Iterable, Mapping

from folio.constants import RESERVED_FIELDS


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge two mappings by key, recursing into nested mappings.

    Values from ``override`` win. Neither input is modified.
    """
    result = deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = deepcopy(value)
    return result


def merge_layers(layers: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    """Merge data layers in increasing precedence.

    Reserved fields are taken whole from the last layer that sets them.
    Every other key is deep-merged.

    Args:
        layers: Mappings ordered least specific first.

    Returns:
        The merged mapping.
    """
    merged: dict[str, Any] = {}
    for layer in layers:
        open_fields = {k: v for k, v in layer.items() if k not in RESERVED_FIELDS}
        merged = deep_merge(merged, open_fields)
        for key in RESERVED_FIELDS:
            if key in layer:
                merged[key] = deepcopy(layer[key])
    return merged
