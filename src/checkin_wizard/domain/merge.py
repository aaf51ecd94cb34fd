"""Deep merge helpers for check-in documents."""

import copy
from collections.abc import Mapping
from typing import Any


def deep_merge(target: Mapping[str, Any], source: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``target`` with ``source`` merged into it.

    Mappings are merged key by key, recursively. Every other value replaces
    the target's value wholesale, and that includes lists: ``pets``,
    ``feeding`` or ``inventory`` are never merged element-wise, so callers
    read the current list, splice it and pass the whole list back.
    Neither argument is modified.
    """
    result = copy.deepcopy(dict(target))
    for key, value in source.items():
        if isinstance(value, Mapping):
            base = result.get(key)
            result[key] = deep_merge(base if isinstance(base, Mapping) else {}, value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def without_keys(document: Mapping[str, Any], keys: set[str]) -> dict[str, Any]:
    """Return a deep copy of ``document`` without the given top-level keys."""
    return {
        key: copy.deepcopy(value) for key, value in document.items() if key not in keys
    }
