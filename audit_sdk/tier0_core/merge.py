"""
audit_sdk.tier0_core.merge
───────────────────────────
Deep merge of caller options over built-in defaults.

Nested mappings merge key by key. Lists are either unioned (defaults first,
duplicates dropped, first occurrence wins) or replaced, according to a single
flag applied at every level. The inputs are never mutated: the result is a
fresh structure that shares no mapping or list with either argument, so one
defaults template can back any number of configurations.
"""
from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any


def merge(
    overrides: Mapping[str, Any] | None,
    defaults: Mapping[str, Any] | None,
    merge_arrays: bool = True,
) -> dict[str, Any]:
    """
    Return *overrides* deep-merged over *defaults*.

    Usage:
        merge({"censor": ["ssn"]}, {"censor": ["password"]}, True)
        # {"censor": ["password", "ssn"]}
        merge({"censor": ["ssn"]}, {"censor": ["password"]}, False)
        # {"censor": ["ssn"]}
    """
    result: dict[str, Any] = copy.deepcopy(dict(defaults or {}))
    for key, value in (overrides or {}).items():
        current = result.get(key)
        if isinstance(value, Mapping):
            base = current if isinstance(current, Mapping) else {}
            result[key] = merge(value, base, merge_arrays)
        elif isinstance(value, list) and isinstance(current, list):
            if merge_arrays:
                result[key] = union(current, value)
            else:
                result[key] = copy.deepcopy(value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def union(first: list[Any], second: list[Any]) -> list[Any]:
    """Concatenate two lists dropping duplicates by value equality."""
    out: list[Any] = []
    for item in [*first, *second]:
        # list membership instead of a set: items may be unhashable dicts
        if item not in out:
            out.append(copy.deepcopy(item))
    return out


__all__ = ["merge", "union"]
