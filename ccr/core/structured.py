"""Helpers for safely working with dynamic (untyped) structures.

Use these helpers where we ingest JSON: the persisted release config and the
package manifest. They provide runtime validation and static type narrowing.
"""

from __future__ import annotations

from typing import Mapping, TypeGuard, cast

StrDict = dict[str, object]


def is_str_dict(obj: object) -> TypeGuard[StrDict]:
    """Return True if obj is a dict with string keys."""
    if not isinstance(obj, dict):
        return False
    d = cast(dict[object, object], obj)
    return all(isinstance(k, str) for k in d.keys())


def as_str_dict(obj: object) -> StrDict | None:
    """Return obj as StrDict if it matches, else None."""
    if is_str_dict(obj):
        return obj
    return None


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """Get a string value from a mapping, stripping whitespace.

    Returns None if missing, not a str, or empty after stripping.
    """
    value = table.get(key)
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def get_bool(table: Mapping[str, object], key: str) -> bool:
    """Get a bool value from a mapping; anything but a literal True is False."""
    return table.get(key) is True


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    """Get a nested table (dict with string keys) from a mapping."""
    return as_str_dict(table.get(key))


def get_path(table: Mapping[str, object], dotted: str) -> object | None:
    """Resolve a dotted key ("packageJson.valid") through nested tables."""
    current: object = table
    for part in dotted.split("."):
        node = as_str_dict(current)
        if node is None or part not in node:
            return None
        current = node[part]
    return current
