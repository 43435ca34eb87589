"""Hashable query keys.

A key is ``(namespace, *parts)``.  Mapping parts are frozen into a sorted
tuple of ``(name, value)`` pairs with ``None`` and ``""`` dropped, so two
equal parameter sets always produce the same key.
"""

from __future__ import annotations

from collections.abc import Hashable, Mapping
from typing import Any

QueryKey = tuple[Hashable, ...]


def _freeze(value: Any) -> Hashable:
    if isinstance(value, Mapping):
        return tuple(sorted((str(k), _freeze(v)) for k, v in value.items() if v is not None and v != ""))
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [_freeze(v) for v in value]
        return tuple(sorted(items, key=repr)) if isinstance(value, (set, frozenset)) else tuple(items)
    return value


def make_query_key(namespace: str, *parts: Any) -> QueryKey:
    return (namespace, *(_freeze(part) for part in parts))


def key_matches(key: QueryKey, prefix: str | QueryKey) -> bool:
    """Whether *key* falls under *prefix* (a namespace or a leading key slice)."""
    if isinstance(prefix, str):
        return bool(key) and key[0] == prefix
    return key[: len(prefix)] == tuple(prefix)
