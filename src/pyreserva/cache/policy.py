"""Freshness and enablement rules for cached queries."""

from __future__ import annotations

from typing import Any


def is_fresh(*, updated_at: float | None, now: float, stale_time: float, invalidated: bool) -> bool:
    """A success entry may be served without I/O while younger than *stale_time*."""
    if invalidated or updated_at is None:
        return False
    return (now - updated_at) < stale_time


def dependent_enabled(*inputs: Any) -> bool:
    """Dependent queries run only once every input they need is known."""
    return all(value is not None and value != "" for value in inputs)
