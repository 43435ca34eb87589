"""Query cache layer.

The cache is the single writer of query results: every read that a UI would
keep on screen goes through :class:`QueryCache`, which deduplicates
concurrent fetches and drops results that an invalidation has superseded.
"""

from pyreserva.cache.keys import QueryKey, key_matches, make_query_key
from pyreserva.cache.store import (
    CacheEntry,
    QueryCache,
    QueryOptions,
    QuerySnapshot,
    QueryStatus,
    QuerySubscription,
)

__all__ = [
    "CacheEntry",
    "QueryCache",
    "QueryKey",
    "QueryOptions",
    "QuerySnapshot",
    "QueryStatus",
    "QuerySubscription",
    "key_matches",
    "make_query_key",
]
