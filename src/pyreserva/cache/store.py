"""In-memory query cache with single-flight fetches.

Rules the cache enforces:

- at most one tracked fetch per key; concurrent interest joins it;
- only the outcome of the entry's current generation is applied, so a
  fetch superseded by :meth:`QueryCache.invalidate` can never overwrite
  newer data;
- errors are stored on the entry and surfaced to subscribers, never
  retried automatically;
- an entry nobody watches is kept only while its result is fresh.

Subscribing starts fetches with :func:`asyncio.create_task` and therefore
needs a running event loop.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pyreserva.cache.keys import QueryKey, key_matches
from pyreserva.cache.policy import is_fresh

_logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[Any]]
SuccessCallback = Callable[[Any], None]
ErrorCallback = Callable[[BaseException], None]


class QueryStatus(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class QueryOptions:
    enabled: bool = True
    stale_time: float = 0.0


@dataclass
class CacheEntry:
    key: QueryKey
    fetcher: Fetcher
    status: QueryStatus = QueryStatus.IDLE
    data: Any = None
    error: BaseException | None = None
    updated_at: float | None = None
    invalidated: bool = False
    generation: int = 0
    stale_time: float = 0.0
    in_flight: asyncio.Task[None] | None = None
    subscribers: list[QuerySubscription] = field(default_factory=list)


@dataclass(frozen=True)
class QuerySnapshot:
    """Read-only view of a cache entry."""

    key: QueryKey
    status: QueryStatus
    data: Any
    error: BaseException | None
    updated_at: float | None
    is_fetching: bool
    invalidated: bool
    subscriber_count: int


class QuerySubscription:
    """One consumer's interest in a key.

    Attributes mirror the entry live.  A disabled subscription is detached:
    it stays ``idle`` and never touches the cache.
    """

    def __init__(
        self,
        cache: QueryCache,
        key: QueryKey,
        options: QueryOptions,
        on_success: SuccessCallback | None,
        on_error: ErrorCallback | None,
    ) -> None:
        self._cache = cache
        self.key = key
        self.options = options
        self._on_success = on_success
        self._on_error = on_error
        self._entry: CacheEntry | None = None
        self._active = True

    @property
    def is_detached(self) -> bool:
        return self._entry is None

    @property
    def active(self) -> bool:
        return self._active

    @property
    def status(self) -> QueryStatus:
        return self._entry.status if self._entry is not None else QueryStatus.IDLE

    @property
    def data(self) -> Any:
        return self._entry.data if self._entry is not None else None

    @property
    def error(self) -> BaseException | None:
        return self._entry.error if self._entry is not None else None

    @property
    def updated_at(self) -> float | None:
        return self._entry.updated_at if self._entry is not None else None

    @property
    def is_fetching(self) -> bool:
        return self._entry is not None and self._entry.in_flight is not None

    async def result(self) -> Any:
        """Wait for the outstanding fetch chain; return data or raise its error.

        Waiting is shielded: cancelling the waiter leaves the fetch running
        for everyone else.
        """
        entry = self._entry
        if entry is None:
            return None
        while entry.in_flight is not None:
            await asyncio.shield(entry.in_flight)
        if entry.status == QueryStatus.ERROR and entry.error is not None:
            raise entry.error
        return entry.data

    async def refetch(self) -> Any:
        if self._entry is None:
            return None
        self._cache.refetch(self.key)
        return await self.result()

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._entry is not None and self in self._entry.subscribers:
            self._entry.subscribers.remove(self)
            self._cache._release(self._entry)

    def _notify(self, entry: CacheEntry) -> None:
        if entry.status == QueryStatus.SUCCESS:
            callback: Callable[[Any], None] | None = self._on_success
            value: Any = entry.data
        else:
            callback = self._on_error
            value = entry.error
        if callback is None:
            return
        try:
            callback(value)
        except Exception:
            _logger.debug("Query callback failed for %s", self.key, exc_info=True)

    def __repr__(self) -> str:
        return f"QuerySubscription(key={self.key!r}, status={self.status.value})"


class QueryCache:
    """Keyed store of fetch results shared by every consumer.

    Parameters
    ----------
    clock : callable, optional
        Returns the current time in seconds; defaults to
        :func:`time.monotonic`.  Injected by tests.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[QueryKey, CacheEntry] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    def subscribe(
        self,
        key: QueryKey,
        fetcher: Fetcher,
        options: QueryOptions | None = None,
        *,
        on_success: SuccessCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> QuerySubscription:
        options = options or QueryOptions()
        subscription = QuerySubscription(self, key, options, on_success, on_error)
        if not options.enabled:
            return subscription

        self._prune()
        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key=key, fetcher=fetcher)
            self._entries[key] = entry
        else:
            entry.fetcher = fetcher
        entry.stale_time = options.stale_time
        entry.subscribers.append(subscription)
        subscription._entry = entry

        if entry.in_flight is not None:
            return subscription
        if not self._is_fresh(entry):
            self._start_fetch(entry)
        return subscription

    async def fetch(self, key: QueryKey, fetcher: Fetcher, options: QueryOptions | None = None) -> Any:
        """Subscribe, wait for the result, unsubscribe."""
        subscription = self.subscribe(key, fetcher, options)
        try:
            return await subscription.result()
        finally:
            subscription.unsubscribe()

    def refetch(self, key: QueryKey) -> asyncio.Task[None] | None:
        """Fetch *key* regardless of staleness; joins a fetch already in flight."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.in_flight is not None:
            return entry.in_flight
        return self._start_fetch(entry)

    def invalidate(self, prefix: str | QueryKey) -> int:
        """Mark every entry under *prefix* stale and supersede its fetch.

        Entries that still have subscribers refetch immediately; the rest
        are dropped.  Returns the number of entries affected.
        """
        matched = [entry for key, entry in self._entries.items() if key_matches(key, prefix)]
        for entry in matched:
            entry.generation += 1
            entry.invalidated = True
            entry.in_flight = None
            if entry.subscribers:
                self._start_fetch(entry)
            else:
                del self._entries[entry.key]
        if matched:
            _logger.debug("Invalidated %d entries under %r", len(matched), prefix)
        return len(matched)

    def get_entry(self, key: QueryKey) -> QuerySnapshot | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        return QuerySnapshot(
            key=entry.key,
            status=entry.status,
            data=entry.data,
            error=entry.error,
            updated_at=entry.updated_at,
            is_fetching=entry.in_flight is not None,
            invalidated=entry.invalidated,
            subscriber_count=len(entry.subscribers),
        )

    def keys(self) -> list[QueryKey]:
        return list(self._entries)

    def clear(self) -> None:
        """Cancel tracked fetches and drop every entry."""
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        for entry in self._entries.values():
            entry.in_flight = None
            entry.subscribers.clear()
        self._entries.clear()

    def _is_fresh(self, entry: CacheEntry) -> bool:
        return entry.status == QueryStatus.SUCCESS and is_fresh(
            updated_at=entry.updated_at,
            now=self._clock(),
            stale_time=entry.stale_time,
            invalidated=entry.invalidated,
        )

    def _is_disposable(self, entry: CacheEntry) -> bool:
        return not entry.subscribers and entry.in_flight is None and not self._is_fresh(entry)

    def _release(self, entry: CacheEntry) -> None:
        if self._entries.get(entry.key) is entry and self._is_disposable(entry):
            del self._entries[entry.key]

    def _prune(self) -> None:
        """Drop unwatched entries whose result has gone stale."""
        stale = [key for key, entry in self._entries.items() if self._is_disposable(entry)]
        for key in stale:
            del self._entries[key]
        if stale:
            _logger.debug("Pruned %d unwatched cache entries", len(stale))

    def _start_fetch(self, entry: CacheEntry) -> asyncio.Task[None]:
        entry.generation += 1
        if entry.status != QueryStatus.SUCCESS:
            entry.status = QueryStatus.LOADING
        task = asyncio.get_running_loop().create_task(self._run_fetch(entry, entry.generation))
        entry.in_flight = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_fetch(self, entry: CacheEntry, generation: int) -> None:
        try:
            data = await entry.fetcher()
        except Exception as exc:
            self._settle(entry, generation, data=None, error=exc)
        else:
            self._settle(entry, generation, data=data, error=None)

    def _settle(self, entry: CacheEntry, generation: int, *, data: Any, error: BaseException | None) -> None:
        if generation != entry.generation or self._entries.get(entry.key) is not entry:
            _logger.debug("Discarding superseded result for %s", entry.key)
            return
        entry.in_flight = None
        if error is None:
            entry.status = QueryStatus.SUCCESS
            entry.data = data
            entry.error = None
            entry.updated_at = self._clock()
            entry.invalidated = False
        else:
            _logger.debug("Query %s failed: %s", entry.key, error)
            entry.status = QueryStatus.ERROR
            entry.error = error
        for subscription in list(entry.subscribers):
            subscription._notify(entry)
        self._release(entry)
