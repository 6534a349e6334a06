"""Request cache that deduplicates and memoizes API calls by key.

Provides:
- QueryCache: keyed entries with a staleness window and a retention window
- QueryResult: the status snapshot handed to the rendering layer

All state transitions run on one asyncio event loop and happen synchronously
between awaits, so no lock is needed: concurrent requests for the same key
always find the in-flight task started by the first one.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Hashable

logger = logging.getLogger(__name__)

QueryKey = tuple[Hashable, ...]
Fetcher = Callable[[], Awaitable[Any]]

DEFAULT_STALE_TIME = 5 * 60.0
DEFAULT_GC_TIME = 10 * 60.0


class QueryStatus(str, Enum):
    """Lifecycle state of a cache entry."""

    IDLE = "idle"
    PENDING = "pending"
    FRESH = "fresh"
    STALE = "stale"
    ERROR = "error"


@dataclass(frozen=True)
class QueryResult:
    """Snapshot of one cache entry as seen by a caller."""

    key: QueryKey
    status: QueryStatus
    data: Any = None
    error: BaseException | None = None
    updated_at: datetime | None = None
    is_fetching: bool = False
    refetch: Callable[[], Awaitable[QueryResult]] | None = field(
        default=None, repr=False, compare=False
    )

    @property
    def is_loading(self) -> bool:
        """Fetching with nothing to show yet."""
        return self.is_fetching and self.data is None

    @property
    def is_error(self) -> bool:
        return self.status is QueryStatus.ERROR

    @property
    def is_success(self) -> bool:
        return self.status in (QueryStatus.FRESH, QueryStatus.STALE)

    @property
    def is_stale(self) -> bool:
        return self.status is QueryStatus.STALE

    @property
    def status_code(self) -> int | None:
        return getattr(self.error, "status_code", None)

    @property
    def rate_limit_reset(self) -> datetime | None:
        """When a rate-limited request may be retried, if the error says so."""
        return getattr(self.error, "reset_at", None)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON serialization."""
        data = self.data
        if dataclasses.is_dataclass(data) and not isinstance(data, type):
            data = dataclasses.asdict(data)
        reset = self.rate_limit_reset
        return {
            "status": self.status.value,
            "data": data,
            "is_loading": self.is_loading,
            "is_fetching": self.is_fetching,
            "is_error": self.is_error,
            "error": str(self.error) if self.error else None,
            "status_code": self.status_code,
            "rate_limit_reset": reset.isoformat() if reset else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class CacheEntry:
    """Cached value and fetch state for one key. Owned by QueryCache."""

    key: QueryKey
    fetcher: Fetcher | None = None
    value: Any = None
    has_value: bool = False
    error: BaseException | None = None
    fetched_at: float | None = None  # clock() of the last successful fetch
    updated_at: datetime | None = None  # wall time of the last successful fetch
    last_accessed: float = 0.0
    invalidated: bool = False
    task: asyncio.Task | None = None

    @property
    def is_fetching(self) -> bool:
        return self.task is not None and not self.task.done()


class QueryCache:
    """Deduplicating request cache with stale-while-revalidate semantics.

    - stale_time: seconds after a successful fetch during which the value is
      served without refetching
    - gc_time: seconds after the last access after which an idle entry is
      dropped
    """

    def __init__(
        self,
        stale_time: float = DEFAULT_STALE_TIME,
        gc_time: float = DEFAULT_GC_TIME,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.stale_time = stale_time
        self.gc_time = gc_time
        self._clock = clock
        self._entries: dict[QueryKey, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def _status(self, entry: CacheEntry, now: float) -> QueryStatus:
        if entry.is_fetching:
            return QueryStatus.PENDING
        if entry.error is not None:
            return QueryStatus.ERROR
        if not entry.has_value:
            return QueryStatus.IDLE
        if entry.invalidated or now - (entry.fetched_at or 0.0) >= self.stale_time:
            return QueryStatus.STALE
        return QueryStatus.FRESH

    def _snapshot(self, entry: CacheEntry, now: float) -> QueryResult:
        return QueryResult(
            key=entry.key,
            status=self._status(entry, now),
            data=entry.value if entry.has_value else None,
            error=entry.error,
            updated_at=entry.updated_at,
            is_fetching=entry.is_fetching,
            refetch=lambda: self.refetch(entry.key, entry.fetcher),
        )

    def _disabled(self, key: QueryKey) -> QueryResult:
        async def _noop() -> QueryResult:
            return self._disabled(key)

        return QueryResult(key=key, status=QueryStatus.IDLE, refetch=_noop)

    def _start_fetch(self, entry: CacheEntry) -> None:
        """Move an entry to pending by scheduling its fetcher."""
        if entry.fetcher is None:
            raise RuntimeError(f"Query {entry.key!r} has no fetcher")
        entry.error = None
        entry.invalidated = False
        entry.task = asyncio.get_running_loop().create_task(self._run(entry, entry.fetcher))
        logger.debug(f"Query {entry.key!r}: fetch started")

    async def _run(self, entry: CacheEntry, fetcher: Fetcher) -> None:
        try:
            value = await fetcher()
        except Exception as e:
            entry.error = e
            logger.warning(f"Query {entry.key!r} failed: {e}")
            return

        entry.value = value
        entry.has_value = True
        entry.error = None
        entry.fetched_at = self._clock()
        entry.updated_at = datetime.now(timezone.utc)
        logger.debug(f"Query {entry.key!r}: fetch succeeded")

    def get(self, key: QueryKey) -> QueryResult | None:
        """Snapshot of an entry without touching it, or None if absent."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        return self._snapshot(entry, self._clock())

    def observe(self, key: QueryKey, fetcher: Fetcher, *, enabled: bool = True) -> QueryResult:
        """Return the current snapshot for key, starting a fetch if needed.

        A fetch starts when the entry has no value yet or its value is stale,
        unless one is already in flight or the last fetch failed (failed
        entries wait for refetch()). Stale data stays on the snapshot while
        the new fetch runs. Disabled queries never fetch and report idle.
        Must be called from within a running event loop.
        """
        if not enabled:
            entry = self._entries.get(key)
            if entry is None:
                return self._disabled(key)
            return self._snapshot(entry, self._clock())

        now = self._clock()
        self.collect_garbage(now)

        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key=key)
            self._entries[key] = entry
        entry.fetcher = fetcher
        entry.last_accessed = now

        status = self._status(entry, now)
        if status in (QueryStatus.IDLE, QueryStatus.STALE):
            self._start_fetch(entry)

        return self._snapshot(entry, now)

    async def fetch(self, key: QueryKey, fetcher: Fetcher, *, enabled: bool = True) -> QueryResult:
        """Like observe(), but wait for the fetch when there is nothing to show.

        Callers arriving while a first fetch is in flight all wait on the
        same task. The wait is shielded: a caller that goes away does not
        cancel the fetch, and its result stays cached for the next caller.
        """
        result = self.observe(key, fetcher, enabled=enabled)
        if not enabled:
            return result

        entry = self._entries[key]
        if entry.is_fetching and not entry.has_value:
            await asyncio.shield(entry.task)
            return self._snapshot(entry, self._clock())
        return result

    async def refetch(self, key: QueryKey, fetcher: Fetcher | None = None) -> QueryResult:
        """Force a fetch for key regardless of freshness and wait for it.

        Joins the in-flight fetch if there is one.

        Raises:
            KeyError: If key is unknown and no fetcher is given
        """
        entry = self._entries.get(key)
        if entry is None:
            if fetcher is None:
                raise KeyError(key)
            entry = CacheEntry(key=key)
            self._entries[key] = entry
        if fetcher is not None:
            entry.fetcher = fetcher
        entry.last_accessed = self._clock()

        if not entry.is_fetching:
            self._start_fetch(entry)
        await asyncio.shield(entry.task)
        return self._snapshot(entry, self._clock())

    def invalidate(self, prefix: QueryKey | None = None) -> int:
        """Mark entries whose key starts with prefix (all if None) as stale.

        Returns the number of entries marked. The next observe() refetches.
        """
        count = 0
        for key, entry in self._entries.items():
            if prefix is None or key[: len(prefix)] == prefix:
                entry.invalidated = True
                count += 1
        logger.debug(f"Invalidated {count} queries matching {prefix!r}")
        return count

    def collect_garbage(self, now: float | None = None) -> int:
        """Drop entries not accessed within gc_time. In-flight entries are kept."""
        if now is None:
            now = self._clock()
        expired = [
            key
            for key, entry in self._entries.items()
            if not entry.is_fetching and now - entry.last_accessed >= self.gc_time
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Evicted {len(expired)} idle queries")
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()


_cache: QueryCache | None = None


def init_query_cache(stale_time: float = DEFAULT_STALE_TIME, gc_time: float = DEFAULT_GC_TIME) -> QueryCache:
    """Initialize the global QueryCache."""
    global _cache
    _cache = QueryCache(stale_time=stale_time, gc_time=gc_time)
    return _cache


def get_query_cache() -> QueryCache:
    """Get the global QueryCache. Must call init_query_cache first."""
    if _cache is None:
        raise RuntimeError("QueryCache not initialized. Call init_query_cache first.")
    return _cache
