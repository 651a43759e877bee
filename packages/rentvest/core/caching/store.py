"""In-memory query cache with request de-duplication and prefix invalidation.

Concurrency discipline (single event loop):

- At most one fetch is in flight per key. Callers arriving while a fetch is
  running await the same task instead of starting their own.
- Waiters are shielded: cancelling one waiter never cancels the shared fetch,
  which still completes and populates the entry for everyone else.
- Invalidation only flips flags and starts (coalesced) refetches, so it is
  idempotent and safe to broadcast from concurrent mutations.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterator
from typing import Any

from rentvest.core.caching.keys import QueryKey, is_prefix
from rentvest.core.caching.models import CacheEntry, Fetcher, QueryState

logger = logging.getLogger(__name__)

DEFAULT_GC_TIME_S = 300.0


def _consume_exception(task: asyncio.Task) -> None:
    # Failures are reported through the entry and the awaiting callers;
    # retrieving here keeps unawaited background refetches quiet.
    if not task.cancelled():
        task.exception()


class CacheStore:
    """Query cache owned by the application's composition root.

    Args:
        clock: Monotonic clock in seconds (injectable for tests)
        default_gc_time_s: Eviction age for entries without subscribers

    Example:
        >>> store = CacheStore()
        >>> data = await store.fetch(("api", "leads", "detail", "7"), load_lead)
        >>> store.invalidate(("api", "leads"))
        [('api', 'leads', 'detail', '7')]
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        default_gc_time_s: float = DEFAULT_GC_TIME_S,
    ) -> None:
        self._clock = clock
        self.default_gc_time_s = default_gc_time_s
        self._entries: dict[QueryKey, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[QueryKey]:
        return iter(list(self._entries))

    def now(self) -> float:
        return self._clock()

    def get(self, key: QueryKey) -> CacheEntry | None:
        return self._entries.get(tuple(key))

    def find(self, prefix: QueryKey) -> list[CacheEntry]:
        """Entries whose key starts with ``prefix``."""
        prefix = tuple(prefix)
        return [e for k, e in self._entries.items() if is_prefix(prefix, k)]

    def state(self, key: QueryKey) -> QueryState:
        """Snapshot of the entry for ``key`` (empty state when absent)."""
        entry = self.get(key)
        if entry is None:
            return QueryState.empty(tuple(key))
        return QueryState.from_entry(entry, self.now())

    def _ensure(self, key: QueryKey, gc_time_s: float | None = None) -> CacheEntry:
        key = tuple(key)
        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(
                key=key,
                gc_time_s=self.default_gc_time_s if gc_time_s is None else gc_time_s,
                last_active_at=self.now(),
            )
            self._entries[key] = entry
        elif gc_time_s is not None:
            entry.gc_time_s = gc_time_s
        return entry

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, key: QueryKey, *, gc_time_s: float | None = None) -> CacheEntry:
        """Register an active reader for ``key``; creates the entry if needed."""
        self.collect_garbage()
        entry = self._ensure(key, gc_time_s)
        entry.subscribers += 1
        entry.last_active_at = self.now()
        return entry

    def unsubscribe(self, key: QueryKey) -> None:
        """Drop an active reader. The entry becomes collectable after gc_time_s."""
        entry = self.get(key)
        if entry is None or entry.subscribers == 0:
            return
        entry.subscribers -= 1
        entry.last_active_at = self.now()

    def collect_garbage(self, now: float | None = None) -> list[QueryKey]:
        """Evict entries with no subscribers and no fetch whose gc age elapsed."""
        now = self.now() if now is None else now
        evicted = [
            k
            for k, e in self._entries.items()
            if e.subscribers == 0
            and not e.is_fetching
            and (now - e.last_active_at) >= e.gc_time_s
        ]
        for k in evicted:
            del self._entries[k]
        if evicted:
            logger.debug(f"Evicted {len(evicted)} cache entries")
        return evicted

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch(
        self,
        key: QueryKey,
        fetcher: Fetcher,
        *,
        stale_time_s: float = 0.0,
        gc_time_s: float | None = None,
        force: bool = False,
    ) -> Any:
        """Return fresh data for ``key``, fetching at most once concurrently.

        Args:
            key: Query key
            fetcher: Zero-argument coroutine function producing the data
            stale_time_s: How long a successful result stays fresh
            gc_time_s: Eviction age once the entry has no subscribers
            force: Refetch even if the entry is fresh (still coalesced)

        Returns:
            Cached or freshly fetched data

        Raises:
            Exception: Whatever the fetcher raised (the entry keeps its
                previous data and records the error)
        """
        self.collect_garbage()
        entry = self._ensure(key, gc_time_s)
        entry.fetcher = fetcher
        entry.stale_time_s = stale_time_s
        entry.last_active_at = self.now()

        if entry.is_fetching:
            return await asyncio.shield(entry.in_flight)
        if not force and entry.has_data and not entry.is_stale(self.now()):
            return entry.data

        task = self._start_fetch(entry)
        return await asyncio.shield(task)

    def ensure_fetch(self, key: QueryKey, fetcher: Fetcher, *, stale_time_s: float = 0.0) -> bool:
        """Start a background fetch unless the entry is fresh or already fetching.

        Returns:
            True when a new fetch was started
        """
        entry = self._ensure(key)
        entry.fetcher = fetcher
        entry.stale_time_s = stale_time_s
        if entry.is_fetching:
            return False
        if entry.has_data and not entry.is_stale(self.now()):
            return False
        self._start_fetch(entry)
        return True

    def _start_fetch(self, entry: CacheEntry) -> asyncio.Task:
        assert entry.fetcher is not None
        fetcher = entry.fetcher
        entry.fetch_count += 1
        entry.in_flight_started = False
        entry.refetch_pending = False
        task = asyncio.get_running_loop().create_task(self._run_fetch(entry, fetcher))
        task.add_done_callback(_consume_exception)
        entry.in_flight = task
        return task

    async def _run_fetch(self, entry: CacheEntry, fetcher: Fetcher) -> Any:
        entry.in_flight_started = True
        try:
            data = await fetcher()
        except Exception as e:
            entry.error = e
            logger.debug(f"Fetch failed for {entry.key}: {e}")
            raise
        else:
            entry.data = data
            entry.has_data = True
            entry.error = None
            entry.fetched_at = self.now()
            entry.is_invalidated = entry.refetch_pending
            return data
        finally:
            entry.in_flight = None
            entry.last_active_at = self.now()
            if entry.refetch_pending:
                entry.refetch_pending = False
                entry.is_invalidated = True
                if entry.subscribers > 0 and self._entries.get(entry.key) is entry:
                    self._start_fetch(entry)

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def invalidate(self, prefix: QueryKey, *, refetch_active: bool = True) -> list[QueryKey]:
        """Mark every entry under ``prefix`` stale and refetch subscribed ones.

        Invalidation is idempotent: repeated invalidations before the refetch
        starts running share that refetch. An entry whose fetch is already
        running gets exactly one follow-up refetch, however many
        invalidations arrive meanwhile.

        Args:
            prefix: Key prefix selecting the entries
            refetch_active: Refetch entries that currently have subscribers

        Returns:
            Keys of the invalidated entries
        """
        affected: list[QueryKey] = []
        for entry in self.find(prefix):
            affected.append(entry.key)
            entry.is_invalidated = True
            if entry.is_fetching:
                # A fetch still waiting to run will read post-write data.
                if entry.in_flight_started:
                    entry.refetch_pending = True
                continue
            if refetch_active and entry.subscribers > 0 and entry.fetcher is not None:
                self._start_fetch(entry)
        if affected:
            logger.debug(f"Invalidated {len(affected)} entries under {tuple(prefix)}")
        return affected

    def remove(self, prefix: QueryKey) -> list[QueryKey]:
        """Drop entries under ``prefix`` outright (in-flight fetches still finish)."""
        removed = [e.key for e in self.find(prefix)]
        for k in removed:
            del self._entries[k]
        return removed

    def clear(self) -> None:
        """Drop every entry (e.g. on logout)."""
        self._entries.clear()
