"""Models for the query cache.

CacheEntry is the store's private, mutable record for one query key.
QueryState is the immutable snapshot handed to readers.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from rentvest.core.caching.keys import QueryKey

Fetcher = Callable[[], Awaitable[Any]]


class QueryStatus(StrEnum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class CacheEntry:
    """One cached result plus freshness metadata, owned by CacheStore.

    ``data`` keeps the last successful value even after a failed refetch
    (stale-while-error); ``error`` holds the failure of the latest attempt.
    """

    key: QueryKey
    gc_time_s: float
    data: Any = None
    has_data: bool = False
    error: BaseException | None = None
    fetched_at: float | None = None
    is_invalidated: bool = False
    stale_time_s: float = 0.0
    subscribers: int = 0
    last_active_at: float = 0.0
    fetch_count: int = 0
    fetcher: Fetcher | None = field(default=None, repr=False)
    in_flight: asyncio.Task | None = field(default=None, repr=False)
    in_flight_started: bool = False
    refetch_pending: bool = False

    def is_stale(self, now: float, stale_time_s: float | None = None) -> bool:
        """Stale when invalidated, never fetched, or older than stale_time."""
        if self.is_invalidated or self.fetched_at is None:
            return True
        window = self.stale_time_s if stale_time_s is None else stale_time_s
        return (now - self.fetched_at) >= window

    @property
    def is_fetching(self) -> bool:
        return self.in_flight is not None and not self.in_flight.done()

    @property
    def status(self) -> QueryStatus:
        if self.error is not None:
            return QueryStatus.ERROR
        if self.has_data:
            return QueryStatus.SUCCESS
        return QueryStatus.PENDING


class QueryState(BaseModel):
    """Read-only view of a cache entry.

    Args:
        key: Query key
        data: Last successful value (None until the first success)
        error: Failure of the latest attempt, cleared by the next success
        status: pending / success / error
        is_loading: First fetch in progress (no data yet)
        is_fetching: Any fetch in progress
        is_stale: Entry would be refetched on next access
        fetched_at: Store clock time of the last success
    """

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    key: QueryKey
    data: Any = None
    error: BaseException | None = Field(default=None, repr=False)
    status: QueryStatus = QueryStatus.PENDING
    is_loading: bool = False
    is_fetching: bool = False
    is_stale: bool = True
    fetched_at: float | None = None

    @classmethod
    def from_entry(cls, entry: CacheEntry, now: float) -> QueryState:
        return cls(
            key=entry.key,
            data=entry.data,
            error=entry.error,
            status=entry.status,
            is_loading=entry.is_fetching and not entry.has_data,
            is_fetching=entry.is_fetching,
            is_stale=entry.is_stale(now),
            fetched_at=entry.fetched_at,
        )

    @classmethod
    def empty(cls, key: QueryKey) -> QueryState:
        return cls(key=key)
