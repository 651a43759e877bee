"""Query cache for API reads.

Key features:
- One in-flight fetch per query key (concurrent readers share it)
- Stale-while-error: a failed refetch keeps the last good data
- Prefix invalidation driven by the query key registry
- Clock-based eviction of entries nobody subscribes to
"""

from rentvest.core.caching.keys import QueryKey, Segment, is_prefix
from rentvest.core.caching.models import CacheEntry, Fetcher, QueryState, QueryStatus
from rentvest.core.caching.store import DEFAULT_GC_TIME_S, CacheStore

__all__ = [
    "CacheStore",
    "CacheEntry",
    "Fetcher",
    "QueryState",
    "QueryStatus",
    "DEFAULT_GC_TIME_S",
    "QueryKey",
    "Segment",
    "is_prefix",
]
