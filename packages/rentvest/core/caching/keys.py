"""Key primitives shared by the cache store and the query key registry."""

from __future__ import annotations

Segment = str | int | float | bool | None
QueryKey = tuple[Segment, ...]


def is_prefix(prefix: QueryKey, key: QueryKey) -> bool:
    """True when ``prefix`` equals ``key`` or is a leading run of its segments."""
    return len(prefix) <= len(key) and key[: len(prefix)] == prefix
