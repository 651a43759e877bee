"""Query and mutation factories over the cache store.

Reads go through :meth:`QueryClient.query` (subscription) or
:meth:`QueryClient.fetch_query` (one-shot). Both coalesce concurrent reads of
the same key into a single ``ApiClient`` call. Writes go through
:meth:`QueryClient.mutation`; a successful mutation invalidates the key
prefixes it declares, which refetches whatever is currently subscribed.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from rentvest.core.api.http.client import ApiClient
from rentvest.core.api.http.errors import ApiError
from rentvest.core.api.http.models import EndpointDescriptor, RequestDescriptor
from rentvest.core.api.http.normalize import normalize_error
from rentvest.core.api.http.retry import RetryPolicy, parse_retry_after_seconds
from rentvest.core.caching.models import Fetcher, QueryState
from rentvest.core.caching.store import CacheStore
from rentvest.core.query.keys import QueryKey

logger = logging.getLogger(__name__)

V = TypeVar("V")
R = TypeVar("R")

QuerySource = RequestDescriptor | Fetcher
Invalidates = Sequence[QueryKey] | Callable[[Any, Any], Iterable[QueryKey]]
Callback = Callable[..., Any]


class QueryOptions(BaseModel):
    """Per-query cache behaviour.

    Args:
        stale_time_s: Seconds a successful result is served without refetching
        gc_time_s: Seconds an unsubscribed entry survives before eviction
        enabled: Disabled queries never fetch (e.g. while an id is unknown)
        retry: Retry policy for failed reads (None = single attempt)
    """

    model_config = {"frozen": True}

    stale_time_s: float = Field(default=0.0, ge=0.0)
    gc_time_s: float = Field(default=300.0, ge=0.0)
    enabled: bool = True
    retry: RetryPolicy | None = None


def _retry_after(error: ApiError) -> float | None:
    for name, value in (error.response_headers or {}).items():
        if name.lower() == "retry-after":
            return parse_retry_after_seconds(value)
    return None


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class QueryClient:
    """Entry point for cached reads and invalidating writes.

    Args:
        api: Request executor used for descriptor-based queries and mutations
        store: Cache store (owned by the composition root)
        defaults: Options applied when a query passes none
        sleep: Coroutine used for retry backoff (injectable for tests)

    Example:
        >>> queries = QueryClient(api, CacheStore())
        >>> sub = queries.query(query_keys.leads.detail(7), leads_endpoint.request())
        >>> lead = await sub.result()
    """

    def __init__(
        self,
        api: ApiClient,
        store: CacheStore | None = None,
        *,
        defaults: QueryOptions | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.api = api
        self.store = store or CacheStore()
        self.defaults = defaults or QueryOptions()
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _fetcher(self, source: QuerySource, retry: RetryPolicy | None) -> Fetcher:
        if isinstance(source, RequestDescriptor):
            request = source

            async def base() -> Any:
                return await self.api.call(request)

        else:
            base = source

        if retry is None:
            return base

        async def with_retry() -> Any:
            return await self._run_with_retry(base, retry)

        return with_retry

    async def _run_with_retry(self, fetcher: Fetcher, policy: RetryPolicy) -> Any:
        attempt = 1
        while True:
            try:
                return await fetcher()
            except ApiError as e:
                if not policy.should_retry(e, attempt):
                    raise
                delay = _retry_after(e)
                if delay is None:
                    delay = policy.compute_delay(attempt)
                delay = min(delay, policy.max_delay_s)
                logger.info(
                    f"Retrying after {e.message} (attempt {attempt}/{policy.max_attempts}, "
                    f"waiting {delay:.2f}s)"
                )
                await self._sleep(delay)
                attempt += 1

    def query(
        self,
        key: QueryKey,
        source: QuerySource,
        options: QueryOptions | None = None,
    ) -> QuerySubscription:
        """Subscribe to ``key``; starts a fetch when the entry is missing or stale.

        Must be called from a running event loop.

        Args:
            key: Query key from the registry
            source: RequestDescriptor executed through the ApiClient, or a
                zero-argument coroutine function producing the data
            options: Cache behaviour (defaults to ``self.defaults``)
        """
        return QuerySubscription(self, tuple(key), source, options or self.defaults)

    async def fetch_query(
        self,
        key: QueryKey,
        source: QuerySource,
        options: QueryOptions | None = None,
    ) -> Any:
        """Imperative read: cached data when fresh, otherwise one coalesced fetch.

        Raises:
            ApiError: When the fetch fails
        """
        options = options or self.defaults
        return await self.store.fetch(
            key,
            self._fetcher(source, options.retry),
            stale_time_s=options.stale_time_s,
            gc_time_s=options.gc_time_s,
        )

    def get_query_data(self, key: QueryKey) -> Any:
        """Last successful data for ``key`` (None when absent)."""
        entry = self.store.get(key)
        return entry.data if entry is not None else None

    def get_query_state(self, key: QueryKey) -> QueryState:
        return self.store.state(key)

    def invalidate(self, prefix: QueryKey) -> list[QueryKey]:
        """Mark entries under ``prefix`` stale and refetch subscribed ones."""
        return self.store.invalidate(prefix)

    def remove(self, prefix: QueryKey) -> list[QueryKey]:
        return self.store.remove(prefix)

    def clear(self) -> None:
        self.store.clear()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def mutation(
        self,
        endpoint: EndpointDescriptor | None = None,
        *,
        build_request: Callable[[Any], RequestDescriptor] | None = None,
        perform: Callable[[Any], Awaitable[Any]] | None = None,
        invalidates: Invalidates = (),
        on_success: Callback | None = None,
        on_error: Callback | None = None,
    ) -> Mutation:
        """Create a write operation.

        Args:
            endpoint: Endpoint the variables are sent to as the request body
            build_request: Maps variables to a request (defaults to
                ``endpoint.request(data=variables)``)
            perform: Custom coroutine function taking the variables; replaces
                the endpoint round trip entirely
            invalidates: Key prefixes to invalidate on success, or a callable
                of ``(variables, result)`` returning them
            on_success: Called with ``(result, variables)`` after invalidation
            on_error: Called with ``(error, variables)`` before re-raising

        Raises:
            ValueError: If neither ``endpoint`` nor ``perform`` is given
        """
        if perform is None:
            if endpoint is None:
                raise ValueError("mutation() needs an endpoint or a perform callable")
            builder = build_request or (lambda variables: endpoint.request(data=variables))

            async def perform_request(variables: Any) -> Any:
                return await self.api.call(builder(variables))

            perform = perform_request

        return Mutation(
            self,
            perform,
            invalidates=invalidates,
            on_success=on_success,
            on_error=on_error,
        )


class QuerySubscription:
    """Active reader of one query key.

    Holding a subscription keeps the entry alive and makes it eligible for
    refetch on invalidation. Closing it never cancels an in-flight fetch.
    """

    def __init__(
        self,
        client: QueryClient,
        key: QueryKey,
        source: QuerySource,
        options: QueryOptions,
    ) -> None:
        self.client = client
        self.key = key
        self.options = options
        self._fetcher = client._fetcher(source, options.retry)
        self._closed = False

        client.store.subscribe(key, gc_time_s=options.gc_time_s)
        if options.enabled:
            self._attach()

    def __repr__(self) -> str:
        return f"QuerySubscription(key={self.key!r}, enabled={self.options.enabled})"

    async def __aenter__(self) -> QuerySubscription:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _attach(self) -> None:
        self.client.store.ensure_fetch(
            self.key, self._fetcher, stale_time_s=self.options.stale_time_s
        )

    @property
    def enabled(self) -> bool:
        return self.options.enabled

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def state(self) -> QueryState:
        return self.client.store.state(self.key)

    @property
    def data(self) -> Any:
        return self.state.data

    def set_enabled(self, enabled: bool) -> None:
        """Toggle the gate; enabling starts a fetch when the entry is stale."""
        if enabled == self.options.enabled:
            return
        self.options = self.options.model_copy(update={"enabled": enabled})
        if enabled and not self._closed:
            self._attach()

    async def result(self) -> Any:
        """Wait for current data.

        A disabled subscription returns whatever is cached without fetching.

        Raises:
            ApiError: When the fetch fails
        """
        if not self.options.enabled:
            return self.state.data
        return await self.client.store.fetch(
            self.key, self._fetcher, stale_time_s=self.options.stale_time_s
        )

    async def refetch(self) -> Any:
        """Force a fetch even if the entry is fresh (coalesced with in-flight ones)."""
        return await self.client.store.fetch(
            self.key, self._fetcher, stale_time_s=self.options.stale_time_s, force=True
        )

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.client.store.unsubscribe(self.key)


class MutationStatus(StrEnum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


class MutationState(BaseModel):
    """Outcome of the latest :meth:`Mutation.mutate` call."""

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    status: MutationStatus = MutationStatus.IDLE
    data: Any = None
    error: ApiError | None = Field(default=None, repr=False)
    variables: Any = None

    @property
    def is_pending(self) -> bool:
        return self.status is MutationStatus.PENDING


class Mutation(Generic[V, R]):
    """One write operation plus the cache prefixes it invalidates.

    Mutations are never retried: each :meth:`mutate` call performs exactly
    one round trip.
    """

    def __init__(
        self,
        client: QueryClient,
        perform: Callable[[V], Awaitable[R]],
        *,
        invalidates: Invalidates = (),
        on_success: Callback | None = None,
        on_error: Callback | None = None,
    ) -> None:
        self.client = client
        self._perform = perform
        self._invalidates = invalidates
        self._on_success = on_success
        self._on_error = on_error
        self.state = MutationState()

    def _prefixes(self, variables: Any, result: Any) -> list[QueryKey]:
        if callable(self._invalidates):
            return [tuple(p) for p in self._invalidates(variables, result)]
        return [tuple(p) for p in self._invalidates]

    async def mutate(self, variables: V = None) -> R:
        """Run the write, then invalidate the declared prefixes.

        Raises:
            ApiError: When the write fails (the cache is left untouched)
        """
        self.state = MutationState(status=MutationStatus.PENDING, variables=variables)
        try:
            result = await self._perform(variables)
        except Exception as e:
            error = e if isinstance(e, ApiError) else normalize_error(e)
            self.state = MutationState(
                status=MutationStatus.ERROR, error=error, variables=variables
            )
            if self._on_error is not None:
                await _maybe_await(self._on_error(error, variables))
            if error is e:
                raise
            raise error from e

        self.state = MutationState(status=MutationStatus.SUCCESS, data=result, variables=variables)
        for prefix in self._prefixes(variables, result):
            self.client.invalidate(prefix)
        if self._on_success is not None:
            await _maybe_await(self._on_success(result, variables))
        return result

    def reset(self) -> None:
        self.state = MutationState()
