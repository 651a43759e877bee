"""Tests for QueryClient, QuerySubscription and Mutation."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from rentvest.core.api.http.client import ApiClient
from rentvest.core.api.http.errors import (
    ApiError,
    ClientError,
    RateLimitError,
    ServerError,
    UnexpectedError,
)
from rentvest.core.api.http.models import EndpointDescriptor, HttpMethod
from rentvest.core.api.http.retry import RetryPolicy
from rentvest.core.caching import QueryStatus
from rentvest.core.query.client import MutationStatus, QueryClient, QueryOptions
from rentvest.core.query.keys import query_keys
from tests.conftest import BASE_URL, Recorder

LEADS = query_keys.leads
NO_JITTER = RetryPolicy(max_attempts=3, base_delay_s=0.5, max_delay_s=5.0, jitter=0.0)


def leads_request():
    return EndpointDescriptor(base_url=BASE_URL, path="/leads", auth_required=True).request()


class Script:
    """Fetcher replaying a list of outcomes (exceptions are raised)."""

    def __init__(self, *outcomes) -> None:
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self):
        outcome = self.outcomes[min(self.calls, len(self.outcomes) - 1)]
        self.calls += 1
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class TestQueries:
    async def test_concurrent_reads_issue_one_request(
        self, queries: QueryClient, recorder: Recorder
    ):
        recorder.add("GET", "/api/leads", httpx.Response(200, json=[{"id": "1"}]))

        results = await asyncio.gather(
            *(queries.fetch_query(LEADS.lists(), leads_request()) for _ in range(5))
        )

        assert results == [[{"id": "1"}]] * 5
        assert recorder.calls("GET", "/api/leads") == 1

    async def test_subscription_fetches_once_and_exposes_state(
        self, queries: QueryClient, recorder: Recorder
    ):
        recorder.add("GET", "/api/leads", httpx.Response(200, json=[{"id": "1"}]))

        sub = queries.query(LEADS.lists(), leads_request())
        assert sub.state.is_loading
        assert await sub.result() == [{"id": "1"}]

        assert recorder.calls("GET", "/api/leads") == 1
        assert sub.state.status == QueryStatus.SUCCESS
        assert queries.get_query_data(LEADS.lists()) == [{"id": "1"}]
        sub.close()
        assert sub.closed

    async def test_disabled_subscription_never_fetches(self, queries: QueryClient):
        fetcher = Script({"id": "7"})

        sub = queries.query(LEADS.detail(7), fetcher, QueryOptions(enabled=False))
        assert await sub.result() is None
        assert fetcher.calls == 0

        sub.set_enabled(True)
        assert await sub.result() == {"id": "7"}
        assert fetcher.calls == 1

    async def test_refetch_bypasses_freshness(self, queries: QueryClient):
        fetcher = Script(1, 2)
        async with queries.query(LEADS.detail(7), fetcher, QueryOptions(stale_time_s=60)) as sub:
            assert await sub.result() == 1
            assert await sub.result() == 1
            assert await sub.refetch() == 2

        assert sub.closed

    async def test_failed_fetch_raises_api_error(self, queries: QueryClient, recorder: Recorder):
        recorder.add("GET", "/api/leads", httpx.Response(404, json={"message": "gone"}))

        with pytest.raises(ClientError):
            await queries.fetch_query(LEADS.lists(), leads_request())

        state = queries.get_query_state(LEADS.lists())
        assert state.status == QueryStatus.ERROR
        assert state.error.message == "gone"


class TestRetry:
    async def test_retries_with_backoff(self, queries: QueryClient, sleeps: list[float]):
        fetcher = Script(
            ServerError(message="down", status=503),
            ServerError(message="down", status=503),
            {"ok": True},
        )

        result = await queries.fetch_query(
            LEADS.lists(), fetcher, QueryOptions(retry=NO_JITTER)
        )

        assert result == {"ok": True}
        assert fetcher.calls == 3
        assert sleeps == [0.5, 1.0]

    async def test_gives_up_after_max_attempts(self, queries: QueryClient, sleeps: list[float]):
        fetcher = Script(ServerError(message="down", status=500))

        with pytest.raises(ServerError):
            await queries.fetch_query(LEADS.lists(), fetcher, QueryOptions(retry=NO_JITTER))

        assert fetcher.calls == 3
        assert len(sleeps) == 2

    async def test_honours_retry_after(self, queries: QueryClient, sleeps: list[float]):
        fetcher = Script(
            RateLimitError(message="slow down", status=429, response_headers={"Retry-After": "2"}),
            "ok",
        )

        await queries.fetch_query(LEADS.lists(), fetcher, QueryOptions(retry=NO_JITTER))

        assert sleeps == [2.0]

    async def test_client_errors_not_retried(self, queries: QueryClient, sleeps: list[float]):
        fetcher = Script(ClientError(message="bad", status=400))

        with pytest.raises(ClientError):
            await queries.fetch_query(LEADS.lists(), fetcher, QueryOptions(retry=NO_JITTER))

        assert fetcher.calls == 1
        assert sleeps == []

    async def test_no_policy_means_single_attempt(self, queries: QueryClient):
        fetcher = Script(ServerError(message="down", status=503))

        with pytest.raises(ServerError):
            await queries.fetch_query(LEADS.lists(), fetcher)

        assert fetcher.calls == 1


class TestMutations:
    async def test_success_invalidates_and_refetches_subscribers(self, queries: QueryClient):
        leads = Script(["a"], ["a", "b"])
        sub = queries.query(LEADS.lists(), leads)
        assert await sub.result() == ["a"]

        seen = []
        mutation = queries.mutation(
            perform=lambda variables: _echo(variables),
            invalidates=(LEADS.all,),
            on_success=lambda result, variables: seen.append((result, variables)),
        )
        result = await mutation.mutate({"name": "b"})

        assert result == {"saved": {"name": "b"}}
        assert mutation.state.status == MutationStatus.SUCCESS
        assert seen == [({"saved": {"name": "b"}}, {"name": "b"})]
        assert await sub.result() == ["a", "b"]
        assert leads.calls == 2

    async def test_failure_leaves_cache_untouched(self, queries: QueryClient):
        leads = Script(["a"])
        sub = queries.query(LEADS.lists(), leads, QueryOptions(stale_time_s=60))
        await sub.result()

        errors = []

        async def failing(variables):
            raise ClientError(message="Title is required", status=400)

        async def on_error(error, variables):
            errors.append((error.message, variables))

        mutation = queries.mutation(perform=failing, invalidates=(LEADS.all,), on_error=on_error)
        with pytest.raises(ClientError):
            await mutation.mutate({"title": ""})

        assert mutation.state.status == MutationStatus.ERROR
        assert mutation.state.error.status == 400
        assert errors == [("Title is required", {"title": ""})]
        assert not sub.state.is_stale
        assert leads.calls == 1

    async def test_non_api_failure_is_normalized(self, queries: QueryClient):
        async def broken(variables):
            raise KeyError("title")

        mutation = queries.mutation(perform=broken)
        with pytest.raises(UnexpectedError) as exc_info:
            await mutation.mutate()

        assert isinstance(exc_info.value.__cause__, KeyError)

    async def test_callable_invalidates(self, queries: QueryClient):
        detail = Script({"v": 1}, {"v": 2})
        other = Script({"v": 1}, {"v": 2})
        fresh = QueryOptions(stale_time_s=60)
        sub_7 = queries.query(LEADS.detail(7), detail, fresh)
        sub_8 = queries.query(LEADS.detail(8), other, fresh)
        await sub_7.result()
        await sub_8.result()

        mutation = queries.mutation(
            perform=_echo,
            invalidates=lambda variables, result: [LEADS.detail(variables["id"])],
        )
        await mutation.mutate({"id": 7})

        assert await sub_7.result() == {"v": 2}
        assert detail.calls == 2
        assert other.calls == 1

    async def test_endpoint_mutation_posts_variables(
        self, queries: QueryClient, recorder: Recorder
    ):
        recorder.add("POST", "/api/leads", httpx.Response(201, json={"id": "9"}))
        endpoint = EndpointDescriptor(
            method=HttpMethod.POST, base_url=BASE_URL, path="/leads", auth_required=True
        )

        result = await queries.mutation(endpoint).mutate({"name": "Ada"})

        assert result == {"id": "9"}
        assert json.loads(recorder.requests[0].content) == {"name": "Ada"}

    async def test_mutations_are_never_retried(self, api: ApiClient, recorder: Recorder):
        recorder.add("POST", "/api/leads", httpx.Response(503, json={"message": "busy"}))
        endpoint = EndpointDescriptor(method=HttpMethod.POST, base_url=BASE_URL, path="/leads")

        with pytest.raises(ApiError):
            await QueryClient(api).mutation(endpoint).mutate({"name": "Ada"})

        assert recorder.calls("POST", "/api/leads") == 1

    def test_mutation_needs_endpoint_or_perform(self, queries: QueryClient):
        with pytest.raises(ValueError):
            queries.mutation()

    async def test_reset(self, queries: QueryClient):
        mutation = queries.mutation(perform=_echo)
        await mutation.mutate(1)
        mutation.reset()
        assert mutation.state.status == MutationStatus.IDLE
        assert mutation.state.data is None


async def _echo(variables):
    return {"saved": variables}
