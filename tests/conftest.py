"""Shared pytest fixtures for rentvest tests."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from rentvest.core.api.http.auth import InMemoryTokenStore, StoredTokenProvider
from rentvest.core.api.http.client import ApiClient
from rentvest.core.caching.store import CacheStore
from rentvest.core.config.models import AppConfig
from rentvest.core.endpoints.catalog import EndpointCatalog
from rentvest.core.query.client import QueryClient

BASE_URL = "http://backend.test/api"

Handler = Callable[[httpx.Request], httpx.Response]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Recorder:
    """MockTransport handler that records requests and replays canned responses.

    Responses are matched on (method, path); unmatched requests get a 404.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], list[httpx.Response]] = {}

    def add(self, method: str, path: str, *responses: httpx.Response) -> None:
        self.routes.setdefault((method, path), []).extend(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"message": f"No route for {request.url.path}"})
        # The last response repeats once the queue is exhausted.
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def calls(self, method: str, path: str) -> int:
        return sum(1 for r in self.requests if r.method == method and r.url.path == path)


def envelope(data=None, message: str = "OK", success: bool = True) -> dict:
    return {"success": success, "message": message, "data": data}


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    """Token store with a signed-in session."""
    return InMemoryTokenStore({"token": "tok-123"})


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
async def api(recorder: Recorder, token_store: InMemoryTokenStore):
    """ApiClient wired to the recorder through httpx.MockTransport."""
    client = ApiClient(
        token_provider=StoredTokenProvider(token_store),
        transport=httpx.MockTransport(recorder),
    )
    yield client
    await client.aclose()


@pytest.fixture
def store(clock: FakeClock) -> CacheStore:
    return CacheStore(clock=clock)


@pytest.fixture
def sleeps() -> list[float]:
    """Delays passed to the fake retry sleep."""
    return []


@pytest.fixture
def queries(api: ApiClient, store: CacheStore, sleeps: list[float]) -> QueryClient:
    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    return QueryClient(api, store, sleep=fake_sleep)


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    """Every backend pointed at the test host."""
    urls = {
        name: BASE_URL
        for name in ("renter_auth", "homeowner", "marketplace", "chat", "parcel", "kyc")
    }
    return AppConfig(services=urls, token_store_path=str(tmp_path / "tokens.json"))


@pytest.fixture
def catalog(app_config: AppConfig) -> EndpointCatalog:
    return EndpointCatalog(app_config.services, app_config.http)
