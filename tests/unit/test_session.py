"""Tests for RentvestSession wiring."""

from __future__ import annotations

import httpx
import pytest
import yaml

from rentvest.core.api.http.auth import TOKEN_KEY, FileTokenStore, InMemoryTokenStore
from rentvest.core.config.models import AppConfig
from rentvest.core.endpoints.catalog import Backend
from rentvest.core.services.models import UserRole
from rentvest.core.session import RentvestSession
from tests.conftest import Recorder, envelope


@pytest.fixture
async def session(app_config: AppConfig, recorder: Recorder):
    s = RentvestSession(
        app_config=app_config,
        token_store=InMemoryTokenStore({TOKEN_KEY: "tok-123"}),
        transport=httpx.MockTransport(recorder),
    )
    yield s
    await s.aclose()


async def test_services_share_client_and_cache(session: RentvestSession):
    assert session.homeowner is session.homeowner
    for service in (session.homeowner, session.marketplace, session.kyc, session.chat):
        assert service.api is session.api
        assert service.queries is session.queries
    assert session.queries.store is session.store


async def test_auth_is_cached_per_role(session: RentvestSession):
    renter = session.auth()
    assert renter is session.auth(UserRole.RENTER_INVESTOR)
    assert session.auth("homeowner") is not renter
    assert session.auth("homeowner").backend == Backend.HOMEOWNER


async def test_end_to_end_read_uses_stored_token(session: RentvestSession, recorder: Recorder):
    recorder.add("GET", "/api/parcels/7", httpx.Response(200, json=envelope({"id": "7"})))

    assert await session.parcels.detail(7) == {"id": "7"}
    assert recorder.requests[0].headers["Authorization"] == "Bearer tok-123"


async def test_aclose_drops_cache(session: RentvestSession, recorder: Recorder):
    recorder.add("GET", "/api/parcels/7", httpx.Response(200, json=envelope({"id": "7"})))
    await session.parcels.detail(7)

    await session.aclose()

    assert len(session.store) == 0


async def test_config_from_path(tmp_path):
    config_file = tmp_path / "rentvest.yaml"
    config_file.write_text(
        yaml.safe_dump(
            {
                "cache": {"stale_time_s": 15, "gc_time_s": 60},
                "token_store_path": str(tmp_path / "tokens.json"),
            }
        )
    )

    async with RentvestSession(app_config=str(config_file)) as s:
        assert s.queries.defaults.stale_time_s == 15
        assert s.store.default_gc_time_s == 60
        assert isinstance(s.token_store, FileTokenStore)
        assert s.token_store.path == tmp_path / "tokens.json"


def test_wrong_config_type():
    with pytest.raises(TypeError):
        RentvestSession(app_config=42)
