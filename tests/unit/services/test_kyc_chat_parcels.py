"""Tests for the KYC, chat and parcel services."""

from __future__ import annotations

import json

import httpx
import pytest

from rentvest.core.api.http.errors import DecodeError
from rentvest.core.query.client import QueryOptions
from rentvest.core.query.keys import query_keys
from rentvest.core.services.chat import ChatService
from rentvest.core.services.kyc import KycService
from rentvest.core.services.parcels import ParcelService
from tests.conftest import Recorder, envelope


@pytest.fixture
def kyc(api, queries, catalog) -> KycService:
    return KycService(api, queries, catalog)


@pytest.fixture
def chat(api, queries, catalog) -> ChatService:
    return ChatService(api, queries, catalog)


@pytest.fixture
def parcels(api, queries, catalog) -> ParcelService:
    return ParcelService(api, queries, catalog)


class TestKyc:
    async def test_generate_access_token_defaults(self, kyc: KycService, recorder: Recorder):
        recorder.add(
            "POST",
            "/api/kyc/generate-token",
            httpx.Response(200, json=envelope({"token": "sdk-1", "userId": "u1"})),
        )

        token = await kyc.generate_access_token("u1")

        assert token.token == "sdk-1"
        assert json.loads(recorder.requests[0].content) == {
            "userId": "u1",
            "levelName": "basic-kyc-level",
            "ttlInSecs": 3600,
        }

    async def test_get_status(self, kyc: KycService, recorder: Recorder):
        recorder.add(
            "GET", "/api/kyc/status/u1", httpx.Response(200, json=envelope({"status": "pending"}))
        )
        assert await kyc.get_status("u1") == "pending"

    async def test_initialize_handles_nested_payload(self, kyc: KycService, recorder: Recorder):
        session = {"accessToken": "acc", "sdkConfig": {"accessToken": "acc", "flowName": "basic"}}
        recorder.add(
            "POST",
            "/api/profile/kyc/initialize",
            httpx.Response(200, json=envelope({"data": session})),
        )

        result = await kyc.initialize()

        assert result.access_token == "acc"
        assert result.sdk_config.flow_name == "basic"

    async def test_initialize_without_token(self, kyc: KycService, recorder: Recorder):
        recorder.add(
            "POST", "/api/profile/kyc/initialize", httpx.Response(200, json=envelope({}))
        )

        with pytest.raises(DecodeError):
            await kyc.initialize()

    async def test_update_status_invalidates_status(self, kyc: KycService, recorder: Recorder):
        recorder.add(
            "GET", "/api/kyc/status/u1", httpx.Response(200, json=envelope({"status": "pending"}))
        )
        recorder.add("PUT", "/api/kyc/status/u1", httpx.Response(200, json=envelope()))

        await kyc.get_status("u1", QueryOptions(stale_time_s=60))
        await kyc.update_status("u1", "complete")

        assert kyc.queries.get_query_state(query_keys.kyc.detail("u1")).is_stale
        assert json.loads(recorder.requests[1].content) == {"status": "complete"}


class TestChat:
    async def test_send_message_refetches_conversation(
        self, chat: ChatService, recorder: Recorder
    ):
        recorder.add(
            "GET",
            "/api/chat/c1/messages",
            httpx.Response(200, json=envelope([])),
            httpx.Response(200, json=envelope([{"_id": "m1", "text": "hi"}])),
        )
        recorder.add(
            "POST",
            "/api/chat/c1/messages",
            httpx.Response(201, json=envelope({"_id": "m1", "chatId": "c1", "text": "hi"})),
        )

        conversation = chat.watch_messages("c1", QueryOptions(stale_time_s=60))
        assert await conversation.result() == []

        message = await chat.send_message("c1", "hi")

        assert message.id == "m1"
        assert message.chat_id == "c1"
        assert json.loads(recorder.requests[1].content) == {"text": "hi"}
        assert await conversation.result() == [{"_id": "m1", "text": "hi"}]
        conversation.close()


class TestParcels:
    async def test_search_params_and_cache(self, parcels: ParcelService, recorder: Recorder):
        recorder.add("GET", "/api/parcels/search", httpx.Response(200, json=envelope([])))
        fresh = QueryOptions(stale_time_s=60)

        await parcels.search("oak", options=fresh)
        await parcels.search("oak", options=fresh)
        await parcels.search("oak", page=2, options=fresh)

        assert recorder.calls("GET", "/api/parcels/search") == 2
        assert dict(recorder.requests[0].url.params) == {"query": "oak", "page": "1", "limit": "20"}

    async def test_detail(self, parcels: ParcelService, recorder: Recorder):
        recorder.add("GET", "/api/parcels/42", httpx.Response(200, json=envelope({"id": 42})))
        assert await parcels.detail(42) == {"id": 42}
