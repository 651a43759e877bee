"""Tests for envelope unwrapping and shared service plumbing."""

from __future__ import annotations

import httpx
import pytest

from rentvest.core.api.http.errors import DecodeError, RejectedError
from rentvest.core.api.http.models import EndpointDescriptor, MultipartForm
from rentvest.core.api.http.transport import TransportResponse
from rentvest.core.services.base import to_body, unwrap_envelope
from rentvest.core.services.marketplace import MarketplaceService
from rentvest.core.services.models import Page, PersonName, Phone, SignupRequest
from tests.conftest import BASE_URL, Recorder, envelope

REQUEST = EndpointDescriptor(base_url=BASE_URL, path="/things").request()


class TestUnwrapEnvelope:
    def test_returns_data(self):
        response = TransportResponse(status_code=200, body=envelope({"id": "1"}))
        assert unwrap_envelope(REQUEST, response) == {"id": "1"}

    def test_body_without_envelope_passes_through(self):
        response = TransportResponse(status_code=200, body=[1, 2])
        assert unwrap_envelope(REQUEST, response) == [1, 2]

    def test_unsuccessful_envelope_raises(self):
        body = envelope(message="Invalid OTP", success=False)
        response = TransportResponse(status_code=200, body=body)

        with pytest.raises(RejectedError) as exc_info:
            unwrap_envelope(REQUEST, response)

        err = exc_info.value
        assert err.status == 200
        assert err.message == "Invalid OTP"
        assert err.data == body
        assert err.url == f"{BASE_URL}/things"

    def test_unsuccessful_envelope_without_message(self):
        response = TransportResponse(status_code=200, body={"success": False})
        with pytest.raises(RejectedError, match="Request was rejected"):
            unwrap_envelope(REQUEST, response)


class TestToBody:
    def test_wire_models_use_camel_case(self):
        request = SignupRequest(
            name=PersonName(first_name="Ada", last_name="Lovelace"),
            email="ada@example.com",
            password="pw",
            phone=Phone(country_code="+1", mobile="5550001111"),
        )
        assert to_body(request) == {
            "name": {"firstName": "Ada", "lastName": "Lovelace"},
            "email": "ada@example.com",
            "password": "pw",
            "phone": {"countryCode": "+1", "mobile": "5550001111"},
        }

    def test_multipart_and_plain_values_pass_through(self):
        form = MultipartForm(fields={"a": "1"})
        assert to_body(form) is form
        assert to_body({"a": 1}) == {"a": 1}
        assert to_body(None) is None


class TestServiceBase:
    async def test_read_parses_model(self, api, queries, catalog, recorder: Recorder):
        recorder.add(
            "GET",
            "/api/marketplace/properties",
            httpx.Response(
                200,
                json=envelope(
                    {"items": [{"_id": "p1"}], "pagination": {"totalItems": 1, "totalPages": 1}}
                ),
            ),
        )

        page = await MarketplaceService(api, queries, catalog).list_properties({"page": 1})

        assert isinstance(page, Page)
        assert page.items == [{"_id": "p1"}]
        assert page.pagination.total_items == 1
        assert recorder.requests[0].url.params["page"] == "1"

    async def test_read_decode_error(self, api, queries, catalog, recorder: Recorder):
        recorder.add(
            "GET",
            "/api/marketplace/properties/p1",
            httpx.Response(200, json=envelope({"title": "No id"})),
        )

        with pytest.raises(DecodeError) as exc_info:
            await MarketplaceService(api, queries, catalog).get_property("p1")

        assert exc_info.value.data == {"title": "No id"}
