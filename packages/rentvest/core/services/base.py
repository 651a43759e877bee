"""Shared plumbing for backend service modules."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from rentvest.core.api.http.client import ApiClient
from rentvest.core.api.http.errors import DecodeError, RejectedError
from rentvest.core.api.http.models import EndpointDescriptor, MultipartForm, RequestDescriptor
from rentvest.core.api.http.transport import TransportResponse
from rentvest.core.api.http.utils import join_url
from rentvest.core.endpoints.catalog import Backend, EndpointCatalog
from rentvest.core.query.client import (
    Callback,
    Invalidates,
    QueryClient,
    QueryOptions,
    QuerySubscription,
)
from rentvest.core.query.keys import QueryKey
from rentvest.core.services.models import WireModel

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

REJECTED_MESSAGE = "Request was rejected"


def unwrap_envelope(request: RequestDescriptor, response: TransportResponse) -> Any:
    """Return the ``data`` of a ``{success, message, data}`` envelope.

    Bodies without a ``success`` field are returned unchanged.

    Raises:
        RejectedError: If the envelope reports ``success: false``
    """
    body = response.body
    if not isinstance(body, dict) or "success" not in body:
        return body
    if body.get("success") is False:
        raise RejectedError(
            message=body.get("message") or REJECTED_MESSAGE,
            status=response.status_code,
            data=body,
            method=request.method.value,
            url=join_url(request.base_url, request.path),
            response_headers=response.headers,
        )
    return body.get("data")


def to_body(payload: Any) -> Any:
    """Serialize request models; pass other payloads through."""
    if isinstance(payload, MultipartForm):
        return payload
    if isinstance(payload, WireModel):
        return payload.to_wire()
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json", exclude_none=True)
    return payload


class ServiceBase:
    """Base class binding a service to one backend.

    Args:
        api: Request executor
        queries: Query client (cache-backed reads, invalidating writes)
        catalog: Endpoint catalog
    """

    backend: Backend

    def __init__(self, api: ApiClient, queries: QueryClient, catalog: EndpointCatalog) -> None:
        self.api = api
        self.queries = queries
        self.catalog = catalog

    def endpoint(self, operation: str, *args: str | int) -> EndpointDescriptor:
        return self.catalog.resolve(self.backend, operation, *args)

    def request(
        self,
        operation: str,
        *args: str | int,
        data: Any = None,
        params: dict[str, Any] | None = None,
    ) -> RequestDescriptor:
        return self.endpoint(operation, *args).request(data=to_body(data), params=params)

    async def execute(self, request: RequestDescriptor) -> Any:
        """Send ``request`` and unwrap the envelope.

        Raises:
            ApiError: On any failure, including ``success: false`` envelopes
        """
        response = await self.api.send(request)
        return unwrap_envelope(request, response)

    async def call(
        self,
        operation: str,
        *args: str | int,
        data: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        return await self.execute(self.request(operation, *args, data=data, params=params))

    async def write(
        self,
        operation: str,
        *args: str | int,
        data: Any = None,
        invalidates: Invalidates = (),
        on_success: Callback | None = None,
        apply: Callable[[Any], Awaitable[Any]] | None = None,
    ) -> Any:
        """Run one write through the mutation factory.

        Args:
            apply: Coroutine function given the unwrapped payload before any
                invalidation runs, so refetches observe its effects

        Raises:
            ApiError: When the write fails (the cache is left untouched)
        """

        async def perform(variables: Any) -> Any:
            payload = await self.call(operation, *args, data=variables)
            if apply is not None:
                await apply(payload)
            return payload

        mutation = self.queries.mutation(
            perform=perform,
            invalidates=invalidates,
            on_success=on_success,
        )
        return await mutation.mutate(data)

    def parse(self, request: RequestDescriptor, payload: Any, model: type[M]) -> M:
        """Validate unwrapped data.

        Raises:
            DecodeError: If the payload does not match the model
        """
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise DecodeError(
                message=f"Response did not match {model.__name__}",
                data=payload,
                method=request.method.value,
                url=join_url(request.base_url, request.path),
                cause=e,
            ) from e

    def fetcher(self, request: RequestDescriptor, model: type[BaseModel] | None = None):
        """Zero-argument coroutine function for the query layer."""

        async def fetch() -> Any:
            payload = await self.execute(request)
            return self.parse(request, payload, model) if model is not None else payload

        return fetch

    def watch(
        self,
        key: QueryKey,
        request: RequestDescriptor,
        *,
        model: type[BaseModel] | None = None,
        options: QueryOptions | None = None,
    ) -> QuerySubscription:
        """Subscribe to a cached read."""
        return self.queries.query(key, self.fetcher(request, model), options)

    async def read(
        self,
        key: QueryKey,
        request: RequestDescriptor,
        *,
        model: type[BaseModel] | None = None,
        options: QueryOptions | None = None,
    ) -> Any:
        """One-shot cached read."""
        return await self.queries.fetch_query(key, self.fetcher(request, model), options)
