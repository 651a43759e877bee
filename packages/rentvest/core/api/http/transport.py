"""Single-round-trip transport built on HTTPX.

The transport performs exactly one HTTP exchange per call. It does not retry,
cache, authenticate or interpret status codes; those belong to the request
executor and the query layer. Transport failures surface as the original
``httpx`` exceptions (``httpx.TimeoutException`` for timeouts, other
``httpx.RequestError`` subclasses for connection/DNS failures).
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import BaseModel, Field

from rentvest.core.api.http.config import HttpClientConfig
from rentvest.core.api.http.logging_utils import (
    RequestLogContext,
    log_failure,
    log_request,
    log_response,
)
from rentvest.core.api.http.utils import clean_params, get_request_id, join_url

if TYPE_CHECKING:
    from rentvest.core.api.http.models import RequestDescriptor


class TransportResponse(BaseModel):
    """Result of one HTTP round trip.

    Args:
        status_code: HTTP status code
        headers: Response headers
        body: Parsed body (JSON value, text, or None when empty)
    """

    model_config = {"frozen": True}

    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None

    @property
    def ok(self) -> bool:
        return self.status_code < 400


def _is_json_response(resp: httpx.Response) -> bool:
    """Check if response content-type indicates JSON."""
    ctype = resp.headers.get("content-type", "")
    return "application/json" in ctype or "+json" in ctype


def parse_body(resp: httpx.Response) -> Any:
    """Decode a response body without raising.

    JSON content types are parsed as JSON (falling back to text when the
    payload is malformed); everything else is returned as text.
    """
    if resp.status_code == 204 or not resp.content:
        return None
    if _is_json_response(resp):
        try:
            return resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return resp.text
    return resp.text


class TransportExecutor:
    """Issue one HTTP request for a fully-resolved RequestDescriptor.

    Args:
        config: Transport configuration (timeouts, pool limits, logging)
        transport: Optional custom transport (useful for testing)

    Example:
        >>> executor = TransportExecutor(HttpClientConfig())
        >>> resp = await executor.send(request, headers={"Accept": "application/json"})
        >>> resp.status_code
        200
    """

    def __init__(
        self,
        config: HttpClientConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or HttpClientConfig()
        self._client = httpx.AsyncClient(
            headers={"User-Agent": self.config.user_agent},
            timeout=self.config.timeout_for(None),
            limits=self.config.limits,
            follow_redirects=self.config.follow_redirects,
            verify=self.config.verify,
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> TransportExecutor:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        """Async context manager exit."""
        await self.aclose()

    async def send(self, request: RequestDescriptor, headers: dict[str, str]) -> TransportResponse:
        """Perform exactly one HTTP round trip.

        Args:
            request: Fully-resolved request descriptor
            headers: Final request headers (auth and content negotiation applied)

        Returns:
            TransportResponse for any status code

        Raises:
            httpx.TimeoutException: The call exceeded ``request.timeout_ms``
            httpx.RequestError: No response was received
        """
        method = request.method.value
        url = join_url(request.base_url, request.path)
        ctx = RequestLogContext(
            method=method,
            url=url,
            request_id=headers.get("X-Request-Id"),
            authenticated=request.auth_required,
        )

        kwargs: dict[str, Any] = {}
        if request.method.has_body:
            if request.is_multipart:
                kwargs["data"] = request.data.fields
                kwargs["files"] = request.data.httpx_files()
            elif request.data is not None:
                kwargs["json"] = request.data

        body_for_log = None
        if self.config.log_bodies and request.method.has_body and not request.is_multipart:
            body_for_log = request.data
        log_request(ctx, headers, self.config.redact_headers, body_for_log)

        try:
            resp = await self._client.request(
                method,
                url,
                params=clean_params(request.params),
                headers=headers,
                timeout=self.config.timeout_for(request.timeout_ms),
                **kwargs,
            )
        except httpx.RequestError as e:
            log_failure(ctx, e)
            raise

        ctx.request_id = ctx.request_id or get_request_id(resp.headers)
        log_response(ctx, resp.status_code)

        return TransportResponse(
            status_code=resp.status_code,
            headers=dict(resp.headers),
            body=parse_body(resp),
        )
