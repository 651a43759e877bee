"""Request executor: one request contract for every backend.

Provides:
- Uniform JSON content negotiation (multipart left to the transport)
- Bearer token injection from an injected AuthTokenProvider
- A single error taxonomy: every failure leaves as exactly one ApiError
- Optional Pydantic response parsing

No retries happen here. Read retries are attached by the query layer as an
explicit RetryPolicy.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from rentvest.core.api.http.auth import AuthTokenProvider, bearer_header
from rentvest.core.api.http.config import HttpClientConfig
from rentvest.core.api.http.errors import ApiError, AuthMissingError, DecodeError, HttpStatusError
from rentvest.core.api.http.models import HttpMethod, RequestDescriptor
from rentvest.core.api.http.normalize import normalize_error
from rentvest.core.api.http.transport import TransportExecutor, TransportResponse
from rentvest.core.api.http.utils import drop_header, join_url, merge_headers

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

AUTH_TOKEN_MISSING_MESSAGE = "Authentication token not found"

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


def _default_request_id() -> str:
    """Generate a unique request ID for tracing."""
    return f"req_{uuid.uuid4().hex[:16]}"


class ApiClient:
    """Asynchronous request executor shared by every backend.

    Args:
        token_provider: Source of bearer tokens for ``auth_required`` calls
        config: Transport configuration
        transport: Optional custom httpx transport (useful for testing)
        executor: Optional pre-built TransportExecutor (overrides config/transport)

    Example:
        >>> client = ApiClient(token_provider=StoredTokenProvider(store))
        >>> lead = await client.api_call(
        ...     method="get", base_url="https://x", endpoint="/leads/7", auth=True
        ... )
    """

    def __init__(
        self,
        *,
        token_provider: AuthTokenProvider | None = None,
        config: HttpClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        executor: TransportExecutor | None = None,
    ) -> None:
        self.config = config or HttpClientConfig()
        self.token_provider = token_provider
        self._executor = executor or TransportExecutor(self.config, transport=transport)

    async def aclose(self) -> None:
        """Close the underlying transport and release resources."""
        await self._executor.aclose()

    async def __aenter__(self) -> ApiClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        """Async context manager exit."""
        await self.aclose()

    async def _resolve_token(self, request: RequestDescriptor, url: str) -> str:
        token = await self.token_provider.get_token() if self.token_provider else None
        if not token:
            raise AuthMissingError(
                message=AUTH_TOKEN_MISSING_MESSAGE, method=request.method.value, url=url
            )
        return token

    async def build_headers(self, request: RequestDescriptor) -> dict[str, str]:
        """Compose final headers: JSON defaults, endpoint defaults, per-call headers, auth.

        Raises:
            AuthMissingError: ``auth_required`` is set and no token is stored
        """
        headers = merge_headers(JSON_HEADERS, request.default_headers, request.custom_headers)
        if request.is_multipart:
            # httpx sets multipart/form-data with its own boundary.
            headers = drop_header(headers, "Content-Type")
        headers.setdefault("X-Request-Id", _default_request_id())

        if request.auth_required:
            url = join_url(request.base_url, request.path)
            token = await self._resolve_token(request, url)
            headers = merge_headers(headers, bearer_header(token))
        return headers

    async def send(self, request: RequestDescriptor) -> TransportResponse:
        """Execute a request and return the raw transport response.

        Raises:
            ApiError: On any failure (auth missing, network, timeout, status >= 400)
        """
        method = request.method.value
        url = join_url(request.base_url, request.path)
        try:
            headers = await self.build_headers(request)
            response = await self._executor.send(request, headers)
            if not response.ok:
                raise HttpStatusError(response)
            return response
        except ApiError as e:
            logger.debug(f"{method} {url} failed: {e.message}")
            raise
        except Exception as e:
            error = normalize_error(e, method=method, url=url)
            logger.debug(f"{method} {url} failed: {error.message} (status={error.status})")
            raise error from e

    async def call(self, request: RequestDescriptor) -> Any:
        """Execute a request and return the response body verbatim.

        Envelope unwrapping is left to the calling service module, since
        each backend wraps its payloads differently.

        Raises:
            ApiError: On any failure
        """
        response = await self.send(request)
        return response.body

    async def call_model(self, request: RequestDescriptor, model: type[M]) -> M:
        """Execute a request and validate the body with a Pydantic model.

        Raises:
            DecodeError: If the body does not match the model
            ApiError: On any other failure
        """
        response = await self.send(request)
        try:
            return model.model_validate(response.body)
        except ValidationError as e:
            raise DecodeError(
                message=f"Response did not match {model.__name__}",
                status=response.status_code,
                data=response.body,
                method=request.method.value,
                url=join_url(request.base_url, request.path),
                response_headers=response.headers,
                cause=e,
            ) from e

    async def api_call(
        self,
        *,
        method: HttpMethod | str,
        base_url: str,
        endpoint: str,
        data: Any = None,
        params: dict[str, Any] | None = None,
        auth: bool = False,
        custom_headers: dict[str, str] | None = None,
        timeout_ms: int | None = None,
    ) -> Any:
        """Keyword form of :meth:`call`.

        Args:
            method: HTTP method ("get", "post", ... or HttpMethod)
            base_url: Backend base URL
            endpoint: Request path relative to base_url
            data: Body for POST/PUT/PATCH (ignored for GET/DELETE)
            params: Query string parameters
            auth: Attach the stored bearer token
            custom_headers: Per-call headers
            timeout_ms: Per-call timeout (defaults to config.timeout_ms)

        Raises:
            ApiError: On any failure, including a malformed descriptor
        """
        try:
            request = RequestDescriptor(
                method=method,
                base_url=base_url,
                path=endpoint,
                auth_required=auth,
                timeout_ms=timeout_ms or self.config.timeout_ms,
                data=data,
                params=params or {},
                custom_headers=custom_headers or {},
            )
        except Exception as e:
            raise normalize_error(e, method=str(method).upper(), url=f"{base_url}{endpoint}") from e
        return await self.call(request)

    async def get(self, **kwargs: Any) -> Any:
        """Perform GET request (see :meth:`api_call`)."""
        return await self.api_call(method=HttpMethod.GET, **kwargs)

    async def post(self, **kwargs: Any) -> Any:
        """Perform POST request (see :meth:`api_call`)."""
        return await self.api_call(method=HttpMethod.POST, **kwargs)

    async def put(self, **kwargs: Any) -> Any:
        """Perform PUT request (see :meth:`api_call`)."""
        return await self.api_call(method=HttpMethod.PUT, **kwargs)

    async def patch(self, **kwargs: Any) -> Any:
        """Perform PATCH request (see :meth:`api_call`)."""
        return await self.api_call(method=HttpMethod.PATCH, **kwargs)

    async def delete(self, **kwargs: Any) -> Any:
        """Perform DELETE request (see :meth:`api_call`)."""
        return await self.api_call(method=HttpMethod.DELETE, **kwargs)
