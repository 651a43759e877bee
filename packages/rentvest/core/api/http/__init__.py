"""Typed request layer built on HTTPX.

Exposes a small, ergonomic surface:
- ApiClient: request executor shared by every backend
- TransportExecutor: single-round-trip transport
- EndpointDescriptor / RequestDescriptor / MultipartForm: request contract
- Exceptions: ApiError and subclasses, normalize_error
- Auth helpers: AuthTokenProvider, StoredTokenProvider, token stores
- RetryPolicy: opt-in retry for reads
"""

from rentvest.core.api.http.auth import (
    REFRESH_TOKEN_KEY,
    TOKEN_KEY,
    AuthTokenProvider,
    FileTokenStore,
    InMemoryTokenStore,
    StoredTokenProvider,
    TokenStore,
    clear_tokens,
    save_tokens,
)
from rentvest.core.api.http.client import ApiClient
from rentvest.core.api.http.config import HttpClientConfig
from rentvest.core.api.http.errors import (
    ApiError,
    AuthError,
    AuthMissingError,
    ClientError,
    DecodeError,
    NetworkError,
    RateLimitError,
    RejectedError,
    RequestTimeoutError,
    ServerError,
    UnexpectedError,
    UnexpectedStatusError,
)
from rentvest.core.api.http.models import (
    EndpointDescriptor,
    HttpMethod,
    MultipartForm,
    RequestDescriptor,
    UploadFile,
)
from rentvest.core.api.http.normalize import normalize_error
from rentvest.core.api.http.retry import RetryPolicy
from rentvest.core.api.http.transport import TransportExecutor, TransportResponse

__all__ = [
    "ApiClient",
    "TransportExecutor",
    "TransportResponse",
    "HttpClientConfig",
    "HttpMethod",
    "EndpointDescriptor",
    "RequestDescriptor",
    "MultipartForm",
    "UploadFile",
    "AuthTokenProvider",
    "StoredTokenProvider",
    "TokenStore",
    "InMemoryTokenStore",
    "FileTokenStore",
    "TOKEN_KEY",
    "REFRESH_TOKEN_KEY",
    "save_tokens",
    "clear_tokens",
    "RetryPolicy",
    "normalize_error",
    "ApiError",
    "AuthMissingError",
    "NetworkError",
    "RequestTimeoutError",
    "DecodeError",
    "RateLimitError",
    "RejectedError",
    "AuthError",
    "ClientError",
    "ServerError",
    "UnexpectedStatusError",
    "UnexpectedError",
]
