from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from rentvest.core.api.http.transport import TransportResponse


class ApiErrorData(BaseModel):
    """Structured data for normalized API errors.

    Args:
        status: HTTP status code, or None when no response was received
        message: Human-displayable error description
        data: Raw response body (if a response was received)
        method: HTTP method (GET, POST, etc.)
        url: Request URL
        response_headers: Response headers (if a response was received)
        cause: Original exception that caused this error
    """

    model_config = {"arbitrary_types_allowed": True}

    status: int | None = None
    message: str
    data: Any = None
    method: str = ""
    url: str = ""
    response_headers: dict[str, str] | None = None
    cause: BaseException | None = Field(default=None, repr=False)


class ApiError(Exception):
    """Base exception for every failure leaving the request layer.

    Attributes:
        data: Raw response body (None for failures that never reached a server)
        status: HTTP status code (None for network/timeout/programming errors)
        message: Human-displayable error description
        method: HTTP method
        url: Request URL
        response_headers: Response headers (if a response was received)
        cause: Original exception that caused this error
    """

    def __init__(
        self,
        *,
        message: str,
        status: int | None = None,
        data: Any = None,
        method: str = "",
        url: str = "",
        response_headers: dict[str, str] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.info = ApiErrorData(
            status=status,
            message=message,
            data=data,
            method=method,
            url=url,
            response_headers=response_headers,
            cause=cause,
        )
        self.status = self.info.status
        self.message = self.info.message
        self.data = self.info.data
        self.method = self.info.method
        self.url = self.info.url
        self.response_headers = self.info.response_headers
        self.cause = self.info.cause

        super().__init__(str(self))

    def __str__(self) -> str:
        """Format error for logging and display."""
        parts = [self.message]
        if self.method or self.url:
            parts.append(f"{self.method} {self.url}".strip())
        if self.status is not None:
            parts.append(f"status={self.status}")
        return " | ".join(parts)

    def display_message(self, fallback: str = "Something went wrong. Please try again.") -> str:
        """Message safe to show to an end user."""
        return self.message or fallback


class AuthMissingError(ApiError):
    """Authenticated call requested but no bearer token is stored."""


class NetworkError(ApiError):
    """No response received (DNS, connection refused, connection reset)."""


class RequestTimeoutError(ApiError):
    """Request timed out before a response was received."""


class DecodeError(ApiError):
    """Response body did not match the expected model."""


class RateLimitError(ApiError):
    """HTTP 429 rate limit error."""


class AuthError(ApiError):
    """HTTP 401/403 authentication or authorization error."""


class ClientError(ApiError):
    """HTTP 4xx client error (excluding auth and rate limit)."""


class ServerError(ApiError):
    """HTTP 5xx server error."""


class UnexpectedStatusError(ApiError):
    """Error status that doesn't match a more specific category."""


class UnexpectedError(ApiError):
    """Anything thrown outside the HTTP path, e.g. a malformed descriptor."""


class RejectedError(ApiError):
    """2xx response whose envelope reports ``success: false``."""


class HttpStatusError(Exception):
    """Raised by the request executor for responses with status >= 400.

    Never escapes the executor; it is always normalized into an ApiError.
    """

    def __init__(self, response: TransportResponse) -> None:
        self.response = response
        super().__init__(f"Request failed with status code {response.status_code}")
