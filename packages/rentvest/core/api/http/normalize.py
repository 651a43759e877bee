"""Conversion of any failure into exactly one ApiError.

Rules, in priority order:

1. The error carries an HTTP response: ``status`` is the response code,
   ``message`` the body's ``message`` field when present (otherwise
   "Request failed with status code <n>"), ``data`` the raw body.
2. No response was received (network failure, timeout): ``status`` is None,
   ``message`` a generic network message, ``data`` None.
3. Anything else is wrapped with ``status`` None and the exception's own
   message (or a fallback).

``normalize_error`` never raises.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from rentvest.core.api.http.errors import (
    ApiError,
    AuthError,
    ClientError,
    HttpStatusError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
    ServerError,
    UnexpectedError,
    UnexpectedStatusError,
)

NETWORK_ERROR_MESSAGE = "Network error occurred"
TIMEOUT_ERROR_MESSAGE = "Request timed out"
UNKNOWN_ERROR_MESSAGE = "Unknown error occurred"


def categorize_status(status_code: int) -> type[ApiError]:
    """Map HTTP status code to appropriate error class."""
    if status_code in (401, 403):
        return AuthError
    if status_code == 429:
        return RateLimitError
    if 400 <= status_code < 500:
        return ClientError
    if 500 <= status_code < 600:
        return ServerError
    return UnexpectedStatusError


def default_status_message(status_code: int) -> str:
    return f"Request failed with status code {status_code}"


def extract_message(body: Any) -> str | None:
    """Pull a displayable ``message`` out of an error body, if there is one."""
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message.strip():
            return message
        if isinstance(message, list) and message and all(isinstance(m, str) for m in message):
            # Validation pipes on some backends return a list of messages.
            return "; ".join(message)
    return None


def _httpx_body(response: httpx.Response) -> Any:
    try:
        if not response.content:
            return None
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError, httpx.ResponseNotRead):
        try:
            return response.text
        except httpx.ResponseNotRead:
            return None


def _from_response(
    status_code: int,
    body: Any,
    headers: dict[str, str],
    *,
    method: str,
    url: str,
    cause: BaseException,
) -> ApiError:
    exc_cls = categorize_status(status_code)
    return exc_cls(
        status=status_code,
        message=extract_message(body) or default_status_message(status_code),
        data=body,
        method=method,
        url=url,
        response_headers=headers,
        cause=cause,
    )


def _normalize(raw: BaseException, method: str, url: str) -> ApiError:
    if isinstance(raw, ApiError):
        return raw

    if isinstance(raw, HttpStatusError):
        return _from_response(
            raw.response.status_code,
            raw.response.body,
            dict(raw.response.headers),
            method=method,
            url=url,
            cause=raw,
        )

    if isinstance(raw, httpx.HTTPStatusError):
        return _from_response(
            raw.response.status_code,
            _httpx_body(raw.response),
            dict(raw.response.headers),
            method=method or raw.request.method,
            url=url or str(raw.request.url),
            cause=raw,
        )

    if isinstance(raw, httpx.TimeoutException):
        return RequestTimeoutError(
            message=TIMEOUT_ERROR_MESSAGE, method=method, url=url, cause=raw
        )

    if isinstance(raw, httpx.RequestError):
        return NetworkError(message=NETWORK_ERROR_MESSAGE, method=method, url=url, cause=raw)

    return UnexpectedError(
        message=str(raw) or UNKNOWN_ERROR_MESSAGE, method=method, url=url, cause=raw
    )


def normalize_error(raw: BaseException, *, method: str = "", url: str = "") -> ApiError:
    """Normalize any raised value into an ApiError.

    Args:
        raw: The exception raised while building or performing a request
        method: HTTP method of the failed call (for context)
        url: URL of the failed call (for context)

    Returns:
        ApiError subclass describing the failure
    """
    try:
        return _normalize(raw, method, url)
    except Exception as e:  # pragma: no cover - last-resort guard
        return UnexpectedError(message=UNKNOWN_ERROR_MESSAGE, method=method, url=url, cause=e)
