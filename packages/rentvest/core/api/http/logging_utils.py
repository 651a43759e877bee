"""DEBUG-level wire logging for the transport executor.

Credentials never reach the log: redacted headers are masked and bodies pass
through the sanitizer first.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field

from rentvest.core.logging.sanitize import sanitize_value

logger = logging.getLogger("rentvest.core.api.http")

REDACTED = "<REDACTED>"


def redact_headers(headers: Mapping[str, str], redact: tuple[str, ...]) -> dict[str, str]:
    """Copy of ``headers`` with every name in ``redact`` (case-insensitive) masked."""
    masked = {name.lower() for name in redact}
    return {k: REDACTED if k.lower() in masked else v for k, v in headers.items()}


class RequestLogContext(BaseModel):
    """One outbound request as it appears in the log.

    Created when the request is issued; ``started_at`` is taken from
    ``time.perf_counter`` so elapsed times survive clock changes.
    """

    method: str
    url: str
    request_id: str | None = None
    authenticated: bool = False
    started_at: float = Field(default_factory=time.perf_counter)

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.started_at) * 1000)

    def fields(self, **extra: Any) -> dict[str, Any]:
        return {
            "method": self.method,
            "url": self.url,
            "request_id": self.request_id,
            **extra,
        }


def log_request(
    ctx: RequestLogContext,
    headers: Mapping[str, str],
    redact: tuple[str, ...],
    body: Any = None,
) -> None:
    """Log the outgoing request.

    Args:
        ctx: Request log context
        headers: Final request headers
        redact: Header names to mask
        body: JSON body to include after sanitizing; None to omit
    """
    extra = ctx.fields(headers=redact_headers(headers, redact), authenticated=ctx.authenticated)
    if body is not None:
        extra["body"] = sanitize_value(body)
    logger.debug(f"-> {ctx.method} {ctx.url}", extra=extra)


def log_response(ctx: RequestLogContext, status_code: int) -> None:
    elapsed = ctx.elapsed_ms()
    logger.debug(
        f"<- {status_code} {ctx.method} {ctx.url} ({elapsed}ms)",
        extra=ctx.fields(status_code=status_code, elapsed_ms=elapsed),
    )


def log_failure(ctx: RequestLogContext, exc: BaseException) -> None:
    """Log a request that never got a response (network error or timeout)."""
    elapsed = ctx.elapsed_ms()
    logger.debug(
        f"<- no response {ctx.method} {ctx.url}: {type(exc).__name__} ({elapsed}ms)",
        extra=ctx.fields(error_type=type(exc).__name__, elapsed_ms=elapsed),
    )
