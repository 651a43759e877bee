from __future__ import annotations

import httpx
from pydantic import BaseModel, Field


class HttpClientConfig(BaseModel):
    """Configuration for the transport shared by every backend.

    Base URLs are not part of this config: each call carries its own through
    its EndpointDescriptor.

    Args:
        timeout_ms: Default per-call timeout in milliseconds
        connect_timeout_ms: Connection establishment timeout in milliseconds
        limits: Connection pool limits
        follow_redirects: Whether to follow HTTP redirects
        verify: TLS certificate verification (True, False, or path to CA bundle)
        user_agent: User-Agent header value
        redact_headers: Headers to redact in logs (case-insensitive)
        log_bodies: Log (sanitized) request bodies at DEBUG level
    """

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    timeout_ms: int = Field(default=10_000, gt=0)
    connect_timeout_ms: int = Field(default=5_000, gt=0)
    limits: httpx.Limits = Field(
        default_factory=lambda: httpx.Limits(max_keepalive_connections=20, max_connections=100)
    )
    follow_redirects: bool = True
    verify: bool | str = True
    user_agent: str = "rentvest-client/0.1"
    redact_headers: tuple[str, ...] = (
        "authorization",
        "proxy-authorization",
        "cookie",
        "set-cookie",
        "x-api-key",
    )
    log_bodies: bool = False

    def timeout_for(self, timeout_ms: int | None) -> httpx.Timeout:
        """Build the httpx timeout for one call."""
        total = (timeout_ms or self.timeout_ms) / 1000
        return httpx.Timeout(total, connect=min(total, self.connect_timeout_ms / 1000))
