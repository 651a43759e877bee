"""Utility functions for HTTP client operations."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import urljoin


def join_url(base_url: str, path: str) -> str:
    """Join base URL with path in a predictable way.

    Ensures base URL ends with '/' and strips leading '/' from path, so a
    base URL carrying its own prefix keeps it.

    Args:
        base_url: Base URL (e.g. "http://host:5001/api")
        path: Request path (e.g. "/property/42" or "property/42")

    Returns:
        Joined URL (e.g. "http://host:5001/api/property/42")
    """
    if not path:
        return base_url
    base = base_url if base_url.endswith("/") else base_url + "/"
    return urljoin(base, path.lstrip("/"))


def merge_headers(*layers: Mapping[str, str] | None) -> dict[str, str]:
    """Merge header layers; later layers win, names compared case-insensitively."""
    out: dict[str, str] = {}
    lowered: dict[str, str] = {}
    for layer in layers:
        if not layer:
            continue
        for k, v in layer.items():
            previous = lowered.get(k.lower())
            if previous is not None:
                del out[previous]
            out[k] = v
            lowered[k.lower()] = k
    return out


def drop_header(headers: dict[str, str], name: str) -> dict[str, str]:
    """Return a copy of headers without ``name`` (case-insensitive)."""
    return {k: v for k, v in headers.items() if k.lower() != name.lower()}


def clean_params(params: Mapping[str, Any] | None) -> dict[str, Any]:
    """Drop None values from query parameters.

    Booleans are rendered lowercase so backends see "true"/"false".
    """
    if not params:
        return {}
    out: dict[str, Any] = {}
    for k, v in params.items():
        if v is None:
            continue
        if isinstance(v, bool):
            out[k] = "true" if v else "false"
        else:
            out[k] = v
    return out


def get_request_id(headers: Mapping[str, str]) -> str | None:
    """Extract request ID from common tracing headers.

    Checks for: x-request-id, x-correlation-id, request-id, trace-id (case-insensitive).

    Args:
        headers: Response headers

    Returns:
        Request ID if found, None otherwise
    """
    for key in ("x-request-id", "x-correlation-id", "request-id", "trace-id"):
        for hk, hv in headers.items():
            if hk.lower() == key:
                return hv
    return None
