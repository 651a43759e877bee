"""Sanitization of request bodies and messages before they reach the logs."""

import re
from typing import Any

from pydantic import BaseModel

SENSITIVE_PATTERNS: dict[str, re.Pattern[str]] = {
    "bearer_token": re.compile(r"Bearer\s+[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE),
    "jwt": re.compile(r"\beyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\b"),
    "email": re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"),
    # At least 10 digits, word boundaries keep prices and ids with decimals out.
    "phone": re.compile(
        r"\b(?:\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b"
        r"|\b\+\d{1,3}[-.\s]?\d{2,4}[-.\s]?\d{2,4}[-.\s]?\d{2,4}\b"
    ),
}

# Compared lowercase with "_" and "-" removed, so "refreshToken",
# "refresh_token" and "refresh-token" all match "refreshtoken".
SENSITIVE_KEYS: set[str] = {
    "password",
    "newpassword",
    "oldpassword",
    "currentpassword",
    "confirmpassword",
    "otp",
    "code",
    "token",
    "accesstoken",
    "refreshtoken",
    "devicetoken",
    "secret",
    "apikey",
    "authorization",
}


def _normalize_key(key: str) -> str:
    return key.lower().replace("_", "").replace("-", "")


def sanitize_string(text: str) -> str:
    """Sanitize sensitive data from string.

    Replaces sensitive patterns with <REDACTED:PATTERN_NAME>.

    Example:
        >>> sanitize_string("Authorization: Bearer abc123")
        'Authorization: <REDACTED:BEARER_TOKEN>'
    """
    for pattern_name, pattern in SENSITIVE_PATTERNS.items():
        text = pattern.sub(f"<REDACTED:{pattern_name.upper()}>", text)

    return text


def sanitize_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Sanitize sensitive data from dictionary.

    Recursively processes nested dictionaries and lists. Values under
    sensitive keys are replaced with <REDACTED>.

    Example:
        >>> sanitize_dict({"email": "a@b.io", "password": "hunter2"})
        {'email': '<REDACTED:EMAIL>', 'password': '<REDACTED>'}
    """
    sanitized: dict[str, Any] = {}

    for key, value in data.items():
        if isinstance(key, str) and _normalize_key(key) in SENSITIVE_KEYS:
            sanitized[key] = "<REDACTED>"
            continue
        sanitized[key] = sanitize_value(value)

    return sanitized


def sanitize_value(value: Any) -> Any:
    """Sanitize an arbitrary request/response body for logging."""
    if isinstance(value, BaseModel):
        return sanitize_dict(value.model_dump(mode="json"))
    if isinstance(value, dict):
        return sanitize_dict(value)
    if isinstance(value, (list, tuple)):
        return [sanitize_value(item) for item in value]
    if isinstance(value, str):
        return sanitize_string(value)
    return value


def add_sensitive_key(key: str) -> None:
    """Add custom sensitive key.

    Example:
        >>> add_sensitive_key("walletSeed")
    """
    SENSITIVE_KEYS.add(_normalize_key(key))
