"""Log sanitization for the rentvest request layer."""

from .sanitize import add_sensitive_key, sanitize_dict, sanitize_string, sanitize_value

__all__ = [
    "sanitize_string",
    "sanitize_dict",
    "sanitize_value",
    "add_sensitive_key",
]
