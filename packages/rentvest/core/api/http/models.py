"""Request descriptor models.

An EndpointDescriptor says where and how to call a backend operation. A
RequestDescriptor adds the per-call body, query string and headers. Both are
frozen; per-call variations are produced with ``model_copy``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Self

from pydantic import BaseModel, Field, field_validator


class HttpMethod(StrEnum):
    """HTTP verbs supported by the request layer."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @property
    def has_body(self) -> bool:
        """Whether a request body is attached for this verb."""
        return self in (HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH)


class UploadFile(BaseModel):
    """One file part of a multipart upload."""

    model_config = {"frozen": True}

    filename: str
    content: bytes = Field(repr=False)
    content_type: str = "application/octet-stream"


class MultipartForm(BaseModel):
    """Multipart form body.

    Content-Type (and its boundary) is negotiated by the transport layer when
    a request carries this body; callers never set it manually.

    Args:
        fields: Plain form fields
        files: (field name, file) pairs; a field name may repeat
    """

    model_config = {"frozen": True}

    fields: dict[str, str] = Field(default_factory=dict)
    files: tuple[tuple[str, UploadFile], ...] = ()

    def httpx_files(self) -> list[tuple[str, tuple[str, bytes, str]]]:
        """Render file parts in the shape ``httpx`` expects for ``files=``."""
        return [
            (name, (f.filename, f.content, f.content_type)) for name, f in self.files
        ]


class EndpointDescriptor(BaseModel):
    """Immutable description of one backend operation.

    Args:
        method: HTTP method
        base_url: Backend base URL (e.g. "http://host:5001/api")
        path: Resolved request path (e.g. "/property/42")
        auth_required: Attach the stored bearer token
        timeout_ms: Per-call timeout in milliseconds
        default_headers: Headers applied to every call of this endpoint
    """

    model_config = {"frozen": True}

    method: HttpMethod = HttpMethod.GET
    base_url: str
    path: str
    auth_required: bool = False
    timeout_ms: int = Field(default=10_000, gt=0)
    default_headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method(cls, v: Any) -> Any:
        """Accept lowercase verbs ("get", "post")."""
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensure base_url is a valid URL."""
        if not v:
            raise ValueError("base_url cannot be empty")
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v

    def request(
        self,
        *,
        data: Any = None,
        params: dict[str, Any] | None = None,
        custom_headers: dict[str, str] | None = None,
    ) -> RequestDescriptor:
        """Build a fresh RequestDescriptor for one call of this endpoint."""
        return RequestDescriptor(
            **self.model_dump(include=set(EndpointDescriptor.model_fields)),
            data=data,
            params=params or {},
            custom_headers=custom_headers or {},
        )


class RequestDescriptor(EndpointDescriptor):
    """EndpointDescriptor plus per-call data.

    Args:
        data: Request body (JSON-serializable value or MultipartForm)
        params: Query string parameters
        custom_headers: Per-call headers (override endpoint defaults)
    """

    data: Any = None
    params: dict[str, Any] = Field(default_factory=dict)
    custom_headers: dict[str, str] = Field(default_factory=dict)

    @property
    def is_multipart(self) -> bool:
        return isinstance(self.data, MultipartForm)

    @property
    def endpoint(self) -> EndpointDescriptor:
        """The endpoint part of this request, without per-call data."""
        return EndpointDescriptor(**self.model_dump(include=set(EndpointDescriptor.model_fields)))

    def with_data(self, data: Any) -> Self:
        """Copy of this request carrying a different body."""
        return self.model_copy(update={"data": data})
