"""Endpoint catalog: every backend operation in one table.

Paths are relative to the backend base URL, which already ends in ``/api``.
Templates use positional ``{}`` placeholders; :meth:`EndpointSpec.render`
fills them with URL-quoted arguments.
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import StrEnum
from urllib.parse import quote

from pydantic import BaseModel, Field

from rentvest.core.api.http.config import HttpClientConfig
from rentvest.core.api.http.models import EndpointDescriptor, HttpMethod
from rentvest.core.config.models import ServicesConfig
from rentvest.core.services import models as m


class Backend(StrEnum):
    RENTER_AUTH = "renter_auth"
    HOMEOWNER = "homeowner"
    MARKETPLACE = "marketplace"
    CHAT = "chat"
    PARCEL = "parcel"
    KYC = "kyc"


class EndpointSpec(BaseModel):
    """Static description of one operation (no base URL bound yet).

    Args:
        method: HTTP method
        path_template: Path with positional ``{}`` placeholders
        auth_required: Attach the stored bearer token
        request_model: Model of the request body, if any
        response_model: Model of the unwrapped response ``data``, if any
        description: One-line summary (shown by the CLI)
    """

    model_config = {"frozen": True}

    method: HttpMethod
    path_template: str
    auth_required: bool = False
    request_model: type[BaseModel] | None = None
    response_model: type[BaseModel] | None = None
    description: str = ""

    @property
    def arity(self) -> int:
        """Number of path arguments the template expects."""
        return self.path_template.count("{}")

    def render(self, *args: str | int) -> str:
        """Fill the path template.

        Raises:
            ValueError: If the argument count does not match the template
        """
        if len(args) != self.arity:
            raise ValueError(
                f"{self.path_template} expects {self.arity} path argument(s), got {len(args)}"
            )
        return self.path_template.format(*(quote(str(a), safe="") for a in args))


def _spec(method: str, path: str, auth: bool = False, **kwargs) -> EndpointSpec:
    return EndpointSpec(method=HttpMethod(method), path_template=path, auth_required=auth, **kwargs)


# Both auth backends share one route layout; each role talks to its own host.
_AUTH_ENDPOINTS: dict[str, EndpointSpec] = {
    "signin": _spec(
        "POST",
        "/auth/signin",
        request_model=m.LoginRequest,
        response_model=m.LoginChallenge,
        description="Password login",
    ),
    "signup": _spec(
        "POST",
        "/auth/signup",
        request_model=m.SignupRequest,
        response_model=m.AuthSession,
        description="Register a new account",
    ),
    "verify_otp": _spec(
        "POST",
        "/auth/verify-otp",
        auth=True,
        request_model=m.VerifyOtpRequest,
        description="Verify signup OTP",
    ),
    "verify_login_otp": _spec(
        "POST",
        "/auth/verify-login-otp",
        request_model=m.VerifyOtpRequest,
        response_model=m.AuthSession,
        description="Complete login with OTP",
    ),
    "resend_otp": _spec(
        "POST", "/auth/resend-otp", request_model=m.ResendOtpRequest, description="Send a new OTP"
    ),
    "forgot_password": _spec(
        "POST",
        "/auth/forgot-password",
        request_model=m.ForgotPasswordRequest,
        description="Start password reset",
    ),
    "verify_forgot_password_otp": _spec(
        "POST",
        "/auth/verify-forgot-password-otp",
        request_model=m.VerifyForgotPasswordOtpRequest,
        description="Verify password reset OTP",
    ),
    "reset_password": _spec(
        "POST",
        "/auth/reset-password",
        request_model=m.ResetPasswordRequest,
        description="Set a new password",
    ),
    "logout": _spec("POST", "/auth/logout", auth=True, description="End the server session"),
    "profile": _spec(
        "GET",
        "/profile",
        auth=True,
        response_model=m.UserProfile,
        description="Current user profile",
    ),
    "update_profile": _spec(
        "PUT",
        "/profile",
        auth=True,
        request_model=m.UpdateProfileRequest,
        response_model=m.UserProfile,
        description="Update profile",
    ),
    "change_password": _spec(
        "PUT",
        "/profile/change-password",
        auth=True,
        request_model=m.ChangePasswordRequest,
        description="Change password",
    ),
}

_HOMEOWNER_PROPERTY_ENDPOINTS: dict[str, EndpointSpec] = {
    "create_property": _spec("POST", "/property", auth=True, description="Create a listing"),
    "save_draft": _spec("POST", "/property/save", auth=True, description="Save listing draft"),
    "submit_for_review": _spec(
        "POST", "/property/submit", auth=True, description="Submit listing for review"
    ),
    "list_properties": _spec("GET", "/property", auth=True, description="Own listings"),
    "get_property": _spec(
        "GET",
        "/property/{}",
        auth=True,
        response_model=m.PropertySummary,
        description="Listing detail",
    ),
    "update_property": _spec("PUT", "/property/{}", auth=True, description="Update listing"),
    "delete_property": _spec("DELETE", "/property/{}", auth=True, description="Delete listing"),
    "upload_images": _spec(
        "POST", "/property/{}/images", auth=True, description="Upload listing images"
    ),
    "delete_image": _spec(
        "DELETE", "/property/{}/images/{}", auth=True, description="Delete listing image"
    ),
    "upload_videos": _spec(
        "POST", "/property/{}/videos", auth=True, description="Upload listing videos"
    ),
    "upload_files": _spec(
        "POST", "/property/{}/files", auth=True, description="Upload listing documents"
    ),
    "delete_file": _spec(
        "DELETE", "/property/{}/files/{}", auth=True, description="Delete listing document"
    ),
    "amenities": _spec(
        "GET", "/property/dropdowns/amenities", auth=True, description="Amenity options"
    ),
    "documents": _spec(
        "GET", "/property/documents", auth=True, description="Required document types"
    ),
    "dashboard_properties": _spec(
        "GET", "/dashboard/properties", auth=True, description="Dashboard listing summary"
    ),
    "dashboard_property": _spec(
        "GET", "/dashboard/properties/{}", auth=True, description="Dashboard listing detail"
    ),
}

CATALOG: dict[Backend, dict[str, EndpointSpec]] = {
    Backend.RENTER_AUTH: dict(_AUTH_ENDPOINTS),
    Backend.HOMEOWNER: {**_AUTH_ENDPOINTS, **_HOMEOWNER_PROPERTY_ENDPOINTS},
    Backend.MARKETPLACE: {
        "list_properties": _spec(
            "GET",
            "/marketplace/properties",
            auth=True,
            response_model=m.Page,
            description="Browse marketplace",
        ),
        "get_property": _spec(
            "GET",
            "/marketplace/properties/{}",
            auth=True,
            response_model=m.PropertySummary,
            description="Marketplace listing",
        ),
        "create_property": _spec(
            "POST", "/marketplace/properties", auth=True, description="Publish to marketplace"
        ),
        "update_property": _spec(
            "PUT", "/marketplace/properties/{}", auth=True, description="Update marketplace listing"
        ),
        "delete_property": _spec(
            "DELETE",
            "/marketplace/properties/{}",
            auth=True,
            description="Remove marketplace listing",
        ),
    },
    Backend.CHAT: {
        "list_chats": _spec("GET", "/chat", auth=True, description="Conversations"),
        "messages": _spec(
            "GET", "/chat/{}/messages", auth=True, description="Conversation messages"
        ),
        "send_message": _spec(
            "POST",
            "/chat/{}/messages",
            auth=True,
            request_model=m.SendMessageRequest,
            response_model=m.ChatMessage,
            description="Send a message",
        ),
    },
    Backend.PARCEL: {
        "search": _spec("GET", "/parcels/search", auth=True, description="Search parcels"),
        "detail": _spec("GET", "/parcels/{}", auth=True, description="Parcel detail"),
    },
    Backend.KYC: {
        "generate_token": _spec(
            "POST",
            "/kyc/generate-token",
            auth=True,
            request_model=m.KycTokenRequest,
            response_model=m.KycToken,
            description="KYC SDK access token",
        ),
        "status": _spec("GET", "/kyc/status/{}", auth=True, description="KYC status"),
        "update_status": _spec(
            "PUT", "/kyc/status/{}", auth=True, description="Record KYC status"
        ),
        "initialize": _spec(
            "POST",
            "/profile/kyc/initialize",
            auth=True,
            response_model=m.KycSession,
            description="Start KYC verification",
        ),
    },
}


class EndpointCatalog:
    """Binds catalog entries to configured base URLs.

    Args:
        services: Base URL per backend
        http: Transport config (supplies the default timeout)
        specs: Operation table (defaults to CATALOG)

    Example:
        >>> catalog = EndpointCatalog(ServicesConfig())
        >>> catalog.resolve("homeowner", "get_property", 42).path
        '/property/42'
    """

    def __init__(
        self,
        services: ServicesConfig | None = None,
        http: HttpClientConfig | None = None,
        specs: dict[Backend, dict[str, EndpointSpec]] | None = None,
    ) -> None:
        self.services = services or ServicesConfig()
        self.http = http or HttpClientConfig()
        self._specs = CATALOG if specs is None else specs

    def spec(self, backend: Backend | str, operation: str) -> EndpointSpec:
        """Look up an operation.

        Raises:
            KeyError: If the backend or operation is unknown
        """
        try:
            key = Backend(backend)
        except ValueError:
            raise KeyError(f"Unknown backend: {backend}") from None
        try:
            return self._specs[key][operation]
        except KeyError:
            raise KeyError(f"Unknown operation: {key.value}.{operation}") from None

    def resolve(
        self, backend: Backend | str, operation: str, *args: str | int
    ) -> EndpointDescriptor:
        """Endpoint descriptor with base URL, path and timeout bound.

        Raises:
            KeyError: If the backend or operation is unknown
            ValueError: If the path argument count is wrong
        """
        spec = self.spec(backend, operation)
        return EndpointDescriptor(
            method=spec.method,
            base_url=self.services.url_for(Backend(backend).value),
            path=spec.render(*args),
            auth_required=spec.auth_required,
            timeout_ms=self.http.timeout_ms,
        )

    def operations(self) -> Iterator[tuple[Backend, str, EndpointSpec]]:
        """Every (backend, operation, spec) in catalog order."""
        for backend, ops in self._specs.items():
            for name, spec in ops.items():
                yield backend, name, spec
