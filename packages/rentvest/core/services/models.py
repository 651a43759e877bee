"""Request/response models for the Rentvest backends.

Backends speak camelCase JSON; models accept either field names or aliases
and serialize with aliases (``model_dump(by_alias=True)``). Unknown fields are
kept so newer backend payloads survive a round trip.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for every backend payload."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    def to_wire(self) -> dict[str, Any]:
        """Serialize for the request body (aliases, None fields dropped)."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class UserRole(StrEnum):
    RENTER_INVESTOR = "renter_investor"
    HOMEOWNER = "homeowner"


class OtpType(StrEnum):
    LOGIN = "login"
    PASSWORD_RESET = "password_reset"
    SIGNUP = "signup"


class KycStatus(StrEnum):
    INCOMPLETE = "incomplete"
    PENDING = "pending"
    COMPLETE = "complete"


class InvestmentStatus(StrEnum):
    """Investment lifecycle.

    ``pending`` is a state of its own; it is never folded into withdrawn.
    """

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    WITHDRAWN = "withdrawn"


class BookingStatus(StrEnum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class PropertyStatus(StrEnum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class Envelope(WireModel):
    """``{"success": ..., "message": ..., "data": ...}`` wrapper used by every backend."""

    success: bool = True
    message: str = ""
    data: Any = None


class Pagination(WireModel):
    total_items: int = 0
    total_pages: int = 0
    current_page: int = 1
    items_per_page: int = 0


class Page(WireModel):
    items: list[dict[str, Any]] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


# ---------------------------------------------------------------------------
# Auth / profile
# ---------------------------------------------------------------------------


class PersonName(WireModel):
    first_name: str
    last_name: str
    full_name: str | None = None


class Phone(WireModel):
    country_code: str
    mobile: str


class LoginRequest(WireModel):
    identifier: str | Phone
    password: str


class SignupRequest(WireModel):
    name: PersonName
    email: str
    password: str
    phone: Phone
    user_type: list[str] | None = None


class VerifyOtpRequest(WireModel):
    identifier: str
    otp: str


class ResendOtpRequest(WireModel):
    identifier: str
    type: OtpType = OtpType.LOGIN


class ForgotPasswordRequest(WireModel):
    email: str


class VerifyForgotPasswordOtpRequest(WireModel):
    email: str
    otp: str


class ResetPasswordRequest(WireModel):
    email: str
    password: str
    otp: str


class ChangePasswordRequest(WireModel):
    current_password: str
    new_password: str
    confirm_password: str


class UpdateProfileRequest(WireModel):
    name: PersonName | None = None
    phone: Phone | None = None


class KycSummary(WireModel):
    status: str = KycStatus.INCOMPLETE.value


class UserProfile(WireModel):
    id: str = Field(default="", validation_alias=AliasChoices("id", "_id"))
    name: PersonName | None = None
    email: str = ""
    phone: Phone | None = None
    user_type: list[str] = Field(default_factory=list)
    kyc: KycSummary | None = None
    is_email_verified: bool = False
    is_phone_verified: bool = False
    two_factor_auth: bool = False
    last_login: str | None = None


class LoginChallenge(WireModel):
    """Result of a password login: the backend follows up with an OTP."""

    session_id: str | None = None
    user_id: str | None = None
    requires_otp: bool = False


class AuthSession(WireModel):
    """Result of an OTP verification or signup."""

    user: UserProfile | None = None
    token: str | None = None
    refresh_token: str | None = None


# ---------------------------------------------------------------------------
# KYC
# ---------------------------------------------------------------------------


class KycTokenRequest(WireModel):
    user_id: str
    level_name: str = "basic-kyc-level"
    ttl_in_secs: int = 3600


class KycToken(WireModel):
    token: str
    user_id: str
    expires_at: str | None = None


class KycSdkConfig(WireModel):
    access_token: str
    app_token: str | None = None
    base_url: str | None = None
    flow_name: str | None = None


class KycSession(WireModel):
    access_token: str
    sdk_config: KycSdkConfig | None = None
    applicant_id: str | None = None


# ---------------------------------------------------------------------------
# Properties / marketplace
# ---------------------------------------------------------------------------


class PropertySummary(WireModel):
    """Listing as returned by the marketplace and the homeowner backend."""

    id: str = Field(alias="_id")
    title: str = ""
    description: str = ""
    type: str | None = None
    status: PropertyStatus | None = None


class Amenity(WireModel):
    id: str = Field(alias="_id")
    name: str
    icon: str | None = None


# ---------------------------------------------------------------------------
# Chat / parcels
# ---------------------------------------------------------------------------


class ChatMessage(WireModel):
    id: str | None = Field(default=None, alias="_id")
    chat_id: str | None = None
    sender_id: str | None = None
    text: str
    created_at: str | None = None


class SendMessageRequest(WireModel):
    text: str


class ParcelSearchRequest(WireModel):
    query: str
    page: int = 1
    limit: int = 20
