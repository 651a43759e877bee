"""Account flows for both user roles.

Renter/investors and homeowners authenticate against separate backends that
share one route layout, so a single service parameterized by role covers
both. Tokens returned by the backend are persisted to the TokenStore the
ApiClient's token provider reads from.
"""

from __future__ import annotations

import logging
from typing import Any

from rentvest.core.api.http.auth import TokenStore, clear_tokens, save_tokens
from rentvest.core.api.http.client import ApiClient
from rentvest.core.api.http.errors import ApiError
from rentvest.core.endpoints.catalog import Backend, EndpointCatalog
from rentvest.core.query.client import QueryClient, QueryOptions, QuerySubscription
from rentvest.core.query.keys import QueryKey, query_keys
from rentvest.core.services.base import ServiceBase
from rentvest.core.services.models import (
    AuthSession,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginChallenge,
    LoginRequest,
    OtpType,
    Phone,
    ResendOtpRequest,
    ResetPasswordRequest,
    SignupRequest,
    UpdateProfileRequest,
    UserProfile,
    UserRole,
    VerifyForgotPasswordOtpRequest,
    VerifyOtpRequest,
)

logger = logging.getLogger(__name__)

ROLE_BACKENDS: dict[UserRole, Backend] = {
    UserRole.RENTER_INVESTOR: Backend.RENTER_AUTH,
    UserRole.HOMEOWNER: Backend.HOMEOWNER,
}

_SESSION_KEYS: tuple[QueryKey, ...] = (query_keys.auth.all, query_keys.user.all)


class AuthService(ServiceBase):
    """Login, signup, OTP, password and profile operations for one role.

    Args:
        api: Request executor
        queries: Query client
        catalog: Endpoint catalog
        tokens: Store receiving ``token`` / ``refreshToken`` on login
        role: Which backend to authenticate against

    Example:
        >>> auth = session.auth(UserRole.RENTER_INVESTOR)
        >>> challenge = await auth.login("ada@example.com", "s3cret")
        >>> await auth.verify_login_otp("ada@example.com", "123456")
    """

    def __init__(
        self,
        api: ApiClient,
        queries: QueryClient,
        catalog: EndpointCatalog,
        tokens: TokenStore,
        role: UserRole | str = UserRole.RENTER_INVESTOR,
    ) -> None:
        super().__init__(api, queries, catalog)
        self.role = UserRole(role)
        self.backend = ROLE_BACKENDS[self.role]
        self.tokens = tokens

    @property
    def profile_key(self) -> QueryKey:
        return query_keys.profile.key(self.role.value)

    @staticmethod
    def _session(payload: Any) -> AuthSession | None:
        if not isinstance(payload, dict) or not payload.get("token"):
            return None
        return AuthSession.model_validate(payload)

    async def _persist(self, payload: Any) -> None:
        """Store tokens found in an auth payload.

        Runs inside the write, ahead of its invalidations, so refetched
        queries already send the new token.
        """
        session = self._session(payload)
        if session is None:
            return
        await save_tokens(self.tokens, session.token, session.refresh_token)
        logger.info(f"Stored {self.role.value} session token")

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def login(self, identifier: str | Phone, password: str) -> AuthSession | LoginChallenge:
        """Password login.

        The renter backend answers with an OTP challenge; a backend that
        returns a token right away yields an AuthSession instead.

        Raises:
            ApiError: On failure (including ``success: false``)
        """
        payload = await self.write(
            "signin",
            data=LoginRequest(identifier=identifier, password=password),
            invalidates=_SESSION_KEYS,
            apply=self._persist,
        )
        session = self._session(payload)
        if session is not None:
            return session
        return LoginChallenge.model_validate(payload or {})

    async def verify_login_otp(self, identifier: str, otp: str) -> AuthSession:
        """Complete a login challenge; persists the returned token."""
        payload = await self.write(
            "verify_login_otp",
            data=VerifyOtpRequest(identifier=identifier, otp=otp),
            invalidates=(query_keys.all,),
            apply=self._persist,
        )
        session = self._session(payload)
        return session or AuthSession.model_validate(payload or {})

    async def signup(self, request: SignupRequest) -> AuthSession:
        """Register an account; persists the token when the backend returns one."""
        payload = await self.write("signup", data=request, apply=self._persist)
        session = self._session(payload)
        return session or AuthSession.model_validate(payload or {})

    async def verify_otp(self, identifier: str, otp: str) -> Any:
        """Verify the signup OTP (uses the token stored at signup)."""
        payload = await self.write(
            "verify_otp",
            data=VerifyOtpRequest(identifier=identifier, otp=otp),
            invalidates=_SESSION_KEYS,
            apply=self._persist,
        )
        return payload

    async def resend_otp(self, identifier: str, type: OtpType | str = OtpType.LOGIN) -> Any:
        return await self.write(
            "resend_otp", data=ResendOtpRequest(identifier=identifier, type=OtpType(type))
        )

    async def logout(self) -> None:
        """End the session.

        A failed server-side logout is logged and ignored; local tokens and
        the whole query cache are always cleared.
        """
        try:
            await self.call("logout")
        except ApiError as e:
            logger.warning(f"Server logout failed, clearing local session anyway: {e}")
        await clear_tokens(self.tokens)
        self.queries.clear()
        logger.info(f"Logged out ({self.role.value})")

    # ------------------------------------------------------------------
    # Password recovery
    # ------------------------------------------------------------------

    async def forgot_password(self, email: str) -> Any:
        return await self.write("forgot_password", data=ForgotPasswordRequest(email=email))

    async def verify_forgot_password_otp(self, email: str, otp: str) -> Any:
        return await self.write(
            "verify_forgot_password_otp",
            data=VerifyForgotPasswordOtpRequest(email=email, otp=otp),
        )

    async def reset_password(self, email: str, password: str, otp: str) -> Any:
        return await self.write(
            "reset_password",
            data=ResetPasswordRequest(email=email, password=password, otp=otp),
        )

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def watch_profile(self, options: QueryOptions | None = None) -> QuerySubscription:
        return self.watch(
            self.profile_key, self.request("profile"), model=UserProfile, options=options
        )

    async def get_profile(self, options: QueryOptions | None = None) -> UserProfile:
        """Current user's profile (cached under the profile key)."""
        return await self.read(
            self.profile_key, self.request("profile"), model=UserProfile, options=options
        )

    async def update_profile(self, request: UpdateProfileRequest) -> Any:
        return await self.write(
            "update_profile", data=request, invalidates=(query_keys.profile.all,)
        )

    async def change_password(
        self, current_password: str, new_password: str, confirm_password: str | None = None
    ) -> Any:
        """Change the password of the signed-in user.

        Raises:
            ValueError: If the confirmation does not match
            ApiError: On failure
        """
        confirm = new_password if confirm_password is None else confirm_password
        if confirm != new_password:
            raise ValueError("New password and confirmation do not match")
        return await self.write(
            "change_password",
            data=ChangePasswordRequest(
                current_password=current_password,
                new_password=new_password,
                confirm_password=confirm,
            ),
        )
