"""Identity verification (KYC) calls.

The verification SDK itself runs client-side; this module only performs the
token exchange and status calls that go through the backend.
"""

from __future__ import annotations

import logging
from typing import Any

from rentvest.core.endpoints.catalog import Backend
from rentvest.core.query.client import QueryOptions
from rentvest.core.query.keys import query_keys
from rentvest.core.services.base import ServiceBase
from rentvest.core.services.models import KycSession, KycToken, KycTokenRequest

logger = logging.getLogger(__name__)

DEFAULT_LEVEL = "basic-kyc-level"
DEFAULT_TTL_S = 3600

_kyc = query_keys.kyc


class KycService(ServiceBase):
    backend = Backend.KYC

    async def generate_access_token(
        self,
        user_id: str,
        level_name: str | None = None,
        ttl_in_secs: int | None = None,
    ) -> KycToken:
        """Exchange the session for a short-lived SDK access token.

        Args:
            user_id: Applicant id
            level_name: Verification level (defaults to ``basic-kyc-level``)
            ttl_in_secs: Token lifetime (defaults to one hour)

        Raises:
            ApiError: On failure
        """
        body = KycTokenRequest(
            user_id=user_id,
            level_name=level_name or DEFAULT_LEVEL,
            ttl_in_secs=ttl_in_secs or DEFAULT_TTL_S,
        )
        request = self.request("generate_token", data=body)
        payload = await self.execute(request)
        return self.parse(request, payload, KycToken)

    async def get_status(self, user_id: str, options: QueryOptions | None = None) -> str | None:
        """Current KYC status string for ``user_id`` (None when the backend has none)."""
        request = self.request("status", user_id)
        payload = await self.read(_kyc.detail(user_id), request, options=options)
        if isinstance(payload, dict):
            return payload.get("status")
        return payload

    async def update_status(self, user_id: str, status: str, token: str | None = None) -> Any:
        data: dict[str, Any] = {"status": status}
        if token:
            data["token"] = token
        return await self.write("update_status", user_id, data=data, invalidates=(_kyc.all,))

    async def initialize(self) -> KycSession:
        """Start verification; returns the SDK access token and configuration.

        Raises:
            DecodeError: If the response carries no access token
            ApiError: On any other failure
        """
        request = self.request("initialize", data={})
        payload = await self.execute(request)
        # Some deployments nest the session one level deeper.
        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            payload = payload["data"]
        session = self.parse(request, payload, KycSession)
        self.queries.invalidate(_kyc.all)
        logger.debug("KYC session initialized")
        return session
