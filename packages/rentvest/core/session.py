"""Rentvest session - composition root for the request/cache layer.

The session owns every shared resource:
- Configuration (base URLs, transport, cache defaults)
- Token store and the token provider read by the request executor
- The HTTP client (one connection pool for every backend)
- The query cache and the query client built on it
- The endpoint catalog and backend services

Nothing in the layer is a module-level singleton: create one session per
process (or per test) and close it when done.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import httpx

from rentvest.core.api.http.auth import FileTokenStore, StoredTokenProvider, TokenStore
from rentvest.core.api.http.client import ApiClient
from rentvest.core.caching.store import CacheStore
from rentvest.core.config.loader import load_app_config
from rentvest.core.config.models import AppConfig
from rentvest.core.endpoints.catalog import EndpointCatalog
from rentvest.core.query.client import QueryClient, QueryOptions
from rentvest.core.services.auth import AuthService
from rentvest.core.services.chat import ChatService
from rentvest.core.services.homeowner import HomeownerPropertyService
from rentvest.core.services.kyc import KycService
from rentvest.core.services.marketplace import MarketplaceService
from rentvest.core.services.models import UserRole
from rentvest.core.services.parcels import ParcelService

logger = logging.getLogger(__name__)


class RentvestSession:
    """Wires token store, client, cache, catalog and services together.

    Example:
        >>> async with RentvestSession() as session:
        ...     auth = session.auth(UserRole.RENTER_INVESTOR)
        ...     await auth.login("ada@example.com", "s3cret")
        ...     listings = await session.marketplace.list_properties({"page": 1})
    """

    def __init__(
        self,
        *,
        app_config: AppConfig | Path | str | None = None,
        token_store: TokenStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Any = None,
    ) -> None:
        """Initialize the session.

        Args:
            app_config: AppConfig instance, path, or None (default path + env)
            token_store: Token storage (defaults to a file store at
                ``app_config.token_store_path``)
            transport: Optional httpx transport (useful for testing)
            clock: Optional monotonic clock for the cache store

        Raises:
            TypeError: If app_config is of the wrong type
            ValidationError: If the config is invalid
        """
        self.app_config = self._resolve_config(app_config)
        self.token_store: TokenStore = token_store or FileTokenStore(
            self.app_config.token_store_path
        )
        self.token_provider = StoredTokenProvider(self.token_store)
        self.api = ApiClient(
            token_provider=self.token_provider,
            config=self.app_config.http,
            transport=transport,
        )

        cache_config = self.app_config.cache
        store_kwargs: dict[str, Any] = {"default_gc_time_s": cache_config.gc_time_s}
        if clock is not None:
            store_kwargs["clock"] = clock
        self.store = CacheStore(**store_kwargs)
        self.queries = QueryClient(
            self.api,
            self.store,
            defaults=QueryOptions(
                stale_time_s=cache_config.stale_time_s, gc_time_s=cache_config.gc_time_s
            ),
        )
        self.catalog = EndpointCatalog(self.app_config.services, self.app_config.http)
        self._auth: dict[UserRole, AuthService] = {}

        logger.debug(f"Session initialized: environment={self.app_config.environment.value}")

    @staticmethod
    def _resolve_config(value: Any) -> AppConfig:
        if value is None:
            return load_app_config()
        elif isinstance(value, (Path, str)):
            return load_app_config(Path(value))
        elif isinstance(value, AppConfig):
            return value
        else:
            raise TypeError(f"Expected AppConfig, Path, str, or None; got {type(value).__name__}")

    async def aclose(self) -> None:
        """Close the HTTP client. Cached data is dropped."""
        await self.api.aclose()
        self.store.clear()

    async def __aenter__(self) -> RentvestSession:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def auth(self, role: UserRole | str = UserRole.RENTER_INVESTOR) -> AuthService:
        """Auth service for one role (created on first use)."""
        role = UserRole(role)
        if role not in self._auth:
            self._auth[role] = AuthService(
                self.api, self.queries, self.catalog, self.token_store, role
            )
        return self._auth[role]

    @property
    def homeowner(self) -> HomeownerPropertyService:
        if not hasattr(self, "_homeowner"):
            self._homeowner = HomeownerPropertyService(self.api, self.queries, self.catalog)
        return self._homeowner

    @property
    def marketplace(self) -> MarketplaceService:
        if not hasattr(self, "_marketplace"):
            self._marketplace = MarketplaceService(self.api, self.queries, self.catalog)
        return self._marketplace

    @property
    def kyc(self) -> KycService:
        if not hasattr(self, "_kyc"):
            self._kyc = KycService(self.api, self.queries, self.catalog)
        return self._kyc

    @property
    def chat(self) -> ChatService:
        if not hasattr(self, "_chat"):
            self._chat = ChatService(self.api, self.queries, self.catalog)
        return self._chat

    @property
    def parcels(self) -> ParcelService:
        if not hasattr(self, "_parcels"):
            self._parcels = ParcelService(self.api, self.queries, self.catalog)
        return self._parcels
