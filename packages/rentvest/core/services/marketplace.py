"""Renter/investor marketplace listings."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from rentvest.core.endpoints.catalog import Backend
from rentvest.core.query.client import QueryOptions, QuerySubscription
from rentvest.core.query.keys import query_keys
from rentvest.core.services.base import ServiceBase
from rentvest.core.services.models import Page, PropertySummary

_marketplace = query_keys.marketplace

# Listings change rarely; browsing pages should not refetch on every visit.
LIST_OPTIONS = QueryOptions(stale_time_s=300, gc_time_s=600)


class MarketplaceService(ServiceBase):
    backend = Backend.MARKETPLACE

    def watch_properties(
        self, filters: Mapping[str, Any] | None = None, options: QueryOptions | None = None
    ) -> QuerySubscription:
        request = self.request("list_properties", params=dict(filters or {}))
        return self.watch(
            _marketplace.list(filters), request, model=Page, options=options or LIST_OPTIONS
        )

    async def list_properties(
        self, filters: Mapping[str, Any] | None = None, options: QueryOptions | None = None
    ) -> Page:
        """One page of marketplace listings (``page``, ``limit`` and search filters)."""
        request = self.request("list_properties", params=dict(filters or {}))
        return await self.read(
            _marketplace.list(filters), request, model=Page, options=options or LIST_OPTIONS
        )

    async def get_property(
        self, property_id: str | int, options: QueryOptions | None = None
    ) -> PropertySummary:
        request = self.request("get_property", property_id)
        return await self.read(
            _marketplace.detail(property_id), request, model=PropertySummary, options=options
        )

    async def create_property(self, data: Mapping[str, Any]) -> Any:
        return await self.write(
            "create_property", data=dict(data), invalidates=(_marketplace.lists(),)
        )

    async def update_property(self, property_id: str | int, data: Mapping[str, Any]) -> Any:
        return await self.write(
            "update_property", property_id, data=dict(data), invalidates=(_marketplace.all,)
        )

    async def delete_property(self, property_id: str | int) -> Any:
        async def forget(_: Any) -> None:
            self.queries.remove(_marketplace.detail(property_id))

        return await self.write(
            "delete_property",
            property_id,
            invalidates=(_marketplace.lists(),),
            apply=forget,
        )
