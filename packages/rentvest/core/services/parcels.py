"""Land parcel search."""

from __future__ import annotations

from typing import Any

from rentvest.core.endpoints.catalog import Backend
from rentvest.core.query.client import QueryOptions
from rentvest.core.query.keys import query_keys
from rentvest.core.services.base import ServiceBase
from rentvest.core.services.models import ParcelSearchRequest

_parcels = query_keys.parcels


class ParcelService(ServiceBase):
    backend = Backend.PARCEL

    async def search(
        self, query: str, page: int = 1, limit: int = 20, options: QueryOptions | None = None
    ) -> Any:
        params = ParcelSearchRequest(query=query, page=page, limit=limit).to_wire()
        request = self.request("search", params=params)
        return await self.read(_parcels.search(params), request, options=options)

    async def detail(self, parcel_id: str | int, options: QueryOptions | None = None) -> Any:
        request = self.request("detail", parcel_id)
        return await self.read(_parcels.detail(parcel_id), request, options=options)
