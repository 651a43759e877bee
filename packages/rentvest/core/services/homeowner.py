"""Homeowner property management: listings, media, dropdowns, dashboard."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from rentvest.core.api.http.models import MultipartForm, UploadFile
from rentvest.core.endpoints.catalog import Backend
from rentvest.core.query.client import QueryOptions, QuerySubscription
from rentvest.core.query.keys import QueryKey, query_keys
from rentvest.core.services.base import ServiceBase
from rentvest.core.services.models import Amenity

logger = logging.getLogger(__name__)

UPLOAD_FIELD = "propertyFiles"

_properties = query_keys.homeowner_properties
_dashboard = query_keys.homeowner_dashboard


def upload_form(files: Sequence[UploadFile], field: str = UPLOAD_FIELD) -> MultipartForm:
    """Multipart body with every file under the same field name.

    Raises:
        ValueError: If no files are given
    """
    if not files:
        raise ValueError("At least one file is required")
    return MultipartForm(files=tuple((field, f) for f in files))


class HomeownerPropertyService(ServiceBase):
    """Listings owned by the signed-in homeowner.

    Every write invalidates the property branch and the dashboard so list,
    detail and summary views refetch; media writes only touch the affected
    property.
    """

    backend = Backend.HOMEOWNER

    def _listing_keys(self) -> tuple[QueryKey, ...]:
        return (_properties.all, _dashboard.all)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def watch_properties(
        self, filters: Mapping[str, Any] | None = None, options: QueryOptions | None = None
    ) -> QuerySubscription:
        request = self.request("list_properties", params=dict(filters or {}))
        return self.watch(_properties.list(filters), request, options=options)

    async def list_properties(
        self, filters: Mapping[str, Any] | None = None, options: QueryOptions | None = None
    ) -> Any:
        request = self.request("list_properties", params=dict(filters or {}))
        return await self.read(_properties.list(filters), request, options=options)

    async def get_property(
        self, property_id: str | int, options: QueryOptions | None = None
    ) -> Any:
        request = self.request("get_property", property_id)
        return await self.read(_properties.detail(property_id), request, options=options)

    async def amenities(self, options: QueryOptions | None = None) -> list[Amenity]:
        """Amenity options for the listing form."""
        request = self.request("amenities")
        payload = await self.read(query_keys.dropdowns.key("amenities"), request, options=options)
        return [Amenity.model_validate(item) for item in payload or []]

    async def documents(self, options: QueryOptions | None = None) -> Any:
        """Document types a listing must provide."""
        request = self.request("documents")
        return await self.read(query_keys.property_documents.all, request, options=options)

    async def dashboard_properties(self, options: QueryOptions | None = None) -> Any:
        request = self.request("dashboard_properties")
        return await self.read(_dashboard.lists(), request, options=options)

    async def dashboard_property(
        self, property_id: str | int, options: QueryOptions | None = None
    ) -> Any:
        request = self.request("dashboard_property", property_id)
        return await self.read(_dashboard.detail(property_id), request, options=options)

    # ------------------------------------------------------------------
    # Listing writes
    # ------------------------------------------------------------------

    async def create_property(self, data: Mapping[str, Any]) -> Any:
        return await self.write(
            "create_property", data=dict(data), invalidates=self._listing_keys()
        )

    async def save_draft(self, data: Mapping[str, Any]) -> Any:
        return await self.write("save_draft", data=dict(data), invalidates=self._listing_keys())

    async def submit_for_review(self, data: Mapping[str, Any]) -> Any:
        return await self.write(
            "submit_for_review", data=dict(data), invalidates=self._listing_keys()
        )

    async def update_property(self, property_id: str | int, data: Mapping[str, Any]) -> Any:
        return await self.write(
            "update_property", property_id, data=dict(data), invalidates=self._listing_keys()
        )

    async def delete_property(self, property_id: str | int) -> Any:
        """Delete a listing; its detail entries are dropped before the lists refetch."""

        async def forget(_: Any) -> None:
            self.queries.remove(_properties.detail(property_id))
            self.queries.remove(_dashboard.detail(property_id))

        return await self.write(
            "delete_property", property_id, invalidates=self._listing_keys(), apply=forget
        )

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------

    async def _upload(
        self, operation: str, property_id: str | int, files: Sequence[UploadFile]
    ) -> Any:
        form = upload_form(files)
        logger.debug(f"Uploading {len(files)} file(s) to property {property_id} via {operation}")
        return await self.write(
            operation, property_id, data=form, invalidates=(_properties.detail(property_id),)
        )

    async def upload_images(self, property_id: str | int, files: Sequence[UploadFile]) -> Any:
        return await self._upload("upload_images", property_id, files)

    async def upload_videos(self, property_id: str | int, files: Sequence[UploadFile]) -> Any:
        return await self._upload("upload_videos", property_id, files)

    async def upload_files(self, property_id: str | int, files: Sequence[UploadFile]) -> Any:
        return await self._upload("upload_files", property_id, files)

    async def delete_image(self, property_id: str | int, image_name: str) -> Any:
        return await self.write(
            "delete_image",
            property_id,
            image_name,
            invalidates=(_properties.detail(property_id),),
        )

    async def delete_file(self, property_id: str | int, file_name: str) -> Any:
        return await self.write(
            "delete_file",
            property_id,
            file_name,
            invalidates=(_properties.detail(property_id),),
        )
