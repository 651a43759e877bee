"""Backend endpoint catalog."""

from rentvest.core.endpoints.catalog import CATALOG, Backend, EndpointCatalog, EndpointSpec

__all__ = [
    "Backend",
    "CATALOG",
    "EndpointCatalog",
    "EndpointSpec",
]
