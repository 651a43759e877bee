"""Hierarchical query keys.

A query key is a tuple of primitive segments, e.g.
``("api", "leads", "detail", "42")``. Keys double as cache index and as
invalidation selector: invalidating ``("api", "leads")`` reaches every key
that starts with it. Always derive keys through the registry below so that
prefix invalidation lines up across the application.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from rentvest.core.caching.keys import QueryKey, Segment, is_prefix

__all__ = [
    "QueryKey",
    "Segment",
    "is_prefix",
    "id_segment",
    "filters_segment",
    "QueryKeyBranch",
    "QueryKeys",
    "query_keys",
]

ROOT_NAMESPACE = "api"


def id_segment(value: str | int) -> str:
    """Normalize an identifier so 7 and "7" address the same entry."""
    return str(value)


def filters_segment(filters: Mapping[str, Any] | None) -> str:
    """Encode a filter mapping as one canonical, hashable segment.

    None values are dropped so ``{"page": 1, "q": None}`` and ``{"page": 1}``
    share a cache entry.
    """
    cleaned = {k: v for k, v in (filters or {}).items() if v is not None}
    return json.dumps(cleaned, sort_keys=True, separators=(",", ":"), default=str)


class QueryKeyBranch:
    """Key factory for one branch of the key tree.

    Args:
        prefix: Segments shared by every key of the branch

    Example:
        >>> leads = QueryKeyBranch(("api", "leads"))
        >>> leads.detail(42)
        ('api', 'leads', 'detail', '42')
        >>> is_prefix(leads.all, leads.detail(42))
        True
    """

    def __init__(self, prefix: QueryKey) -> None:
        self._prefix: QueryKey = tuple(prefix)

    def __repr__(self) -> str:
        return f"QueryKeyBranch({self._prefix!r})"

    @property
    def all(self) -> QueryKey:
        return self._prefix

    def key(self, *segments: Segment) -> QueryKey:
        """Key below this branch."""
        return (*self._prefix, *segments)

    def child(self, *segments: Segment) -> QueryKeyBranch:
        """Sub-branch below this branch."""
        return QueryKeyBranch(self.key(*segments))

    def lists(self) -> QueryKey:
        return self.key("list")

    def list(self, filters: Mapping[str, Any] | None = None) -> QueryKey:
        return self.key("list", filters_segment(filters))

    def details(self) -> QueryKey:
        return self.key("detail")

    def detail(self, id: str | int) -> QueryKey:
        return self.key("detail", id_segment(id))

    def search(self, query: str | Mapping[str, Any]) -> QueryKey:
        if isinstance(query, Mapping):
            return self.key("search", filters_segment(query))
        return self.key("search", query)


class ChatKeys(QueryKeyBranch):
    def messages(self, chat_id: str | int) -> QueryKey:
        return self.key(id_segment(chat_id), "messages")


class HomeownerPropertyKeys(QueryKeyBranch):
    def property(self, id: str | int) -> QueryKey:
        return self.detail(id)

    def images(self, property_id: str | int) -> QueryKey:
        return (*self.detail(property_id), "images")

    def files(self, property_id: str | int) -> QueryKey:
        return (*self.detail(property_id), "files")


class QueryKeys:
    """Application key registry rooted at the ``"api"`` namespace."""

    def __init__(self, root: str = ROOT_NAMESPACE) -> None:
        self.all: QueryKey = (root,)
        base = QueryKeyBranch(self.all)

        self.auth = base.child("auth")
        self.user = base.child("user")
        self.profile = base.child("profile")
        self.leads = base.child("leads")
        self.parcels = base.child("parcels")
        self.campaigns = base.child("campaigns")
        self.offers = base.child("offers")
        self.transactions = base.child("transactions")
        self.chat = ChatKeys(base.key("chat"))
        self.notifications = base.child("notifications")
        self.balance = base.child("balance")
        self.tokens = base.child("tokens")
        self.mailer_options = base.child("mailerOptions")
        self.marketplace = base.child("marketplace")
        self.homeowner_properties = HomeownerPropertyKeys(base.key("homeowner", "properties"))
        self.homeowner_dashboard = base.child("homeowner", "dashboard")
        self.dropdowns = base.child("dropdowns")
        self.property_documents = base.child("propertyDocuments")
        self.kyc = base.child("kyc")


query_keys = QueryKeys()
