"""Query keys plus cached read / invalidating write factories."""

from rentvest.core.query.client import (
    Mutation,
    MutationState,
    MutationStatus,
    QueryClient,
    QueryOptions,
    QuerySubscription,
)
from rentvest.core.query.keys import (
    QueryKey,
    QueryKeyBranch,
    QueryKeys,
    Segment,
    filters_segment,
    id_segment,
    is_prefix,
    query_keys,
)

__all__ = [
    "QueryClient",
    "QueryOptions",
    "QuerySubscription",
    "Mutation",
    "MutationState",
    "MutationStatus",
    "QueryKey",
    "QueryKeyBranch",
    "QueryKeys",
    "Segment",
    "query_keys",
    "is_prefix",
    "id_segment",
    "filters_segment",
]
