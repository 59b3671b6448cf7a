"""Route queries."""

from __future__ import annotations

from typing import Optional

from fleet_monitor.endpoints.routes import RouteApi, RouteListParams, route_keys
from fleet_monitor.query import InfiniteQuery, Query, QueryClient

ROUTES_PAGE_SIZE = 30
DEFAULT_SORT = "long_name"


def routes_query(
    client: QueryClient, api: RouteApi, params: Optional[RouteListParams] = None
) -> Query:
    return Query(client, route_keys.list(params), lambda: api.get_all(params))


def routes_infinite_query(
    client: QueryClient,
    api: RouteApi,
    page_size: int = ROUTES_PAGE_SIZE,
    params: Optional[RouteListParams] = None,
    enabled: bool = True,
) -> InfiniteQuery:
    """
    Routes loaded page by page, sorted by long name unless ``params`` sorts.

    ``params`` must not carry limit/offset; paging is driven by the query.
    """
    base = params or RouteListParams()
    if base.limit is not None or base.offset is not None:
        raise ValueError("infinite route params must not set limit or offset")

    async def fetch_page(offset: int):
        return await api.get_all(
            base.model_copy(
                update={
                    "limit": page_size,
                    "offset": offset,
                    "sort": base.sort or DEFAULT_SORT,
                }
            )
        )

    return InfiniteQuery(
        client,
        route_keys.infinite(page_size, params),
        fetch_page,
        page_size=page_size,
        enabled=enabled,
    )
