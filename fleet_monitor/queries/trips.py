"""Trip queries."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fleet_monitor.endpoints.trips import (
    TripApi,
    TripDetailParams,
    TripListParams,
    trip_keys,
)
from fleet_monitor.query import InfiniteQuery, Query, QueryClient

TRIPS_PAGE_SIZE = 30


def trips_query(
    client: QueryClient, api: TripApi, params: Optional[TripListParams] = None
) -> Query:
    return Query(client, trip_keys.list(params), lambda: api.get_all(params))


def trip_detail_query(
    client: QueryClient,
    api: TripApi,
    trip_id: str,
    params: Optional[TripDetailParams] = None,
) -> Query:
    return Query(
        client,
        trip_keys.get_by_id(trip_id, params),
        lambda: api.get_by_id(trip_id, params),
        enabled=bool(trip_id),
    )


def trips_infinite_query(
    client: QueryClient,
    api: TripApi,
    page_size: int = TRIPS_PAGE_SIZE,
    params: Optional[TripListParams] = None,
    enabled: bool = True,
    today: Optional[date] = None,
) -> InfiniteQuery:
    """Trips loaded page by page; ``filter[date]`` defaults to today."""
    base = params or TripListParams()
    if base.limit is not None or base.offset is not None:
        raise ValueError("infinite trip params must not set limit or offset")
    filter_date = base.filter_date or (today or date.today()).isoformat()

    async def fetch_page(offset: int):
        return await api.get_all(
            base.model_copy(
                update={"limit": page_size, "offset": offset, "filter_date": filter_date}
            )
        )

    return InfiniteQuery(
        client,
        trip_keys.infinite(page_size, params),
        fetch_page,
        page_size=page_size,
        enabled=enabled,
    )
