"""GET /trips and /trips/{id}."""

from __future__ import annotations

from typing import Optional

from fleet_monitor.api_client import ApiClient
from fleet_monitor.endpoints.common import (
    DetailParams,
    PaginationParams,
    ResourceKeys,
    encode_query,
)
from fleet_monitor.models import DetailResponse, ListResponse, Trip

BASE = "/trips"
DETAIL_INCLUDE = "shape"

LIST_QUERY_NAMES = {
    "limit": "page[limit]",
    "offset": "page[offset]",
    "include": "include",
    "sort": "sort",
    "fields": "fields[trip]",
    "filter_route": "filter[route]",
    "filter_date": "filter[date]",
    "filter_id": "filter[id]",
    "filter_direction_id": "filter[direction_id]",
}


class TripListParams(PaginationParams):
    sort: Optional[str] = None
    fields: Optional[str] = None
    filter_route: Optional[str] = None
    # YYYY-MM-DD
    filter_date: Optional[str] = None
    filter_id: Optional[str] = None
    filter_direction_id: Optional[str] = None


class TripDetailParams(DetailParams):
    pass


def build_query(params: Optional[TripListParams] = None) -> str:
    return encode_query(params, LIST_QUERY_NAMES)


def build_detail_query(params: Optional[TripDetailParams] = None) -> str:
    return encode_query(params, {"include": "include"})


trip_keys = ResourceKeys("trips")


class TripApi:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def get_all(self, params: Optional[TripListParams] = None) -> ListResponse[Trip]:
        body = await self._client.get(f"{BASE}{build_query(params)}")
        return ListResponse[Trip].model_validate(body)

    async def get_by_id(
        self, trip_id: str, params: Optional[TripDetailParams] = None
    ) -> DetailResponse[Trip]:
        params = params or TripDetailParams(include=DETAIL_INCLUDE)
        body = await self._client.get(f"{BASE}/{trip_id}{build_detail_query(params)}")
        return DetailResponse[Trip].model_validate(body)
