"""GET /routes."""

from __future__ import annotations

from typing import Literal, Optional

from fleet_monitor.api_client import ApiClient
from fleet_monitor.endpoints.common import PaginationParams, ResourceKeys, encode_query
from fleet_monitor.models import ListResponse, Route

BASE = "/routes"

LIST_QUERY_NAMES = {
    "limit": "page[limit]",
    "offset": "page[offset]",
    "include": "include",
    "sort": "sort",
    "fields": "fields[route]",
    "filter_stop": "filter[stop]",
    "filter_type": "filter[type]",
    "filter_direction_id": "filter[direction_id]",
    "filter_date": "filter[date]",
    "filter_id": "filter[id]",
    "filter_listed_route": "filter[listed_route]",
}


class RouteListParams(PaginationParams):
    sort: Optional[str] = None
    fields: Optional[str] = None
    filter_stop: Optional[str] = None
    # Comma list of GTFS route types, e.g. "0,1"
    filter_type: Optional[str] = None
    filter_direction_id: Optional[str] = None
    filter_date: Optional[str] = None
    filter_id: Optional[str] = None
    filter_listed_route: Optional[Literal["true", "false"]] = None


def build_query(params: Optional[RouteListParams] = None) -> str:
    return encode_query(params, LIST_QUERY_NAMES)


route_keys = ResourceKeys("routes")


class RouteApi:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def get_all(self, params: Optional[RouteListParams] = None) -> ListResponse[Route]:
        body = await self._client.get(f"{BASE}{build_query(params)}")
        return ListResponse[Route].model_validate(body)
