"""GET /vehicles and /vehicles/{id}."""

from __future__ import annotations

from typing import Optional

from fleet_monitor.api_client import ApiClient
from fleet_monitor.endpoints.common import (
    DetailParams,
    PaginationParams,
    ResourceKeys,
    encode_query,
)
from fleet_monitor.models import DetailResponse, ListResponse, Vehicle

BASE = "/vehicles"
DETAIL_INCLUDE = "route,trip,stop"

LIST_QUERY_NAMES = {
    "limit": "page[limit]",
    "offset": "page[offset]",
    "include": "include",
    "sort": "sort",
    "fields": "fields[vehicle]",
    "filter_route": "filter[route]",
    "filter_trip": "filter[trip]",
    "filter_route_type": "filter[route_type]",
}


class VehicleListParams(PaginationParams):
    sort: Optional[str] = None
    fields: Optional[str] = None
    filter_route: Optional[str] = None
    filter_trip: Optional[str] = None
    filter_route_type: Optional[str] = None


class VehicleDetailParams(DetailParams):
    pass


def build_query(params: Optional[VehicleListParams] = None) -> str:
    return encode_query(params, LIST_QUERY_NAMES)


def build_detail_query(params: Optional[VehicleDetailParams] = None) -> str:
    return encode_query(params, {"include": "include"})


vehicle_keys = ResourceKeys("vehicles")


class VehicleApi:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def get_all(
        self, params: Optional[VehicleListParams] = None
    ) -> ListResponse[Vehicle]:
        body = await self._client.get(f"{BASE}{build_query(params)}")
        return ListResponse[Vehicle].model_validate(body)

    async def get_by_id(
        self, vehicle_id: str, params: Optional[VehicleDetailParams] = None
    ) -> DetailResponse[Vehicle]:
        params = params or VehicleDetailParams(include=DETAIL_INCLUDE)
        body = await self._client.get(
            f"{BASE}/{vehicle_id}{build_detail_query(params)}"
        )
        return DetailResponse[Vehicle].model_validate(body)
