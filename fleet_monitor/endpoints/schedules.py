"""GET /schedules and /schedules/{id}."""

from __future__ import annotations

from typing import Optional

from fleet_monitor.api_client import ApiClient
from fleet_monitor.endpoints.common import (
    DetailParams,
    PaginationParams,
    ResourceKeys,
    encode_query,
)
from fleet_monitor.models import DetailResponse, ListResponse, Schedule

BASE = "/schedules"
DETAIL_INCLUDE = "stop"

LIST_QUERY_NAMES = {
    "limit": "page[limit]",
    "offset": "page[offset]",
    "include": "include",
    "sort": "sort",
    "fields": "fields[schedule]",
    "filter_route": "filter[route]",
    "filter_trip": "filter[trip]",
    "filter_stop": "filter[stop]",
    "filter_date": "filter[date]",
    "filter_direction_id": "filter[direction_id]",
}


class ScheduleListParams(PaginationParams):
    sort: Optional[str] = None
    fields: Optional[str] = None
    filter_route: Optional[str] = None
    filter_trip: Optional[str] = None
    filter_stop: Optional[str] = None
    filter_date: Optional[str] = None
    filter_direction_id: Optional[str] = None


class ScheduleDetailParams(DetailParams):
    pass


def build_query(params: Optional[ScheduleListParams] = None) -> str:
    return encode_query(params, LIST_QUERY_NAMES)


def build_detail_query(params: Optional[ScheduleDetailParams] = None) -> str:
    return encode_query(params, {"include": "include"})


schedule_keys = ResourceKeys("schedules")


class ScheduleApi:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def get_all(
        self, params: Optional[ScheduleListParams] = None
    ) -> ListResponse[Schedule]:
        body = await self._client.get(f"{BASE}{build_query(params)}")
        return ListResponse[Schedule].model_validate(body)

    async def get_by_id(
        self, schedule_id: str, params: Optional[ScheduleDetailParams] = None
    ) -> DetailResponse[Schedule]:
        params = params or ScheduleDetailParams(include=DETAIL_INCLUDE)
        body = await self._client.get(
            f"{BASE}/{schedule_id}{build_detail_query(params)}"
        )
        return DetailResponse[Schedule].model_validate(body)
