"""Schedule queries."""

from __future__ import annotations

from typing import Optional

from fleet_monitor.endpoints.schedules import (
    ScheduleApi,
    ScheduleDetailParams,
    ScheduleListParams,
    schedule_keys,
)
from fleet_monitor.query import Query, QueryClient


def schedules_query(
    client: QueryClient, api: ScheduleApi, params: Optional[ScheduleListParams] = None
) -> Query:
    """Schedules of one trip; nothing is fetched until a trip is chosen."""
    return Query(
        client,
        schedule_keys.list(params),
        lambda: api.get_all(params),
        enabled=bool(params and params.filter_trip),
    )


def schedule_detail_query(
    client: QueryClient,
    api: ScheduleApi,
    schedule_id: str,
    params: Optional[ScheduleDetailParams] = None,
) -> Query:
    return Query(
        client,
        schedule_keys.get_by_id(schedule_id, params),
        lambda: api.get_by_id(schedule_id, params),
        enabled=bool(schedule_id),
    )
