"""
Dashboard session: wires the proxy client, endpoint APIs, query cache,
vehicle list state and vehicle filter together, and loads view models.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, Optional

import httpx

from fleet_monitor.api_client import ApiClient
from fleet_monitor.config import AppConfig
from fleet_monitor.endpoints.routes import RouteApi
from fleet_monitor.endpoints.schedules import ScheduleApi, ScheduleListParams
from fleet_monitor.endpoints.trips import TripApi, TripDetailParams
from fleet_monitor.endpoints.vehicles import VehicleApi
from fleet_monitor.filters import VehicleFilter, VehicleListState
from fleet_monitor.models import Route, Trip
from fleet_monitor.pagination import PageState
from fleet_monitor.presenters import (
    VehicleDetailView,
    VehicleListView,
    build_vehicle_detail_view,
    build_vehicle_list_view,
)
from fleet_monitor.queries.routes import routes_infinite_query
from fleet_monitor.queries.schedules import schedules_query
from fleet_monitor.queries.trips import trip_detail_query, trips_infinite_query
from fleet_monitor.queries.vehicles import (
    trips_from_vehicles_query,
    vehicle_detail_query,
    vehicles_query,
)
from fleet_monitor.query import InfiniteQuery, Query, QueryClient

logger = logging.getLogger(__name__)

SCHEDULE_STOPS_LIMIT = 50


class Dashboard:
    """One user's dashboard: shared cache plus list and filter state."""

    def __init__(
        self,
        config: AppConfig,
        http_client: httpx.AsyncClient,
        query_client: Optional[QueryClient] = None,
    ) -> None:
        self.config = config
        api = ApiClient(http_client, base_url=config.proxy_url)
        self.vehicle_api = VehicleApi(api)
        self.route_api = RouteApi(api)
        self.trip_api = TripApi(api)
        self.schedule_api = ScheduleApi(api)
        self.queries = query_client or QueryClient(
            stale_time=config.stale_time, retry=config.retry
        )
        self.list_state = VehicleListState(page=PageState(0, config.list_limit))
        self.filter = VehicleFilter(
            on_apply=self.list_state.apply_filters,
            on_reset=self.list_state.clear_filters,
        )

    @classmethod
    @asynccontextmanager
    async def open(cls, config: AppConfig) -> AsyncIterator["Dashboard"]:
        async with httpx.AsyncClient() as http_client:
            yield cls(config, http_client)

    # -- vehicle list ------------------------------------------------------

    def vehicle_list_query(self) -> Query:
        return vehicles_query(
            self.queries,
            self.vehicle_api,
            self.list_state.params(),
            poll_interval=self.config.poll_interval,
        )

    def vehicle_list_view(self, query: Query) -> VehicleListView:
        return build_vehicle_list_view(query.state, self.list_state.page)

    async def load_vehicle_list(self) -> VehicleListView:
        query = self.vehicle_list_query()
        query.mount()
        try:
            await query.wait()
        finally:
            query.unmount()
        return self.vehicle_list_view(query)

    # -- vehicle detail ----------------------------------------------------

    async def load_vehicle_detail(self, vehicle_id: str) -> Optional[VehicleDetailView]:
        """
        Vehicle detail with route, trip and stop, plus the trip's shape and
        scheduled stops for the map. None when nothing could be loaded.
        """
        detail_query = vehicle_detail_query(self.queries, self.vehicle_api, vehicle_id)
        detail_query.mount()
        try:
            state = await detail_query.wait()
        finally:
            detail_query.unmount()
        if state.data is None:
            return None

        trip_id = state.data.data.related_id("trip") or ""
        schedule_params = (
            ScheduleListParams(filter_trip=trip_id, include="stop", limit=SCHEDULE_STOPS_LIMIT)
            if trip_id
            else None
        )
        schedule_list = schedules_query(self.queries, self.schedule_api, schedule_params)
        shape = trip_detail_query(
            self.queries, self.trip_api, trip_id, TripDetailParams(include="shape")
        )
        schedule_list.mount()
        shape.mount()
        try:
            schedule_state, shape_state = await asyncio.gather(
                schedule_list.wait(), shape.wait()
            )
        finally:
            schedule_list.unmount()
            shape.unmount()
        return build_vehicle_detail_view(
            state.data,
            schedules=schedule_state.data,
            trip_with_shape=shape_state.data,
            updating=detail_query.state.is_fetching,
        )

    # -- filter options ----------------------------------------------------

    async def _load_pages(self, query: InfiniteQuery, max_pages: int) -> list:
        query.mount()
        try:
            await query.wait()
            while query.has_next_page and len(query.pages) < max_pages:
                task = query.fetch_next_page()
                if task is None:
                    break
                await task
        finally:
            query.unmount()
        return query.items

    async def route_options(
        self, route_types: Iterable[int], max_pages: int = 1
    ) -> list[Route]:
        """Routes of the chosen types; choosing types clears routes and trips."""
        self.filter.select_route_types(route_types)
        query = routes_infinite_query(
            self.queries,
            self.route_api,
            page_size=self.config.routes_page_size,
            params=self.filter.route_params(),
            enabled=self.filter.routes_enabled,
        )
        if not query.enabled:
            return []
        return await self._load_pages(query, max_pages)

    async def trip_options(
        self, route_ids: Iterable[str], active_only: bool = False, max_pages: int = 1
    ) -> list[Trip]:
        """
        Trips of the chosen routes. ``active_only`` lists only trips that
        currently have a vehicle.
        """
        self.filter.select_routes(route_ids)
        if not self.filter.trips_enabled:
            return []
        if active_only:
            query = trips_from_vehicles_query(
                self.queries, self.vehicle_api, self.filter.route_ids,
                poll_interval=self.config.poll_interval,
            )
            query.mount()
            try:
                await query.wait()
            finally:
                query.unmount()
            return query.trips
        infinite = trips_infinite_query(
            self.queries,
            self.trip_api,
            page_size=self.config.trips_page_size,
            params=self.filter.trip_params(),
            enabled=self.filter.trips_enabled,
        )
        return await self._load_pages(infinite, max_pages)
