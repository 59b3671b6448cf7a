"""Vehicle queries: the polled list, detail by id, and trips of active vehicles."""

from __future__ import annotations

from typing import Optional, Sequence

from fleet_monitor.endpoints.common import join_ids
from fleet_monitor.endpoints.vehicles import (
    VehicleApi,
    VehicleDetailParams,
    VehicleListParams,
    vehicle_keys,
)
from fleet_monitor.models import ListResponse, Trip, Vehicle
from fleet_monitor.query import Query, QueryClient

VEHICLE_POLL_INTERVAL = 30.0
VEHICLES_FOR_TRIPS_LIMIT = 200


def vehicles_query(
    client: QueryClient,
    api: VehicleApi,
    params: Optional[VehicleListParams] = None,
    poll_interval: float = VEHICLE_POLL_INTERVAL,
) -> Query:
    """Vehicle list, re-polled while mounted since positions are live."""
    return Query(
        client,
        vehicle_keys.list(params),
        lambda: api.get_all(params),
        refetch_interval=poll_interval,
    )


def vehicle_detail_query(
    client: QueryClient,
    api: VehicleApi,
    vehicle_id: str,
    params: Optional[VehicleDetailParams] = None,
) -> Query:
    return Query(
        client,
        vehicle_keys.get_by_id(vehicle_id, params),
        lambda: api.get_by_id(vehicle_id, params),
        enabled=bool(vehicle_id),
    )


def trips_of_vehicles(response: Optional[ListResponse[Vehicle]]) -> list[Trip]:
    """
    Trips referenced by a vehicle list, resolved from its ``included`` block.

    Trip ids keep the order of the vehicles that reference them, each listed
    once; ids missing from ``included`` are dropped.
    """
    if response is None:
        return []
    trip_ids: list[str] = []
    for vehicle in response.data:
        trip_id = vehicle.related_id("trip")
        if trip_id and trip_id not in trip_ids:
            trip_ids.append(trip_id)
    trip_by_id = {trip.id: trip for trip in response.included_of(Trip)}
    return [trip_by_id[trip_id] for trip_id in trip_ids if trip_id in trip_by_id]


class TripsFromVehiclesQuery(Query):
    """Trips that currently have a vehicle on one of the given routes."""

    @property
    def trips(self) -> list[Trip]:
        return trips_of_vehicles(self.data)


def trips_from_vehicles_query(
    client: QueryClient,
    api: VehicleApi,
    route_ids: Optional[Sequence[str]],
    poll_interval: float = VEHICLE_POLL_INTERVAL,
) -> TripsFromVehiclesQuery:
    filter_route = join_ids(route_ids)
    params = VehicleListParams(
        filter_route=filter_route,
        include="trip",
        limit=VEHICLES_FOR_TRIPS_LIMIT,
    )
    return TripsFromVehiclesQuery(
        client,
        (*vehicle_keys.all, "trips-from-vehicles", filter_route),
        lambda: api.get_all(params),
        enabled=filter_route is not None,
        refetch_interval=poll_interval,
    )
