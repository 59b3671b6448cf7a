"""
View models for the dashboard: vehicle cards, the paginated vehicle list,
and the vehicle detail panel with its map.

No I/O. Takes parsed API responses and query states, returns pydantic
models a renderer can print or serialize.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from fleet_monitor.models import (
    DetailResponse,
    ListResponse,
    Route,
    RouteType,
    Schedule,
    Shape,
    Stop,
    Trip,
    Vehicle,
    VehicleCurrentStatus,
    VehicleOccupancyStatus,
)
from fleet_monitor.pagination import PageState, PaginationSummary, summarize
from fleet_monitor.polyline import decode_polyline
from fleet_monitor.query import QueryState

logger = logging.getLogger(__name__)

PLACEHOLDER = "—"
DEFAULT_ROUTE_COLOR = "000000"
DEFAULT_MAP_ZOOM = 13

STATUS_LABELS = {
    VehicleCurrentStatus.IN_TRANSIT_TO: "In Transit",
    VehicleCurrentStatus.STOPPED_AT: "Stopped",
    VehicleCurrentStatus.INCOMING_AT: "At Terminal",
}

OCCUPANCY_LABELS = {
    VehicleOccupancyStatus.EMPTY: "Empty",
    VehicleOccupancyStatus.MANY_SEATS_AVAILABLE: "Many seats available",
    VehicleOccupancyStatus.FEW_SEATS_AVAILABLE: "Few seats available",
    VehicleOccupancyStatus.STANDING_ROOM_ONLY: "Standing room only",
    VehicleOccupancyStatus.CRUSHED_STANDING_ROOM_ONLY: "Crushed standing room only",
    VehicleOccupancyStatus.FULL: "Full",
    VehicleOccupancyStatus.NOT_ACCEPTING_PASSENGERS: "Not accepting passengers",
    VehicleOccupancyStatus.NO_DATA_AVAILABLE: "No data available",
    VehicleOccupancyStatus.NOT_BOARDABLE: "Not boardable",
    VehicleOccupancyStatus.UNKNOWN: "Unknown",
}

# Filled person icons on a card, 0-3
OCCUPANCY_LEVELS = {
    VehicleOccupancyStatus.EMPTY: 1,
    VehicleOccupancyStatus.MANY_SEATS_AVAILABLE: 1,
    VehicleOccupancyStatus.FEW_SEATS_AVAILABLE: 2,
    VehicleOccupancyStatus.STANDING_ROOM_ONLY: 2,
    VehicleOccupancyStatus.CRUSHED_STANDING_ROOM_ONLY: 3,
    VehicleOccupancyStatus.FULL: 3,
}

ROUTE_TYPE_LABELS = {
    RouteType.LIGHT_RAIL: "Light Rail",
    RouteType.HEAVY_RAIL: "Heavy Rail",
    RouteType.COMMUTER_RAIL: "Commuter Rail",
    RouteType.BUS: "Bus",
    RouteType.FERRY: "Ferry",
}

COMPASS_POINTS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def status_label(status: Optional[VehicleCurrentStatus]) -> str:
    return STATUS_LABELS.get(status, "Unknown")


def occupancy_label(status: Optional[VehicleOccupancyStatus]) -> str:
    if status is None:
        return PLACEHOLDER
    return OCCUPANCY_LABELS.get(status, PLACEHOLDER)


def occupancy_level(status: Optional[VehicleOccupancyStatus]) -> int:
    return OCCUPANCY_LEVELS.get(status, 0)


def route_type_label(route_type: Optional[int]) -> str:
    if route_type is None:
        return PLACEHOLDER
    try:
        return ROUTE_TYPE_LABELS[RouteType(route_type)]
    except ValueError:
        return PLACEHOLDER


def parse_timestamp(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    try:
        ts = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def relative_updated(updated_at: Optional[str], now: datetime) -> Optional[str]:
    """'Just now', 'N minutes ago', 'N hours ago' or 'N days ago'."""
    ts = parse_timestamp(updated_at)
    if ts is None:
        return None
    seconds = math.floor((now - ts).total_seconds())
    if seconds < 60:
        return "Just now"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes} minutes ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hours ago"
    return f"{hours // 24} days ago"


def clock_time(updated_at: Optional[str]) -> str:
    """HH:MM of a timestamp in its own offset."""
    ts = parse_timestamp(updated_at)
    if ts is None:
        return PLACEHOLDER
    return ts.strftime("%H:%M")


def speed_kmh(speed: Optional[float]) -> Optional[int]:
    """m/s to whole km/h."""
    if speed is None:
        return None
    return round(speed * 3.6)


def bearing_to_direction(bearing: Optional[float]) -> str:
    if bearing is None:
        return PLACEHOLDER
    index = round((bearing % 360) / 45) % len(COMPASS_POINTS)
    return COMPASS_POINTS[index]


def direction_label(route: Optional[Route], direction_id: Optional[int]) -> Optional[str]:
    if route is None or direction_id is None:
        return None
    names = route.attributes.direction_names
    if 0 <= direction_id < len(names):
        return names[direction_id]
    return None


# ---------------------------------------------------------------------------
# Vehicle list
# ---------------------------------------------------------------------------


class RouteBadge(BaseModel):
    text: str
    color: str = DEFAULT_ROUTE_COLOR
    text_color: Optional[str] = None
    long_name: Optional[str] = None


class VehicleCard(BaseModel):
    id: str
    label: Optional[str] = None
    status: Optional[VehicleCurrentStatus] = None
    status_label: str
    route: Optional[RouteBadge] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    occupancy_level: int = 0
    occupancy_label: str = PLACEHOLDER
    updated: Optional[str] = None


def route_badge(route_id: Optional[str], route: Optional[Route]) -> Optional[RouteBadge]:
    if not route_id:
        return None
    if route is None:
        return RouteBadge(text=route_id)
    attrs = route.attributes
    return RouteBadge(
        text=attrs.short_name or route_id,
        color=attrs.color or DEFAULT_ROUTE_COLOR,
        text_color=attrs.text_color or None,
        long_name=attrs.long_name or None,
    )


def build_vehicle_card(
    vehicle: Vehicle, route: Optional[Route], now: datetime
) -> VehicleCard:
    attrs = vehicle.attributes
    return VehicleCard(
        id=vehicle.id,
        label=attrs.label,
        status=attrs.current_status,
        status_label=status_label(attrs.current_status),
        route=route_badge(vehicle.related_id("route"), route),
        latitude=attrs.latitude,
        longitude=attrs.longitude,
        occupancy_level=occupancy_level(attrs.occupancy_status),
        occupancy_label=occupancy_label(attrs.occupancy_status),
        updated=relative_updated(attrs.updated_at, now),
    )


class VehicleListView(BaseModel):
    """
    One page of vehicle cards.

    ``loading`` is the first load (render placeholders); ``updating`` is a
    background refresh of cards already shown (keep them, show an indicator).
    """

    cards: list[VehicleCard] = Field(default_factory=list)
    pagination: Optional[PaginationSummary] = None
    loading: bool = False
    updating: bool = False
    error: Optional[str] = None


def build_vehicle_list_view(
    state: QueryState, page: PageState, now: Optional[datetime] = None
) -> VehicleListView:
    now = now or datetime.now(timezone.utc)
    error = str(state.error) if state.error is not None else None
    response: Optional[ListResponse[Vehicle]] = state.data
    if response is None:
        return VehicleListView(loading=state.is_loading, error=error)

    routes = {route.id: route for route in response.included_of(Route)}
    cards = [
        build_vehicle_card(vehicle, routes.get(vehicle.related_id("route")), now)
        for vehicle in response.data
    ]
    return VehicleListView(
        cards=cards,
        pagination=summarize(page, len(response.data), response.links),
        loading=False,
        updating=state.is_fetching,
        error=error,
    )


# ---------------------------------------------------------------------------
# Vehicle detail
# ---------------------------------------------------------------------------


class MapMarker(BaseModel):
    id: str
    position: tuple[float, float]
    popup: Optional[str] = None


class MapView(BaseModel):
    center: Optional[tuple[float, float]] = None
    zoom: int = DEFAULT_MAP_ZOOM
    markers: list[MapMarker] = Field(default_factory=list)
    shape: list[tuple[float, float]] = Field(default_factory=list)
    schedule_stops: list[tuple[float, float]] = Field(default_factory=list)


class VehicleInfo(BaseModel):
    id: str
    label: Optional[str] = None
    status_label: str
    occupancy: str
    revenue: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    speed: str
    bearing: str
    stop_sequence: Optional[int] = None
    direction: Optional[str] = None
    last_updated: str


class RouteInfo(BaseModel):
    id: str
    badge: RouteBadge
    type_label: str
    description: Optional[str] = None
    fare_class: Optional[str] = None
    destinations: str


class TripInfo(BaseModel):
    id: str
    headsign: Optional[str] = None
    name: Optional[str] = None
    block_id: Optional[str] = None
    direction_id: Optional[int] = None


class StopInfo(BaseModel):
    id: str
    name: Optional[str] = None
    municipality: Optional[str] = None
    platform: Optional[str] = None
    wheelchair_boarding: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class VehicleDetailView(BaseModel):
    vehicle: VehicleInfo
    route: Optional[RouteInfo] = None
    trip: Optional[TripInfo] = None
    stop: Optional[StopInfo] = None
    map: MapView
    updating: bool = False


def _position(lat: Optional[float], lon: Optional[float]) -> Optional[tuple[float, float]]:
    if lat is None or lon is None:
        return None
    return (lat, lon)


def schedule_stop_coordinates(
    schedules: Optional[ListResponse[Schedule]], exclude_stop_id: Optional[str] = None
) -> list[tuple[float, float]]:
    """
    Coordinates of a trip's scheduled stops in stop_sequence order.

    The vehicle's current stop is skipped so its own marker stays on top.
    Stops missing from ``included`` or without coordinates are dropped.
    """
    if schedules is None:
        return []
    stops = {stop.id: stop for stop in schedules.included_of(Stop)}
    ordered = sorted(schedules.data, key=lambda s: s.attributes.stop_sequence or 0)
    coords = []
    for schedule in ordered:
        stop_id = schedule.related_id("stop")
        if not stop_id or stop_id == exclude_stop_id:
            continue
        stop = stops.get(stop_id)
        if stop is None:
            continue
        position = _position(stop.attributes.latitude, stop.attributes.longitude)
        if position is not None:
            coords.append(position)
    return coords


def shape_coordinates(trip_detail: Optional[DetailResponse[Trip]]) -> list[tuple[float, float]]:
    if trip_detail is None:
        return []
    shapes = trip_detail.included_of(Shape)
    if not shapes:
        return []
    try:
        return decode_polyline(shapes[0].attributes.polyline)
    except ValueError as exc:
        logger.warning(
            "Dropping shape %s for trip %s: %s", shapes[0].id, trip_detail.data.id, exc
        )
        return []


def build_vehicle_detail_view(
    detail: DetailResponse[Vehicle],
    schedules: Optional[ListResponse[Schedule]] = None,
    trip_with_shape: Optional[DetailResponse[Trip]] = None,
    updating: bool = False,
) -> VehicleDetailView:
    vehicle = detail.data
    attrs = vehicle.attributes
    route = detail.find_included(Route, vehicle.related_id("route"))
    trip = detail.find_included(Trip, vehicle.related_id("trip"))
    stop_id = vehicle.related_id("stop")
    stop = detail.find_included(Stop, stop_id)

    direction_id = attrs.direction_id
    if direction_id is None and trip is not None:
        direction_id = trip.attributes.direction_id
    direction = direction_label(route, direction_id)
    if direction is None and direction_id is not None:
        direction = str(direction_id)

    kmh = speed_kmh(attrs.speed)
    info = VehicleInfo(
        id=vehicle.id,
        label=attrs.label,
        status_label=status_label(attrs.current_status),
        occupancy=occupancy_label(attrs.occupancy_status),
        revenue=attrs.revenue,
        latitude=attrs.latitude,
        longitude=attrs.longitude,
        speed=f"{kmh} km/h" if kmh is not None else PLACEHOLDER,
        bearing=bearing_to_direction(attrs.bearing),
        stop_sequence=attrs.current_stop_sequence,
        direction=direction,
        last_updated=clock_time(attrs.updated_at),
    )

    route_info = None
    if route is not None:
        destinations = [d for d in route.attributes.direction_destinations if d]
        route_info = RouteInfo(
            id=route.id,
            badge=route_badge(route.id, route),
            type_label=route_type_label(route.attributes.type),
            description=route.attributes.description,
            fare_class=route.attributes.fare_class,
            destinations=" ↔ ".join(destinations) if destinations else PLACEHOLDER,
        )

    trip_info = None
    if trip is not None:
        trip_info = TripInfo(
            id=trip.id,
            headsign=trip.attributes.headsign,
            name=trip.attributes.name,
            block_id=trip.attributes.block_id,
            direction_id=trip.attributes.direction_id,
        )

    stop_info = None
    stop_position = None
    if stop is not None:
        stop_position = _position(stop.attributes.latitude, stop.attributes.longitude)
        stop_info = StopInfo(
            id=stop.id,
            name=stop.attributes.name,
            municipality=stop.attributes.municipality,
            platform=stop.attributes.platform_name or stop.attributes.platform_code,
            wheelchair_boarding=stop.attributes.wheelchair_boarding,
            latitude=stop.attributes.latitude,
            longitude=stop.attributes.longitude,
        )

    vehicle_position = _position(attrs.latitude, attrs.longitude)
    shape = shape_coordinates(trip_with_shape)
    schedule_stops = schedule_stop_coordinates(schedules, exclude_stop_id=stop_id)

    markers = []
    if vehicle_position is not None:
        popup = f"Vehicle: {attrs.label}" if attrs.label else "Vehicle"
        markers.append(MapMarker(id="vehicle", position=vehicle_position, popup=popup))
    if stop_position is not None:
        markers.append(
            MapMarker(id="stop", position=stop_position, popup=stop.attributes.name)
        )

    center = (
        vehicle_position
        or stop_position
        or (shape[0] if shape else None)
        or (schedule_stops[0] if schedule_stops else None)
    )

    return VehicleDetailView(
        vehicle=info,
        route=route_info,
        trip=trip_info,
        stop=stop_info,
        map=MapView(
            center=center,
            markers=markers,
            shape=shape,
            schedule_stops=schedule_stops,
        ),
        updating=updating,
    )
