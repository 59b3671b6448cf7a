"""
Pydantic models for the MBTA v3 JSON:API resources the dashboard reads.

Only the shapes are mirrored here; the upstream owns the data. Unknown keys
are ignored so new upstream attributes do not break parsing.
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Any, ClassVar, Generic, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field


class VehicleCurrentStatus(str, Enum):
    IN_TRANSIT_TO = "IN_TRANSIT_TO"
    STOPPED_AT = "STOPPED_AT"
    INCOMING_AT = "INCOMING_AT"


class VehicleOccupancyStatus(str, Enum):
    EMPTY = "EMPTY"
    MANY_SEATS_AVAILABLE = "MANY_SEATS_AVAILABLE"
    FEW_SEATS_AVAILABLE = "FEW_SEATS_AVAILABLE"
    STANDING_ROOM_ONLY = "STANDING_ROOM_ONLY"
    CRUSHED_STANDING_ROOM_ONLY = "CRUSHED_STANDING_ROOM_ONLY"
    FULL = "FULL"
    NOT_ACCEPTING_PASSENGERS = "NOT_ACCEPTING_PASSENGERS"
    NO_DATA_AVAILABLE = "NO_DATA_AVAILABLE"
    NOT_BOARDABLE = "NOT_BOARDABLE"
    UNKNOWN = "UNKNOWN"


class RouteType(IntEnum):
    """GTFS route_type values served by the MBTA."""

    LIGHT_RAIL = 0
    HEAVY_RAIL = 1
    COMMUTER_RAIL = 2
    BUS = 3
    FERRY = 4


class _Model(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ResourceIdentifier(_Model):
    id: str
    type: str


class Relationship(_Model):
    data: Optional[Union[ResourceIdentifier, list[ResourceIdentifier]]] = None


class Resource(_Model):
    """Common JSON:API resource envelope."""

    resource_type: ClassVar[str] = ""

    id: str
    type: str
    links: Optional[dict[str, Any]] = None
    relationships: dict[str, Relationship] = Field(default_factory=dict)

    def related_id(self, name: str) -> Optional[str]:
        """Id of a to-one relationship, or None when absent or null."""
        rel = self.relationships.get(name)
        if rel is None or not isinstance(rel.data, ResourceIdentifier):
            return None
        return rel.data.id


class IncludedResource(Resource):
    """A side-loaded resource whose type is not known in advance."""

    attributes: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


class Carriage(_Model):
    label: Optional[str] = None
    occupancy_status: Optional[str] = None
    occupancy_percentage: Optional[int] = None


class VehicleAttributes(_Model):
    label: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    bearing: Optional[float] = None
    speed: Optional[float] = None
    current_status: Optional[VehicleCurrentStatus] = None
    occupancy_status: Optional[VehicleOccupancyStatus] = None
    current_stop_sequence: Optional[int] = None
    direction_id: Optional[int] = None
    revenue: Optional[str] = None
    carriages: list[Carriage] = Field(default_factory=list)
    updated_at: Optional[str] = None


class Vehicle(Resource):
    resource_type: ClassVar[str] = "vehicle"

    attributes: VehicleAttributes


class RouteAttributes(_Model):
    short_name: Optional[str] = None
    long_name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    text_color: Optional[str] = None
    type: Optional[RouteType] = None
    direction_names: list[Optional[str]] = Field(default_factory=list)
    direction_destinations: list[Optional[str]] = Field(default_factory=list)
    fare_class: Optional[str] = None
    listed_route: Optional[bool] = None
    sort_order: Optional[int] = None


class Route(Resource):
    resource_type: ClassVar[str] = "route"

    attributes: RouteAttributes


class TripAttributes(_Model):
    headsign: Optional[str] = None
    name: Optional[str] = None
    direction_id: Optional[int] = None
    block_id: Optional[str] = None
    wheelchair_accessible: Optional[int] = None
    bikes_allowed: Optional[int] = None


class Trip(Resource):
    resource_type: ClassVar[str] = "trip"

    attributes: TripAttributes


class StopAttributes(_Model):
    name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    municipality: Optional[str] = None
    address: Optional[str] = None
    description: Optional[str] = None
    at_street: Optional[str] = None
    on_street: Optional[str] = None
    platform_code: Optional[str] = None
    platform_name: Optional[str] = None
    location_type: Optional[int] = None
    vehicle_type: Optional[int] = None
    wheelchair_boarding: Optional[int] = None


class Stop(Resource):
    resource_type: ClassVar[str] = "stop"

    attributes: StopAttributes


class ScheduleAttributes(_Model):
    arrival_time: Optional[str] = None
    departure_time: Optional[str] = None
    stop_sequence: Optional[int] = None
    stop_headsign: Optional[str] = None
    direction_id: Optional[int] = None
    pickup_type: Optional[int] = None
    drop_off_type: Optional[int] = None
    timepoint: Optional[bool] = None


class Schedule(Resource):
    resource_type: ClassVar[str] = "schedule"

    attributes: ScheduleAttributes


class ShapeAttributes(_Model):
    polyline: Optional[str] = None


class Shape(Resource):
    resource_type: ClassVar[str] = "shape"

    attributes: ShapeAttributes


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class PaginationLinks(_Model):
    first: Optional[str] = None
    last: Optional[str] = None
    next: Optional[str] = None
    prev: Optional[str] = None


T = TypeVar("T", bound=Resource)
R = TypeVar("R", bound=Resource)


class _Envelope(_Model):
    included: list[IncludedResource] = Field(default_factory=list)

    def included_of(self, model: type[R]) -> list[R]:
        """Side-loaded resources of ``model``'s type, parsed into ``model``."""
        return [
            model.model_validate(item.model_dump())
            for item in self.included
            if item.type == model.resource_type
        ]

    def find_included(self, model: type[R], resource_id: Optional[str]) -> Optional[R]:
        if resource_id is None:
            return None
        for item in self.included:
            if item.type == model.resource_type and item.id == resource_id:
                return model.model_validate(item.model_dump())
        return None


class ListResponse(_Envelope, Generic[T]):
    """Response for a list endpoint (``GET /vehicles`` etc.)."""

    data: list[T] = Field(default_factory=list)
    links: Optional[PaginationLinks] = None


class DetailResponse(_Envelope, Generic[T]):
    """Response for a single-resource endpoint (``GET /trips/{id}`` etc.)."""

    data: T
    links: Optional[dict[str, Any]] = None
