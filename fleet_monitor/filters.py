"""
Vehicle filter state: cascading type -> route -> trip selection, and the
vehicle list state the applied filters feed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from fleet_monitor.endpoints.common import join_ids
from fleet_monitor.endpoints.routes import RouteListParams
from fleet_monitor.endpoints.trips import TripListParams
from fleet_monitor.endpoints.vehicles import VehicleListParams
from fleet_monitor.models import RouteType
from fleet_monitor.pagination import LIMIT_OPTIONS, PageState


@dataclass(frozen=True)
class AppliedFilters:
    route_ids: tuple[str, ...] = ()
    trip_ids: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.route_ids and not self.trip_ids


def _unique(values: Iterable) -> list:
    seen: list = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


class VehicleFilter:
    """
    Three cascading selections: route type, then route, then trip.

    Changing a level clears every level below it. Nothing reaches the list
    until apply(); reset() clears everything and tells the list to drop its
    filters.
    """

    def __init__(
        self,
        on_apply: Optional[Callable[[AppliedFilters], None]] = None,
        on_reset: Optional[Callable[[], None]] = None,
    ) -> None:
        self._on_apply = on_apply
        self._on_reset = on_reset
        self.route_types: list[RouteType] = []
        self.route_ids: list[str] = []
        self.trip_ids: list[str] = []

    def select_route_types(self, route_types: Iterable[int]) -> None:
        self.route_types = _unique(RouteType(t) for t in route_types)
        self.route_ids = []
        self.trip_ids = []

    def select_routes(self, route_ids: Iterable[str]) -> None:
        self.route_ids = _unique(route_ids)
        self.trip_ids = []

    def select_trips(self, trip_ids: Iterable[str]) -> None:
        self.trip_ids = _unique(trip_ids)

    @property
    def routes_enabled(self) -> bool:
        return bool(self.route_types)

    @property
    def trips_enabled(self) -> bool:
        return bool(self.route_ids)

    def route_params(self) -> RouteListParams:
        """Server-side route filter for the chosen types."""
        return RouteListParams(
            filter_type=join_ids([str(int(t)) for t in self.route_types])
        )

    def trip_params(self) -> TripListParams:
        return TripListParams(filter_route=join_ids(self.route_ids))

    def apply(self) -> AppliedFilters:
        applied = AppliedFilters(tuple(self.route_ids), tuple(self.trip_ids))
        if self._on_apply is not None:
            self._on_apply(applied)
        return applied

    def reset(self) -> None:
        self.route_types = []
        self.route_ids = []
        self.trip_ids = []
        if self._on_reset is not None:
            self._on_reset()


@dataclass
class VehicleListState:
    """Page and applied filters of the vehicle list. Any filter change returns to page 0."""

    page: PageState = field(default_factory=lambda: PageState(0, LIMIT_OPTIONS[0]))
    filters: AppliedFilters = field(default_factory=AppliedFilters)

    def apply_filters(self, filters: AppliedFilters) -> None:
        self.filters = filters
        self.page.reset()

    def set_route_filter(self, route_ids: Iterable[str]) -> None:
        self.filters = AppliedFilters(tuple(_unique(route_ids)), ())
        self.page.reset()

    def clear_filters(self) -> None:
        self.filters = AppliedFilters()
        self.page.reset()

    def params(self, include: Optional[str] = "route") -> VehicleListParams:
        return VehicleListParams(
            limit=self.page.limit_per_page,
            offset=self.page.offset,
            include=include,
            filter_route=join_ids(self.filters.route_ids),
            filter_trip=join_ids(self.filters.trip_ids),
        )
