"""Tests for the cascading vehicle filter and vehicle list state."""

from unittest.mock import MagicMock

import pytest

from fleet_monitor.filters import AppliedFilters, VehicleFilter, VehicleListState
from fleet_monitor.models import RouteType
from fleet_monitor.pagination import PageState


class TestVehicleFilter:
    def test_choosing_types_clears_routes_and_trips(self):
        f = VehicleFilter()
        f.select_route_types([0])
        f.select_routes(["Green-B"])
        f.select_trips(["t1"])
        f.select_route_types([0, 1])
        assert f.route_types == [RouteType.LIGHT_RAIL, RouteType.HEAVY_RAIL]
        assert f.route_ids == []
        assert f.trip_ids == []

    def test_choosing_routes_clears_trips(self):
        f = VehicleFilter()
        f.select_routes(["Red"])
        f.select_trips(["t1", "t2"])
        f.select_routes(["Red", "Orange"])
        assert f.route_ids == ["Red", "Orange"]
        assert f.trip_ids == []

    def test_selections_deduplicated(self):
        f = VehicleFilter()
        f.select_route_types([3, 3, 1])
        f.select_routes(["Red", "Red"])
        assert f.route_types == [RouteType.BUS, RouteType.HEAVY_RAIL]
        assert f.route_ids == ["Red"]

    def test_unknown_route_type_rejected(self):
        with pytest.raises(ValueError):
            VehicleFilter().select_route_types([9])

    def test_enabled_flags(self):
        f = VehicleFilter()
        assert not f.routes_enabled
        assert not f.trips_enabled
        f.select_route_types([1])
        assert f.routes_enabled
        assert not f.trips_enabled
        f.select_routes(["Red"])
        assert f.trips_enabled

    def test_route_params(self):
        f = VehicleFilter()
        assert f.route_params().filter_type is None
        f.select_route_types([0, 1])
        assert f.route_params().filter_type == "0,1"

    def test_trip_params(self):
        f = VehicleFilter()
        f.select_routes(["Red", "Orange"])
        assert f.trip_params().filter_route == "Red,Orange"

    def test_nothing_applied_until_apply(self):
        on_apply = MagicMock()
        f = VehicleFilter(on_apply=on_apply)
        f.select_routes(["Red"])
        f.select_trips(["t1"])
        on_apply.assert_not_called()
        applied = f.apply()
        assert applied == AppliedFilters(("Red",), ("t1",))
        on_apply.assert_called_once_with(applied)

    def test_reset(self):
        on_reset = MagicMock()
        f = VehicleFilter(on_reset=on_reset)
        f.select_route_types([1])
        f.select_routes(["Red"])
        f.reset()
        assert f.route_types == []
        assert f.route_ids == []
        assert f.trip_ids == []
        on_reset.assert_called_once_with()


class TestVehicleListState:
    def test_default_params(self):
        state = VehicleListState()
        params = state.params()
        assert params.limit == 12
        assert params.offset == 0
        assert params.include == "route"
        assert params.filter_route is None
        assert params.filter_trip is None

    def test_params_follow_page(self):
        state = VehicleListState(page=PageState(3, 24))
        params = state.params()
        assert params.limit == 24
        assert params.offset == 72

    def test_applying_filters_returns_to_first_page(self):
        state = VehicleListState(page=PageState(5, 12))
        state.apply_filters(AppliedFilters(("Red", "Orange"), ("t1",)))
        params = state.params()
        assert state.page.current_page == 0
        assert params.filter_route == "Red,Orange"
        assert params.filter_trip == "t1"

    def test_route_filter_change_clears_trips(self):
        state = VehicleListState()
        state.apply_filters(AppliedFilters(("Red",), ("t1",)))
        state.page.go_to(2)
        state.set_route_filter(["Blue"])
        assert state.filters == AppliedFilters(("Blue",), ())
        assert state.page.current_page == 0

    def test_clear_filters(self):
        state = VehicleListState()
        state.apply_filters(AppliedFilters(("Red",), ()))
        state.page.go_to(1)
        state.clear_filters()
        assert state.filters.is_empty
        assert state.page.current_page == 0

    def test_filter_wired_to_list_state(self):
        state = VehicleListState(page=PageState(4, 12))
        f = VehicleFilter(on_apply=state.apply_filters, on_reset=state.clear_filters)
        f.select_routes(["Red"])
        f.apply()
        assert state.params().filter_route == "Red"
        assert state.page.current_page == 0
        state.page.go_to(3)
        f.reset()
        assert state.params().filter_route is None
        assert state.page.current_page == 0
