#!/usr/bin/env python3
"""Command-line dashboard for fleet-monitor.

Usage:
    # Run the MBTA proxy
    fleet-monitor serve --port 8000

    # One page of vehicle cards (through the proxy)
    fleet-monitor vehicles --limit 24 --page 2 --route Red,Orange

    # Keep polling and re-render on every refresh
    fleet-monitor vehicles --watch

    # Vehicle detail with map data
    fleet-monitor vehicle y1234

    # Filter options
    fleet-monitor routes --type 0 1
    fleet-monitor trips --route Red --active
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Optional

import uvicorn

from fleet_monitor.api_client import ApiError
from fleet_monitor.config import AppConfig, configure_logging, load_config
from fleet_monitor.dashboard import Dashboard
from fleet_monitor.pagination import ELLIPSIS, LIMIT_OPTIONS
from fleet_monitor.presenters import (
    PLACEHOLDER,
    VehicleDetailView,
    VehicleListView,
)
from fleet_monitor.query import QueryState


def _split_ids(values: Optional[list[str]]) -> list[str]:
    ids: list[str] = []
    for value in values or []:
        ids.extend(part for part in value.split(",") if part)
    return ids


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def render_vehicle_list(view: VehicleListView) -> str:
    if view.loading:
        return "Loading vehicles..."
    lines = []
    if view.error:
        lines.append(f"! {view.error}")
    if view.updating:
        lines.append("(updating...)")
    for card in view.cards:
        route = PLACEHOLDER
        if card.route is not None:
            route = card.route.text
            if card.route.long_name:
                route = f"{route} {card.route.long_name}"
        occupancy = "#" * card.occupancy_level + "." * (3 - card.occupancy_level)
        position = PLACEHOLDER
        if card.latitude is not None and card.longitude is not None:
            position = f"{card.latitude:.5f}, {card.longitude:.5f}"
        lines.append(
            f"{card.label or card.id:<10} [{card.status_label.upper()}] {route}"
            f"  @ {position}  occ {occupancy}  {card.updated or PLACEHOLDER}"
        )
    if not view.cards and not view.error:
        lines.append("No vehicles.")

    page = view.pagination
    if page is not None:
        if page.total_items is not None:
            lines.append(
                f"Showing {page.start_item} - {page.end_item} of {page.total_items}"
            )
        else:
            lines.append(f"Showing {page.start_item} - {page.end_item}")
        if page.page_numbers:
            numbers = [
                "..." if n == ELLIPSIS else (f"[{n + 1}]" if n == page.current_page else str(n + 1))
                for n in page.page_numbers
            ]
            lines.append(
                ("< " if page.has_prev_page else "  ")
                + " ".join(numbers)
                + (" >" if page.has_next_page else "")
            )
    return "\n".join(lines)


def render_vehicle_detail(view: VehicleDetailView) -> str:
    v = view.vehicle
    lines = [
        f"{v.label or v.id} [{v.status_label.upper()}]"
        + ("  (updating...)" if view.updating else ""),
        f"  Vehicle ID:    {v.id}",
        f"  Occupancy:     {v.occupancy}",
        f"  Revenue:       {v.revenue or PLACEHOLDER}",
        f"  Position:      {v.latitude}, {v.longitude}",
        f"  Speed:         {v.speed}",
        f"  Bearing:       {v.bearing}",
        f"  Stop sequence: {v.stop_sequence if v.stop_sequence is not None else PLACEHOLDER}",
        f"  Direction:     {v.direction or PLACEHOLDER}",
        f"  Last updated:  {v.last_updated}",
    ]
    if view.route is not None:
        r = view.route
        lines += [
            f"Route {r.badge.text} {r.badge.long_name or ''}".rstrip(),
            f"  Type:          {r.type_label}",
            f"  Description:   {r.description or PLACEHOLDER}",
            f"  Fare class:    {r.fare_class or PLACEHOLDER}",
            f"  Destinations:  {r.destinations}",
        ]
    if view.trip is not None:
        t = view.trip
        lines += [
            f"Trip {t.id}",
            f"  Headsign:      {t.headsign or PLACEHOLDER}",
            f"  Block:         {t.block_id or PLACEHOLDER}",
        ]
    if view.stop is not None:
        s = view.stop
        lines += [
            f"Stop {s.id}",
            f"  Name:          {s.name or PLACEHOLDER}",
            f"  Municipality:  {s.municipality or PLACEHOLDER}",
            f"  Platform:      {s.platform or PLACEHOLDER}",
        ]
    m = view.map
    lines.append(
        f"Map: center {m.center}, zoom {m.zoom}, {len(m.markers)} markers, "
        f"{len(m.shape)} shape points, {len(m.schedule_stops)} scheduled stops"
    )
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_serve(args: argparse.Namespace, config: AppConfig) -> int:
    from fleet_monitor.app import create_app

    uvicorn.run(create_app(config), host=args.host, port=args.port, log_level=config.log_level)
    return 0


async def cmd_vehicles(args: argparse.Namespace, config: AppConfig) -> int:
    async with Dashboard.open(config) as dashboard:
        if args.limit is not None:
            dashboard.list_state.page.set_limit(args.limit)
        dashboard.filter.select_routes(_split_ids(args.route))
        dashboard.filter.select_trips(_split_ids(args.trip))
        dashboard.filter.apply()
        dashboard.list_state.page.go_to(args.page)

        if not args.watch:
            view = await dashboard.load_vehicle_list()
            print(render_vehicle_list(view))
            return 1 if view.error and not view.cards else 0

        query = dashboard.vehicle_list_query()

        def on_change(state: QueryState) -> None:
            if not state.is_fetching:
                print(render_vehicle_list(dashboard.vehicle_list_view(query)))
                print()

        query.subscribe(on_change)
        async with query:
            await asyncio.Event().wait()
    return 0


async def cmd_vehicle(args: argparse.Namespace, config: AppConfig) -> int:
    async with Dashboard.open(config) as dashboard:
        view = await dashboard.load_vehicle_detail(args.vehicle_id)
    if view is None:
        print(f"Vehicle {args.vehicle_id} could not be loaded", file=sys.stderr)
        return 1
    if args.json:
        print(json.dumps(view.model_dump(mode="json"), indent=2, ensure_ascii=False))
    else:
        print(render_vehicle_detail(view))
    return 0


async def cmd_routes(args: argparse.Namespace, config: AppConfig) -> int:
    async with Dashboard.open(config) as dashboard:
        routes = await dashboard.route_options(args.type, max_pages=args.pages)
    for route in routes:
        print(f"{route.id:<12} {route.attributes.short_name or '':<8} {route.attributes.long_name or ''}")
    return 0


async def cmd_trips(args: argparse.Namespace, config: AppConfig) -> int:
    async with Dashboard.open(config) as dashboard:
        trips = await dashboard.trip_options(
            _split_ids(args.route), active_only=args.active, max_pages=args.pages
        )
    for trip in trips:
        print(f"{trip.id:<28} {trip.attributes.headsign or PLACEHOLDER}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fleet-monitor", description="MBTA fleet-monitoring dashboard"
    )
    parser.add_argument("--config", help="Path to config.yaml")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the MBTA proxy")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    vehicles = sub.add_parser("vehicles", help="List vehicles")
    vehicles.add_argument("--page", type=int, default=0, help="Zero-based page")
    vehicles.add_argument("--limit", type=int, choices=LIMIT_OPTIONS)
    vehicles.add_argument("--route", action="append", help="Route id(s), comma separated")
    vehicles.add_argument("--trip", action="append", help="Trip id(s), comma separated")
    vehicles.add_argument("--watch", action="store_true", help="Keep polling")

    vehicle = sub.add_parser("vehicle", help="Show one vehicle")
    vehicle.add_argument("vehicle_id")
    vehicle.add_argument("--json", action="store_true", help="Print the view as JSON")

    routes = sub.add_parser("routes", help="List routes of the given types")
    routes.add_argument("--type", type=int, nargs="+", required=True, choices=range(5))
    routes.add_argument("--pages", type=int, default=1)

    trips = sub.add_parser("trips", help="List trips of the given routes")
    trips.add_argument("--route", action="append", required=True)
    trips.add_argument("--active", action="store_true", help="Only trips with a vehicle")
    trips.add_argument("--pages", type=int, default=1)

    return parser


COMMANDS = {
    "vehicles": cmd_vehicles,
    "vehicle": cmd_vehicle,
    "routes": cmd_routes,
    "trips": cmd_trips,
}


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    configure_logging(config.log_level)

    if args.command == "serve":
        return cmd_serve(args, config)
    try:
        return asyncio.run(COMMANDS[args.command](args, config))
    except ApiError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
