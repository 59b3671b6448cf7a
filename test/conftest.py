"""
Shared test fixtures for fleet-monitor.

Provides:
- MBTA fixture data loaders
- An in-process fake of the proxy (httpx.MockTransport) for client-side tests
- Fake MBTA server for E2E tests
"""

import json
from pathlib import Path

import httpx
import pytest
from pytest_httpserver import HTTPServer

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "mbta"

PROXY_URL = "http://proxy.test/api/mbta"


# ---------------------------------------------------------------------------
# Fixture data loaders
# ---------------------------------------------------------------------------

def load_fixture(name: str) -> dict:
    """Load a JSON fixture from test/fixtures/mbta/."""
    with open(FIXTURES_DIR / name) as f:
        return json.load(f)


def route_resource(route_id: str, long_name: str, route_type: int = 3) -> dict:
    return {
        "id": route_id,
        "type": "route",
        "attributes": {
            "long_name": long_name,
            "short_name": route_id,
            "type": route_type,
            "direction_names": ["Outbound", "Inbound"],
        },
        "relationships": {},
    }


def trip_resource(trip_id: str, headsign: str = "Alewife") -> dict:
    return {
        "id": trip_id,
        "type": "trip",
        "attributes": {"headsign": headsign, "direction_id": 1},
        "relationships": {},
    }


# ---------------------------------------------------------------------------
# Fake proxy
# ---------------------------------------------------------------------------

class FakeProxy:
    """
    Routes requests by path under /api/mbta to canned JSON bodies.

    Every request is recorded in ``requests``. Unknown paths return 404.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: dict[str, tuple[int, dict]] = {
            "/vehicles": (200, load_fixture("vehicles_page.json")),
            "/vehicles/y1886": (200, load_fixture("vehicle_detail.json")),
            "/trips/70001": (200, load_fixture("trip_shape.json")),
            "/schedules": (200, load_fixture("schedules_trip.json")),
            "/routes": (200, {"data": [route_resource("Red", "Red Line", 1)]}),
            "/trips": (200, {"data": [trip_resource("70002")]}),
        }

    def set(self, path: str, body: dict, status: int = 200) -> None:
        self.routes[path] = (status, body)

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def params_for(self, path: str) -> list[dict]:
        return [
            dict(r.url.params) for r in self.requests
            if r.url.path == f"/api/mbta{path}"
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/api/mbta")
        if path not in self.routes:
            return httpx.Response(404, json={"errors": [{"status": "404"}]})
        status, body = self.routes[path]
        return httpx.Response(status, json=body)


@pytest.fixture()
def fake_proxy():
    return FakeProxy()


@pytest.fixture()
def proxy_http_client(fake_proxy):
    """httpx.AsyncClient whose requests are answered by ``fake_proxy``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_proxy))


# ---------------------------------------------------------------------------
# E2E fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="module")
def fake_mbta_server():
    """
    A real HTTP server that impersonates the MBTA v3 API.

    Serves fixture JSON responses. Tests configure what the server returns
    by adding expectations before making requests.

    Uses pytest-httpserver to handle real HTTP requests.
    """
    server = HTTPServer(host="127.0.0.1")
    server.start()
    yield server
    server.clear()
    if server.is_running():
        server.stop()
