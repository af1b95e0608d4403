"""
test_api.py
──────────────────────────────────────────────────────────────────────────────
HTTP surface: /v1/health, /v1/itinerary/default-trip, /v1/itinerary/compute.
The routing tool dependency is overridden with the offline estimator.

Run:
    pytest backend/test_api.py
──────────────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from api.server import app
from api.routes.itinerary import get_routing_tool
from modules.tool_usage.route_cache import InMemoryRouteCache
from modules.tool_usage.routing_tool import RoutingError, RoutingTool


class _DownRouter(RoutingTool):
    def route(self, place_ids):
        raise RoutingError("ERROR_ROUTING_HTTP: router unreachable")


@pytest.fixture
def client():
    app.dependency_overrides[get_routing_tool] = lambda: RoutingTool(
        provider="estimate", cache=InMemoryRouteCache(),
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


def _default_trip(client: TestClient) -> dict:
    resp = client.get("/v1/itinerary/default-trip")
    assert resp.status_code == 200
    return resp.json()


def test_health(client):
    body = client.get("/v1/health").json()
    assert body["status"] == "ok"
    assert body["service"] == "roadtrip-planner-backend"


def test_default_trip_document(client):
    trip = _default_trip(client)
    assert trip["schema_version"] == 2
    assert trip["active_scenario_id"] == "base-colorado-bend"
    assert trip["places_by_id"]["annapolis"]["location"] == {"lat": 38.9784, "lng": -76.4922}


def test_compute_default_trip(client):
    resp = client.post("/v1/itinerary/compute", json={"trip": _default_trip(client)})
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["days"]) == 10
    assert body["spills_beyond_end_date"] is False
    assert body["base_place_by_day"]["2026-01-10"] == "colorado-bend"
    assert body["latest_return_depart"] is not None


def test_compute_with_supplied_legs_skips_routing(client):
    legs = [
        {"from_place_id": "colorado-bend", "to_place_id": "annapolis", "duration_sec": 28 * 3600, "kind": "up"},
        {"from_place_id": "annapolis", "to_place_id": "houston", "duration_sec": 27 * 3600, "kind": "home"},
    ]
    resp = client.post(
        "/v1/itinerary/compute",
        json={"trip": _default_trip(client), "legs": legs, "include_day_trips": False},
    )
    assert resp.status_code == 200
    assert [leg["to_place_id"] for leg in resp.json()["legs"]] == ["annapolis", "houston"]


def test_compute_with_no_legs_notes_missing_route(client):
    resp = client.post("/v1/itinerary/compute", json={"trip": _default_trip(client), "legs": []})
    assert resp.status_code == 200
    first = resp.json()["days"][0]
    assert first["legs"] == []
    assert first["warnings"][0].startswith("No route yet")


def test_invalid_window_is_422(client):
    trip = _default_trip(client)
    trip["end_date_iso"] = "2026-01-01"
    resp = client.post("/v1/itinerary/compute", json={"trip": trip})
    assert resp.status_code == 422
    assert any("before start_date_iso" in e for e in resp.json()["detail"])


def test_malformed_document_is_422(client):
    resp = client.post("/v1/itinerary/compute", json={"trip": {"title": "nothing else"}})
    assert resp.status_code == 422
    assert "Invalid trip" in resp.json()["detail"]


def test_unknown_scenario_is_422(client):
    resp = client.post(
        "/v1/itinerary/compute",
        json={"trip": _default_trip(client), "scenario_id": "nope"},
    )
    assert resp.status_code == 422


def test_negative_supplied_leg_is_rejected(client):
    legs = [{"from_place_id": "a", "to_place_id": "b", "duration_sec": -1}]
    resp = client.post("/v1/itinerary/compute", json={"trip": _default_trip(client), "legs": legs})
    assert resp.status_code == 422


def test_routing_failure_is_502(client):
    trip = _default_trip(client)
    app.dependency_overrides[get_routing_tool] = lambda: _DownRouter(provider="estimate")
    resp = client.post("/v1/itinerary/compute", json={"trip": trip})
    assert resp.status_code == 502
    assert "ERROR_ROUTING_HTTP" in resp.json()["detail"]


def test_non_numeric_dwell_minutes_is_422(client):
    trip = _default_trip(client)
    scenario = trip["scenarios_by_id"][trip["active_scenario_id"]]
    scenario.setdefault("day_overrides_by_iso", {})["2026-01-12"] = {
        "mode": "auto",
        "dwell_blocks": [{"id": "lunch", "place_id": "annapolis", "minutes": "abc"}],
    }
    resp = client.post("/v1/itinerary/compute", json={"trip": trip})
    assert resp.status_code == 422
    assert "Invalid trip" in resp.json()["detail"]
    assert "minutes" in resp.json()["detail"]


def test_non_object_day_trip_is_422(client):
    trip = _default_trip(client)
    scenario = trip["scenarios_by_id"][trip["active_scenario_id"]]
    scenario.setdefault("day_overrides_by_iso", {})["2026-01-12"] = {"mode": "auto", "day_trip": "NYC"}
    resp = client.post("/v1/itinerary/compute", json={"trip": trip})
    assert resp.status_code == 422
    assert "day_trip" in resp.json()["detail"]


def test_compute_reports_place_order(client):
    body = client.post("/v1/itinerary/compute", json={"trip": _default_trip(client)}).json()
    assert body["place_order"] == [
        "colorado-bend", "hot-springs", "nashville", "mammoth-cave",
        "annapolis", "lake-house", "houston",
    ]


def test_startup_configures_logging():
    with patch("api.server.configure_logging") as setup:
        with TestClient(app):
            pass
    setup.assert_called_once_with()
