from __future__ import annotations

import httpx
import pytest

from ev_trip_planner.exceptions import ExternalServiceError, NoRouteFoundError
from ev_trip_planner.services.osrm import OsrmClient
from ev_trip_planner.services.types import GeoPoint

START = GeoPoint(latitude=52.52, longitude=13.405)
FINISH = GeoPoint(latitude=48.137, longitude=11.575)


def _payload(step_names: list[str]) -> dict:
    return {
        "code": "Ok",
        "routes": [
            {
                "distance": 584_321.0,
                "duration": 20_412.6,
                "legs": [{"steps": [{"name": name} for name in step_names]}],
            }
        ],
    }


def _response(payload: dict, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code, json=payload, request=httpx.Request("GET", "https://osrm.test/route")
    )


def test_route_parses_distance_duration_and_waypoints(mocker) -> None:
    get = mocker.patch(
        "ev_trip_planner.services.osrm.httpx.get",
        return_value=_response(
            _payload(
                [
                    "Unter den Linden",
                    "",
                    "A10",
                    "Berliner Ring (A10)",
                    "Unter den Linden",
                    "Turnpike Road",
                    "Continue Street",
                    "9th Avenue",
                    "Autobahn Nord",
                    "Leipziger Strasse",
                    "Nürnberger Strasse",
                    "Münchner Ring",
                ]
            )
        ),
    )

    route = OsrmClient().route(START, FINISH)

    assert route.distance_km == 584.3
    assert route.duration_seconds == 20413.0
    assert route.waypoints == (
        "Unter den Linden",
        "Berliner Ring",
        "Autobahn Nord",
        "Leipziger Strasse",
        "Nürnberger Strasse",
    )
    params = get.call_args.kwargs["params"]
    assert params["steps"] == "true"
    assert "13.405000,52.520000;11.575000,48.137000" in get.call_args.args[0]


def test_route_is_cached(mocker) -> None:
    get = mocker.patch(
        "ev_trip_planner.services.osrm.httpx.get",
        return_value=_response(_payload(["Autobahn Nord"])),
    )
    client = OsrmClient()

    first = client.route(START, FINISH)
    second = client.route(START, FINISH)

    assert first == second
    assert get.call_count == 1


def test_route_without_ok_code_raises_no_route(mocker) -> None:
    mocker.patch(
        "ev_trip_planner.services.osrm.httpx.get",
        return_value=_response({"code": "NoRoute", "routes": []}),
    )

    with pytest.raises(NoRouteFoundError, match="NoRoute"):
        OsrmClient().route(START, FINISH)


def test_route_bad_request_surfaces_osrm_message(mocker) -> None:
    mocker.patch(
        "ev_trip_planner.services.osrm.httpx.get",
        return_value=_response({"code": "InvalidQuery", "message": "Impossible route"}, 400),
    )

    with pytest.raises(NoRouteFoundError, match="Impossible route"):
        OsrmClient().route(START, FINISH)


def test_route_transport_failure_raises_after_retries(mocker, settings) -> None:
    settings.OSRM_RETRY_COUNT = 1
    mocker.patch("ev_trip_planner.services.osrm.time.sleep")
    get = mocker.patch(
        "ev_trip_planner.services.osrm.httpx.get",
        side_effect=httpx.ConnectError("connection refused"),
    )

    with pytest.raises(ExternalServiceError):
        OsrmClient().route(START, FINISH)

    assert get.call_count == 2
