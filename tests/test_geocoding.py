from __future__ import annotations

import httpx
import pytest

from ev_trip_planner.exceptions import ExternalServiceError, InvalidLocationError
from ev_trip_planner.services.geocoding import GeocodingClient
from ev_trip_planner.services.types import GeoPoint


def _response(payload, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code, json=payload, request=httpx.Request("GET", "https://nominatim.test/search")
    )


def test_search_returns_candidates_in_order(mocker) -> None:
    get = mocker.patch(
        "ev_trip_planner.services.geocoding.httpx.get",
        return_value=_response(
            [
                {
                    "lat": "52.5170365",
                    "lon": "13.3888599",
                    "display_name": "Berlin, Germany",
                    "osm_type": "relation",
                    "osm_id": 62422,
                },
                {"lat": "not-a-number", "lon": "1", "display_name": "Broken"},
                {
                    "lat": "41.6",
                    "lon": "-72.7",
                    "display_name": "Berlin, Connecticut, United States",
                },
            ]
        ),
    )

    results = GeocodingClient().search("  Berlin ", limit=3)

    assert [result.display_name for result in results] == [
        "Berlin, Germany",
        "Berlin, Connecticut, United States",
    ]
    assert results[0].point == GeoPoint(latitude=52.5170365, longitude=13.3888599)
    assert results[0].source_id == "relation/62422"
    assert results[1].source_id is None
    params = get.call_args.kwargs["params"]
    assert params["q"] == "Berlin"
    assert params["limit"] == 3
    assert get.call_args.kwargs["headers"]["User-Agent"] == "ev-trip-planner/1.0"


@pytest.mark.parametrize("query", ["", " ", "B", " B "])
def test_search_skips_short_queries(mocker, query: str) -> None:
    get = mocker.patch("ev_trip_planner.services.geocoding.httpx.get")

    assert GeocodingClient().search(query) == []
    get.assert_not_called()


def test_search_without_matches_returns_empty_list(mocker) -> None:
    mocker.patch(
        "ev_trip_planner.services.geocoding.httpx.get", return_value=_response([])
    )

    assert GeocodingClient().search("Nowhere Special") == []


def test_search_results_are_cached(mocker) -> None:
    get = mocker.patch(
        "ev_trip_planner.services.geocoding.httpx.get",
        return_value=_response([{"lat": "1", "lon": "2", "display_name": "Place"}]),
    )
    client = GeocodingClient()

    assert client.search("Place") == client.search("place")
    assert get.call_count == 1


def test_search_transport_failure_raises(mocker, settings) -> None:
    settings.GEOCODING_RETRY_COUNT = 0
    mocker.patch(
        "ev_trip_planner.services.geocoding.httpx.get",
        side_effect=httpx.ReadTimeout("timed out"),
    )

    with pytest.raises(ExternalServiceError):
        GeocodingClient().search("Berlin")


def test_reverse_returns_location(mocker) -> None:
    mocker.patch(
        "ev_trip_planner.services.geocoding.httpx.get",
        return_value=_response(
            {
                "lat": "48.1371",
                "lon": "11.5754",
                "display_name": "Marienplatz, Munich, Germany",
                "osm_type": "node",
                "osm_id": 42,
            }
        ),
    )

    location = GeocodingClient().reverse(GeoPoint(latitude=48.1371, longitude=11.5754))

    assert location.display_name == "Marienplatz, Munich, Germany"
    assert location.source_id == "node/42"


def test_reverse_without_address_raises(mocker) -> None:
    mocker.patch(
        "ev_trip_planner.services.geocoding.httpx.get",
        return_value=_response({"error": "Unable to geocode"}),
    )

    with pytest.raises(InvalidLocationError):
        GeocodingClient().reverse(GeoPoint(latitude=0.0, longitude=-140.0))
