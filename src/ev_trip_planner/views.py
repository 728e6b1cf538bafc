from __future__ import annotations

import json
from typing import Any

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST
from pydantic import ValidationError

from ev_trip_planner.exceptions import (
    BatteryCriticallyLowError,
    ExternalServiceError,
    InfeasiblePlanError,
    InsufficientBatteryError,
    InvalidLocationError,
    NoRouteFoundError,
)
from ev_trip_planner.schemas import (
    LocationResponse,
    LocationSearchResponse,
    TripPlanRequest,
)
from ev_trip_planner.services.geocoding import GeocodingClient
from ev_trip_planner.services.planner import TripPlannerService
from ev_trip_planner.services.types import GeoPoint, ResolvedLocation

MAX_SEARCH_LIMIT = 10

_planner_service: TripPlannerService | None = None
_geocoding_client: GeocodingClient | None = None


def get_trip_planner() -> TripPlannerService:
    global _planner_service
    if _planner_service is None:
        _planner_service = TripPlannerService()
    return _planner_service


def get_geocoding_client() -> GeocodingClient:
    global _geocoding_client
    if _geocoding_client is None:
        _geocoding_client = GeocodingClient()
    return _geocoding_client


@require_GET
def health_view(_: HttpRequest) -> HttpResponse:
    return JsonResponse(
        {
            "status": "ok",
            "activity_suggestions": get_trip_planner().activity_advisor.is_available,
        }
    )


@require_GET
def location_search_view(request: HttpRequest) -> HttpResponse:
    query = request.GET.get("q", "")
    try:
        limit = int(request.GET.get("limit", "5"))
    except ValueError:
        return _error_response("validation_error", "limit must be an integer", status=400)
    limit = max(1, min(MAX_SEARCH_LIMIT, limit))

    try:
        results = get_geocoding_client().search(query, limit=limit)
    except ExternalServiceError as exc:
        return _error_response("upstream_error", str(exc), status=502)

    response = LocationSearchResponse(results=[_location_response(item) for item in results])
    return JsonResponse(response.model_dump(mode="json"), status=200)


@require_GET
def location_reverse_view(request: HttpRequest) -> HttpResponse:
    try:
        point = GeoPoint(
            latitude=float(request.GET["lat"]),
            longitude=float(request.GET["lon"]),
        )
    except (KeyError, ValueError):
        return _error_response(
            "validation_error", "lat and lon query parameters are required", status=400
        )

    try:
        location = get_geocoding_client().reverse(point)
    except InvalidLocationError as exc:
        return _error_response("invalid_location", str(exc), status=400)
    except ExternalServiceError as exc:
        return _error_response("upstream_error", str(exc), status=502)

    return JsonResponse(_location_response(location).model_dump(mode="json"), status=200)


@csrf_exempt
@require_POST
def trip_plan_view(request: HttpRequest) -> HttpResponse:
    payload = _parse_json_payload(request)
    if isinstance(payload, JsonResponse):
        return payload

    try:
        trip_request = TripPlanRequest.model_validate(payload)
    except ValidationError as exc:
        return JsonResponse(
            {
                "error": {
                    "code": "validation_error",
                    "message": "Invalid request payload",
                    "details": exc.errors(include_url=False, include_context=False),
                }
            },
            status=400,
        )

    planner = get_trip_planner()
    try:
        response = planner.plan(trip_request)
    except InvalidLocationError as exc:
        return _error_response("invalid_location", str(exc), status=400)
    except BatteryCriticallyLowError as exc:
        return _error_response("battery_critically_low", str(exc), status=422)
    except InsufficientBatteryError as exc:
        return _error_response("insufficient_battery", str(exc), status=422)
    except InfeasiblePlanError as exc:
        return _error_response("infeasible_plan", str(exc), status=422)
    except NoRouteFoundError as exc:
        return _error_response("no_route", str(exc), status=502)
    except ExternalServiceError as exc:
        return _error_response("upstream_error", str(exc), status=502)

    return JsonResponse(response.model_dump(mode="json"), status=200)


def _location_response(location: ResolvedLocation) -> LocationResponse:
    return LocationResponse(
        latitude=location.point.latitude,
        longitude=location.point.longitude,
        display_name=location.display_name,
        source_id=location.source_id,
    )


def _parse_json_payload(request: HttpRequest) -> dict[str, Any] | JsonResponse:
    if not request.body:
        return {}

    try:
        payload = json.loads(request.body)
    except json.JSONDecodeError:
        return _error_response("invalid_json", "Request body must be valid JSON", status=400)

    if not isinstance(payload, dict):
        return _error_response("invalid_json", "JSON body must be an object", status=400)

    return payload


def _error_response(code: str, message: str, status: int) -> JsonResponse:
    return JsonResponse({"error": {"code": code, "message": message}}, status=status)
