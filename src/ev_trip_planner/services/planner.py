from __future__ import annotations

import logging

from django.conf import settings

from ev_trip_planner.exceptions import InvalidLocationError, NoRouteFoundError
from ev_trip_planner.schemas import (
    ChargingStopResponse,
    LocationPayload,
    RouteSummaryResponse,
    TripPlanRequest,
    TripPlanResponse,
)
from ev_trip_planner.services.activities import UNAVAILABLE_WARNING, GeminiActivityAdvisor
from ev_trip_planner.services.formatting import display_waypoints, format_duration
from ev_trip_planner.services.osrm import OsrmClient
from ev_trip_planner.services.simulation import simulate_trip
from ev_trip_planner.services.types import (
    ActivityAdvisor,
    GeoPoint,
    ResolvedLocation,
    RouteProvider,
    SimulationConfig,
    UserPreferences,
)

logger = logging.getLogger(__name__)


class TripPlannerService:
    def __init__(
        self,
        route_provider: RouteProvider | None = None,
        activity_advisor: ActivityAdvisor | None = None,
    ) -> None:
        self.route_provider = route_provider or OsrmClient()
        self.activity_advisor = activity_advisor or GeminiActivityAdvisor()

    def plan(self, request: TripPlanRequest) -> TripPlanResponse:
        source = _resolved(request.source, "source")
        destination = _resolved(request.destination, "destination")
        capacity_km = request.range_km or float(settings.EV_DEFAULT_RANGE_KM)
        config = build_simulation_config(request)

        try:
            route = self.route_provider.route(source.point, destination.point)
        except NoRouteFoundError as exc:
            raise NoRouteFoundError(
                f"Failed to get route from {source.display_name} to "
                f"{destination.display_name}: {exc}. The locations might be unreachable "
                "by road or too far apart."
            ) from exc
        logger.info(
            "Route %s -> %s: %.1f km, %.0f s, %d waypoint(s)",
            source.display_name,
            destination.display_name,
            route.distance_km,
            route.duration_seconds,
            len(route.waypoints),
        )

        preferences = UserPreferences(
            prefer_food_options=request.preferences.prefer_food_options,
            avoid_slow_chargers=request.preferences.avoid_slow_chargers,
            pet_friendly=request.preferences.pet_friendly,
        )
        simulation = simulate_trip(
            route,
            source_name=source.display_name,
            destination_name=destination.display_name,
            battery_percent=request.battery_percent,
            capacity_km=capacity_km,
            departure=request.departure_time,
            preferences=preferences,
            advisor=self.activity_advisor,
            config=config,
        )

        stops = [
            ChargingStopResponse(
                station=stop.station,
                eta=stop.eta,
                charging_time=stop.charging_time,
                activities_nearby=list(stop.activities),
                distance_from_start_km=round(stop.distance_from_start_km, 1),
                battery_on_arrival_percent=round(
                    stop.battery_on_arrival_km / capacity_km * 100.0, 1
                ),
                battery_after_charge_percent=round(
                    stop.battery_after_charge_km / capacity_km * 100.0, 1
                ),
                energy_kwh=round(stop.energy_kwh, 2),
            )
            for stop in simulation.stops
        ]

        summary = RouteSummaryResponse(
            distance_km=route.distance_km,
            duration=format_duration(route.duration_seconds),
            major_waypoints=display_waypoints(
                route.waypoints, destination.display_name, route.distance_km
            ),
            actual_source_address=source.display_name,
            actual_destination_address=destination.display_name,
        )

        warnings = [] if self.activity_advisor.is_available else [UNAVAILABLE_WARNING]
        return TripPlanResponse(
            source=source.display_name,
            destination=destination.display_name,
            route_summary=summary,
            charging_required=simulation.charging_required,
            charging_stops=stops,
            timeline=[event.text for event in simulation.timeline],
            assumptions={
                "range_km": capacity_km,
                "battery_percent": request.battery_percent,
                "min_battery_percent_at_destination": config.min_battery_percent_at_destination,
                "target_battery_percent_at_charger_arrival": (
                    config.target_battery_percent_at_charger_arrival
                ),
                "default_charge_up_to_percent": config.default_charge_up_to_percent,
                "km_per_kwh": config.km_per_kwh,
                "charging_rate_kw": config.charging_rate_kw,
                "fallback_avg_speed_kmh": config.fallback_avg_speed_kmh,
            },
            warnings=warnings,
        )


def build_simulation_config(request: TripPlanRequest) -> SimulationConfig:
    def pick(override: float | None, default: float) -> float:
        return float(default) if override is None else override

    return SimulationConfig(
        min_battery_percent_at_destination=pick(
            request.min_battery_percent_at_destination,
            settings.EV_MIN_BATTERY_PERCENT_AT_DESTINATION,
        ),
        target_battery_percent_at_charger_arrival=pick(
            request.target_battery_percent_at_charger_arrival,
            settings.EV_TARGET_BATTERY_PERCENT_AT_CHARGER_ARRIVAL,
        ),
        default_charge_up_to_percent=pick(
            request.default_charge_up_to_percent, settings.EV_DEFAULT_CHARGE_UP_TO_PERCENT
        ),
        km_per_kwh=pick(request.km_per_kwh, settings.EV_KM_PER_KWH),
        charging_rate_kw=pick(request.charging_rate_kw, settings.EV_CHARGING_RATE_KW),
        fallback_avg_speed_kmh=pick(
            request.fallback_avg_speed_kmh, settings.EV_FALLBACK_AVG_SPEED_KMH
        ),
    )


def _resolved(location: LocationPayload | None, role: str) -> ResolvedLocation:
    if location is None:
        raise InvalidLocationError(f"Please select a valid {role} location from the suggestions.")
    return ResolvedLocation(
        point=GeoPoint(latitude=location.latitude, longitude=location.longitude),
        display_name=location.display_name,
        source_id=location.source_id,
    )
