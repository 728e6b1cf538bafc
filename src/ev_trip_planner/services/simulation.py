"""Greedy EV trip simulation.

The vehicle is walked along the route distance with a single average speed.
Whenever the battery (in km of range) cannot cover the rest of the trip plus the
destination reserve, a charging stop is placed where the battery would reach the
charger-arrival target, and the vehicle is charged far enough to continue.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta

from ev_trip_planner.exceptions import (
    BatteryCriticallyLowError,
    InfeasiblePlanError,
    InsufficientBatteryError,
)
from ev_trip_planner.services.formatting import display_waypoints, short_name
from ev_trip_planner.services.types import (
    ActivityAdvisor,
    ChargeSession,
    ChargingStop,
    EventKind,
    RouteFacts,
    SimulationConfig,
    SimulationResult,
    SimulationState,
    TimelineEvent,
    UserPreferences,
)

logger = logging.getLogger(__name__)

EPSILON = 1e-6
MIN_LEG_KM = 10.0
MAX_LEG_KM = 300.0
NEAR_RESERVE_MAX_LEG_KM = 70.0
SAFETY_MARGIN_FRACTION = 0.05
MIN_CHARGE_FRACTION = 0.1
MIN_DWELL_MINUTES = 15.0

# Clock arithmetic needs a date; a fixed one keeps results reproducible.
ANCHOR_DATE = date(2000, 1, 1)

ACTIVITY_ERROR_FALLBACK = "Error suggesting activities. Enjoy your break."
ACTIVITY_EMPTY_FALLBACK = "Take a short break."


def average_speed_kmh(route: RouteFacts, config: SimulationConfig) -> float:
    if route.distance_km > 0 and route.duration_seconds > 0:
        return route.distance_km / (route.duration_seconds / 3600.0)
    return config.fallback_avg_speed_kmh


def reserve_km(capacity_km: float, config: SimulationConfig) -> float:
    return capacity_km * (config.min_battery_percent_at_destination / 100.0)


def can_reach_destination(
    battery_km: float, remaining_km: float, capacity_km: float, config: SimulationConfig
) -> bool:
    return battery_km - reserve_km(capacity_km, config) >= remaining_km


def choose_leg_distance(
    battery_km: float,
    distance_travelled_km: float,
    total_km: float,
    capacity_km: float,
    config: SimulationConfig,
) -> float:
    """Distance to drive before the next forced charging stop."""
    remaining_km = total_km - distance_travelled_km
    target_arrival_km = capacity_km * (config.target_battery_percent_at_charger_arrival / 100.0)

    leg_km = battery_km - target_arrival_km
    if leg_km <= 0:
        leg_km = min(battery_km * 0.9, remaining_km * 0.5, NEAR_RESERVE_MAX_LEG_KM)
        leg_km = max(MIN_LEG_KM, leg_km)
        if battery_km < leg_km + capacity_km * SAFETY_MARGIN_FRACTION:
            battery_percent = battery_km / capacity_km * 100.0
            raise BatteryCriticallyLowError(
                f"Battery critically low ({battery_percent:.0f}%). Cannot safely reach the "
                "next closest charging station from current location. Please charge your EV "
                "before attempting this leg."
            )
    else:
        leg_km = min(leg_km, remaining_km * 0.9, MAX_LEG_KM)
    leg_km = max(MIN_LEG_KM, leg_km)

    # The last leg runs straight to the destination instead of stopping just short of it.
    if distance_travelled_km + leg_km >= total_km:
        leg_km = remaining_km * 0.95
        if leg_km < MIN_LEG_KM and remaining_km > 0:
            leg_km = remaining_km

    if battery_km < leg_km:
        raise InsufficientBatteryError(
            "Insufficient battery to reach the next calculated charging station. "
            "Trip may not be feasible as planned."
        )
    return leg_km


def compute_charge_target(
    battery_km: float, remaining_km: float, capacity_km: float, config: SimulationConfig
) -> float:
    charge_up_to_km = capacity_km * (config.default_charge_up_to_percent / 100.0)
    needed_for_rest_km = remaining_km + reserve_km(capacity_km, config)
    if charge_up_to_km < needed_for_rest_km:
        charge_up_to_km = min(
            capacity_km, needed_for_rest_km + capacity_km * SAFETY_MARGIN_FRACTION
        )
    charge_up_to_km = max(charge_up_to_km, battery_km + capacity_km * MIN_CHARGE_FRACTION)
    return min(charge_up_to_km, capacity_km)


def compute_charge_session(
    battery_km: float, remaining_km: float, capacity_km: float, config: SimulationConfig
) -> ChargeSession:
    target_km = compute_charge_target(battery_km, remaining_km, capacity_km, config)
    km_charged = target_km - battery_km
    if km_charged <= 0:
        km_charged = capacity_km * MIN_CHARGE_FRACTION

    energy_kwh = km_charged / config.km_per_kwh
    minutes = max(MIN_DWELL_MINUTES, energy_kwh / config.charging_rate_kw * 60.0)
    return ChargeSession(
        target_km=target_km,
        km_charged=km_charged,
        energy_kwh=energy_kwh,
        minutes=minutes,
    )


def station_label(stop_number: int, waypoints: list[str], destination_name: str) -> str:
    index = stop_number - 1
    if index < len(waypoints) and waypoints[index]:
        near = waypoints[index]
    else:
        near = short_name(destination_name) or "next stop"
    return f"SimuCharge Station #{stop_number} (near {near})"


def request_activities(
    advisor: ActivityAdvisor,
    station: str,
    dwell_minutes: float,
    preferences: UserPreferences,
) -> list[str]:
    try:
        activities = advisor.suggest(station, dwell_minutes, preferences)
    except Exception:
        logger.warning("Activity suggestions failed for %s", station, exc_info=True)
        return [ACTIVITY_ERROR_FALLBACK]
    return list(activities) or [ACTIVITY_EMPTY_FALLBACK]


def simulate_trip(
    route: RouteFacts,
    *,
    source_name: str,
    destination_name: str,
    battery_percent: float,
    capacity_km: float,
    departure: time,
    preferences: UserPreferences,
    advisor: ActivityAdvisor,
    config: SimulationConfig | None = None,
) -> SimulationResult:
    config = config or SimulationConfig()
    if capacity_km <= 0:
        raise ValueError("capacity_km must be positive")

    total_km = max(0.0, route.distance_km)
    speed_kmh = average_speed_kmh(route, config)
    waypoints = display_waypoints(route.waypoints, destination_name, total_km)
    state = SimulationState(
        distance_travelled_km=0.0,
        battery_km=_clamp(capacity_km * (battery_percent / 100.0), capacity_km),
        clock=datetime.combine(ANCHOR_DATE, departure),
    )

    logger.info(
        "Simulating %.1f km trip at %.1f km/h with %.1f/%.1f km of range",
        total_km,
        speed_kmh,
        state.battery_km,
        capacity_km,
    )

    _record(state, "depart", f"Depart from {source_name}")
    if total_km <= EPSILON:
        state.distance_travelled_km = total_km
        _record(state, "arrive", f"Arrive at {destination_name}")

    while state.distance_travelled_km < total_km:
        remaining_km = total_km - state.distance_travelled_km

        if can_reach_destination(state.battery_km, remaining_km, capacity_km, config):
            _drive(state, remaining_km, speed_kmh, total_km, capacity_km)
            _record(state, "arrive", f"Arrive at {destination_name}")
            break

        state.charging_required = True
        leg_km = choose_leg_distance(
            state.battery_km, state.distance_travelled_km, total_km, capacity_km, config
        )
        _drive(state, leg_km, speed_kmh, total_km, capacity_km)

        if state.distance_travelled_km >= total_km:
            _record(state, "arrive", f"Arrive at {destination_name}")
            break

        _charge(
            state,
            total_km,
            capacity_km,
            waypoints,
            destination_name,
            preferences,
            advisor,
            config,
        )

    if not state.timeline or state.timeline[-1].kind != "arrive":
        raise InfeasiblePlanError(
            "Could not complete the trip plan. The destination might be unreachable with the "
            "provided parameters or simulated charging network."
        )

    logger.info(
        "Simulation finished with %d charging stop(s), arriving at %s",
        len(state.stops),
        state.timeline[-1].text,
    )
    return SimulationResult(
        charging_required=state.charging_required,
        stops=tuple(state.stops),
        timeline=tuple(state.timeline),
        final_battery_km=state.battery_km,
    )


def _charge(
    state: SimulationState,
    total_km: float,
    capacity_km: float,
    waypoints: list[str],
    destination_name: str,
    preferences: UserPreferences,
    advisor: ActivityAdvisor,
    config: SimulationConfig,
) -> None:
    station = station_label(len(state.stops) + 1, waypoints, destination_name)
    arrival = state.clock
    battery_on_arrival_km = state.battery_km
    _record(state, "stop", f"Stop at {station} (Charge & Explore)")

    remaining_km = total_km - state.distance_travelled_km
    session = compute_charge_session(state.battery_km, remaining_km, capacity_km, config)
    activities = request_activities(advisor, station, session.minutes, preferences)

    state.battery_km = _clamp(state.battery_km + session.km_charged, capacity_km)
    state.stops.append(
        ChargingStop(
            station=station,
            arrival=arrival,
            charging_minutes=session.minutes,
            activities=tuple(activities),
            distance_from_start_km=state.distance_travelled_km,
            battery_on_arrival_km=battery_on_arrival_km,
            battery_after_charge_km=state.battery_km,
            energy_kwh=session.energy_kwh,
        )
    )
    logger.debug(
        "Stop %d at %.1f km: %.1f -> %.1f km range in %.0f min",
        len(state.stops),
        state.distance_travelled_km,
        battery_on_arrival_km,
        state.battery_km,
        session.minutes,
    )

    state.clock += timedelta(minutes=session.minutes)
    _record(state, "resume", f"Resume drive from {station}")


def _drive(
    state: SimulationState,
    distance_km: float,
    speed_kmh: float,
    total_km: float,
    capacity_km: float,
) -> None:
    state.clock += timedelta(hours=distance_km / speed_kmh)
    state.battery_km = _clamp(state.battery_km - distance_km, capacity_km)
    state.distance_travelled_km += distance_km
    if state.distance_travelled_km >= total_km - EPSILON:
        state.distance_travelled_km = total_km


def _record(state: SimulationState, kind: EventKind, description: str) -> None:
    state.timeline.append(
        TimelineEvent(
            kind=kind,
            at=state.clock,
            description=description,
            battery_km=state.battery_km,
        )
    )


def _clamp(battery_km: float, capacity_km: float) -> float:
    return max(0.0, min(capacity_km, battery_km))
