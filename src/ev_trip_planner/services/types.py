from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Protocol

from ev_trip_planner.services.formatting import format_clock

EventKind = Literal["depart", "arrive", "stop", "resume"]


@dataclass(slots=True, frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


@dataclass(slots=True, frozen=True)
class ResolvedLocation:
    point: GeoPoint
    display_name: str
    source_id: str | None = None


@dataclass(slots=True, frozen=True)
class RouteFacts:
    distance_km: float
    duration_seconds: float
    waypoints: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class UserPreferences:
    prefer_food_options: bool = True
    # Accepted but not used by stop placement or timing.
    avoid_slow_chargers: bool = False
    pet_friendly: bool = False


@dataclass(slots=True, frozen=True)
class SimulationConfig:
    min_battery_percent_at_destination: float = 20.0
    target_battery_percent_at_charger_arrival: float = 15.0
    default_charge_up_to_percent: float = 80.0
    km_per_kwh: float = 6.0
    charging_rate_kw: float = 50.0
    fallback_avg_speed_kmh: float = 80.0


@dataclass(slots=True, frozen=True)
class TimelineEvent:
    kind: EventKind
    at: datetime
    description: str
    battery_km: float

    @property
    def text(self) -> str:
        return f"{format_clock(self.at)} - {self.description}"


@dataclass(slots=True, frozen=True)
class ChargingStop:
    station: str
    arrival: datetime
    charging_minutes: float
    activities: tuple[str, ...]
    distance_from_start_km: float
    battery_on_arrival_km: float
    battery_after_charge_km: float
    energy_kwh: float

    @property
    def eta(self) -> str:
        return format_clock(self.arrival)

    @property
    def charging_time(self) -> str:
        return f"{int(self.charging_minutes + 0.5)} min"


@dataclass(slots=True, frozen=True)
class ChargeSession:
    target_km: float
    km_charged: float
    energy_kwh: float
    minutes: float


@dataclass(slots=True)
class SimulationState:
    distance_travelled_km: float
    battery_km: float
    clock: datetime
    timeline: list[TimelineEvent] = field(default_factory=list)
    stops: list[ChargingStop] = field(default_factory=list)
    charging_required: bool = False


@dataclass(slots=True, frozen=True)
class SimulationResult:
    charging_required: bool
    stops: tuple[ChargingStop, ...]
    timeline: tuple[TimelineEvent, ...]
    final_battery_km: float


class RouteProvider(Protocol):
    def route(self, start: GeoPoint, finish: GeoPoint) -> RouteFacts: ...


class LocationResolver(Protocol):
    def search(self, query: str, limit: int = 5) -> list[ResolvedLocation]: ...


class ActivityAdvisor(Protocol):
    @property
    def is_available(self) -> bool: ...

    def suggest(
        self, station_label: str, dwell_minutes: float, preferences: UserPreferences
    ) -> list[str]: ...
