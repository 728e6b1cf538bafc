from __future__ import annotations

from datetime import time

from pydantic import BaseModel, ConfigDict, Field


class LocationPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    display_name: str = Field(min_length=1, max_length=500)
    source_id: str | None = Field(default=None, max_length=100)


class PreferencesPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    prefer_food_options: bool = True
    avoid_slow_chargers: bool = False
    pet_friendly: bool = False


class TripPlanRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    source: LocationPayload | None = None
    destination: LocationPayload | None = None
    battery_percent: float = Field(default=80.0, ge=0.0, le=100.0)
    range_km: float | None = Field(default=None, gt=0.0, le=2000.0)
    departure_time: time
    preferences: PreferencesPayload = Field(default_factory=PreferencesPayload)
    min_battery_percent_at_destination: float | None = Field(default=None, ge=0.0, le=100.0)
    target_battery_percent_at_charger_arrival: float | None = Field(
        default=None, ge=0.0, le=100.0
    )
    default_charge_up_to_percent: float | None = Field(default=None, ge=0.0, le=100.0)
    km_per_kwh: float | None = Field(default=None, gt=0.0, le=50.0)
    charging_rate_kw: float | None = Field(default=None, gt=0.0, le=1000.0)
    fallback_avg_speed_kmh: float | None = Field(default=None, gt=0.0, le=300.0)


class LocationResponse(BaseModel):
    latitude: float
    longitude: float
    display_name: str
    source_id: str | None = None


class LocationSearchResponse(BaseModel):
    results: list[LocationResponse]


class RouteSummaryResponse(BaseModel):
    distance_km: float
    duration: str
    major_waypoints: list[str]
    actual_source_address: str
    actual_destination_address: str


class ChargingStopResponse(BaseModel):
    station: str
    eta: str
    charging_time: str
    activities_nearby: list[str]
    distance_from_start_km: float
    battery_on_arrival_percent: float
    battery_after_charge_percent: float
    energy_kwh: float


class TripPlanResponse(BaseModel):
    source: str
    destination: str
    route_summary: RouteSummaryResponse
    charging_required: bool
    charging_stops: list[ChargingStopResponse]
    timeline: list[str]
    assumptions: dict[str, float]
    warnings: list[str] = Field(default_factory=list)
