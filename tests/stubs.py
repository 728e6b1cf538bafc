from __future__ import annotations

from ev_trip_planner.exceptions import ActivityAdvisorError
from ev_trip_planner.services.types import GeoPoint, RouteFacts, UserPreferences


class StubAdvisor:
    def __init__(self, activities: list[str] | None = None, available: bool = True) -> None:
        self.activities = activities if activities is not None else ["Grab a coffee - 2 min walk"]
        self.available = available
        self.calls: list[tuple[str, float, UserPreferences]] = []

    @property
    def is_available(self) -> bool:
        return self.available

    def suggest(
        self, station_label: str, dwell_minutes: float, preferences: UserPreferences
    ) -> list[str]:
        self.calls.append((station_label, dwell_minutes, preferences))
        return list(self.activities)


class FailingAdvisor(StubAdvisor):
    def suggest(
        self, station_label: str, dwell_minutes: float, preferences: UserPreferences
    ) -> list[str]:
        self.calls.append((station_label, dwell_minutes, preferences))
        raise ActivityAdvisorError("Failed to fetch activity suggestions from Gemini")


class StubRouteProvider:
    def __init__(self, route: RouteFacts | None = None, error: Exception | None = None) -> None:
        self.result = route or RouteFacts(distance_km=100.0, duration_seconds=4500.0)
        self.error = error
        self.calls: list[tuple[GeoPoint, GeoPoint]] = []

    def route(self, start: GeoPoint, finish: GeoPoint) -> RouteFacts:
        self.calls.append((start, finish))
        if self.error is not None:
            raise self.error
        return self.result


