from __future__ import annotations

from datetime import datetime
from typing import Any

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError, CommandParser

from ev_trip_planner.exceptions import TripPlannerError
from ev_trip_planner.schemas import LocationPayload, PreferencesPayload, TripPlanRequest
from ev_trip_planner.services.geocoding import GeocodingClient
from ev_trip_planner.services.planner import TripPlannerService


class Command(BaseCommand):
    help = "Plan an EV trip between two places and print the charging timeline."

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument("source", help="Free-text source location")
        parser.add_argument("destination", help="Free-text destination location")
        parser.add_argument(
            "--battery-percent", type=float, default=80.0, help="Current battery level (0-100)"
        )
        parser.add_argument(
            "--range-km",
            type=float,
            default=None,
            help="Full-charge range in km (defaults to EV_DEFAULT_RANGE_KM)",
        )
        parser.add_argument(
            "--departure",
            type=str,
            default=None,
            help="Departure time as HH:MM (defaults to now)",
        )
        parser.add_argument(
            "--prefer-food",
            action="store_true",
            default=True,
            dest="prefer_food",
            help="Ask for food options near charging stops (default)",
        )
        parser.add_argument(
            "--no-prefer-food",
            action="store_false",
            dest="prefer_food",
            help="Do not ask for food options",
        )
        parser.add_argument(
            "--pet-friendly", action="store_true", help="Ask for pet-friendly spots"
        )
        parser.add_argument(
            "--avoid-slow-chargers",
            action="store_true",
            help="Record the preference to avoid slow chargers",
        )

    def handle(self, *_: Any, **options: Any) -> None:
        geocoder = GeocodingClient()
        source = self._resolve(geocoder, options["source"], "source")
        destination = self._resolve(geocoder, options["destination"], "destination")
        departure = options["departure"] or datetime.now().strftime("%H:%M")

        try:
            request = TripPlanRequest(
                source=source,
                destination=destination,
                battery_percent=options["battery_percent"],
                range_km=options["range_km"] or float(settings.EV_DEFAULT_RANGE_KM),
                departure_time=departure,
                preferences=PreferencesPayload(
                    prefer_food_options=options["prefer_food"],
                    avoid_slow_chargers=options["avoid_slow_chargers"],
                    pet_friendly=options["pet_friendly"],
                ),
            )
        except ValueError as exc:
            raise CommandError(f"Invalid trip parameters: {exc}") from exc

        try:
            plan = TripPlannerService().plan(request)
        except TripPlannerError as exc:
            raise CommandError(str(exc)) from exc

        for warning in plan.warnings:
            self.stdout.write(self.style.WARNING(warning))

        summary = plan.route_summary
        self.stdout.write(
            self.style.SUCCESS(
                f"{plan.source} -> {plan.destination}: "
                f"{summary.distance_km} km, {summary.duration}"
            )
        )
        if summary.major_waypoints:
            self.stdout.write(f"Via: {', '.join(summary.major_waypoints)}")

        if plan.charging_required:
            self.stdout.write(f"Charging stops: {len(plan.charging_stops)}")
            for stop in plan.charging_stops:
                self.stdout.write(f"  {stop.eta} {stop.station} ({stop.charging_time})")
                for activity in stop.activities_nearby:
                    self.stdout.write(f"    - {activity}")
        else:
            self.stdout.write("No charging required.")

        self.stdout.write("Timeline:")
        for entry in plan.timeline:
            self.stdout.write(f"  {entry}")

    @staticmethod
    def _resolve(geocoder: GeocodingClient, query: str, role: str) -> LocationPayload:
        try:
            candidates = geocoder.search(query, limit=1)
        except TripPlannerError as exc:
            raise CommandError(str(exc)) from exc
        if not candidates:
            raise CommandError(f"Could not resolve {role} location: {query!r}")

        location = candidates[0]
        return LocationPayload(
            latitude=location.point.latitude,
            longitude=location.point.longitude,
            display_name=location.display_name,
            source_id=location.source_id,
        )
