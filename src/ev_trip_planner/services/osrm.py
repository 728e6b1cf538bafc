from __future__ import annotations

import hashlib
import logging
import re
import time
from typing import Any

import httpx
from django.conf import settings
from django.core.cache import cache

from ev_trip_planner.exceptions import ExternalServiceError, NoRouteFoundError
from ev_trip_planner.services.types import GeoPoint, RouteFacts

logger = logging.getLogger(__name__)

MAX_COLLECTED_WAYPOINTS = 10
MAX_WAYPOINTS = 5
INSTRUCTION_PATTERN = re.compile(r"^(turn|continue|merge|exit|keep|use the)", re.IGNORECASE)


class OsrmClient:
    def __init__(self) -> None:
        self.base_url = settings.OSRM_BASE_URL.rstrip("/")
        self.timeout = settings.OSRM_TIMEOUT_SECONDS
        self.retry_count = settings.OSRM_RETRY_COUNT

    def route(self, start: GeoPoint, finish: GeoPoint) -> RouteFacts:
        cache_key = self._cache_key(start, finish)
        cached = cache.get(cache_key)
        if cached:
            return RouteFacts(
                distance_km=cached["distance_km"],
                duration_seconds=cached["duration_seconds"],
                waypoints=tuple(cached["waypoints"]),
            )

        coordinates = ";".join(
            f"{point.longitude:.6f},{point.latitude:.6f}" for point in (start, finish)
        )
        endpoint = f"{self.base_url}/route/v1/driving/{coordinates}"
        params = {
            "steps": "true",
            "alternatives": "false",
            "overview": "false",
        }

        for attempt in range(self.retry_count + 1):
            try:
                response = httpx.get(endpoint, params=params, timeout=self.timeout)
                if response.status_code == 400:
                    # OSRM answers unroutable coordinates with a 400 and a JSON reason.
                    raise NoRouteFoundError(self._error_message(response))
                response.raise_for_status()
                route_facts = self._parse_response(response.json())
                cache.set(
                    cache_key,
                    {
                        "distance_km": route_facts.distance_km,
                        "duration_seconds": route_facts.duration_seconds,
                        "waypoints": list(route_facts.waypoints),
                    },
                    timeout=settings.ROUTE_CACHE_TTL_SECONDS,
                )
                return route_facts
            except NoRouteFoundError:
                raise
            except httpx.HTTPError as exc:
                if attempt >= self.retry_count:
                    raise ExternalServiceError("OSRM request failed") from exc
                logger.warning("OSRM request failed (attempt %d), retrying: %s", attempt + 1, exc)
                time.sleep(0.3 * (attempt + 1))

        raise ExternalServiceError("OSRM request failed")

    @staticmethod
    def _cache_key(start: GeoPoint, finish: GeoPoint) -> str:
        encoded = "|".join(
            f"{point.latitude:.5f}:{point.longitude:.5f}" for point in (start, finish)
        ).encode()
        digest = hashlib.sha256(encoded).hexdigest()
        return f"route:{digest}"

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            message = response.json().get("message")
        except ValueError:
            message = None
        return message or "Could not compute route"

    @classmethod
    def _parse_response(cls, payload: Any) -> RouteFacts:
        code = payload.get("code")
        if code != "Ok":
            raise NoRouteFoundError(f"OSRM could not find a route. Code: {code}")

        routes = payload.get("routes") or []
        if not routes:
            raise NoRouteFoundError("OSRM could not find a route")

        first = routes[0]
        distance_km = round(float(first.get("distance", 0.0)) / 1000.0, 1)
        duration_seconds = float(round(float(first.get("duration", 0.0))))
        return RouteFacts(
            distance_km=distance_km,
            duration_seconds=duration_seconds,
            waypoints=tuple(cls._extract_waypoints(first.get("legs") or [])),
        )

    @staticmethod
    def _extract_waypoints(legs: list[dict[str, Any]]) -> list[str]:
        """Named roads from the turn-by-turn steps, skipping instruction text and numbers."""
        waypoints: list[str] = []
        for leg in legs:
            for step in leg.get("steps") or []:
                name = str(step.get("name") or "").split(" (")[0]
                if len(name) <= 3 or name in waypoints or name[0].isdigit():
                    continue
                if len(waypoints) < MAX_COLLECTED_WAYPOINTS and not INSTRUCTION_PATTERN.match(name):
                    waypoints.append(name)
        return waypoints[:MAX_WAYPOINTS]
