from __future__ import annotations

import hashlib
import logging
import time
from typing import Any

import httpx
from django.conf import settings
from django.core.cache import cache

from ev_trip_planner.exceptions import ExternalServiceError, InvalidLocationError
from ev_trip_planner.services.types import GeoPoint, ResolvedLocation

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2


class GeocodingClient:
    def __init__(self) -> None:
        self.base_url = settings.GEOCODING_BASE_URL.rstrip("/")
        self.timeout = settings.GEOCODING_TIMEOUT_SECONDS
        self.retry_count = settings.GEOCODING_RETRY_COUNT
        self.user_agent = settings.GEOCODING_USER_AGENT

    def search(self, query: str, limit: int = 5) -> list[ResolvedLocation]:
        query = query.strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []

        cache_key = self._cache_key("search", f"{query.lower()}|{limit}")
        cached = cache.get(cache_key)
        if cached is not None:
            return [self._from_cache(item) for item in cached]

        payload = self._get(
            "search",
            {
                "q": query,
                "format": "json",
                "limit": limit,
                "addressdetails": 1,
            },
        )
        results = self._parse_results(payload)
        cache.set(
            cache_key,
            [self._to_cache(result) for result in results],
            timeout=settings.GEOCODE_CACHE_TTL_SECONDS,
        )
        return results

    def reverse(self, point: GeoPoint) -> ResolvedLocation:
        cache_key = self._cache_key("reverse", f"{point.latitude:.5f}:{point.longitude:.5f}")
        cached = cache.get(cache_key)
        if cached:
            return self._from_cache(cached)

        payload = self._get(
            "reverse",
            {
                "lat": point.latitude,
                "lon": point.longitude,
                "format": "json",
                "addressdetails": 1,
            },
        )
        result = self._parse_item(payload) if isinstance(payload, dict) else None
        if result is None:
            raise InvalidLocationError(
                f"Could not determine address for coordinates: "
                f"{point.latitude}, {point.longitude}"
            )

        cache.set(cache_key, self._to_cache(result), timeout=settings.GEOCODE_CACHE_TTL_SECONDS)
        return result

    def _get(self, path: str, params: dict[str, Any]) -> Any:
        for attempt in range(self.retry_count + 1):
            try:
                response = httpx.get(
                    f"{self.base_url}/{path}",
                    params=params,
                    timeout=self.timeout,
                    headers={
                        "Accept": "application/json",
                        "User-Agent": self.user_agent,
                    },
                )
                response.raise_for_status()
                return response.json()
            except httpx.HTTPError as exc:
                if attempt >= self.retry_count:
                    raise ExternalServiceError("Geocoding request failed") from exc
                logger.warning(
                    "Geocoding request failed (attempt %d), retrying: %s", attempt + 1, exc
                )
                time.sleep(0.3 * (attempt + 1))

        raise ExternalServiceError("Geocoding request failed")

    @staticmethod
    def _cache_key(kind: str, value: str) -> str:
        digest = hashlib.sha256(value.encode()).hexdigest()
        return f"geocode:{kind}:{digest}"

    @classmethod
    def _parse_results(cls, payload: Any) -> list[ResolvedLocation]:
        if not isinstance(payload, list):
            return []
        results = [cls._parse_item(item) for item in payload if isinstance(item, dict)]
        return [result for result in results if result is not None]

    @staticmethod
    def _parse_item(item: dict[str, Any]) -> ResolvedLocation | None:
        display_name = item.get("display_name")
        if not display_name:
            return None
        try:
            latitude = float(item["lat"])
            longitude = float(item["lon"])
        except (KeyError, TypeError, ValueError):
            return None

        source_id = None
        if item.get("osm_type") and item.get("osm_id") is not None:
            source_id = f"{item['osm_type']}/{item['osm_id']}"

        return ResolvedLocation(
            point=GeoPoint(latitude=latitude, longitude=longitude),
            display_name=str(display_name),
            source_id=source_id,
        )

    @staticmethod
    def _to_cache(result: ResolvedLocation) -> dict[str, Any]:
        return {
            "latitude": result.point.latitude,
            "longitude": result.point.longitude,
            "display_name": result.display_name,
            "source_id": result.source_id,
        }

    @staticmethod
    def _from_cache(cached: dict[str, Any]) -> ResolvedLocation:
        return ResolvedLocation(
            point=GeoPoint(latitude=cached["latitude"], longitude=cached["longitude"]),
            display_name=cached["display_name"],
            source_id=cached["source_id"],
        )
