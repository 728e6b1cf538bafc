from __future__ import annotations

import logging
from typing import Any

import httpx
from django.conf import settings

from ev_trip_planner.exceptions import ActivityAdvisorError
from ev_trip_planner.services.types import UserPreferences

logger = logging.getLogger(__name__)

DISABLED_MESSAGE = "Activity suggestions disabled (API key missing). Enjoy the charge!"
EMPTY_RESPONSE_MESSAGE = "No specific activities suggested. Enjoy your break!"
UNAVAILABLE_WARNING = (
    "Gemini API key is missing (GEMINI_API_KEY). Activity suggestions are disabled."
)

PROMPT_TEMPLATE = """
You are a travel assistant suggesting activities near an EV charging station.
An EV is charging at a location described as "{station}".
The charging will take approximately {minutes} minutes.
Suggest 1 to 3 brief, interesting activities that can be done within this time and are likely within walking distance (e.g., 5-15 minutes walk).
Examples: "Grab a coffee at 'The Daily Grind' - 2 min walk", "Visit 'Miniature World Exhibit' - 10 min walk", "Relax at 'City Park Bench' - 5 min walk".
{preferences}
Provide the suggestions as a simple list, each item on a new line. Do not use markdown list formatting (like '-' or '*').
"""


class GeminiActivityAdvisor:
    def __init__(self, api_key: str | None = None) -> None:
        self.api_key = settings.GEMINI_API_KEY if api_key is None else api_key
        self.model = settings.GEMINI_MODEL
        self.base_url = settings.GEMINI_BASE_URL.rstrip("/")
        self.timeout = settings.GEMINI_TIMEOUT_SECONDS
        if not self.api_key:
            logger.warning(UNAVAILABLE_WARNING)

    @property
    def is_available(self) -> bool:
        return bool(self.api_key)

    def suggest(
        self, station_label: str, dwell_minutes: float, preferences: UserPreferences
    ) -> list[str]:
        if not self.is_available:
            return [DISABLED_MESSAGE]

        prompt = build_prompt(station_label, dwell_minutes, preferences)
        try:
            response = httpx.post(
                f"{self.base_url}/models/{self.model}:generateContent",
                json={"contents": [{"parts": [{"text": prompt}]}]},
                headers={"x-goog-api-key": self.api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
            text = self._extract_text(response.json())
        except httpx.HTTPError as exc:
            raise ActivityAdvisorError("Failed to fetch activity suggestions from Gemini") from exc
        except ValueError as exc:
            raise ActivityAdvisorError("Invalid response from Gemini") from exc

        if not text.strip():
            return [EMPTY_RESPONSE_MESSAGE]
        return [line.strip() for line in text.splitlines() if line.strip()]

    @staticmethod
    def _extract_text(payload: Any) -> str:
        if not isinstance(payload, dict):
            raise ValueError("Gemini response must be an object")
        candidates = payload.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(str(part.get("text", "")) for part in parts)


def build_prompt(station_label: str, dwell_minutes: float, preferences: UserPreferences) -> str:
    wanted: list[str] = []
    if preferences.prefer_food_options:
        wanted.append("food options (cafes, restaurants)")
    if preferences.pet_friendly:
        wanted.append("pet-friendly spots")

    preferences_line = f"Consider these preferences: {', '.join(wanted)}." if wanted else ""
    return PROMPT_TEMPLATE.format(
        station=station_label,
        minutes=int(dwell_minutes + 0.5),
        preferences=preferences_line,
    )
