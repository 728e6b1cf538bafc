from __future__ import annotations

import math
from datetime import datetime


def format_duration(seconds: float) -> str:
    total_seconds = max(0.0, float(seconds))
    hours = int(total_seconds // 3600)
    minutes = int((total_seconds % 3600) // 60)

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours} hr")
    if minutes > 0:
        parts.append(f"{minutes} min")
    if not parts and total_seconds > 0:
        return f"{math.ceil(total_seconds / 60)} min"
    if not parts:
        return "0 min"
    return " ".join(parts)


def format_clock(moment: datetime) -> str:
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return f"{hour}:{moment.minute:02d} {meridiem}"


def short_name(display_name: str) -> str:
    return display_name.split(",")[0].strip()


def display_waypoints(
    waypoints: tuple[str, ...] | list[str], destination_name: str, distance_km: float
) -> list[str]:
    """Route waypoints, or a directional hint when routing returned none."""
    if waypoints:
        return list(waypoints)

    destination = short_name(destination_name)
    if 50 < distance_km <= 150:
        return [f"Towards {destination}"]
    if distance_km > 150:
        return [f"General direction of {destination}"]
    return []
