from __future__ import annotations

from datetime import datetime

import pytest

from ev_trip_planner.services.formatting import (
    display_waypoints,
    format_clock,
    format_duration,
    short_name,
)


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (24000, "6 hr 40 min"),
        (2700, "45 min"),
        (7200, "2 hr"),
        (7230, "2 hr"),
        (20, "1 min"),
        (0, "0 min"),
    ],
)
def test_format_duration(seconds: float, expected: str) -> None:
    assert format_duration(seconds) == expected


@pytest.mark.parametrize(
    ("moment", "expected"),
    [
        (datetime(2000, 1, 1, 0, 5), "12:05 AM"),
        (datetime(2000, 1, 1, 9, 5, 59), "9:05 AM"),
        (datetime(2000, 1, 1, 12, 0), "12:00 PM"),
        (datetime(2000, 1, 1, 23, 59), "11:59 PM"),
    ],
)
def test_format_clock(moment: datetime, expected: str) -> None:
    assert format_clock(moment) == expected


def test_short_name() -> None:
    assert short_name("Munich, Bavaria, Germany") == "Munich"
    assert short_name("Munich") == "Munich"


def test_display_waypoints_prefers_route_names() -> None:
    assert display_waypoints(("A9", "Ring"), "Munich, Germany", 500.0) == ["A9", "Ring"]


def test_display_waypoints_falls_back_by_distance() -> None:
    assert display_waypoints((), "Munich, Germany", 40.0) == []
    assert display_waypoints((), "Munich, Germany", 120.0) == ["Towards Munich"]
    assert display_waypoints((), "Munich, Germany", 150.0) == ["Towards Munich"]
    assert display_waypoints((), "Munich, Germany", 151.0) == ["General direction of Munich"]
