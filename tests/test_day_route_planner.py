"""
Tests for the DayRoutePlanner service.
"""

from typing import Dict, List, Sequence

import pendulum

from visitplanner.domain.models import StopRequest, TravelEstimate
from visitplanner.domain.route_optimizer import RouteOptimizer
from visitplanner.services.day_route_planner import DayRoutePlanner

TZ = "Europe/Amsterdam"


class LineDistanceProvider:
    """Travel minutes and km equal the distance between positions on a line."""

    def __init__(self, positions: Dict[str, int], estimated: bool = False):
        self.positions = positions
        self.estimated = estimated

    def matrix(self, locations: Sequence[str]) -> List[List[TravelEstimate]]:
        return [
            [
                TravelEstimate(
                    duration_minutes=abs(self.positions[a] - self.positions[b]),
                    distance_km=float(abs(self.positions[a] - self.positions[b])),
                    is_estimated=self.estimated and a != b,
                )
                for b in locations
            ]
            for a in locations
        ]


def _planner(estimated: bool = False, return_to_origin: bool = True) -> DayRoutePlanner:
    provider = LineDistanceProvider({"Depot": 0, "A": 10, "B": 20, "C": 30}, estimated=estimated)
    return DayRoutePlanner(RouteOptimizer(provider), return_to_origin=return_to_origin)


STOPS = [
    StopRequest(location="C", duration_minutes=30, label="Repair"),
    StopRequest(location="A", duration_minutes=30),
    StopRequest(location="B", duration_minutes=30),
]


def test_plan_day_orders_and_times_stops():
    """Stops are visited outward and timed from the day start."""
    day_start = pendulum.parse("2024-11-25 08:30", tz=TZ)

    plan = _planner().plan_day(origin="Depot", stops=STOPS, day_start=day_start)

    route = plan.route
    assert [stop.location for stop in route.stops] == ["A", "B", "C"]
    assert [stop.arrival_time.format("HH:mm") for stop in route.stops] == ["08:40", "09:20", "10:00"]
    assert [stop.departure_time.format("HH:mm") for stop in route.stops] == ["09:10", "09:50", "10:30"]
    assert route.stops[2].label == "Repair"
    assert route.stops[0].travel_minutes_from_previous == 10
    assert route.return_travel_minutes == 30
    assert route.total_travel_minutes == 60
    assert route.total_distance_km == 60.0
    assert plan.finish_time == pendulum.parse("2024-11-25 11:00", tz=TZ)


def test_plan_day_reports_savings_against_given_order():
    day_start = pendulum.parse("2024-11-25 08:30", tz=TZ)

    plan = _planner().plan_day(origin="Depot", stops=STOPS, day_start=day_start)

    # Given order Depot-C-A-B-Depot is 30 + 20 + 10 + 20
    assert plan.original_travel_minutes == 80
    assert plan.savings_minutes == 20
    assert plan.is_estimated is False


def test_plan_day_without_return_leg():
    day_start = pendulum.parse("2024-11-25 08:30", tz=TZ)

    plan = _planner().plan_day(origin="Depot", stops=STOPS, day_start=day_start, return_to_origin=False)

    assert plan.route.return_travel_minutes == 0
    assert plan.route.total_travel_minutes == 30
    assert plan.original_travel_minutes == 60
    assert plan.finish_time == pendulum.parse("2024-11-25 10:30", tz=TZ)


def test_plan_day_uses_configured_return_policy():
    day_start = pendulum.parse("2024-11-25 08:30", tz=TZ)

    plan = _planner(return_to_origin=False).plan_day(origin="Depot", stops=STOPS, day_start=day_start)

    assert plan.route.total_travel_minutes == 30


def test_plan_day_flags_estimated_legs():
    day_start = pendulum.parse("2024-11-25 08:30", tz=TZ)

    plan = _planner(estimated=True).plan_day(origin="Depot", stops=STOPS, day_start=day_start)

    assert plan.is_estimated is True


def test_plan_day_without_stops():
    day_start = pendulum.parse("2024-11-25 08:30", tz=TZ)

    plan = _planner().plan_day(origin="Depot", stops=[], day_start=day_start)

    assert plan.route.stops == []
    assert plan.route.total_travel_minutes == 0
    assert plan.savings_minutes == 0
    assert plan.finish_time == day_start
