"""
Application service that turns a set of stops into a timed day plan.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from pendulum import DateTime

from ..domain.models import DayPlan, Route, RouteStop, StopRequest, TravelEstimate
from ..domain.route_optimizer import RouteOptimizer, tour_cost

logger = logging.getLogger(__name__)


class DayRoutePlanner:
    """
    Orders stops with the RouteOptimizer and assigns arrival and departure
    times starting from the beginning of the day.
    """

    def __init__(self, optimizer: RouteOptimizer, return_to_origin: bool = True) -> None:
        self._optimizer = optimizer
        self.return_to_origin = return_to_origin

    def plan_day(
        self,
        *,
        origin: str,
        stops: Sequence[StopRequest],
        day_start: DateTime,
        return_to_origin: Optional[bool] = None,
    ) -> DayPlan:
        """
        Plan a work day.

        Args:
            origin: Where the day starts (and ends when returning)
            stops: Stops with their on-site durations, in the caller's order
            day_start: Departure time from the origin
            return_to_origin: Override the configured return-leg policy

        Returns:
            DayPlan with the optimized Route and the travel time saved
            against the caller's order
        """
        returning = self.return_to_origin if return_to_origin is None else return_to_origin
        tour = self._optimizer.optimize(origin, [stop.location for stop in stops], returning)

        if not tour.order:
            route = Route(origin_location=origin, stops=[], total_travel_minutes=0, total_distance_km=0.0)
            return DayPlan(
                route=route,
                original_travel_minutes=0,
                savings_minutes=0,
                finish_time=day_start,
                is_estimated=False,
            )

        matrix = tour.matrix
        route_stops: List[RouteStop] = []
        legs: List[TravelEstimate] = []
        current_time = day_start
        previous = 0

        for stop_index in tour.order:
            stop = stops[stop_index]
            position = stop_index + 1
            leg = matrix[previous][position]
            legs.append(leg)

            arrival = current_time.add(minutes=leg.duration_minutes)
            departure = arrival.add(minutes=stop.duration_minutes)
            route_stops.append(
                RouteStop(
                    location=stop.location,
                    duration_minutes=stop.duration_minutes,
                    arrival_time=arrival,
                    departure_time=departure,
                    travel_minutes_from_previous=leg.duration_minutes,
                    travel_km_from_previous=leg.distance_km,
                    label=stop.label,
                )
            )
            current_time = departure
            previous = position

        return_leg = matrix[previous][0] if returning else TravelEstimate.zero()
        legs.append(return_leg)
        finish_time = current_time.add(minutes=return_leg.duration_minutes)

        route = Route(
            origin_location=origin,
            stops=route_stops,
            total_travel_minutes=sum(leg.duration_minutes for leg in legs),
            total_distance_km=round(sum(leg.distance_km for leg in legs), 1),
            return_travel_minutes=return_leg.duration_minutes,
            return_distance_km=return_leg.distance_km,
        )

        costs = [[leg.duration_minutes for leg in row] for row in matrix]
        original_minutes = int(tour_cost(list(range(1, len(stops) + 1)), costs, returning))
        savings = original_minutes - route.total_travel_minutes
        logger.info(
            "Planned %d stops from %r: %d travel minutes (saved %d)",
            len(route_stops), origin, route.total_travel_minutes, savings,
        )

        return DayPlan(
            route=route,
            original_travel_minutes=original_minutes,
            savings_minutes=savings,
            finish_time=finish_time,
            is_estimated=any(leg.is_estimated for leg in legs),
            iterations=tour.iterations,
        )
