"""
Stop ordering with nearest-neighbour construction and 2-opt local search.

The origin is fixed at matrix index 0 and is not part of the tour; stops are
matrix indices 1..n. Costs are travel minutes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Protocol, Sequence

from .exceptions import ValidationError
from .models import TravelEstimate

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 100


class MatrixProvider(Protocol):
    """The part of a distance provider the optimizer needs."""

    def matrix(self, locations: Sequence[str]) -> List[List[TravelEstimate]]:
        """Return the pairwise travel matrix for ``locations``."""


@dataclass
class OptimizedTour:
    """
    Result of an optimization run.

    ``order`` holds indices into the supplied stop list, in visiting order.
    """
    order: List[int]
    cost: float
    construction_cost: float
    original_cost: float
    iterations: int = 0
    matrix: List[List[TravelEstimate]] = field(default_factory=list)


def tour_cost(tour: Sequence[int], costs: Sequence[Sequence[float]], return_to_origin: bool) -> float:
    """Sum of consecutive legs, starting at the origin (index 0)."""
    if not tour:
        return 0.0
    total = costs[0][tour[0]]
    for current, following in zip(tour, tour[1:]):
        total += costs[current][following]
    if return_to_origin:
        total += costs[tour[-1]][0]
    return total


def nearest_neighbor(costs: Sequence[Sequence[float]]) -> List[int]:
    """
    Greedy tour from the origin, always moving to the closest unvisited stop.

    Ties go to the lower matrix index.
    """
    unvisited = list(range(1, len(costs)))
    tour: List[int] = []
    current = 0
    while unvisited:
        next_stop = min(unvisited, key=lambda j: (costs[current][j], j))
        tour.append(next_stop)
        unvisited.remove(next_stop)
        current = next_stop
    return tour


def two_opt(
    tour: List[int],
    costs: Sequence[Sequence[float]],
    return_to_origin: bool,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> tuple[List[int], int]:
    """
    Improve a tour by reversing segments until no reversal helps.

    Returns the improved tour and the number of full passes made. Stops early
    after ``max_iterations`` passes with the best tour found so far.
    """
    best = list(tour)
    best_cost = tour_cost(best, costs, return_to_origin)
    n = len(best)
    passes = 0
    improved = True

    while improved:
        if passes >= max_iterations:
            logger.warning("2-opt stopped after %d passes without converging", passes)
            break
        improved = False
        passes += 1
        for i in range(n - 1):
            for j in range(i + 1, n):
                candidate = best[:i] + best[i:j + 1][::-1] + best[j + 1:]
                candidate_cost = tour_cost(candidate, costs, return_to_origin)
                if candidate_cost < best_cost - 1e-9:
                    best, best_cost = candidate, candidate_cost
                    improved = True

    return best, passes


class RouteOptimizer:
    """
    Orders a day's stops to minimise total travel time.

    Construction uses nearest neighbour; when the caller's own order is
    strictly cheaper it seeds the local search instead, so the result is
    never worse than the input order. 2-opt then runs to a local optimum
    (global optimality is not attempted).
    """

    def __init__(self, distance_provider: MatrixProvider, max_iterations: int = DEFAULT_MAX_ITERATIONS):
        if max_iterations < 1:
            raise ValidationError(f"max_iterations must be at least 1, got {max_iterations}")
        self._distance_provider = distance_provider
        self.max_iterations = max_iterations

    def optimize(self, origin: str, stops: Sequence[str], return_to_origin: bool = True) -> OptimizedTour:
        """
        Order ``stops`` starting from ``origin``.

        Args:
            origin: Start location (and end location when returning)
            stops: Stop locations in the caller's order
            return_to_origin: Whether the final leg back to origin counts

        Returns:
            OptimizedTour with indices into ``stops``
        """
        if not stops:
            return OptimizedTour(order=[], cost=0.0, construction_cost=0.0, original_cost=0.0)

        matrix = self._distance_provider.matrix([origin, *stops])
        costs = [[float(leg.duration_minutes) for leg in row] for row in matrix]

        result = self.optimize_matrix(costs, return_to_origin)
        result.matrix = matrix
        return result

    def optimize_matrix(self, costs: Sequence[Sequence[float]], return_to_origin: bool = True) -> OptimizedTour:
        """Optimize over a square cost matrix with the origin at index 0."""
        size = len(costs)
        if any(len(row) != size for row in costs):
            raise ValidationError("Travel matrix must be square")

        stop_count = size - 1
        if stop_count <= 0:
            return OptimizedTour(order=[], cost=0.0, construction_cost=0.0, original_cost=0.0)

        original = list(range(1, size))
        original_cost = tour_cost(original, costs, return_to_origin)

        if stop_count == 1:
            return OptimizedTour(
                order=[0], cost=original_cost, construction_cost=original_cost, original_cost=original_cost
            )

        seed = nearest_neighbor(costs)
        seed_cost = tour_cost(seed, costs, return_to_origin)
        if original_cost < seed_cost:
            logger.debug("Input order (%.1f) beats nearest neighbour (%.1f), seeding 2-opt with it",
                         original_cost, seed_cost)
            seed, seed_cost = original, original_cost

        tour, passes = two_opt(seed, costs, return_to_origin, self.max_iterations)
        cost = tour_cost(tour, costs, return_to_origin)
        logger.debug("Optimized %d stops: %.1f -> %.1f minutes in %d passes",
                     stop_count, original_cost, cost, passes)

        return OptimizedTour(
            order=[index - 1 for index in tour],
            cost=cost,
            construction_cost=seed_cost,
            original_cost=original_cost,
            iterations=passes,
        )
