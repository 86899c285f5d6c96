"""
Distance provider interface, the constant-fallback estimator and the factory
that picks an implementation from configuration.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, List, Mapping, Optional, Protocol, Sequence

from ..domain.models import TravelEstimate

logger = logging.getLogger(__name__)

DEFAULT_TRAVEL_MINUTES = 45
DEFAULT_TRAVEL_KM = 50.0
KM_PER_MINUTE = 1.2

API_KEY_ENV_VAR = "GOOGLE_MAPS_API_KEY"


class DistanceProvider(Protocol):
    """Protocol describing travel-time lookups needed by the planner."""

    def estimate(self, origin: str, destination: str) -> TravelEstimate:
        """Return travel time and distance from ``origin`` to ``destination``."""

    def matrix(self, locations: Sequence[str]) -> List[List[TravelEstimate]]:
        """Return the pairwise travel matrix; entry [i][j] is the leg i -> j."""


def same_location(origin: str, destination: str) -> bool:
    return origin.strip().lower() == destination.strip().lower()


class EstimatedDistanceProvider:
    """
    Estimates travel without network access.

    A destination mentioning a known place (e.g. a city name) gets the
    configured minutes for that place; anything else gets the default. Every
    result is flagged ``is_estimated`` so callers can warn about accuracy.
    """

    def __init__(
        self,
        known_travel_minutes: Optional[Mapping[str, int]] = None,
        default_minutes: int = DEFAULT_TRAVEL_MINUTES,
        default_km: float = DEFAULT_TRAVEL_KM,
    ):
        self.known_travel_minutes: Dict[str, int] = {
            keyword.lower(): minutes for keyword, minutes in (known_travel_minutes or {}).items()
        }
        self.default_minutes = default_minutes
        self.default_km = default_km

    def estimate(self, origin: str, destination: str) -> TravelEstimate:
        if same_location(origin, destination):
            return TravelEstimate.zero()

        destination_lower = destination.lower()
        for keyword, minutes in self.known_travel_minutes.items():
            if keyword in destination_lower:
                return TravelEstimate(
                    duration_minutes=minutes,
                    distance_km=float(round(minutes * KM_PER_MINUTE)),
                    is_estimated=True,
                )

        return TravelEstimate(
            duration_minutes=self.default_minutes,
            distance_km=self.default_km,
            is_estimated=True,
        )

    def matrix(self, locations: Sequence[str]) -> List[List[TravelEstimate]]:
        return [
            [self.estimate(origin, destination) for destination in locations]
            for origin in locations
        ]


def build_distance_provider(config) -> DistanceProvider:
    """
    Select the distance provider once, at startup.

    Args:
        config: AppConfig instance

    Returns:
        GoogleDistanceProvider when configured with an API key, otherwise the
        EstimatedDistanceProvider
    """
    settings = config.distance
    fallback = EstimatedDistanceProvider(
        known_travel_minutes=settings.known_travel_minutes,
        default_minutes=settings.default_minutes,
        default_km=settings.default_km,
    )

    if settings.provider != "google":
        return fallback

    api_key = settings.api_key or os.environ.get(API_KEY_ENV_VAR)
    if not api_key:
        logger.warning("Google distance provider requested without an API key; using estimates")
        return fallback

    from .google_distance import GoogleDistanceProvider

    return GoogleDistanceProvider(
        api_key=api_key,
        fallback=fallback,
        timeout=settings.timeout_seconds,
        max_parallel_requests=settings.max_parallel_requests,
    )
